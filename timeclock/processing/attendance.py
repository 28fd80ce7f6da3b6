# timeclock/processing/attendance.py
"""
Attendance logic: what to do when the detection loop recognizes someone.

TimeClock is the event sink of the detection loop. For each recognition it
looks up the employee's last record and suggests the opposite action
(check-in after check-out and vice versa). The record is written either by
the operator (register) or right away in auto-record mode. After writing,
it pauses briefly and hands the cooldown back to the loop (consume) so the
same person can trigger the next action without waiting out the window.

Usage:
    clock = TimeClock(db_path="timeclock.db", auto_record=True)
    clock.set_consume_callback(cooldown.consume)

    loop = DetectionLoop(..., on_recognized=clock.on_identity_recognized)
"""
import time
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from ..data import database
from ..recognition.types import Identity, confidence_percent

logger = logging.getLogger(__name__)


class AttendanceAction(Enum):
    """Kind of time record."""
    CHECK_IN = database.CHECK_IN
    CHECK_OUT = database.CHECK_OUT


def suggest_action(last_record: Optional[dict]) -> AttendanceAction:
    """Check out after a check-in, check in otherwise."""
    if last_record is not None and last_record['type'] == AttendanceAction.CHECK_IN.value:
        return AttendanceAction.CHECK_OUT
    return AttendanceAction.CHECK_IN


@dataclass
class Recognition:
    """The employee currently shown at the clock."""
    identity: Identity
    distance: float
    last_record: Optional[dict]
    suggested_action: AttendanceAction

    @property
    def confidence(self) -> int:
        """Percent, as shown to the employee."""
        return confidence_percent(self.distance)


class TimeClock:
    """
    Event sink that turns recognitions into time records.
    """

    def __init__(
        self,
        db_path=None,
        auto_record: bool = False,
        pause_seconds: float = 2.0,
        record_gap_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now
    ):
        """
        Args:
            db_path: SQLite file holding employees and time records
            auto_record: Write the suggested action immediately (kiosk mode)
            pause_seconds: Ignore recognitions this long after writing a record
            record_gap_seconds: In auto mode, skip employees whose last record
                is more recent than this
            clock: Monotonic time source for the pause
            now: Wall clock for record timestamps
        """
        self.db_path = db_path
        self.auto_record = auto_record
        self.pause_seconds = pause_seconds
        self.record_gap_seconds = record_gap_seconds
        self._clock = clock
        self._now = now

        self._lock = threading.Lock()
        self._current: Optional[Recognition] = None
        self._paused_until = 0.0
        self._on_consume: Optional[Callable[[str], object]] = None

    def set_consume_callback(self, callback: Callable[[str], object]):
        """
        Called with the employee id after a record is written.

        Args:
            callback: usually CooldownController.consume
        """
        self._on_consume = callback

    @property
    def current(self) -> Optional[Recognition]:
        return self._current

    def is_paused(self, now: Optional[float] = None) -> bool:
        if now is None:
            now = self._clock()
        return now < self._paused_until

    def on_identity_recognized(self, identity: Identity, distance: float) -> Optional[Recognition]:
        """
        Handle a fresh recognition from the detection loop.

        Returns:
            The new current Recognition, or None while paused after a record
        """
        if self.is_paused():
            logger.debug(f"Ignoring {identity.display_name}, clock is busy")
            return None

        last_record = database.get_last_record(identity.id, self.db_path)
        recognition = Recognition(
            identity=identity,
            distance=distance,
            last_record=last_record,
            suggested_action=suggest_action(last_record),
        )
        with self._lock:
            self._current = recognition

        logger.info(f"👤 {identity.display_name} ({recognition.confidence}%) -> "
                    f"suggest {recognition.suggested_action.value}")

        if self.auto_record:
            if self._too_soon(last_record):
                logger.info(f"⏳ {identity.display_name}: last record too recent, not recording")
            else:
                self.register()
        return recognition

    def _too_soon(self, last_record: Optional[dict]) -> bool:
        if last_record is None:
            return False
        elapsed = (self._now() - last_record['timestamp']).total_seconds()
        return elapsed < self.record_gap_seconds

    def register(self, action: Optional[AttendanceAction] = None) -> Optional[dict]:
        """
        Write a time record for the current recognition.

        Args:
            action: CHECK_IN / CHECK_OUT (default: the suggested action)

        Returns:
            The stored record, or None if nobody is recognized
        """
        with self._lock:
            recognition = self._current
            if recognition is None:
                return None
            self._current = None

        action = action or recognition.suggested_action
        record = database.log_time_record(
            recognition.identity.id, action.value, self._now(), self.db_path
        )
        self._paused_until = self._clock() + self.pause_seconds

        symbol = "🟢" if action == AttendanceAction.CHECK_IN else "🔴"
        logger.info(f"{symbol} {recognition.identity.display_name} - "
                    f"{action.value.upper().replace('_', '-')}")

        if self._on_consume is not None:
            self._on_consume(recognition.identity.id)
        return record

    def clear(self):
        """Forget the current recognition without recording."""
        with self._lock:
            self._current = None
