# timeclock/processing/cooldown.py
"""
Debounce / cooldown for recognition events.

A continuous detection loop sees the same face many times a second. The
cooldown lets the first sighting through and suppresses the rest until the
window runs out, a different person shows up, or the event sink consumes the
cooldown after recording a clock event.

The state machine is written as pure functions over the CooldownState value
object, so it can be tested without a running loop. CooldownController holds
the state for exactly one detection loop.

Usage:
    controller = CooldownController(window=3.0)

    if controller.observe("emp-1"):
        sink.on_identity_recognized(identity, distance)

    # after a clock-in was written
    controller.consume("emp-1")
"""
import time
import threading
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 3.0


@dataclass(frozen=True)
class CooldownState:
    """IDLE when active_identity_id is None, else COOLING(id, expires_at)."""
    active_identity_id: Optional[str] = None
    expires_at: Optional[float] = None

    @property
    def is_idle(self) -> bool:
        return self.active_identity_id is None

    def is_active(self, now: float) -> bool:
        return not self.is_idle and now < self.expires_at

    def remaining(self, now: float) -> float:
        if self.is_idle:
            return 0.0
        return max(0.0, self.expires_at - now)


IDLE = CooldownState()


def observe(
    state: CooldownState,
    identity_id: Optional[str],
    now: float,
    window: float = DEFAULT_WINDOW,
    refire_on_expiry: bool = True
) -> Tuple[CooldownState, bool]:
    """
    Feed one resolver outcome into the state machine.

    Args:
        state: Current state
        identity_id: Matched identity, or None for "face found, no match"
        now: Current time (seconds, monotonic)
        window: Cooldown length in seconds
        refire_on_expiry: Whether the same identity fires again once its
            window has run out. False keeps refreshing the window silently.

    Returns:
        (new_state, fire) where fire means "deliver a recognized event"
    """
    if identity_id is None:
        return IDLE, False

    if state.active_identity_id != identity_id:
        # IDLE, or switching identities: never debounced
        return CooldownState(identity_id, now + window), True

    if now < state.expires_at:
        return state, False

    return CooldownState(identity_id, now + window), refire_on_expiry


def consume(state: CooldownState, identity_id: str) -> CooldownState:
    """Clear the cooldown if `identity_id` is the one cooling down."""
    if state.active_identity_id == identity_id:
        return IDLE
    return state


class CooldownController:
    """
    Owns the CooldownState of one detection stream.

    Written by the detection loop (observe) and the event sink (consume),
    which may run on different threads, hence the lock.
    """

    def __init__(
        self,
        window: float = DEFAULT_WINDOW,
        refire_on_expiry: bool = True,
        clock: Callable[[], float] = time.monotonic
    ):
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}")
        self.window = window
        self.refire_on_expiry = refire_on_expiry
        self._clock = clock
        self._state = IDLE
        self._lock = threading.Lock()

    @property
    def state(self) -> CooldownState:
        return self._state

    def observe(self, identity_id: Optional[str], now: Optional[float] = None) -> bool:
        """Record a resolver outcome. Returns True if the event should fire."""
        if now is None:
            now = self._clock()
        with self._lock:
            self._state, fire = observe(
                self._state, identity_id, now, self.window, self.refire_on_expiry
            )
        return fire

    def consume(self, identity_id: str) -> bool:
        """
        Release the cooldown after a clock event was recorded.

        Returns:
            True if the cooldown belonged to identity_id and was cleared
        """
        with self._lock:
            new_state = consume(self._state, identity_id)
            cleared = new_state is not self._state
            self._state = new_state
        if not cleared:
            logger.debug(f"consume({identity_id!r}) ignored, not the active identity")
        return cleared

    def is_active(self, now: Optional[float] = None) -> bool:
        if now is None:
            now = self._clock()
        return self._state.is_active(now)

    def remaining(self, now: Optional[float] = None) -> float:
        if now is None:
            now = self._clock()
        return self._state.remaining(now)

    def reset(self):
        with self._lock:
            self._state = IDLE
