# timeclock/processing/detection_loop.py
"""
Detection loop: frame -> embedding -> identity -> debounced event.

One cycle (tick):
    1. Skip if the previous extraction is still running (reentrancy guard)
    2. Pull the current frame from the frame source
    3. Extract a face embedding (slow, model inference)
    4. Resolve it against the registry snapshot
    5. Run the result through the cooldown controller
    6. Fire on_recognized(identity, distance) for fresh matches only

Camera or model problems count as "no detection this cycle" and are retried
on the next tick. Only configuration errors (corrupted enrollment data)
propagate to the caller.

stop() bumps a generation counter. A tick compares the generation it
started with before acting on an extraction result, so nothing fires after
stop() even if an extraction was mid-flight.

Usage:
    loop = DetectionLoop(
        frame_source=camera,
        extractor=extractor,
        registry=registry.snapshot,
        on_recognized=clock.on_identity_recognized,
        cooldown=CooldownController(window=3.0),
    )
    loop.start()
    ...
    loop.stop()
    loop.join()
"""
import time
import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..core.errors import ConfigurationError, TransientError, FrameUnavailableError
from ..recognition.resolver import resolve, DEFAULT_THRESHOLD
from ..recognition.types import MatchResult
from .cooldown import CooldownController

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.2


class CycleOutcome(Enum):
    """What one tick did."""
    BUSY = "busy"                           # previous extraction still in flight
    STOPPED = "stopped"
    FRAME_UNAVAILABLE = "frame_unavailable"
    EXTRACTOR_ERROR = "extractor_error"
    DISCARDED = "discarded"                 # stopped while extracting
    NO_FACE = "no_face"
    NO_MATCH = "no_match"
    SUPPRESSED = "suppressed"               # matched, but still cooling down
    RECOGNIZED = "recognized"


class DetectionStatus(Enum):
    """User-visible state of the loop."""
    WAITING = "waiting for face"
    CAMERA_UNAVAILABLE = "camera not available"
    MODEL_NOT_READY = "model not ready"
    NOT_RECOGNIZED = "not recognized"
    RECOGNIZED = "recognized"


@dataclass
class LoopStats:
    """Counters for monitoring."""
    cycles: int = 0
    outcomes: Counter = field(default_factory=Counter)
    last_extract_ms: float = 0.0
    avg_extract_ms: float = 0.0

    def record_extract(self, elapsed: float):
        ms = elapsed * 1000
        self.last_extract_ms = ms
        # Exponential moving average
        if self.avg_extract_ms == 0.0:
            self.avg_extract_ms = ms
        else:
            self.avg_extract_ms = 0.8 * self.avg_extract_ms + 0.2 * ms


class DetectionLoop:
    """
    Cooperative detection loop for a single camera stream.
    """

    def __init__(
        self,
        frame_source,
        extractor,
        registry: Callable,
        on_recognized: Optional[Callable] = None,
        *,
        cooldown: Optional[CooldownController] = None,
        threshold: float = DEFAULT_THRESHOLD,
        min_interval: float = DEFAULT_INTERVAL,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            frame_source: Object with get_current_frame() -> frame or None
            extractor: Object with extract(frame) -> FaceDetection or None
            registry: Zero-argument callable returning the current registry
                snapshot (called once per cycle)
            on_recognized: Callback(identity, distance) for fresh matches
            cooldown: Debounce controller (a 3 s one is created if omitted)
            threshold: Resolver distance threshold
            min_interval: Minimum seconds between the starts of two attempts
            clock: Monotonic time source
        """
        if not threshold > 0:
            raise ValueError(f"threshold must be positive, got {threshold}")
        if min_interval < 0:
            raise ValueError(f"min_interval must not be negative, got {min_interval}")

        self.frame_source = frame_source
        self.extractor = extractor
        self.registry = registry
        self.on_recognized = on_recognized
        self.cooldown = cooldown or CooldownController(clock=clock)
        self.threshold = threshold
        self.min_interval = min_interval
        self._clock = clock

        # Reentrancy guard + cancellation
        self._in_flight = threading.Lock()
        self._in_flight_since: Optional[float] = None
        self._extracting = 0
        self._generation = 0
        self._stop_event = threading.Event()

        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None

        # Display state
        self.current_match: Optional[MatchResult] = None
        self.status = DetectionStatus.WAITING
        self.stats = LoopStats()

    # ------------------------------------------------------------------
    # One cycle
    # ------------------------------------------------------------------
    def tick(self) -> CycleOutcome:
        """Run one detection cycle. Safe to call from any thread."""
        if not self._in_flight.acquire(blocking=False):
            return self._count(CycleOutcome.BUSY)

        try:
            if self._stop_event.is_set():
                return self._count(CycleOutcome.STOPPED)

            generation = self._generation
            self.stats.cycles += 1

            # --- Frame ---
            try:
                frame = self.frame_source.get_current_frame()
            except FrameUnavailableError as e:
                logger.debug(f"Frame source: {e}")
                frame = None
            if frame is None:
                self.status = DetectionStatus.CAMERA_UNAVAILABLE
                return self._count(CycleOutcome.FRAME_UNAVAILABLE)

            # --- Extraction (suspension point) ---
            detection, error = self._extract(frame)

            if generation != self._generation or self._stop_event.is_set():
                logger.debug("Extraction result discarded, loop stopped")
                return self._count(CycleOutcome.DISCARDED)

            if error is not None:
                self.status = DetectionStatus.MODEL_NOT_READY
                return self._count(CycleOutcome.EXTRACTOR_ERROR)

            if detection is None:
                # Brief occlusion: clear the display, keep the cooldown
                self.current_match = None
                self.status = DetectionStatus.WAITING
                return self._count(CycleOutcome.NO_FACE)

            # --- Resolution ---
            match = resolve(detection.embedding, self.registry(), self.threshold)

            if match is None:
                self.cooldown.observe(None, self._clock())
                self.current_match = None
                self.status = DetectionStatus.NOT_RECOGNIZED
                return self._count(CycleOutcome.NO_MATCH)

            self.current_match = match
            self.status = DetectionStatus.RECOGNIZED

            if not self.cooldown.observe(match.identity.id, self._clock()):
                return self._count(CycleOutcome.SUPPRESSED)

            if generation != self._generation:
                return self._count(CycleOutcome.DISCARDED)

            logger.info(f"🙂 Recognized {match.identity.display_name} "
                        f"(distance={match.distance:.3f})")
            self._deliver(match)
            return self._count(CycleOutcome.RECOGNIZED)

        finally:
            self._in_flight.release()

    def _extract(self, frame):
        """Returns (detection, error); error is the TransientError, if any."""
        self._extracting += 1
        assert self._extracting == 1, "overlapping extraction calls"
        self._in_flight_since = self._clock()
        try:
            return self.extractor.extract(frame), None
        except TransientError as e:
            logger.debug(f"Extraction failed: {e}")
            return None, e
        finally:
            self.stats.record_extract(self._clock() - self._in_flight_since)
            self._in_flight_since = None
            self._extracting -= 1

    def _deliver(self, match: MatchResult):
        if self.on_recognized is None:
            return
        # Persistence in the sink can fail; the loop keeps running
        try:
            self.on_recognized(match.identity, match.distance)
        except Exception:
            logger.exception(f"Recognition handler failed for {match.identity.id!r}")

    def _count(self, outcome: CycleOutcome) -> CycleOutcome:
        self.stats.outcomes[outcome] += 1
        return outcome

    # ------------------------------------------------------------------
    # Running / stopping
    # ------------------------------------------------------------------
    def run(self):
        """
        Tick until stop() is called, at most one attempt per min_interval.

        Raises:
            ConfigurationError: enrollment data does not match the live embeddings
        """
        logger.info(f"▶️ Detection loop started (interval={self.min_interval * 1000:.0f}ms, "
                    f"threshold={self.threshold})")
        try:
            while not self._stop_event.is_set():
                started = self._clock()
                self.tick()
                elapsed = self._clock() - started
                self._stop_event.wait(max(0.0, self.min_interval - elapsed))
        except ConfigurationError:
            self.stop()
            raise
        logger.info("⏹️ Detection loop stopped")

    def start(self) -> threading.Thread:
        """Run the loop on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(
            target=self._run_thread, name="detection-loop", daemon=True
        )
        self._thread.start()
        return self._thread

    def _run_thread(self):
        try:
            self.run()
        except Exception as e:
            logger.exception("Detection loop terminated")
            self._error = e

    def join(self, timeout: Optional[float] = None):
        """Wait for the loop thread; re-raise the error that ended it, if any."""
        if self._thread is not None:
            self._thread.join(timeout)
        if self._error is not None:
            raise self._error

    def stop(self):
        """Stop the loop. Idempotent; an in-flight result is discarded."""
        if self._stop_event.is_set():
            return
        self._generation += 1
        self._stop_event.set()
        self.current_match = None

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    # ------------------------------------------------------------------
    # Watchdog helpers
    # ------------------------------------------------------------------
    def in_flight_for(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds the current extraction has been running, None if idle."""
        since = self._in_flight_since
        if since is None:
            return None
        if now is None:
            now = self._clock()
        return now - since

    def is_stalled(self, max_seconds: float, now: Optional[float] = None) -> bool:
        elapsed = self.in_flight_for(now)
        return elapsed is not None and elapsed > max_seconds
