# timeclock/processing/__init__.py
"""
Processing modules - Detection & Attendance.

- cooldown: Debounce of repeated recognitions
- detection_loop: Frame -> identity loop
- enrollment: One-shot capture for registration
- attendance: Time-clock event sink
"""

from .cooldown import CooldownState, CooldownController
from .detection_loop import DetectionLoop, CycleOutcome, DetectionStatus
from .enrollment import capture_face, enroll, capture_and_enroll
from .attendance import TimeClock, AttendanceAction, Recognition

__all__ = [
    'CooldownState',
    'CooldownController',
    'DetectionLoop',
    'CycleOutcome',
    'DetectionStatus',
    'capture_face',
    'enroll',
    'capture_and_enroll',
    'TimeClock',
    'AttendanceAction',
    'Recognition',
]
