# timeclock/core/errors.py
"""
Error taxonomy for the time clock.

- TransientError: camera or model not ready. Retried on the next cycle,
  never fatal to the detection loop.
- ConfigurationError: bad settings or corrupted enrollment data. Always
  propagates to the caller.
- NoFaceFoundError: raised only by the one-shot enrollment capture. Inside
  the detection loop "no face" is a normal outcome, not an exception.
"""


class TimeClockError(Exception):
    """Base class for every error raised by timeclock."""


class ConfigurationError(TimeClockError):
    """Programming or data error that must fail loudly."""


class EmbeddingDimensionError(ConfigurationError):
    """Embedding length differs from the enrolled embeddings."""

    def __init__(self, expected: int, actual: int, identity_id=None):
        self.expected = expected
        self.actual = actual
        self.identity_id = identity_id
        if identity_id is None:
            msg = f"Embedding dimension mismatch: expected {expected}, got {actual}"
        else:
            msg = (f"Embedding dimension mismatch for identity {identity_id!r}: "
                   f"expected {expected}, got {actual}")
        super().__init__(msg)


class DuplicateIdentityError(ConfigurationError):
    """Two registry entries share the same id."""


class TransientError(TimeClockError):
    """Temporary I/O condition, retried next cycle."""


class FrameUnavailableError(TransientError):
    """Camera not opened or frame grab failed."""

    def __init__(self, msg: str = "camera not available"):
        super().__init__(msg)


class ExtractorError(TransientError):
    """Face model not loaded or inference failed."""

    def __init__(self, msg: str = "model not ready"):
        super().__init__(msg)


class NoFaceFoundError(TimeClockError):
    """Enrollment capture found no usable face in the frame."""

    def __init__(self, msg: str = "no face found"):
        super().__init__(msg)
