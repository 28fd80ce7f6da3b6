import logging
import threading

import numpy as np
import pytest

from timeclock.core.errors import ExtractorError
from timeclock.data.registry import EmployeeRegistry
from timeclock.recognition.types import BoundingBox, FaceDetection, Identity, as_embedding

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


class ManualClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeFrameSource:
    """Returns a fixed frame, or None while `available` is False."""

    def __init__(self, available: bool = True):
        self.available = available
        self.calls = 0
        self.frame = np.zeros((240, 320, 3), dtype=np.uint8)

    def get_current_frame(self):
        self.calls += 1
        return self.frame if self.available else None


class ScriptedExtractor:
    """
    Plays back a script of results, one per extract() call.

    Items may be a FaceDetection, None (no face), an exception instance to
    raise, or a list/array of floats turned into a FaceDetection. The last
    item repeats once the script runs out.
    """

    def __init__(self, script):
        self.script = list(script)
        self.calls = 0

    def extract(self, frame):
        item = self.script[min(self.calls, len(self.script) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        if item is None or isinstance(item, FaceDetection):
            return item
        return make_detection(item)


class BlockingExtractor:
    """Blocks inside extract() until released, to hold the loop mid-flight."""

    def __init__(self, result):
        self.result = result
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def extract(self, frame):
        self.calls += 1
        self.entered.set()
        if not self.release.wait(timeout=5.0):
            raise ExtractorError("test extractor never released")
        return self.result


def make_detection(values, confidence: float = 0.99) -> FaceDetection:
    return FaceDetection(
        embedding=as_embedding(values),
        box=BoundingBox(10, 10, 100, 100),
        confidence=confidence,
    )


def make_identity(identity_id: str, values, name=None) -> Identity:
    return Identity(
        id=identity_id,
        display_name=name or identity_id.upper(),
        embedding=as_embedding(values),
    )


@pytest.fixture
def logger():
    return logging.getLogger("test")


@pytest.fixture
def numpy_seed():
    np.random.seed(42)
    yield


@pytest.fixture
def manual_clock():
    return ManualClock()


@pytest.fixture
def frame_source():
    return FakeFrameSource()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "timeclock_test.db")


@pytest.fixture
def registry(db_path):
    return EmployeeRegistry(db_path)


@pytest.fixture
def random_embedding(numpy_seed):
    def _make(dim: int = 128):
        v = np.random.randn(dim).astype(np.float32)
        return v / np.linalg.norm(v)
    return _make
