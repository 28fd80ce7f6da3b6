import cv2
import numpy as np

from timeclock.core.camera import CameraConfig, CameraManager


class FakeCapture:
    """Stands in for cv2.VideoCapture."""

    def __init__(self, opened=True, read_error=False):
        self.opened = opened
        self.read_error = read_error
        self.released = False

    def isOpened(self):
        return self.opened and not self.released

    def set(self, prop, value):
        return True

    def get(self, prop):
        return 640 if prop == cv2.CAP_PROP_FRAME_WIDTH else 480

    def grab(self):
        return True

    def read(self):
        if self.read_error:
            raise cv2.error("capture backend failed")
        return True, np.zeros((480, 640, 3), dtype=np.uint8)

    def release(self):
        self.released = True


def make_camera(monkeypatch, factory):
    monkeypatch.setattr(cv2, "VideoCapture", factory)
    return CameraManager(config=CameraConfig(max_retries=2, retry_delay=0, warmup_frames=1))


class TestCameraManager:

    def test_frames_after_open(self, monkeypatch):
        camera = make_camera(monkeypatch, lambda device_id: FakeCapture())
        assert camera.open()
        assert camera.get_current_frame().shape == (480, 640, 3)
        assert camera.get_resolution() == (640, 480)

        camera.release()
        assert camera.get_current_frame() is None

    def test_open_error_returns_false(self, monkeypatch):
        def broken(device_id):
            raise cv2.error("no device")

        camera = make_camera(monkeypatch, broken)
        assert camera.open() is False
        assert camera.get_current_frame() is None

    def test_never_opened_device(self, monkeypatch):
        camera = make_camera(monkeypatch, lambda device_id: FakeCapture(opened=False))
        assert not camera.open()

    def test_read_error_is_no_frame(self, monkeypatch):
        camera = make_camera(monkeypatch, lambda device_id: FakeCapture(read_error=True))
        assert camera.open()
        assert camera.get_current_frame() is None
