# timeclock/core/camera.py
"""
Camera frame source.

Opens an OpenCV capture device with retries and hands out the latest frame
on demand. OpenCV failures (cv2.error) are logged, not raised: open()
returns False and get_current_frame() returns None, so the detection loop
can simply retry.

Usage:
    from timeclock.core.camera import create_camera

    with create_camera(width=640, height=480) as camera:
        frame = camera.get_current_frame()
        if frame is not None:
            ...
"""
import time
import logging
from typing import Optional, Tuple
from dataclasses import dataclass

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Capture settings."""
    width: int = 640
    height: int = 480
    fps: int = 30
    buffer_size: int = 1
    warmup_frames: int = 5
    max_retries: int = 3
    retry_delay: float = 2.0
    use_mjpg: bool = False  # MJPG codec, cheaper on the Pi


class CameraManager:
    """
    OpenCV camera with retry logic, usable as the detection loop's frame source.
    """

    def __init__(
        self,
        device_id: int = 0,
        config: Optional[CameraConfig] = None,
        is_pi: bool = False
    ):
        self.device_id = device_id
        self.config = config or CameraConfig()
        self.is_pi = is_pi

        self._cap: Optional[cv2.VideoCapture] = None
        self._is_open = False

        if is_pi:
            self.config.use_mjpg = True
            self.config.fps = 15

    def open(self) -> bool:
        """
        Open the camera, retrying up to config.max_retries times.

        Returns:
            True on success
        """
        for attempt in range(self.config.max_retries):
            try:
                self._cap = cv2.VideoCapture(self.device_id)

                if self._cap.isOpened():
                    self._configure_camera()
                    self._warmup()
                    self._is_open = True

                    actual_w, actual_h = self.get_resolution()
                    logger.info(f"📹 Camera opened: {actual_w}x{actual_h}")
                    return True

            except cv2.error as e:
                logger.warning(f"Camera error: {e}")

            if attempt < self.config.max_retries - 1:
                logger.warning(
                    f"⚠️ Camera not ready, retrying "
                    f"({attempt + 1}/{self.config.max_retries})..."
                )
                time.sleep(self.config.retry_delay)

        logger.error("❌ Cannot connect to camera!")
        return False

    def _configure_camera(self):
        if self._cap is None:
            return

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

        if self.is_pi:
            self._cap.set(cv2.CAP_PROP_FPS, self.config.fps)
            if self.config.use_mjpg:
                self._cap.set(
                    cv2.CAP_PROP_FOURCC,
                    cv2.VideoWriter_fourcc(*'MJPG')
                )

    def _warmup(self):
        """Drop the first few frames while exposure settles."""
        if self._cap is None:
            return

        for _ in range(self.config.warmup_frames):
            self._cap.grab()

    def get_current_frame(self) -> Optional[np.ndarray]:
        """
        Read the current frame.

        Returns:
            BGR frame, or None if the camera is closed or the grab failed
        """
        if not self._is_open or self._cap is None:
            return None

        try:
            ret, frame = self._cap.read()
        except cv2.error as e:
            logger.warning(f"Camera error: {e}")
            return None
        if not ret:
            logger.debug("Frame grab failed")
            return None

        return frame

    def release(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logger.info("📹 Camera released")
        self._is_open = False

    def is_opened(self) -> bool:
        return self._is_open and self._cap is not None and self._cap.isOpened()

    def get_resolution(self) -> Tuple[int, int]:
        if self._cap is None:
            return (0, 0)
        return (
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        )

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


def create_camera(
    device_id: int = 0,
    width: int = 640,
    height: int = 480,
    is_pi: bool = False
) -> CameraManager:
    """
    Build a CameraManager with platform-appropriate settings.

    Args:
        device_id: OpenCV device index
        width, height: Requested resolution (capped at 320x240 on the Pi)
        is_pi: True on Raspberry Pi

    Returns:
        CameraManager instance (not yet opened)
    """
    if is_pi:
        width = min(width, 320)
        height = min(height, 240)

    config = CameraConfig(
        width=width,
        height=height,
        fps=15 if is_pi else 30,
        use_mjpg=is_pi
    )

    return CameraManager(device_id=device_id, config=config, is_pi=is_pi)
