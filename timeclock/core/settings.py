# timeclock/core/settings.py
"""
Configuration for the time clock.

Defaults live on the Settings dataclass, `config/config.json` overrides them,
and command-line arguments override both (see main.apply_arguments).
"""
import os
import json
import platform
from dataclasses import dataclass, field

from .errors import ConfigurationError


# === PLATFORM DETECTION ===
IS_WINDOWS = platform.system() == "Windows"
IS_PI = platform.system() == "Linux" and os.path.exists("/proc/device-tree/model")

# === PATHS ===
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
CONFIG_PATH = os.path.join(BASE_DIR, 'config', 'config.json')

# === MODELS ===
FLOAT_DETECTION_MODEL = "models/detection/version-RFB-320_without_postprocessing.tflite"
INT8_DETECTION_MODEL = "models/detection/version-RFB-320_int8_without_postprocessing.tflite"
FLOAT_RECOGNITION_MODEL = "models/recognition/MobileFaceNet.tflite"
INT8_RECOGNITION_MODEL = "models/recognition/MobileFaceNet_int8.tflite"


def _load_json_config(path: str) -> dict:
    """Load config from a JSON file, {} if missing or invalid."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


@dataclass
class Settings:
    """Runtime settings for recognition, debounce, camera and storage."""

    # === PLATFORM (read-only) ===
    IS_WINDOWS: bool = field(default_factory=lambda: IS_WINDOWS)
    IS_PI: bool = field(default_factory=lambda: IS_PI)
    BASE_DIR: str = field(default_factory=lambda: BASE_DIR)

    # === RECOGNITION ===
    RECOGNITION_THRESHOLD: float = 0.6   # Euclidean distance, strictly below = match
    DETECTION_CONFIDENCE: float = 0.6
    MIN_FACE_SIZE: int = 60              # px, smaller faces are ignored
    ENABLE_HISTOGRAM_EQ: bool = True

    # === DEBOUNCE ===
    COOLDOWN_SECONDS: float = 3.0
    COOLDOWN_REFIRE_ON_EXPIRY: bool = True

    # === DETECTION LOOP ===
    DETECTION_INTERVAL: float = 0.2      # min seconds between attempts
    EXTRACTION_STALL_SECONDS: float = 10.0
    REGISTRY_REFRESH_INTERVAL: float = 5.0

    # === ATTENDANCE ===
    AUTO_RECORD: bool = True
    RECORD_PAUSE_SECONDS: float = 2.0
    RECORD_GAP_SECONDS: float = 300

    # === STORAGE ===
    DB_PATH: str = "timeclock.db"

    # === CAMERA ===
    CAMERA_ID: int = 0
    CAMERA_WIDTH: int = 640
    CAMERA_HEIGHT: int = 480

    # === MODELS ===
    TFLITE_NUM_THREADS: int = 4
    USE_INT8_MODELS: bool = False
    DETECTION_MODEL: str = ""
    RECOGNITION_MODEL: str = ""

    def __post_init__(self):
        self._load_from_json()
        self._compute_defaults()

    def _load_from_json(self):
        config = _load_json_config(CONFIG_PATH)
        for key, value in config.items():
            if hasattr(self, key) and value is not None:
                setattr(self, key, value)

    def _compute_defaults(self):
        # Smaller frames, fewer threads and INT8 models on the Pi
        if self.IS_PI:
            self.CAMERA_WIDTH = min(self.CAMERA_WIDTH, 320)
            self.CAMERA_HEIGHT = min(self.CAMERA_HEIGHT, 240)
            self.TFLITE_NUM_THREADS = 2
            self.USE_INT8_MODELS = True
            self.ENABLE_HISTOGRAM_EQ = False

        if not self.DETECTION_MODEL:
            self.DETECTION_MODEL = (
                INT8_DETECTION_MODEL if self.USE_INT8_MODELS else FLOAT_DETECTION_MODEL
            )
        if not self.RECOGNITION_MODEL:
            self.RECOGNITION_MODEL = (
                INT8_RECOGNITION_MODEL if self.USE_INT8_MODELS else FLOAT_RECOGNITION_MODEL
            )

    def validate(self):
        """Raise ConfigurationError for values the core cannot work with."""
        if self.RECOGNITION_THRESHOLD <= 0:
            raise ConfigurationError(
                f"RECOGNITION_THRESHOLD must be positive, got {self.RECOGNITION_THRESHOLD}"
            )
        if self.COOLDOWN_SECONDS <= 0:
            raise ConfigurationError(
                f"COOLDOWN_SECONDS must be positive, got {self.COOLDOWN_SECONDS}"
            )
        if self.DETECTION_INTERVAL <= 0:
            raise ConfigurationError(
                f"DETECTION_INTERVAL must be positive, got {self.DETECTION_INTERVAL}"
            )
        if self.MIN_FACE_SIZE < 0:
            raise ConfigurationError(
                f"MIN_FACE_SIZE must not be negative, got {self.MIN_FACE_SIZE}"
            )

    # === PROPERTY ALIASES ===
    @property
    def recognition_threshold(self) -> float:
        return self.RECOGNITION_THRESHOLD

    @property
    def cooldown_seconds(self) -> float:
        return self.COOLDOWN_SECONDS

    @property
    def detection_interval(self) -> float:
        return self.DETECTION_INTERVAL

    @property
    def tflite_num_threads(self) -> int:
        return self.TFLITE_NUM_THREADS

    @property
    def camera_width(self) -> int:
        return self.CAMERA_WIDTH

    @property
    def camera_height(self) -> int:
        return self.CAMERA_HEIGHT

    @property
    def db_path(self) -> str:
        return self.DB_PATH


# === SINGLETON ===
settings = Settings()
