# timeclock/recognition/embedder.py
"""
Face embedding - MobileFaceNet on TFLite.

Input: [batch, 112, 112, 3], float32 or int8 quantized
Output: [batch, D] embedding (128 for the INT8 export), dequantized and
L2-normalised so Euclidean distances fall in [0, 2].

Thread-safe: inference runs under a lock.
"""
import logging
import threading

import cv2
import numpy as np

from ..core.errors import ExtractorError
from ..core.tflite_helper import get_interpreter
from ..core.settings import INT8_RECOGNITION_MODEL
from .types import as_embedding

logger = logging.getLogger(__name__)

INPUT_HEIGHT = 112
INPUT_WIDTH = 112
EMBEDDING_DIM = 128


def l2_normalize(v: np.ndarray, eps: float = 1e-10) -> np.ndarray:
    v = np.asarray(v, dtype=np.float32).reshape(-1)
    return v / (np.linalg.norm(v) + eps)


class FaceEmbedder:
    """
    MobileFaceNet embedder.
    """

    def __init__(self, model_path=INT8_RECOGNITION_MODEL, enable_histogram_eq=True, num_threads=None):
        """
        Args:
            model_path: TFLite model (float32 or INT8)
            enable_histogram_eq: Equalise luminance before inference
                (off on the Pi to save CPU)
            num_threads: Interpreter threads
        """
        self._inference_lock = threading.Lock()

        self.model_path = model_path
        self.enable_histogram_eq = enable_histogram_eq
        self.input_height = INPUT_HEIGHT
        self.input_width = INPUT_WIDTH
        self._embedding_dim = EMBEDDING_DIM

        self._input_dtype = np.float32
        self._input_scale = 1.0
        self._input_zero_point = 0
        self._output_scale = 1.0
        self._output_zero_point = 0

        try:
            self.interpreter = get_interpreter(model_path, num_threads)
            self.interpreter.allocate_tensors()
        except (ImportError, OSError, ValueError, RuntimeError) as e:
            logger.error(f"❌ Recognition model not loaded ({model_path}): {e}")
            self.interpreter = None
            return

        input_details = self.interpreter.get_input_details()
        output_details = self.interpreter.get_output_details()

        self._input_dtype = input_details[0]['dtype']
        shape = tuple(int(d) for d in input_details[0].get('shape', [1, INPUT_HEIGHT, INPUT_WIDTH, 3]))
        if len(shape) >= 3:
            self.input_height, self.input_width = shape[1], shape[2]

        out_shape = output_details[0].get('shape', [1, EMBEDDING_DIM])
        if len(out_shape) >= 2:
            self._embedding_dim = int(out_shape[-1])

        input_quant = input_details[0].get('quantization_parameters', {})
        if len(input_quant.get('scales', [])) > 0:
            self._input_scale = float(input_quant['scales'][0])
        if len(input_quant.get('zero_points', [])) > 0:
            self._input_zero_point = int(input_quant['zero_points'][0])

        output_quant = output_details[0].get('quantization_parameters', {})
        if len(output_quant.get('scales', [])) > 0:
            self._output_scale = float(output_quant['scales'][0])
        if len(output_quant.get('zero_points', [])) > 0:
            self._output_zero_point = int(output_quant['zero_points'][0])

        self._input_index = input_details[0]['index']
        self._output_index = output_details[0]['index']

        logger.info(f"[Embedder] Loaded: {model_path} (dim={self._embedding_dim})")

    @property
    def is_ready(self) -> bool:
        return self.interpreter is not None

    @property
    def embedding_dim(self) -> int:
        return self._embedding_dim

    def _preprocess(self, face_img):
        """Resize to 112x112, BGR -> RGB, optional histogram eq, normalise/quantize."""
        img = cv2.resize(face_img, (self.input_width, self.input_height))
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)

        if self.enable_histogram_eq:
            img_yuv = cv2.cvtColor(img, cv2.COLOR_RGB2YUV)
            img_yuv[:, :, 0] = cv2.equalizeHist(img_yuv[:, :, 0])
            img = cv2.cvtColor(img_yuv, cv2.COLOR_YUV2RGB)

        if self._input_dtype == np.uint8:
            return img[np.newaxis, ...].astype(np.uint8)

        img = (img.astype(np.float32) - 127.5) / 127.5
        if self._input_dtype == np.int8:
            img = np.clip(
                img / self._input_scale + self._input_zero_point,
                -128, 127
            ).astype(np.int8)
        return img[np.newaxis, ...]

    def _dequantize(self, output):
        if output.dtype in (np.int8, np.uint8):
            return (output.astype(np.float32) - self._output_zero_point) * self._output_scale
        return output.astype(np.float32)

    def get_embedding(self, face_img) -> np.ndarray:
        """
        Embed a cropped BGR face.

        Returns:
            Read-only float32 embedding of length embedding_dim, L2 normalised

        Raises:
            ExtractorError: model not loaded or crop unusable
        """
        if self.interpreter is None:
            raise ExtractorError("recognition model not ready")
        if face_img is None or face_img.size == 0:
            raise ExtractorError("empty face crop")

        img = self._preprocess(face_img)

        with self._inference_lock:
            self.interpreter.set_tensor(self._input_index, img)
            self.interpreter.invoke()
            output = self._dequantize(self.interpreter.get_tensor(self._output_index))
            emb = np.array(output[0], dtype=np.float32, copy=True)

        return as_embedding(l2_normalize(emb))
