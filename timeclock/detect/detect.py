# timeclock/detect/detect.py
"""
Face detection - Ultra-Light-Fast-Generic-Face-Detector (version-RFB-320).

Works with both the float32 and the INT8 quantized TFLite export:
- Input: [1, 240, 320, 3], float32 in [-1, 1] or int8 quantized
- Output: boxes [1, 4420, 4] and scores [1, 4420, 2] (order varies by export)

Thread-safe: inference runs under a lock, pre/post-processing outside it.
"""
import logging
import threading
from math import ceil
from typing import List, Tuple

import cv2
import numpy as np

from ..core.tflite_helper import get_interpreter
from ..core.settings import INT8_DETECTION_MODEL
from ..recognition.types import BoundingBox

logger = logging.getLogger(__name__)

INPUT_SIZE = (320, 240)  # (width, height)
NMS_IOU_THRESHOLD = 0.3
CENTER_VARIANCE = 0.1
SIZE_VARIANCE = 0.2

FEATURE_STRIDES = [8, 16, 32, 64]
MIN_SIZES = [[10, 16, 24], [32, 48], [64, 96], [128, 176, 256]]


def generate_priors(input_size=INPUT_SIZE) -> np.ndarray:
    """
    SSD anchor boxes (cx, cy, w, h), normalised to [0, 1].

    Returns:
        float32 array of shape (4420, 4) for a 320x240 input
    """
    width, height = input_size
    feature_map_sizes = [(ceil(height / s), ceil(width / s)) for s in FEATURE_STRIDES]

    total = sum(fh * fw * len(ms) for (fh, fw), ms in zip(feature_map_sizes, MIN_SIZES))
    priors = np.empty((total, 4), dtype=np.float32)

    idx = 0
    for k, (fh, fw) in enumerate(feature_map_sizes):
        for y in range(fh):
            cy = (y + 0.5) / fh
            for x in range(fw):
                cx = (x + 0.5) / fw
                for min_size in MIN_SIZES[k]:
                    priors[idx] = [cx, cy, min_size / width, min_size / height]
                    idx += 1

    return priors


def decode_boxes(priors: np.ndarray, boxes_enc: np.ndarray) -> np.ndarray:
    """Regression output -> (x_min, y_min, x_max, y_max), normalised."""
    boxes = np.concatenate([
        priors[:, :2] + boxes_enc[:, :2] * CENTER_VARIANCE * priors[:, 2:],
        priors[:, 2:] * np.exp(boxes_enc[:, 2:] * SIZE_VARIANCE)
    ], axis=1)
    boxes[:, :2] -= boxes[:, 2:] / 2
    boxes[:, 2:] += boxes[:, :2]
    return boxes


def postprocess(
    boxes_enc: np.ndarray,
    scores: np.ndarray,
    priors: np.ndarray,
    image_size: Tuple[int, int],
    conf_threshold: float = 0.6,
    iou_threshold: float = NMS_IOU_THRESHOLD
) -> List[Tuple[BoundingBox, float]]:
    """
    Filter, decode, scale and NMS raw detector output.

    Args:
        boxes_enc: (N, 4) box regressions
        scores: (N, 2) background/face scores
        priors: (N, 4) anchors from generate_priors
        image_size: (width, height) of the original frame

    Returns:
        List of (BoundingBox, confidence), clipped to the frame
    """
    w_img, h_img = image_size
    face_scores = scores[:, 1]

    mask = face_scores > conf_threshold
    face_scores = face_scores[mask]
    if len(face_scores) == 0:
        return []

    boxes = decode_boxes(priors[mask], boxes_enc[mask])
    boxes[:, [0, 2]] *= w_img
    boxes[:, [1, 3]] *= h_img

    rects = boxes.astype(int)
    # NMSBoxes expects (x, y, w, h)
    xywh = [[int(x0), int(y0), int(x1 - x0), int(y1 - y0)] for x0, y0, x1, y1 in rects]
    keep = cv2.dnn.NMSBoxes(xywh, face_scores.tolist(), conf_threshold, iou_threshold)

    results = []
    for i in np.asarray(keep).flatten():
        x_min, y_min, x_max, y_max = rects[i]
        x = max(0, int(x_min))
        y = max(0, int(y_min))
        w = min(int(x_max) - x, w_img - x)
        h = min(int(y_max) - y, h_img - y)
        if w <= 0 or h <= 0:
            continue
        results.append((BoundingBox(x, y, w, h), float(face_scores[i])))

    return results


class UltraLightFaceDetector:
    """
    SSD face detector on TFLite. Thread-safe.

    A model that fails to load leaves the detector in a "not ready" state
    (is_ready == False) instead of raising, so the caller can report
    "model not ready" and retry later.
    """

    def __init__(self, model_path=INT8_DETECTION_MODEL, conf_threshold=0.6, num_threads=None):
        self._inference_lock = threading.Lock()

        self.model_path = model_path
        self.conf_threshold = conf_threshold
        self.input_shape = INPUT_SIZE
        self._priors_cache = generate_priors(self.input_shape)

        self._input_dtype = np.float32
        self._input_scale = 1.0
        self._input_zero_point = 0
        self._output_params = []

        try:
            self.interpreter = get_interpreter(model_path, num_threads)
            self.interpreter.allocate_tensors()
        except (ImportError, OSError, ValueError, RuntimeError) as e:
            logger.error(f"❌ Detection model not loaded ({model_path}): {e}")
            self.interpreter = None
            return

        input_details = self.interpreter.get_input_details()
        output_details = self.interpreter.get_output_details()

        self._input_index = input_details[0]['index']
        self._output_indices = [d['index'] for d in output_details]
        self._input_dtype = input_details[0]['dtype']

        inp_quant = input_details[0].get('quantization_parameters', {})
        if len(inp_quant.get('scales', [])) > 0:
            self._input_scale = float(inp_quant['scales'][0])
        if len(inp_quant.get('zero_points', [])) > 0:
            self._input_zero_point = int(inp_quant['zero_points'][0])

        for out_detail in output_details:
            quant = out_detail.get('quantization_parameters', {})
            scale = quant.get('scales', [])
            zp = quant.get('zero_points', [])
            self._output_params.append({
                'scale': float(scale[0]) if len(scale) > 0 else 1.0,
                'zero_point': int(zp[0]) if len(zp) > 0 else 0
            })

        logger.info(f"[Detector] Loaded: {model_path} (input dtype={np.dtype(self._input_dtype).name})")

    @property
    def is_ready(self) -> bool:
        return self.interpreter is not None

    def _preprocess(self, frame):
        """Resize to 320x240, BGR -> RGB, normalise to [-1, 1], quantize if needed."""
        img = cv2.resize(frame, self.input_shape)
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        img = (img.astype(np.float32) - 127.5) / 127.5

        if self._input_dtype == np.int8:
            img = np.clip(
                np.round(img / self._input_scale + self._input_zero_point),
                -128, 127
            ).astype(np.int8)

        return np.expand_dims(img, axis=0)

    def _dequantize(self, output, idx):
        if output.dtype in (np.int8, np.uint8):
            params = self._output_params[idx]
            return (output.astype(np.float32) - params['zero_point']) * params['scale']
        return output.astype(np.float32)

    def detect_faces(self, frame) -> List[Tuple[BoundingBox, float]]:
        """
        Detect faces in a BGR frame.

        Returns:
            List of (BoundingBox, confidence); empty if the model is not loaded
        """
        if self.interpreter is None:
            return []

        h_img, w_img = frame.shape[:2]
        img_input = self._preprocess(frame)

        with self._inference_lock:
            self.interpreter.set_tensor(self._input_index, img_input)
            self.interpreter.invoke()
            out_0 = np.array(self.interpreter.get_tensor(self._output_indices[0])[0], copy=True)
            out_1 = np.array(self.interpreter.get_tensor(self._output_indices[1])[0], copy=True)

        out_0 = self._dequantize(out_0, 0)
        out_1 = self._dequantize(out_1, 1)

        # boxes end in 4, scores in 2
        if out_0.shape[-1] == 4:
            boxes_enc, scores = out_0, out_1
        else:
            boxes_enc, scores = out_1, out_0

        return postprocess(
            boxes_enc, scores, self._priors_cache, (w_img, h_img), self.conf_threshold
        )
