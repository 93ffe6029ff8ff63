"""Hand landmark source powered by MediaPipe Hand Landmarker."""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Deque, List, Tuple
from urllib.request import urlretrieve

import numpy as np

try:
    import cv2
except ImportError as exc:
    raise ImportError("OpenCV (opencv-python) is required for hand detection") from exc

try:
    from mediapipe import Image as MPImage
    from mediapipe import ImageFormat
    from mediapipe.tasks import python as mp_python
    from mediapipe.tasks.python import vision
except ImportError as exc:
    raise ImportError("MediaPipe is required for hand detection. Install mediapipe.") from exc

from config import DetectorConfig

logger = logging.getLogger(__name__)

MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/latest/hand_landmarker.task"
)


class HandLandmarkSource:
    """Detect hands in frames and return their normalized 2D keypoints.

    The landmarker runs in LIVE_STREAM mode, so results arrive through a
    callback; ``detect`` always returns the newest result available.
    """

    def __init__(self, config: DetectorConfig = DetectorConfig(), model_path: Path | str | None = None) -> None:
        self.config = config
        self.model_path = self._ensure_model_exists(model_path or config.model_path)
        self._landmarker = self._create_landmarker()
        self._result_queue: Deque[Tuple[int, vision.HandLandmarkerResult]] = deque(maxlen=2)
        self._last_timestamp_ms = -1
        self._last_hands: List[np.ndarray] = []

    def _ensure_model_exists(self, model_path: Path | str | None) -> Path:
        """Download the MediaPipe model locally if it is absent."""
        default_model = Path("models/hand_landmarker.task")
        path = Path(model_path) if model_path else default_model
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Downloading hand landmarker model to {path}")
            urlretrieve(MODEL_URL, path)
        return path

    def _create_landmarker(self) -> vision.HandLandmarker:
        base_options = mp_python.BaseOptions(model_asset_path=str(self.model_path))
        options = vision.HandLandmarkerOptions(
            base_options=base_options,
            running_mode=vision.RunningMode.LIVE_STREAM,
            num_hands=self.config.num_hands,
            min_hand_detection_confidence=self.config.min_hand_detection_confidence,
            min_hand_presence_confidence=self.config.min_hand_presence_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
            result_callback=self._result_callback,
        )
        return vision.HandLandmarker.create_from_options(options)

    def _result_callback(
        self,
        result: vision.HandLandmarkerResult,
        output_image: MPImage,
        timestamp_ms: int,
    ) -> None:
        self._result_queue.append((timestamp_ms, result))

    def detect(self, frame: np.ndarray, timestamp_ms: int) -> List[np.ndarray]:
        """Submit a BGR frame and return the latest hands as (21, 2) arrays.

        Detector failures are logged and reported as no hands.
        """
        # MediaPipe rejects non-increasing timestamps in LIVE_STREAM mode
        timestamp_ms = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        try:
            rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            mp_image = MPImage(image_format=ImageFormat.SRGB, data=rgb_frame)
            self._landmarker.detect_async(mp_image, timestamp_ms)
        except Exception as exc:
            logger.warning(f"Hand detection failed: {exc}")
            self._result_queue.clear()
            self._last_hands = []
            return []

        if self._result_queue:
            while len(self._result_queue) > 1:
                self._result_queue.popleft()
            _, result = self._result_queue.popleft()
            self._last_hands = [
                np.array([[lm.x, lm.y] for lm in landmarks], dtype=float)
                for landmarks in result.hand_landmarks
            ]
        return [coords.copy() for coords in self._last_hands]

    def close(self) -> None:
        if self._landmarker:
            self._landmarker.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
