"""Photo capture and session hand-off for the booth."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Optional, Sequence

import cv2
import numpy as np

from session import PhotoRef

logger = logging.getLogger(__name__)


class CameraController:
    """Stores the latest camera frame and writes captures to disk."""

    def __init__(self, output_dir: Path | str = "captures", mirror: bool = True) -> None:
        self.output_dir = Path(output_dir)
        self.mirror = mirror
        self._latest_frame: Optional[np.ndarray] = None
        self._counter = 0

    def update_frame(self, frame: Optional[np.ndarray]) -> None:
        self._latest_frame = frame

    def capture(self) -> Optional[PhotoRef]:
        """Save the latest frame. Returns None when no frame is available or the write fails."""
        frame = self._latest_frame
        if frame is None or frame.size == 0:
            logger.warning("No frame available for capture")
            return None

        if self.mirror:
            frame = cv2.flip(frame, 1)

        timestamp = time.time()
        self._counter += 1
        photo_id = f"photo_{self._counter}_{int(timestamp * 1000)}"
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{photo_id}.jpg"

        if not cv2.imwrite(str(path), frame):
            logger.warning(f"Could not write capture to {path}")
            return None

        logger.info(f"Saved capture to {path.name}")
        return PhotoRef(photo_id=photo_id, timestamp=timestamp, path=path)

    def deliver(self, photos: Sequence[PhotoRef]) -> Path:
        """Write a manifest of the finished session for the upload service to pick up."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        manifest_path = self.output_dir / f"session_{int(time.time() * 1000)}.json"
        manifest = {
            "created_at": time.time(),
            "photos": [
                {
                    "id": photo.photo_id,
                    "timestamp": photo.timestamp,
                    "path": str(photo.path) if photo.path else None,
                }
                for photo in photos
            ],
        }
        with open(manifest_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)
        logger.info(f"Session finished with {len(photos)} photo(s), manifest {manifest_path.name}")
        return manifest_path

    def load_photo(self, photo: PhotoRef) -> Optional[np.ndarray]:
        if photo.path is None:
            return None
        return cv2.imread(str(photo.path))
