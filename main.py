"""Entry point for the gesture-driven photo booth.

Usage:
    pip install -e .
    python main.py --camera 0 --config booth.json
"""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import cv2
import numpy as np

from camera_controller import CameraController
from config import KioskConfig, load_config
from hand_landmarks import HandLandmarkSource
from kiosk import FrameReport, GestureKiosk
from session import SessionState, describe_prompts
from utils.drawing import (
    draw_countdown,
    draw_flash,
    draw_hand_progress,
    draw_landmarks,
    draw_mode_banner,
    draw_photo_strip,
    draw_prompts,
)


logger = logging.getLogger(__name__)

WINDOW_NAME = "Gesture Booth"
DISPLAY_WIDTH = 1280
DISPLAY_HEIGHT = 720

STATE_COLORS = {
    SessionState.IDLE: (56, 142, 60),
    SessionState.COUNTDOWN: (0, 140, 255),
    SessionState.CAPTURING: (200, 200, 200),
    SessionState.REVIEWING: (139, 92, 246),
}


class FrameLoop:
    """Pull a frame, run the pipeline, render, repeat.

    Each iteration schedules the next one by simply looping again; ``stop``
    cancels by not rescheduling.
    """

    def __init__(
        self,
        cap: cv2.VideoCapture,
        source: HandLandmarkSource,
        kiosk: GestureKiosk,
        camera: CameraController,
    ) -> None:
        self.cap = cap
        self.source = source
        self.kiosk = kiosk
        self.camera = camera
        self._running = False
        self._thumbnails: Dict[str, np.ndarray] = {}

    def stop(self) -> None:
        self._running = False

    def run(self) -> None:
        self._running = True
        while self._running:
            success, frame = self.cap.read()
            if not success:
                logger.warning("Camera returned no frame, stopping")
                break

            if frame.shape[0] != DISPLAY_HEIGHT or frame.shape[1] != DISPLAY_WIDTH:
                frame = cv2.resize(frame, (DISPLAY_WIDTH, DISPLAY_HEIGHT), interpolation=cv2.INTER_LINEAR)

            now_ms = time.monotonic() * 1000.0
            self.camera.update_frame(frame)
            hands = self.source.detect(frame, int(now_ms))
            report = self.kiosk.process(hands, now_ms)

            cv2.imshow(WINDOW_NAME, self.render(frame, hands, report))

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                self.stop()
            elif key == ord("r"):
                logger.info("Manual restart")
                self.kiosk.restart(now_ms)

    def render(self, frame: np.ndarray, hands: List[np.ndarray], report: FrameReport) -> np.ndarray:
        height, width = frame.shape[:2]
        output = cv2.flip(frame, 1)

        if report.flash_active:
            return draw_flash(output)

        output = draw_landmarks(output, hands, mirrored=True)
        for hand in report.hands:
            if hand.progress <= 0:
                continue
            center = (int(hand.anchor_x * width), int(hand.anchor_y * height))
            output = draw_hand_progress(output, hand.progress, center, label=hand.label.value)

        if report.state is SessionState.COUNTDOWN and report.countdown_remaining is not None:
            output = draw_countdown(output, report.countdown_remaining)

        output = draw_photo_strip(output, self._photo_thumbnails())
        output = draw_mode_banner(output, report.state.value, color=STATE_COLORS[report.state])
        session_config = self.kiosk.config.session
        prompts = describe_prompts(
            self.kiosk.session.allow_list,
            report.state,
            report.photo_count,
            session_config.max_photos,
            report.suppressed,
        )
        return draw_prompts(output, prompts)

    def _photo_thumbnails(self) -> List[np.ndarray]:
        photos = self.kiosk.session.photos
        live_ids = {photo.photo_id for photo in photos}
        for photo_id in list(self._thumbnails):
            if photo_id not in live_ids:
                del self._thumbnails[photo_id]
        for photo in photos:
            if photo.photo_id not in self._thumbnails:
                image = self.camera.load_photo(photo)
                if image is not None:
                    self._thumbnails[photo.photo_id] = image
        return [self._thumbnails[p.photo_id] for p in photos if p.photo_id in self._thumbnails]


def run(camera_index: int = 0, config: Optional[KioskConfig] = None, output_dir: Path | str = "captures") -> None:
    config = config or KioskConfig()

    cap = cv2.VideoCapture(camera_index)
    if not cap.isOpened():
        raise RuntimeError("Unable to open webcam")

    cap.set(cv2.CAP_PROP_FRAME_WIDTH, DISPLAY_WIDTH)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, DISPLAY_HEIGHT)
    actual_width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
    actual_height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
    logger.info(f"Camera native resolution: {actual_width}x{actual_height}")

    cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
    cv2.resizeWindow(WINDOW_NAME, DISPLAY_WIDTH, DISPLAY_HEIGHT)

    camera = CameraController(output_dir)
    source = HandLandmarkSource(config.detector)
    kiosk = GestureKiosk(config, capture=camera.capture, deliver=camera.deliver)

    try:
        FrameLoop(cap, source, kiosk, camera).run()
    finally:
        source.close()
        cap.release()
        cv2.destroyAllWindows()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Gesture-controlled photo booth")
    parser.add_argument("--camera", type=int, default=0, help="Camera index")
    parser.add_argument("--config", type=Path, default=None, help="JSON file overriding the default tunables")
    parser.add_argument("--output-dir", type=Path, default=Path("captures"), help="Where captured photos are written")
    parser.add_argument("--log-level", default="INFO", choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="[%(levelname)s] %(message)s")
    run(args.camera, load_config(args.config), args.output_dir)


if __name__ == "__main__":
    main()
