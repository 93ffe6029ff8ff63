# utils/drawing.py
"""Helper functions for drawing hand landmarks and booth overlays."""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple

import cv2
import numpy as np

HAND_CONNECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 1), (1, 2), (2, 3), (3, 4),  # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),  # Index
    (0, 9), (9, 10), (10, 11), (11, 12),  # Middle
    (0, 13), (13, 14), (14, 15), (15, 16),  # Ring
    (0, 17), (17, 18), (18, 19), (19, 20),  # Pinky
    (5, 9), (9, 13), (13, 17),  # Palm connections
)

PANEL_BG = (30, 30, 30)
PANEL_TEXT = (235, 235, 235)

# BGR ring colours per gesture label value
LABEL_COLORS = {
    "Two_Fingers": (94, 63, 244),
    "Open_Palm": (94, 63, 244),
    "OK_Hand": (129, 185, 16),
}


# Small utility
def _rounded_rect(img, top_left, bottom_right, color, radius=12, thickness=-1, alpha=1.0):
    x1, y1 = top_left
    x2, y2 = bottom_right
    overlay = img.copy()
    w = x2 - x1
    h = y2 - y1
    if w <= 0 or h <= 0:
        return img
    radius = max(0, min(radius, w // 2, h // 2))
    cv2.rectangle(overlay, (x1 + radius, y1), (x2 - radius, y2), color, thickness)
    cv2.rectangle(overlay, (x1, y1 + radius), (x2, y2 - radius), color, thickness)
    cv2.circle(overlay, (x1 + radius, y1 + radius), radius, color, thickness)
    cv2.circle(overlay, (x2 - radius, y1 + radius), radius, color, thickness)
    cv2.circle(overlay, (x1 + radius, y2 - radius), radius, color, thickness)
    cv2.circle(overlay, (x2 - radius, y2 - radius), radius, color, thickness)
    cv2.addWeighted(overlay, alpha, img, 1 - alpha, 0, img)
    return img


def draw_landmarks(
    frame: np.ndarray,
    hand_landmarks: Iterable[np.ndarray],
    mirrored: bool = False,
) -> np.ndarray:
    """Render landmark points and bones for each hand.

    Args:
        frame: The frame to draw on
        hand_landmarks: Iterable of (21, 2) arrays with normalized coordinates
        mirrored: If True, mirror the x coordinates horizontally
    """
    output = frame.copy()
    height, width = output.shape[:2]

    for landmarks in hand_landmarks:
        points = [
            (int(((1.0 - x) if mirrored else x) * width), int(y * height))
            for x, y in np.asarray(landmarks)[:, :2]
        ]
        if not points:
            continue

        for start, end in HAND_CONNECTIONS:
            if start < len(points) and end < len(points):
                cv2.line(output, points[start], points[end], (0, 200, 120), 1, lineType=cv2.LINE_AA)

        for i, point in enumerate(points):
            color = (int(200 - (i * 4) % 180), 120, 255)
            cv2.circle(output, point, 3, color, -1, lineType=cv2.LINE_AA)
            cv2.circle(output, point, 1, (255, 255, 255), -1)

    return output


def draw_mode_banner(
    frame: np.ndarray,
    text: str,
    *,
    color: Tuple[int, int, int] = (56, 142, 60),
    alpha: float = 0.85,
) -> np.ndarray:
    """Overlay a semi-transparent banner at the top-left with the session state."""
    output = frame.copy()
    padding = 12
    font_scale = 0.8
    thickness = 2
    text_size, _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness)
    width = text_size[0] + padding * 2 + 30
    height = text_size[1] + padding * 2

    _rounded_rect(output, (10, 10), (10 + width, 10 + height), color, radius=14, alpha=alpha)
    cv2.putText(
        output,
        text,
        (10 + padding, 10 + padding + text_size[1] - 2),
        cv2.FONT_HERSHEY_SIMPLEX,
        font_scale,
        (255, 255, 255),
        thickness,
        lineType=cv2.LINE_AA,
    )
    return output


def draw_countdown(frame: np.ndarray, remaining: int) -> np.ndarray:
    """Draw the countdown number at the center of the frame."""
    output = frame.copy()
    height, width = output.shape[:2]
    text = str(max(int(remaining), 0))
    font_scale = min(width, height) / 120
    text_size, _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_DUPLEX, font_scale, 10)
    origin = (
        (width - text_size[0]) // 2,
        (height + text_size[1]) // 2,
    )
    # halo
    cv2.putText(output, text, (origin[0], origin[1] + 6), cv2.FONT_HERSHEY_DUPLEX, font_scale, (10, 10, 10), 16, lineType=cv2.LINE_AA)
    cv2.putText(output, text, origin, cv2.FONT_HERSHEY_DUPLEX, font_scale, (94, 63, 244), 10, lineType=cv2.LINE_AA)
    return output


def draw_prompts(
    frame: np.ndarray,
    prompts: Sequence[str],
    origin: Tuple[int, int] | None = None,
    font_scale: float = 0.7,
    line_height: int = 32,
) -> np.ndarray:
    """Display the gestures accepted in the current state, bottom-left by default."""
    if not prompts:
        return frame
    output = frame.copy()
    height = output.shape[0]
    total_w = max(cv2.getTextSize(p, cv2.FONT_HERSHEY_SIMPLEX, font_scale, 2)[0][0] for p in prompts) + 24
    total_h = line_height * len(prompts) + 8
    x, y = origin if origin is not None else (20, height - total_h - 30)

    _rounded_rect(output, (x - 10, y - 10), (x + total_w + 10, y + total_h + 10), PANEL_BG, radius=18, alpha=0.75)

    yy = y + 8
    for prompt in prompts:
        cv2.putText(output, prompt, (x + 8, yy + 16), cv2.FONT_HERSHEY_SIMPLEX, font_scale, PANEL_TEXT, 2, lineType=cv2.LINE_AA)
        yy += line_height
    return output


def draw_hand_progress(
    frame: np.ndarray,
    progress: float,
    center: Tuple[int, int],
    label: str = "",
    radius: int = 45,
) -> np.ndarray:
    """Draw a circular hold indicator around a hand's anchor point."""
    progress = float(np.clip(progress, 0.0, 1.0))
    output = frame.copy()

    base_color = (100, 100, 100)
    progress_color = LABEL_COLORS.get(label, (10, 200, 220))

    cv2.circle(output, center, radius, base_color, 6, lineType=cv2.LINE_AA)

    if progress > 0.001:
        start_angle = -90
        end_angle = start_angle + int(progress * 360)
        cv2.ellipse(
            output,
            center,
            (radius, radius),
            0,
            start_angle,
            end_angle,
            progress_color,
            8,
            lineType=cv2.LINE_AA,
        )

    text = f"{int(progress * 100):d}%"
    text_size, _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.6, 2)
    text_origin = (
        center[0] - text_size[0] // 2,
        center[1] + text_size[1] // 2,
    )
    cv2.putText(output, text, text_origin, cv2.FONT_HERSHEY_SIMPLEX, 0.6, (240, 240, 240), 2, lineType=cv2.LINE_AA)
    return output


def draw_flash(frame: np.ndarray, alpha: float = 0.85) -> np.ndarray:
    """White-out overlay shown while a photo is being taken."""
    output = frame.copy()
    white = np.full_like(output, 255)
    cv2.addWeighted(white, alpha, output, 1 - alpha, 0, output)
    return output


def draw_photo_strip(
    frame: np.ndarray,
    photos: Sequence[np.ndarray],
    thumb_width: int = 120,
    margin: int = 12,
) -> np.ndarray:
    """Stack thumbnails of the captured photos down the right edge."""
    output = frame.copy()
    height, width = output.shape[:2]
    y = 80
    for photo in photos:
        if photo is None or photo.size == 0:
            continue
        ph, pw = photo.shape[:2]
        thumb_height = max(1, int(ph * thumb_width / max(pw, 1)))
        if y + thumb_height > height - margin:
            break
        thumb = cv2.resize(photo, (thumb_width, thumb_height), interpolation=cv2.INTER_AREA)
        x = width - thumb_width - margin
        output[y:y + thumb_height, x:x + thumb_width] = thumb
        cv2.rectangle(output, (x - 2, y - 2), (x + thumb_width + 1, y + thumb_height + 1), (255, 255, 255), 2)
        y += thumb_height + margin
    return output
