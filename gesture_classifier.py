"""Geometric gesture classification from hand landmarks.

All thresholds are multiples of the palm size (wrist to middle-finger base),
which keeps classification independent of how far the hand is from the camera.
"""

from __future__ import annotations

import enum
from typing import AbstractSet, Optional, Tuple

import numpy as np

from config import GestureGeometry

NUM_LANDMARKS = 21

WRIST = 0
THUMB_TIP = 4
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_TIP = 12
RING_TIP = 16
PINKY_TIP = 20

_MIN_PALM_SIZE = 1e-6


class GestureLabel(enum.Enum):
    NONE = "None"
    TWO_FINGERS = "Two_Fingers"
    OK_HAND = "OK_Hand"
    OPEN_PALM = "Open_Palm"

    @property
    def pretty(self) -> str:
        return self.value.replace("_", " ")


ALL_GESTURES: frozenset = frozenset(
    {GestureLabel.TWO_FINGERS, GestureLabel.OK_HAND, GestureLabel.OPEN_PALM}
)


def as_keypoints(keypoints) -> Optional[np.ndarray]:
    """Return a (21, 2) float array, or None when the input is unusable."""
    try:
        coords = np.asarray(keypoints, dtype=float)
    except (TypeError, ValueError):
        return None
    if coords.ndim != 2 or coords.shape[0] != NUM_LANDMARKS or coords.shape[1] not in (2, 3):
        return None
    coords = coords[:, :2]
    if not np.all(np.isfinite(coords)):
        return None
    return coords


def _distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(a - b))


def palm_size(keypoints) -> float:
    """Distance between wrist and middle-finger base; 0.0 for unusable input."""
    coords = as_keypoints(keypoints)
    if coords is None:
        return 0.0
    return _distance(coords[WRIST], coords[MIDDLE_MCP])


def classify(
    keypoints,
    geometry: GestureGeometry = GestureGeometry(),
    enabled: Optional[AbstractSet[GestureLabel]] = None,
) -> GestureLabel:
    """Map one hand's keypoints to a gesture label.

    Rules are checked in order (two fingers, OK hand, open palm) and only for
    labels in ``enabled``. Malformed input fails closed to ``GestureLabel.NONE``.
    """
    coords = as_keypoints(keypoints)
    if coords is None:
        return GestureLabel.NONE

    allowed = ALL_GESTURES if enabled is None else enabled

    wrist = coords[WRIST]
    size = _distance(wrist, coords[MIDDLE_MCP])
    if size <= _MIN_PALM_SIZE:
        return GestureLabel.NONE

    extension_threshold = size * geometry.extension_ratio
    thumb_threshold = size * geometry.thumb_extension_ratio
    pinch_threshold = size * geometry.pinch_ratio

    def extended(tip: int) -> bool:
        return _distance(coords[tip], wrist) > extension_threshold

    index_ext = extended(INDEX_TIP)
    middle_ext = extended(MIDDLE_TIP)
    ring_ext = extended(RING_TIP)
    pinky_ext = extended(PINKY_TIP)
    thumb_ext = _distance(coords[THUMB_TIP], wrist) > thumb_threshold

    pinch_distance = _distance(coords[THUMB_TIP], coords[INDEX_TIP])
    pinched = pinch_distance < pinch_threshold

    if GestureLabel.TWO_FINGERS in allowed:
        if index_ext and middle_ext and not ring_ext and not pinky_ext:
            return GestureLabel.TWO_FINGERS

    if GestureLabel.OK_HAND in allowed:
        if pinched and middle_ext and ring_ext and pinky_ext:
            return GestureLabel.OK_HAND

    if GestureLabel.OPEN_PALM in allowed:
        if index_ext and middle_ext and ring_ext and pinky_ext and (thumb_ext or pinch_distance > pinch_threshold):
            return GestureLabel.OPEN_PALM

    return GestureLabel.NONE


def anchor_point(keypoints, mirror: bool = True) -> Optional[Tuple[float, float]]:
    """Middle-finger base in normalized screen space, x mirrored for a flipped preview."""
    coords = as_keypoints(keypoints)
    if coords is None:
        return None
    x, y = float(coords[MIDDLE_MCP][0]), float(coords[MIDDLE_MCP][1])
    return (1.0 - x if mirror else x), y
