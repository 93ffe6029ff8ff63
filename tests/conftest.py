import numpy as np
import pytest

from config import HoldConfig, KioskConfig, SessionConfig

WRIST = (0.5, 0.8)
MCP_X = {"index": 0.45, "middle": 0.5, "ring": 0.55, "pinky": 0.6}
FINGER_BASE = {"index": 5, "middle": 9, "ring": 13, "pinky": 17}


def make_hand(extended=(), thumb="folded", offset=(0.0, 0.0)):
    """Synthetic 21-point hand with a palm size of 0.15.

    ``extended`` names the fingers pointing up; the rest are curled into the
    palm. ``thumb`` is "folded" (resting beside the curled index tip),
    "out" (spread away) or "pinch" (touching the index tip).
    """
    points = np.zeros((21, 2))
    points[0] = WRIST
    for finger, base in FINGER_BASE.items():
        x = MCP_X[finger]
        points[base] = (x, 0.65)
        if finger in extended:
            points[base + 1] = (x, 0.58)
            points[base + 2] = (x, 0.53)
            points[base + 3] = (x, 0.48)
        else:
            points[base + 1] = (x, 0.60)
            points[base + 2] = (x, 0.66)
            points[base + 3] = (x, 0.70)

    points[1] = (0.42, 0.75)
    points[2] = (0.38, 0.70)
    points[3] = (0.36, 0.66)
    if thumb == "out":
        points[4] = (0.28, 0.62)
    elif thumb == "pinch":
        points[4] = points[8] + (-0.01, -0.01)
    else:
        points[4] = (0.45, 0.72)

    return points + np.asarray(offset)


def two_fingers(offset=(0.0, 0.0)):
    return make_hand(("index", "middle"), offset=offset)


def ok_hand(offset=(0.0, 0.0)):
    return make_hand(("middle", "ring", "pinky"), thumb="pinch", offset=offset)


def open_palm(offset=(0.0, 0.0)):
    return make_hand(("index", "middle", "ring", "pinky"), thumb="out", offset=offset)


def fist(offset=(0.0, 0.0)):
    return make_hand((), offset=offset)


@pytest.fixture
def fast_session_config():
    return SessionConfig(
        countdown_ticks=3,
        countdown_tick_ms=1000.0,
        capture_flash_ms=150.0,
        return_to_idle_ms=1000.0,
        review_delay_ms=500.0,
        max_photos=3,
    )


@pytest.fixture
def kiosk_config(fast_session_config):
    return KioskConfig(hold=HoldConfig(hold_threshold_ms=300.0), session=fast_session_config)
