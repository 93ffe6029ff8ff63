import numpy as np
import pytest

from config import GestureGeometry
from gesture_classifier import (
    GestureLabel,
    anchor_point,
    as_keypoints,
    classify,
    palm_size,
)

from conftest import fist, ok_hand, open_palm, two_fingers


@pytest.mark.parametrize(
    "hand, expected",
    [
        (two_fingers(), GestureLabel.TWO_FINGERS),
        (ok_hand(), GestureLabel.OK_HAND),
        (open_palm(), GestureLabel.OPEN_PALM),
        (fist(), GestureLabel.NONE),
    ],
)
def test_canonical_shapes(hand, expected):
    assert classify(hand) is expected


@pytest.mark.parametrize("scale", [0.25, 0.5, 1.0, 1.7])
def test_two_fingers_is_scale_invariant(scale):
    assert classify(two_fingers() * scale) is GestureLabel.TWO_FINGERS


def test_translation_does_not_change_label():
    assert classify(ok_hand(offset=(0.2, -0.3))) is GestureLabel.OK_HAND


def test_disabled_labels_are_never_returned():
    enabled = {GestureLabel.TWO_FINGERS, GestureLabel.OK_HAND}
    assert classify(open_palm(), enabled=enabled) is GestureLabel.NONE
    assert classify(two_fingers(), enabled={GestureLabel.OPEN_PALM}) is GestureLabel.NONE


def test_open_palm_with_thumb_tucked_but_spread_from_index():
    hand = open_palm()
    # thumb tip back near the wrist: not extended, but far from the index tip
    hand[4] = (0.47, 0.72)
    assert classify(hand) is GestureLabel.OPEN_PALM


def test_geometry_multipliers_are_respected():
    # with a huge extension ratio nothing counts as extended
    assert classify(two_fingers(), GestureGeometry(extension_ratio=5.0)) is GestureLabel.NONE


def test_three_dimensional_input_uses_xy_only():
    hand = np.hstack([two_fingers(), np.full((21, 1), -0.2)])
    assert classify(hand) is GestureLabel.TWO_FINGERS


@pytest.mark.parametrize(
    "bad",
    [
        np.zeros((20, 2)),
        np.zeros((21, 4)),
        np.zeros(42),
        [],
        None,
        "not a hand",
    ],
)
def test_malformed_input_fails_closed(bad):
    assert classify(bad) is GestureLabel.NONE
    assert anchor_point(bad) is None


def test_nan_coordinates_fail_closed():
    hand = two_fingers()
    hand[8, 0] = np.nan
    assert as_keypoints(hand) is None
    assert classify(hand) is GestureLabel.NONE


def test_degenerate_palm_is_none():
    hand = two_fingers()
    hand[9] = hand[0]
    assert classify(hand) is GestureLabel.NONE


def test_anchor_is_mirrored_middle_base():
    hand = two_fingers(offset=(0.1, 0.05))
    x, y = anchor_point(hand)
    assert x == pytest.approx(1.0 - 0.6)
    assert y == pytest.approx(0.7)
    assert anchor_point(hand, mirror=False) == pytest.approx((0.6, 0.7))


def test_palm_size():
    assert palm_size(two_fingers()) == pytest.approx(0.15)
    assert palm_size(two_fingers() * 2) == pytest.approx(0.30)
    assert palm_size(None) == 0.0
