import dataclasses

import pytest

from config import HoldConfig
from gesture_classifier import GestureLabel
from hold_accumulator import GestureObservation, HoldAccumulator, WaveAccumulator

TWO = GestureLabel.TWO_FINGERS
OK = GestureLabel.OK_HAND


def obs(hand_id, label, x=0.5, y=0.5):
    return GestureObservation(hand_id, label, x, y)


def run_frames(acc, frames, observations, dt=16.0, start=0.0):
    """Feed the same observations for ``frames`` frames; return the frame numbers that confirmed."""
    fired = []
    now = start
    for frame in range(1, frames + 1):
        now += dt
        result = acc.tick(observations, dt, now)
        if result.confirmed:
            fired.append(frame)
    return fired


def test_fires_on_the_frame_that_crosses_the_threshold():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=3000.0))
    fired = run_frames(acc, 200, [obs(1, TWO)])
    assert fired == [188]


def test_accumulation_is_monotonic_while_held():
    acc = HoldAccumulator()
    previous = 0.0
    now = 0.0
    for _ in range(100):
        now += 16.0
        acc.tick([obs(1, TWO)], 16.0, now)
        current = acc.accumulated((1, TWO))
        assert current >= previous
        previous = current


def test_progress_is_fraction_of_threshold():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=100.0))
    result = acc.tick([obs(1, TWO)], 40.0, 40.0)
    assert result.progress[(1, TWO)] == pytest.approx(0.4)
    assert acc.progress((9, OK)) == 0.0


def test_short_dropout_inside_grace_window_keeps_accumulating():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=3000.0, grace_window_ms=350.0))
    acc.tick([obs(1, TWO)], 0.0, 0.0)
    acc.tick([obs(1, TWO)], 100.0, 100.0)
    acc.tick([], 100.0, 200.0)
    acc.tick([], 100.0, 300.0)
    assert acc.accumulated((1, TWO)) == pytest.approx(300.0)

    acc.tick([obs(1, TWO)], 100.0, 400.0)
    assert acc.accumulated((1, TWO)) == pytest.approx(400.0)


def test_dropout_longer_than_grace_window_resets():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=3000.0, grace_window_ms=350.0))
    acc.tick([obs(1, TWO)], 100.0, 100.0)
    for now in (200.0, 300.0, 400.0, 500.0):
        acc.tick([], 100.0, now)
    assert acc.accumulated((1, TWO)) == 0.0

    acc.tick([obs(1, TWO)], 100.0, 600.0)
    assert acc.accumulated((1, TWO)) == pytest.approx(100.0)


def test_changing_label_starts_a_new_key():
    acc = HoldAccumulator(HoldConfig(grace_window_ms=0.0))
    acc.tick([obs(1, TWO)], 500.0, 500.0)
    acc.tick([obs(1, OK)], 500.0, 1000.0)
    assert acc.accumulated((1, TWO)) == 0.0
    assert acc.accumulated((1, OK)) == pytest.approx(500.0)


def test_none_label_never_accumulates():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=100.0))
    fired = run_frames(acc, 50, [obs(1, GestureLabel.NONE)])
    assert fired == []
    assert acc.accumulated((1, GestureLabel.NONE)) == 0.0


def test_no_refire_while_gesture_is_still_held():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=200.0))
    fired = run_frames(acc, 100, [obs(1, TWO)])
    assert len(fired) == 1
    assert TWO in acc.suppressed


def test_release_for_one_frame_rearms():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=200.0, grace_window_ms=0.0))
    assert run_frames(acc, 20, [obs(1, TWO)]) != []

    acc.tick([], 16.0, 1000.0)
    assert acc.suppressed == frozenset()

    fired = run_frames(acc, 20, [obs(1, TWO)], start=1000.0)
    assert len(fired) == 1


def test_confirmation_suppresses_same_label_on_other_hands():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=200.0))
    now = 0.0
    # hand 2 starts holding later than hand 1
    for _ in range(5):
        now += 16.0
        acc.tick([obs(1, TWO)], 16.0, now)

    fired = []
    for _ in range(60):
        now += 16.0
        result = acc.tick([obs(1, TWO), obs(2, TWO)], 16.0, now)
        fired.extend(result.confirmed)

    assert fired == [(1, TWO)]
    assert acc.accumulated((2, TWO)) == 0.0


def test_suppression_is_per_label():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=200.0))
    now = 0.0
    confirmed = []
    for _ in range(40):
        now += 16.0
        confirmed.extend(acc.tick([obs(1, TWO), obs(2, OK)], 16.0, now).confirmed)
    assert sorted(confirmed, key=lambda k: k[0]) == [(1, TWO), (2, OK)]


def test_reset_keeps_suppression_unless_asked():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=100.0))
    run_frames(acc, 10, [obs(1, TWO)])
    acc.reset()
    assert TWO in acc.suppressed
    acc.reset(clear_suppression=True)
    assert acc.suppressed == frozenset()


def test_release_unobserved_keeps_labels_still_shown():
    acc = HoldAccumulator(HoldConfig(hold_threshold_ms=100.0))
    run_frames(acc, 10, [obs(1, TWO), obs(2, OK)])
    assert acc.suppressed == {TWO, OK}

    assert acc.release_unobserved([OK, GestureLabel.NONE]) == {OK}
    acc.reset()
    assert acc.suppressed == {OK}
    assert acc.release_unobserved([]) == frozenset()


class TestWaveAccumulator:
    config = HoldConfig(
        hold_threshold_ms=500.0,
        grace_window_ms=100.0,
        wave_window_ms=400.0,
        wave_min_amplitude=0.015,
        wave_min_samples=3,
    )

    def test_still_hand_does_not_accumulate(self):
        acc = WaveAccumulator(self.config)
        fired = run_frames(acc, 100, [obs(1, TWO, x=0.5)])
        assert fired == []
        assert acc.accumulated((1, TWO)) == 0.0

    def test_waving_hand_confirms(self):
        acc = WaveAccumulator(self.config)
        now = 0.0
        fired = []
        for frame in range(60):
            now += 16.0
            x = 0.5 + (0.03 if frame % 6 < 3 else -0.03)
            fired.extend(acc.tick([obs(1, TWO, x=x)], 16.0, now).confirmed)
        assert fired == [(1, TWO)]

    def test_pause_longer_than_grace_stops_accumulation(self):
        acc = WaveAccumulator(dataclasses.replace(self.config, hold_threshold_ms=5000.0))
        now = 0.0
        for frame in range(10):
            now += 16.0
            acc.tick([obs(1, TWO, x=0.5 + 0.02 * (frame % 2))], 16.0, now)
        held = acc.accumulated((1, TWO))
        assert held > 0.0

        # hold still long enough for the motion window and grace to lapse
        for _ in range(40):
            now += 16.0
            acc.tick([obs(1, TWO, x=0.6)], 16.0, now)
        still = acc.accumulated((1, TWO))
        for _ in range(10):
            now += 16.0
            acc.tick([obs(1, TWO, x=0.6)], 16.0, now)
        assert acc.accumulated((1, TWO)) == pytest.approx(still)
        assert 0.0 < still < 5000.0
        assert not acc.is_waving((1, TWO))
