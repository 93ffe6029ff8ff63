import json

import pytest

from config import (
    AccumulatorPolicy,
    EmptyFramePolicy,
    HoldConfig,
    KioskConfig,
    SessionConfig,
    TrackingMode,
    Vocabulary,
    config_from_dict,
    load_config,
)


def test_defaults():
    config = load_config()
    assert config == KioskConfig()
    assert config.hold.hold_threshold_ms == 3000.0
    assert config.hold.grace_window_ms == 350.0
    assert config.tracker.match_distance == 0.15
    assert config.tracker.timeout_ms == 500.0
    assert config.tracker.empty_frame_policy is EmptyFramePolicy.CLEAR
    assert config.session.countdown_ticks == 3
    assert config.session.max_photos == 3
    assert config.tracking_mode is TrackingMode.MULTI
    assert config.accumulator_policy is AccumulatorPolicy.DWELL
    assert config.vocabulary is Vocabulary.PEACE


def test_partial_override_keeps_other_defaults():
    config = config_from_dict({"hold": {"hold_threshold_ms": 1500}, "vocabulary": "palm"})
    assert config.hold.hold_threshold_ms == 1500
    assert config.hold.grace_window_ms == 350.0
    assert config.vocabulary is Vocabulary.PALM
    assert config.session == SessionConfig()


def test_load_from_file(tmp_path):
    path = tmp_path / "booth.json"
    path.write_text(
        json.dumps(
            {
                "tracking_mode": "single",
                "accumulator_policy": "wave",
                "tracker": {"empty_frame_policy": "timeout", "max_hands": 2},
                "session": {"max_photos": 5},
            }
        )
    )
    config = load_config(path)
    assert config.tracking_mode is TrackingMode.SINGLE
    assert config.accumulator_policy is AccumulatorPolicy.WAVE
    assert config.tracker.empty_frame_policy is EmptyFramePolicy.TIMEOUT
    assert config.tracker.max_hands == 2
    assert config.session.max_photos == 5


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.json")


@pytest.mark.parametrize(
    "data",
    [
        {"holdd": {}},
        {"hold": {"threshold": 10}},
        {"hold": 5},
        {"vocabulary": "thumbs"},
        {"tracker": {"empty_frame_policy": "sometimes"}},
        ["not", "a", "mapping"],
    ],
)
def test_bad_config_is_rejected(data):
    with pytest.raises(ValueError):
        config_from_dict(data)


def test_invalid_values_are_rejected():
    with pytest.raises(ValueError):
        HoldConfig(hold_threshold_ms=0)
    with pytest.raises(ValueError):
        SessionConfig(max_photos=0)
    with pytest.raises(ValueError):
        config_from_dict({"session": {"countdown_tick_ms": -1}})
