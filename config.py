"""Tunable constants and deployment configuration for the gesture booth."""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class TrackingMode(enum.Enum):
    MULTI = "multi"
    SINGLE = "single"


class AccumulatorPolicy(enum.Enum):
    DWELL = "dwell"
    WAVE = "wave"


class EmptyFramePolicy(enum.Enum):
    CLEAR = "clear"
    TIMEOUT = "timeout"


class Vocabulary(enum.Enum):
    PEACE = "peace"
    PALM = "palm"


# TUNABLE CONSTANTS
HOLD_THRESHOLD_MS = 3000.0
GRACE_WINDOW_MS = 350.0

HAND_MATCH_DISTANCE = 0.15
HAND_TIMEOUT_MS = 500.0
MAX_HANDS = 10

EXTENSION_RATIO = 1.3
THUMB_EXTENSION_RATIO = 1.0
PINCH_RATIO = 0.6

WAVE_WINDOW_MS = 400.0
WAVE_MIN_AMPLITUDE = 0.015
WAVE_MIN_SAMPLES = 3

COUNTDOWN_TICKS = 3
COUNTDOWN_TICK_MS = 1000.0
CAPTURE_FLASH_MS = 150.0
RETURN_TO_IDLE_MS = 1000.0
REVIEW_DELAY_MS = 500.0
MAX_PHOTOS = 3


@dataclass(frozen=True)
class TrackerConfig:
    match_distance: float = HAND_MATCH_DISTANCE
    timeout_ms: float = HAND_TIMEOUT_MS
    max_hands: int = MAX_HANDS
    empty_frame_policy: EmptyFramePolicy = EmptyFramePolicy.CLEAR
    # single-winner scoring
    activity_window_ms: float = 500.0
    activity_weight: float = 1.0
    size_weight: float = 1.0

    def __post_init__(self) -> None:
        if not 0.0 < self.match_distance <= 1.5:
            raise ValueError("match_distance must be inside (0, 1.5]")
        if self.timeout_ms < 0:
            raise ValueError("timeout_ms must be non-negative")
        if self.max_hands < 1:
            raise ValueError("max_hands must be at least 1")
        if self.activity_window_ms <= 0:
            raise ValueError("activity_window_ms must be positive")


@dataclass(frozen=True)
class GestureGeometry:
    """Palm-size multipliers used by the classifier."""

    extension_ratio: float = EXTENSION_RATIO
    thumb_extension_ratio: float = THUMB_EXTENSION_RATIO
    pinch_ratio: float = PINCH_RATIO

    def __post_init__(self) -> None:
        for name in ("extension_ratio", "thumb_extension_ratio", "pinch_ratio"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


@dataclass(frozen=True)
class HoldConfig:
    hold_threshold_ms: float = HOLD_THRESHOLD_MS
    grace_window_ms: float = GRACE_WINDOW_MS
    wave_window_ms: float = WAVE_WINDOW_MS
    wave_min_amplitude: float = WAVE_MIN_AMPLITUDE
    wave_min_samples: int = WAVE_MIN_SAMPLES

    def __post_init__(self) -> None:
        if self.hold_threshold_ms <= 0:
            raise ValueError("hold_threshold_ms must be positive")
        if self.grace_window_ms < 0:
            raise ValueError("grace_window_ms must be non-negative")
        if self.wave_window_ms <= 0:
            raise ValueError("wave_window_ms must be positive")
        if self.wave_min_samples < 2:
            raise ValueError("wave_min_samples must be at least 2")


@dataclass(frozen=True)
class SessionConfig:
    countdown_ticks: int = COUNTDOWN_TICKS
    countdown_tick_ms: float = COUNTDOWN_TICK_MS
    capture_flash_ms: float = CAPTURE_FLASH_MS
    return_to_idle_ms: float = RETURN_TO_IDLE_MS
    review_delay_ms: float = REVIEW_DELAY_MS
    max_photos: int = MAX_PHOTOS

    def __post_init__(self) -> None:
        if self.countdown_ticks < 1:
            raise ValueError("countdown_ticks must be at least 1")
        if self.max_photos < 1:
            raise ValueError("max_photos must be at least 1")
        for name in ("countdown_tick_ms", "capture_flash_ms", "return_to_idle_ms", "review_delay_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


@dataclass(frozen=True)
class DetectorConfig:
    num_hands: int = MAX_HANDS
    min_hand_detection_confidence: float = 0.2
    min_hand_presence_confidence: float = 0.2
    min_tracking_confidence: float = 0.2
    model_path: Optional[str] = None


@dataclass(frozen=True)
class KioskConfig:
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    geometry: GestureGeometry = field(default_factory=GestureGeometry)
    hold: HoldConfig = field(default_factory=HoldConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    tracking_mode: TrackingMode = TrackingMode.MULTI
    accumulator_policy: AccumulatorPolicy = AccumulatorPolicy.DWELL
    vocabulary: Vocabulary = Vocabulary.PEACE


_SECTIONS = {
    "tracker": TrackerConfig,
    "geometry": GestureGeometry,
    "hold": HoldConfig,
    "session": SessionConfig,
    "detector": DetectorConfig,
}

_ENUM_FIELDS = {
    "tracking_mode": TrackingMode,
    "accumulator_policy": AccumulatorPolicy,
    "vocabulary": Vocabulary,
    "empty_frame_policy": EmptyFramePolicy,
}


def _coerce(key: str, value: Any) -> Any:
    enum_type = _ENUM_FIELDS.get(key)
    if enum_type is None:
        return value
    try:
        return enum_type(value)
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_type)
        raise ValueError(f"Invalid {key} {value!r}; expected one of: {choices}") from exc


def _build_section(name: str, values: Dict[str, Any]) -> Any:
    section_type = _SECTIONS[name]
    known = {f.name for f in fields(section_type)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown key(s) in '{name}' section: {', '.join(unknown)}")
    return section_type(**{key: _coerce(key, value) for key, value in values.items()})


def config_from_dict(data: Dict[str, Any]) -> KioskConfig:
    """Build a KioskConfig from a (possibly partial) mapping, defaults filling the rest."""
    if not isinstance(data, dict):
        raise ValueError("Configuration must be a JSON object")

    overrides: Dict[str, Any] = {}
    for key, value in data.items():
        if key in _SECTIONS:
            if not isinstance(value, dict):
                raise ValueError(f"Section '{key}' must be an object")
            overrides[key] = _build_section(key, value)
        elif key in ("tracking_mode", "accumulator_policy", "vocabulary"):
            overrides[key] = _coerce(key, value)
        else:
            raise ValueError(f"Unknown configuration key: {key}")
    return replace(KioskConfig(), **overrides)


def load_config(path: Path | str | None = None) -> KioskConfig:
    """Load configuration from a JSON file; no path means built-in defaults."""
    if path is None:
        return KioskConfig()

    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")

    with open(config_file, "r", encoding="utf-8") as f:
        data = json.load(f)

    config = config_from_dict(data)
    logger.info(
        f"Loaded config from {config_file} "
        f"(mode={config.tracking_mode.value}, policy={config.accumulator_policy.value}, "
        f"vocabulary={config.vocabulary.value})"
    )
    return config
