"""Hold-to-confirm accumulation of per-hand gestures."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, FrozenSet, Iterable, List, Set, Tuple

from config import HoldConfig
from gesture_classifier import GestureLabel

logger = logging.getLogger(__name__)

Key = Tuple[int, GestureLabel]


@dataclass(frozen=True)
class GestureObservation:
    hand_id: int
    label: GestureLabel
    anchor_x: float
    anchor_y: float

    @property
    def key(self) -> Key:
        return self.hand_id, self.label


@dataclass
class TickResult:
    confirmed: List[Key] = field(default_factory=list)
    progress: Dict[Key, float] = field(default_factory=dict)
    suppressed: FrozenSet[GestureLabel] = frozenset()


@dataclass
class _Entry:
    accumulated_ms: float
    last_seen: float


class HoldAccumulator:
    """Accumulate hold time per (hand id, label) and fire confirmations.

    A key that drops out for less than the grace window keeps accumulating,
    which absorbs single-frame detector flicker. Once a label confirms it is
    suppressed for every hand until no hand shows it for a frame.
    """

    def __init__(self, config: HoldConfig = HoldConfig()) -> None:
        self.config = config
        self._entries: Dict[Key, _Entry] = {}
        self._suppressed: Set[GestureLabel] = set()

    @property
    def suppressed(self) -> FrozenSet[GestureLabel]:
        return frozenset(self._suppressed)

    def accumulated(self, key: Key) -> float:
        entry = self._entries.get(key)
        return entry.accumulated_ms if entry else 0.0

    def progress(self, key: Key) -> float:
        return min(self.accumulated(key) / self.config.hold_threshold_ms, 1.0)

    def reset(self, clear_suppression: bool = False) -> None:
        self._entries.clear()
        if clear_suppression:
            self._suppressed.clear()

    def release_unobserved(self, labels: Iterable[GestureLabel]) -> FrozenSet[GestureLabel]:
        """Lift suppression for every label no hand shows this frame.

        ``tick`` does this itself; call it directly on frames where nothing
        is accumulated so a gesture lowered in the meantime still re-arms.
        """
        self._suppressed &= {label for label in labels if label is not GestureLabel.NONE}
        return frozenset(self._suppressed)

    def tick(
        self,
        observations: Iterable[GestureObservation],
        dt_ms: float,
        now: float,
    ) -> TickResult:
        current: Dict[Key, GestureObservation] = {}
        for obs in observations:
            if obs.label is GestureLabel.NONE:
                continue
            current.setdefault(obs.key, obs)

        self.release_unobserved(label for _, label in current)

        for key, obs in current.items():
            if key[1] in self._suppressed:
                self._drop(key)
                continue
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry(0.0, now)
                self._entries[key] = entry
            entry.accumulated_ms += self._gain(key, obs, dt_ms, now)
            entry.last_seen = now

        for key in [k for k in self._entries if k not in current]:
            entry = self._entries[key]
            if now - entry.last_seen <= self.config.grace_window_ms:
                entry.accumulated_ms += self._coast(key, dt_ms, now)
            else:
                self._drop(key)

        confirmed: List[Key] = []
        for key in list(self._entries):
            if key not in self._entries:
                continue
            hand_id, label = key
            if self._entries[key].accumulated_ms < self.config.hold_threshold_ms:
                continue
            confirmed.append(key)
            self._suppressed.add(label)
            for other in [k for k in self._entries if k[1] is label]:
                self._drop(other)
            logger.info(f"Confirmed {label.value} from hand {hand_id}")

        progress = {key: self.progress(key) for key in self._entries}
        return TickResult(confirmed, progress, frozenset(self._suppressed))

    def _gain(self, key: Key, obs: GestureObservation, dt_ms: float, now: float) -> float:
        return dt_ms

    def _coast(self, key: Key, dt_ms: float, now: float) -> float:
        return dt_ms

    def _drop(self, key: Key) -> None:
        self._entries.pop(key, None)


class WaveAccumulator(HoldAccumulator):
    """Accumulate only while the hand keeps moving sideways.

    Motion is lateral amplitude of the anchor over a short trailing window.
    A pause shorter than the grace window still counts; after that the
    accumulated time holds still until motion resumes.
    """

    def __init__(self, config: HoldConfig = HoldConfig()) -> None:
        super().__init__(config)
        self._history: Dict[Key, Deque[Tuple[float, float]]] = {}
        self._last_motion: Dict[Key, float] = {}

    def is_waving(self, key: Key) -> bool:
        history = self._history.get(key)
        if not history or len(history) < self.config.wave_min_samples:
            return False
        xs = [x for _, x in history]
        return max(xs) - min(xs) > self.config.wave_min_amplitude

    def reset(self, clear_suppression: bool = False) -> None:
        super().reset(clear_suppression)
        self._history.clear()
        self._last_motion.clear()

    def _gain(self, key: Key, obs: GestureObservation, dt_ms: float, now: float) -> float:
        history = self._history.setdefault(key, deque())
        history.append((now, obs.anchor_x))
        while history and now - history[0][0] >= self.config.wave_window_ms:
            history.popleft()

        if self.is_waving(key):
            self._last_motion[key] = now
            return dt_ms
        return self._coast(key, dt_ms, now)

    def _coast(self, key: Key, dt_ms: float, now: float) -> float:
        last_motion = self._last_motion.get(key)
        if last_motion is not None and now - last_motion < self.config.grace_window_ms:
            return dt_ms
        return 0.0

    def _drop(self, key: Key) -> None:
        super()._drop(key)
        self._history.pop(key, None)
        self._last_motion.pop(key, None)
