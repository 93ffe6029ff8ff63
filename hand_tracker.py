"""Stable hand identities across frames of unordered detector output."""

from __future__ import annotations

import itertools
import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterator, List, Optional, Sequence, Tuple

from config import EmptyFramePolicy, TrackerConfig

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass
class TrackedHand:
    id: int
    last_position: Point
    last_seen: float


class HandTracker:
    """Greedy nearest-neighbour identity assignment.

    Tracked hands are matched in insertion order against the observed anchors;
    each one claims the closest unclaimed anchor within ``match_distance``.
    The match is not globally optimal, which is fine for a handful of hands.
    """

    # Shared so ids stay unique across tracker instances in one process.
    _id_counter: Iterator[int] = itertools.count(1)

    def __init__(self, config: TrackerConfig = TrackerConfig()) -> None:
        self.config = config
        self._hands: List[TrackedHand] = []

    @property
    def hands(self) -> List[TrackedHand]:
        return [TrackedHand(h.id, h.last_position, h.last_seen) for h in self._hands]

    def reset(self) -> None:
        self._hands = []

    def update(self, anchors: Sequence[Point], now: float) -> Dict[int, int]:
        """Match this frame's anchors to tracked hands.

        Returns a mapping from observed index to stable hand id. Observations
        arriving while ``max_hands`` tracks are live get no id.
        """
        if not anchors:
            if self.config.empty_frame_policy is EmptyFramePolicy.CLEAR:
                if self._hands:
                    logger.debug(f"No hands observed, clearing {len(self._hands)} track(s)")
                self._hands = []
            else:
                self._evict_stale(now)
            return {}

        claimed: set = set()
        assignment: Dict[int, int] = {}

        for hand in self._hands:
            best_index: Optional[int] = None
            best_distance = self.config.match_distance
            for index, (x, y) in enumerate(anchors):
                if index in claimed:
                    continue
                distance = math.hypot(x - hand.last_position[0], y - hand.last_position[1])
                if distance < best_distance:
                    best_distance = distance
                    best_index = index

            if best_index is not None:
                claimed.add(best_index)
                assignment[best_index] = hand.id
                hand.last_position = (float(anchors[best_index][0]), float(anchors[best_index][1]))
                hand.last_seen = now

        self._evict_stale(now)

        for index, (x, y) in enumerate(anchors):
            if index in claimed:
                continue
            if len(self._hands) >= self.config.max_hands:
                logger.debug(f"Tracker full ({self.config.max_hands}), ignoring extra hand")
                continue
            hand = TrackedHand(next(HandTracker._id_counter), (float(x), float(y)), now)
            self._hands.append(hand)
            assignment[index] = hand.id
            logger.debug(f"New hand {hand.id} at ({x:.3f}, {y:.3f})")

        return assignment

    def _evict_stale(self, now: float) -> None:
        kept = []
        for hand in self._hands:
            if now - hand.last_seen < self.config.timeout_ms or hand.last_seen == now:
                kept.append(hand)
            else:
                logger.debug(f"Hand {hand.id} timed out")
        self._hands = kept


class DominantHandSelector:
    """Pick a single winning hand by motion activity and apparent size.

    Used when only one hand at a time should drive the session. Each hand
    keeps a short anchor history; its score is the path length travelled in
    that window (weighted) plus its palm size (weighted).
    """

    def __init__(self, config: TrackerConfig = TrackerConfig()) -> None:
        self.config = config
        self._history: Dict[int, Deque[Tuple[float, float, float]]] = {}

    def reset(self) -> None:
        self._history.clear()

    def activity(self, hand_id: int) -> float:
        history = self._history.get(hand_id)
        if not history or len(history) < 2:
            return 0.0
        samples = list(history)
        return sum(
            math.hypot(x2 - x1, y2 - y1)
            for (_, x1, y1), (_, x2, y2) in zip(samples, samples[1:])
        )

    def select(
        self,
        candidates: Sequence[Tuple[int, Point, float]],
        now: float,
    ) -> Optional[int]:
        """Record ``(hand_id, anchor, palm_size)`` samples and return the best id."""
        for hand_id, (x, y), _ in candidates:
            history = self._history.setdefault(hand_id, deque())
            history.append((now, float(x), float(y)))
            while history and now - history[0][0] > self.config.activity_window_ms:
                history.popleft()

        stale = [
            hand_id
            for hand_id, history in self._history.items()
            if not history or now - history[-1][0] > self.config.timeout_ms
        ]
        for hand_id in stale:
            del self._history[hand_id]

        best_id: Optional[int] = None
        best_score = -1.0
        for hand_id, _, size in candidates:
            score = (
                self.config.activity_weight * self.activity(hand_id)
                + self.config.size_weight * size
            )
            if score > best_score:
                best_score = score
                best_id = hand_id
        return best_id
