"""Per-frame pipeline: tracker -> classifier -> accumulator -> session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

from config import AccumulatorPolicy, HoldConfig, KioskConfig, TrackingMode
from gesture_classifier import GestureLabel, anchor_point, as_keypoints, classify, palm_size
from hand_tracker import DominantHandSelector, HandTracker
from hold_accumulator import GestureObservation, HoldAccumulator, Key, WaveAccumulator
from session import (
    PhotoRef,
    SessionMachine,
    SessionState,
    build_allow_list,
    vocabulary_labels,
)
from timers import TimerQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandOverlay:
    hand_id: int
    label: GestureLabel
    anchor_x: float
    anchor_y: float
    progress: float


@dataclass
class FrameReport:
    state: SessionState
    hands: List[HandOverlay] = field(default_factory=list)
    confirmed: List[Key] = field(default_factory=list)
    countdown_remaining: Optional[int] = None
    photo_count: int = 0
    flash_active: bool = False
    # labels that must be lowered before they can confirm again
    suppressed: FrozenSet[GestureLabel] = frozenset()


def create_accumulator(policy: AccumulatorPolicy, config: HoldConfig) -> HoldAccumulator:
    if policy is AccumulatorPolicy.WAVE:
        return WaveAccumulator(config)
    return HoldAccumulator(config)


class GestureKiosk:
    """Runs the gesture pipeline for one video frame at a time.

    All state (tracked hands, accumulator entries, session) lives here and
    is only touched from ``process``, which the frame loop calls once per
    frame.
    """

    def __init__(
        self,
        config: KioskConfig,
        capture: Callable[[], Optional[PhotoRef]],
        deliver: Optional[Callable[[Tuple[PhotoRef, ...]], object]] = None,
    ) -> None:
        self.config = config
        self.enabled_labels = vocabulary_labels(config.vocabulary)
        self.tracker = HandTracker(config.tracker)
        self.selector = DominantHandSelector(config.tracker)
        self.accumulator = create_accumulator(config.accumulator_policy, config.hold)
        self.timers = TimerQueue()
        self.session = SessionMachine(
            config.session,
            self.timers,
            capture,
            deliver,
            build_allow_list(config.vocabulary),
        )
        self._last_time: Optional[float] = None

    def restart(self, now: float) -> None:
        self.accumulator.reset(clear_suppression=True)
        self.session.restart(now)

    def process(self, hands: Optional[Sequence], now: float) -> FrameReport:
        """Run one frame. ``hands`` is the detector output (None if unavailable)."""
        dt_ms = 0.0 if self._last_time is None else max(now - self._last_time, 0.0)
        self._last_time = now
        self.session.tick(now)

        if hands is None:
            hands = []

        keypoint_sets = []
        for raw in hands:
            coords = as_keypoints(raw)
            if coords is None:
                logger.debug("Dropping malformed keypoint set")
                continue
            keypoint_sets.append(coords)

        raw_anchors = [anchor_point(coords, mirror=False) for coords in keypoint_sets]
        assignment = self.tracker.update(raw_anchors, now)

        observations: List[GestureObservation] = []
        sizes = {}
        for index, coords in enumerate(keypoint_sets):
            hand_id = assignment.get(index)
            if hand_id is None:
                continue
            label = classify(coords, self.config.geometry, self.enabled_labels)
            anchor_x, anchor_y = anchor_point(coords)
            observations.append(GestureObservation(hand_id, label, anchor_x, anchor_y))
            sizes[hand_id] = palm_size(coords)

        if self.config.tracking_mode is TrackingMode.SINGLE and observations:
            winner = self.selector.select(
                [(obs.hand_id, (obs.anchor_x, obs.anchor_y), sizes[obs.hand_id]) for obs in observations],
                now,
            )
            observations = [obs for obs in observations if obs.hand_id == winner]

        report = FrameReport(state=self.session.state)
        progress = {}
        if self.session.gesture_input_active:
            accepted = self.session.accepted_labels()
            result = self.accumulator.tick(
                [obs for obs in observations if obs.label in accepted], dt_ms, now
            )
            progress = result.progress
            report.suppressed = result.suppressed
            for hand_id, label in result.confirmed:
                action = self.session.handle_confirmation(label, now)
                if action is not None:
                    report.confirmed.append((hand_id, label))
                    self.accumulator.reset()
                    break
        else:
            report.suppressed = self.accumulator.release_unobserved(obs.label for obs in observations)
            self.accumulator.reset()

        report.hands = [
            HandOverlay(
                obs.hand_id,
                obs.label,
                obs.anchor_x,
                obs.anchor_y,
                progress.get(obs.key, 0.0),
            )
            for obs in observations
            if obs.label is not GestureLabel.NONE
        ]
        report.state = self.session.state
        report.countdown_remaining = self.session.countdown_remaining
        report.photo_count = len(self.session.photos)
        report.flash_active = self.session.flash_active
        return report
