"""Capture session state machine driven by gesture confirmations."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Callable, Dict, List, Optional, Sequence, Set, Tuple

from config import SessionConfig, Vocabulary
from gesture_classifier import GestureLabel
from timers import TimerQueue

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    IDLE = "Idle"
    COUNTDOWN = "Countdown"
    CAPTURING = "Capturing"
    REVIEWING = "Reviewing"


class SessionAction(enum.Enum):
    START = "start"
    FINISH = "finish"
    RESTART = "restart"


@dataclass(frozen=True)
class PhotoRef:
    photo_id: str
    timestamp: float
    path: Optional[Path] = None


AllowList = Dict[SessionState, Dict[GestureLabel, SessionAction]]

VOCABULARY_LABELS: Dict[Vocabulary, Dict[SessionAction, GestureLabel]] = {
    Vocabulary.PEACE: {
        SessionAction.START: GestureLabel.TWO_FINGERS,
        SessionAction.FINISH: GestureLabel.OK_HAND,
        SessionAction.RESTART: GestureLabel.TWO_FINGERS,
    },
    Vocabulary.PALM: {
        SessionAction.START: GestureLabel.OPEN_PALM,
        SessionAction.FINISH: GestureLabel.OK_HAND,
        SessionAction.RESTART: GestureLabel.OPEN_PALM,
    },
}


def build_allow_list(vocabulary: Vocabulary = Vocabulary.PEACE) -> AllowList:
    """Per-state mapping of confirmable labels to session actions."""
    labels = VOCABULARY_LABELS[vocabulary]
    return {
        SessionState.IDLE: {
            labels[SessionAction.START]: SessionAction.START,
            labels[SessionAction.FINISH]: SessionAction.FINISH,
        },
        SessionState.COUNTDOWN: {},
        SessionState.CAPTURING: {},
        SessionState.REVIEWING: {
            labels[SessionAction.RESTART]: SessionAction.RESTART,
        },
    }


def vocabulary_labels(vocabulary: Vocabulary) -> Set[GestureLabel]:
    """Labels the classifier should emit for a vocabulary."""
    return set(VOCABULARY_LABELS[vocabulary].values())


TransitionListener = Callable[[SessionState, SessionState], None]


class SessionMachine:
    """Idle -> Countdown -> Capturing -> (Idle | Reviewing) -> Idle.

    Only confirmations listed in the allow-list for the current state do
    anything; everything else is a silent no-op. Every transition bumps a
    generation counter and cancels pending timers so a stale countdown tick
    can never land in a later state.
    """

    def __init__(
        self,
        config: SessionConfig,
        timers: TimerQueue,
        capture: Callable[[], Optional[PhotoRef]],
        deliver: Optional[Callable[[Tuple[PhotoRef, ...]], object]] = None,
        allow_list: Optional[AllowList] = None,
    ) -> None:
        self.config = config
        self.timers = timers
        self._capture = capture
        self._deliver = deliver
        self.allow_list = allow_list if allow_list is not None else build_allow_list()

        self.state = SessionState.IDLE
        self.capture_lock = False
        self.countdown_remaining: Optional[int] = None
        # True from entering Capturing until the capture call returns
        self.flash_active = False
        self._photos: List[PhotoRef] = []
        self._generation = 0
        self._now = 0.0
        self._listeners: List[TransitionListener] = []

    @property
    def photos(self) -> Tuple[PhotoRef, ...]:
        return tuple(self._photos)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def gesture_input_active(self) -> bool:
        return self.state in (SessionState.IDLE, SessionState.REVIEWING)

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def accepted_labels(self) -> Set[GestureLabel]:
        """Labels that would trigger an action right now."""
        if self.capture_lock and self.state is not SessionState.REVIEWING:
            return set()
        accepted = set()
        for label, action in self.allow_list.get(self.state, {}).items():
            if action is SessionAction.FINISH and not self._photos:
                continue
            accepted.add(label)
        return accepted

    def handle_confirmation(self, label: GestureLabel, now: Optional[float] = None) -> Optional[SessionAction]:
        if now is not None:
            self._now = now
        action = self.allow_list.get(self.state, {}).get(label)
        if action is None:
            logger.debug(f"Ignoring {label.value} in {self.state.value}")
            return None

        if action is SessionAction.START:
            if self.capture_lock:
                logger.debug("Capture in progress, ignoring start")
                return None
            self._start_countdown()
        elif action is SessionAction.FINISH:
            if not self._photos:
                logger.debug("No photos yet, ignoring finish")
                return None
            self._enter_review()
        elif action is SessionAction.RESTART:
            self.restart()
        return action

    def restart(self, now: Optional[float] = None) -> None:
        """Clear photos and return to Idle from any state."""
        if now is not None:
            self._now = now
        self._photos = []
        self.capture_lock = False
        self.countdown_remaining = None
        self._transition(SessionState.IDLE)
        logger.info("Session restarted")

    def tick(self, now: float) -> None:
        """Advance the clock and fire due timers."""
        self._now = now
        self.timers.run_due(now)

    def _transition(self, state: SessionState) -> None:
        self._generation += 1
        self.timers.cancel_all()
        self.flash_active = False
        previous, self.state = self.state, state
        if previous is not state:
            logger.info(f"Session {previous.value} -> {state.value}")
        for listener in self._listeners:
            listener(previous, state)

    def _schedule(self, delay_ms: float, callback: Callable[[], None]) -> None:
        generation = self._generation

        def fire() -> None:
            if generation != self._generation:
                return
            callback()

        self.timers.call_later(delay_ms, fire, self._now)

    def _start_countdown(self) -> None:
        self.capture_lock = True
        self._transition(SessionState.COUNTDOWN)
        self.countdown_remaining = self.config.countdown_ticks
        self._schedule(self.config.countdown_tick_ms, self._countdown_tick)

    def _countdown_tick(self) -> None:
        self.countdown_remaining = max((self.countdown_remaining or 0) - 1, 0)
        if self.countdown_remaining > 0:
            self._schedule(self.config.countdown_tick_ms, self._countdown_tick)
            return
        self.countdown_remaining = None
        self._transition(SessionState.CAPTURING)
        self.flash_active = True
        self._schedule(self.config.capture_flash_ms, self._complete_capture)

    def _complete_capture(self) -> None:
        self.flash_active = False
        try:
            photo = self._capture()
        except Exception as exc:
            logger.warning(f"Capture failed: {exc}")
            photo = None

        if photo is None:
            logger.warning("No photo captured, returning to Idle")
            self.capture_lock = False
            self._transition(SessionState.IDLE)
            return

        self._photos.append(photo)
        del self._photos[: max(len(self._photos) - self.config.max_photos, 0)]
        logger.info(f"Captured photo {len(self._photos)}/{self.config.max_photos}")

        if len(self._photos) >= self.config.max_photos:
            self._schedule(self.config.review_delay_ms, self._enter_review)
        else:
            self._schedule(self.config.return_to_idle_ms, self._unlock_to_idle)

    def _unlock_to_idle(self) -> None:
        self.capture_lock = False
        self._transition(SessionState.IDLE)

    def _enter_review(self) -> None:
        self._transition(SessionState.REVIEWING)
        photos = self.photos
        if self._deliver is None:
            return
        try:
            self._deliver(photos)
        except Exception as exc:
            logger.warning(f"Photo delivery failed: {exc}")


def describe_prompts(
    allow_list: AllowList,
    state: SessionState,
    photo_count: int,
    max_photos: int,
    suppressed: AbstractSet[GestureLabel] = frozenset(),
) -> Sequence[str]:
    """Human-readable prompts for the current state.

    Labels in ``suppressed`` just confirmed and are still being shown; they
    get a hint to lower the hand instead of a hold prompt.
    """
    if state is SessionState.COUNTDOWN:
        return ["Get ready..."]
    if state is SessionState.CAPTURING:
        return ["Smile!"]

    prompts = []
    for label, action in allow_list.get(state, {}).items():
        if label in suppressed:
            prompts.append(f"Lower {label.pretty} to use it again")
        elif action is SessionAction.START:
            prompts.append(f"Hold {label.pretty}: Take photo ({photo_count}/{max_photos})")
        elif action is SessionAction.FINISH and photo_count > 0:
            prompts.append(f"Hold {label.pretty}: Finish")
        elif action is SessionAction.RESTART:
            prompts.append(f"Hold {label.pretty}: Start over")
    return prompts
