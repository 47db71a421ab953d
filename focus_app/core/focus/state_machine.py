"""Debounced attention state for a single participant.

One call to :meth:`FocusStateMachine.tick` corresponds to one analysis tick.
Rules, in priority order:

1. Hidden tab: heavy decay, nothing else is evaluated.
2. No face: the first misses are a grace period; from the third consecutive
   miss the face flags are cleared and the score decays heavily.
3. Face: calibrate first, then score eye closure (two or more low-EAR
   frames; a single one is a blink) and head yaw.
"""

from __future__ import annotations

import copy

from focus_app.constants.focus_constants import (
    BLINK_FRAMES_THRESHOLD,
    CAUSE_CALIBRATING,
    CAUSE_EYES_CLOSED,
    CAUSE_EYES_CLOSED_LOOKING_AWAY,
    CAUSE_FOCUSED,
    CAUSE_LOOKING_AWAY,
    CAUSE_NO_FACE,
    CAUSE_TAB_HIDDEN,
    DECAY_HEAVY,
    DECAY_MEDIUM,
    MAX_SCORE,
    MIN_SCORE,
    MISSED_FRAMES_THRESHOLD,
    RECOVERY,
    YAW_FULL_SEVERITY,
    YAW_THRESHOLD,
)
from focus_app.core.focus.calibrator import Calibrator
from focus_app.core.focus.signals import extract_signals
from focus_app.core.models import FaceLandmarks, FocusState


def clamp_score(score: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, score))


class FocusStateMachine:
    """Applies per-tick focus rules to a private :class:`FocusState`."""

    def __init__(self, calibrator: Calibrator | None = None) -> None:
        self._calibrator = calibrator or Calibrator()
        self._state = FocusState()

    @property
    def state(self) -> FocusState:
        """Return a detached snapshot of the current state."""
        return copy.deepcopy(self._state)

    def reset(self) -> None:
        self._state = FocusState()

    def set_tab_visibility(self, visible: bool) -> FocusState:
        self._state.is_tab_active = visible
        if not visible:
            self._state.cause = CAUSE_TAB_HIDDEN
        return self.state

    def tick(
        self,
        landmarks: FaceLandmarks | None,
        camera_available: bool = True,
    ) -> FocusState:
        """Advance one tick and return the resulting snapshot.

        The tick runs against a working copy; if anything raises, the stored
        state is left exactly as it was before the tick.
        """
        working = copy.deepcopy(self._state)

        if not working.is_tab_active:
            working.score = clamp_score(working.score - DECAY_HEAVY)
            working.cause = CAUSE_TAB_HIDDEN
        elif not camera_available:
            # Tab-visibility-only mode: nothing to measure, nothing to penalize.
            pass
        elif landmarks is None:
            self._apply_missed_frame(working)
        else:
            self._apply_detection(working, landmarks)

        self._state = working
        return self.state

    def _apply_missed_frame(self, working: FocusState) -> None:
        working.missed_frame_streak += 1
        if working.missed_frame_streak < MISSED_FRAMES_THRESHOLD:
            return
        working.is_face_detected = False
        working.is_looking_away = False
        working.is_eyes_closed = False
        working.landmarks = None
        working.low_ear_streak = 0
        working.cause = CAUSE_NO_FACE
        working.score = clamp_score(working.score - DECAY_HEAVY)

    def _apply_detection(self, working: FocusState, landmarks: FaceLandmarks) -> None:
        signals = extract_signals(landmarks)
        working.missed_frame_streak = 0
        working.is_face_detected = True
        working.landmarks = landmarks

        calibration = working.calibration
        if not calibration.complete:
            finished = self._calibrator.add_sample(calibration, signals.ear)
            working.calibration_progress = self._calibrator.progress(calibration)
            if not finished:
                working.cause = CAUSE_CALIBRATING
                return

        working.is_looking_away = abs(signals.yaw) > YAW_THRESHOLD
        if signals.ear < calibration.threshold:
            working.low_ear_streak += 1
        else:
            working.low_ear_streak = 0
        working.is_eyes_closed = working.low_ear_streak >= BLINK_FRAMES_THRESHOLD

        if working.is_eyes_closed and working.is_looking_away:
            working.cause = CAUSE_EYES_CLOSED_LOOKING_AWAY
            working.score = clamp_score(working.score - DECAY_HEAVY)
        elif working.is_eyes_closed:
            working.cause = CAUSE_EYES_CLOSED
            working.score = clamp_score(working.score - DECAY_HEAVY)
        elif working.is_looking_away:
            severity = min(1.0, abs(signals.yaw) / YAW_FULL_SEVERITY)
            working.cause = CAUSE_LOOKING_AWAY
            working.score = clamp_score(working.score - DECAY_MEDIUM * severity)
        else:
            working.cause = CAUSE_FOCUSED
            working.score = clamp_score(working.score + RECOVERY)
