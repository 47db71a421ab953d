import pytest

from focus_app.constants.focus_constants import (
    CAUSE_CALIBRATING,
    CAUSE_EYES_CLOSED,
    CAUSE_EYES_CLOSED_LOOKING_AWAY,
    CAUSE_FOCUSED,
    CAUSE_LOOKING_AWAY,
    CAUSE_NO_FACE,
    CAUSE_TAB_HIDDEN,
)
from focus_app.core.focus.state_machine import FocusStateMachine
from focus_app.core.models import FaceLandmarks, Point

from conftest import make_landmarks


@pytest.fixture
def calibrated() -> FocusStateMachine:
    machine = FocusStateMachine()
    for _ in range(6):
        machine.tick(make_landmarks(ear=0.3))
    assert machine.state.calibration.complete
    return machine


def test_calibration_ticks_never_penalize():
    machine = FocusStateMachine()
    samples = [0.30, 0.31, 0.29, 0.30, 0.32, 0.29]

    for ear in samples[:-1]:
        state = machine.tick(make_landmarks(ear=ear))
        assert state.cause == CAUSE_CALIBRATING
        assert state.score == 100

    state = machine.tick(make_landmarks(ear=samples[-1]))
    assert state.calibration.complete
    assert state.calibration.threshold == pytest.approx(0.2172, abs=1e-4)
    assert state.calibration_progress == 1.0
    assert state.cause == CAUSE_FOCUSED
    assert state.score == 100


def test_calibration_ignores_head_pose():
    machine = FocusStateMachine()
    state = machine.tick(make_landmarks(ear=0.3, yaw=0.5))
    assert state.cause == CAUSE_CALIBRATING
    assert not state.is_looking_away
    assert state.score == 100


def test_single_low_ear_frame_is_a_blink(calibrated):
    state = calibrated.tick(make_landmarks(ear=0.1))
    assert not state.is_eyes_closed
    assert state.cause == CAUSE_FOCUSED
    assert state.score == 100

    state = calibrated.tick(make_landmarks(ear=0.3))
    assert state.low_ear_streak == 0


def test_sustained_closure_decays_heavily(calibrated):
    calibrated.tick(make_landmarks(ear=0.1))
    state = calibrated.tick(make_landmarks(ear=0.1))
    assert state.is_eyes_closed
    assert state.cause == CAUSE_EYES_CLOSED
    assert state.score == 86


def test_closed_and_looking_away(calibrated):
    calibrated.tick(make_landmarks(ear=0.1, yaw=0.3))
    state = calibrated.tick(make_landmarks(ear=0.1, yaw=0.3))
    assert state.cause == CAUSE_EYES_CLOSED_LOOKING_AWAY
    assert state.score == 86


def test_looking_away_scales_with_yaw(calibrated):
    state = calibrated.tick(make_landmarks(yaw=0.35))
    assert state.is_looking_away
    assert state.cause == CAUSE_LOOKING_AWAY
    assert state.score == pytest.approx(92)

    state = calibrated.tick(make_landmarks(yaw=-0.2))
    assert state.score == pytest.approx(92 - 8 * 0.2 / 0.35)


def test_yaw_inside_threshold_counts_as_focused(calibrated):
    state = calibrated.tick(make_landmarks(yaw=0.15))
    assert not state.is_looking_away
    assert state.cause == CAUSE_FOCUSED


def test_focus_recovers_and_clamps(calibrated):
    calibrated.tick(make_landmarks(ear=0.1))
    calibrated.tick(make_landmarks(ear=0.1))
    state = calibrated.tick(make_landmarks(ear=0.3))
    assert state.score == 96
    state = calibrated.tick(make_landmarks(ear=0.3))
    assert state.score == 100


def test_missed_frames_have_a_grace_period(calibrated):
    for _ in range(2):
        state = calibrated.tick(None)
        assert state.is_face_detected
        assert state.score == 100

    state = calibrated.tick(None)
    assert not state.is_face_detected
    assert not state.is_looking_away
    assert not state.is_eyes_closed
    assert state.landmarks is None
    assert state.cause == CAUSE_NO_FACE
    assert state.score == 86


def test_detection_resets_missed_streak(calibrated):
    calibrated.tick(None)
    calibrated.tick(None)
    calibrated.tick(make_landmarks())
    state = calibrated.tick(None)
    assert state.missed_frame_streak == 1
    assert state.score == 100


def test_hidden_tab_decays_each_tick():
    machine = FocusStateMachine()
    state = machine.set_tab_visibility(False)
    assert state.cause == CAUSE_TAB_HIDDEN
    assert state.score == 100

    scores = [machine.tick(make_landmarks()).score for _ in range(3)]
    assert scores == [86, 72, 58]
    assert machine.state.cause == CAUSE_TAB_HIDDEN


def test_score_never_leaves_bounds():
    machine = FocusStateMachine()
    machine.set_tab_visibility(False)
    for _ in range(20):
        state = machine.tick(None)
    assert state.score == 0


def test_camera_unavailable_only_tracks_tab():
    machine = FocusStateMachine()
    state = machine.tick(None, camera_available=False)
    assert state.score == 100
    assert state.missed_frame_streak == 0

    machine.set_tab_visibility(False)
    assert machine.tick(None, camera_available=False).score == 86
    machine.set_tab_visibility(True)
    assert machine.tick(None, camera_available=False).score == 86


def test_failed_tick_leaves_state_untouched(calibrated):
    calibrated.tick(None)
    before = calibrated.state
    broken = FaceLandmarks(left_eye=[Point(0, 0)], right_eye=[Point(1, 1)], nose=[])

    with pytest.raises(ValueError):
        calibrated.tick(broken)

    assert calibrated.state == before


def test_state_snapshot_is_detached(calibrated):
    snapshot = calibrated.state
    snapshot.score = 3
    assert calibrated.state.score == 100
