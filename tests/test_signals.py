import pytest

from focus_app.constants.focus_constants import NEUTRAL_EAR
from focus_app.core.focus.signals import centroid, extract_signals, eye_aspect_ratio, head_yaw
from focus_app.core.models import FaceLandmarks, Point

from conftest import make_eye, make_landmarks


def test_eye_aspect_ratio_matches_constructed_eye():
    assert eye_aspect_ratio(make_eye(Point(50, 50), 0.3)) == pytest.approx(0.3)
    assert eye_aspect_ratio(make_eye(Point(50, 50), 0.12)) == pytest.approx(0.12)


def test_degenerate_eye_reports_neutral_ratio():
    collapsed = [Point(10, 10)] * 6
    assert eye_aspect_ratio(collapsed) == NEUTRAL_EAR


def test_eye_needs_six_points():
    with pytest.raises(ValueError):
        eye_aspect_ratio([Point(0, 0)] * 5)


def test_centroid_of_empty_set_raises():
    with pytest.raises(ValueError):
        centroid([])


def test_head_yaw_is_nose_offset_in_eye_spans():
    assert head_yaw(make_landmarks(yaw=0.0)) == pytest.approx(0.0)
    assert head_yaw(make_landmarks(yaw=0.25)) == pytest.approx(0.25)
    assert head_yaw(make_landmarks(yaw=-0.4)) == pytest.approx(-0.4)


def test_head_yaw_with_overlapping_eyes_is_zero():
    eye = make_eye(Point(100, 100), 0.3)
    landmarks = FaceLandmarks(left_eye=eye, right_eye=eye, nose=[Point(140, 100)] * 4)
    assert head_yaw(landmarks) == 0.0


def test_extract_signals_averages_both_eyes():
    landmarks = make_landmarks(ear=0.3, yaw=0.1)
    landmarks.right_eye = make_eye(Point(160, 100), 0.2)
    signals = extract_signals(landmarks)
    assert signals.ear == pytest.approx(0.25)
    assert signals.yaw == pytest.approx(0.1, abs=0.01)
