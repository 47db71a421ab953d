import pytest

from focus_app.core.focus.calibrator import Calibrator
from focus_app.core.models import CalibrationState


def test_threshold_from_classroom_samples():
    calibrator = Calibrator()
    state = CalibrationState()
    samples = [0.30, 0.31, 0.29, 0.30, 0.32, 0.29]

    results = [calibrator.add_sample(state, ear) for ear in samples]

    assert results == [False] * 5 + [True]
    assert state.complete
    assert state.threshold == pytest.approx(0.2172, abs=1e-4)


def test_threshold_is_written_once():
    calibrator = Calibrator(window=2)
    state = CalibrationState()
    calibrator.add_sample(state, 0.3)
    calibrator.add_sample(state, 0.3)
    threshold = state.threshold

    assert calibrator.add_sample(state, 0.05)
    assert state.threshold == threshold
    assert len(state.samples) == 2


def test_progress_tracks_window():
    calibrator = Calibrator(window=4)
    state = CalibrationState()
    assert calibrator.progress(state) == 0.0
    calibrator.add_sample(state, 0.3)
    assert calibrator.progress(state) == 0.25
    for _ in range(3):
        calibrator.add_sample(state, 0.3)
    assert calibrator.progress(state) == 1.0


def test_fallback_threshold_before_calibration():
    assert CalibrationState().threshold == 0.20


def test_window_must_be_positive():
    with pytest.raises(ValueError):
        Calibrator(window=0)
