"""Per-participant EAR calibration."""

from __future__ import annotations

import logging

from focus_app.constants.focus_constants import CALIBRATION_EAR_FACTOR, CALIBRATION_WINDOW
from focus_app.core.models import CalibrationState

logger = logging.getLogger(__name__)


class Calibrator:
    """Derives a personal eye-closure threshold from the first EAR samples.

    The threshold is written exactly once, when the window fills, and the
    state is left untouched afterwards.
    """

    def __init__(
        self,
        window: int = CALIBRATION_WINDOW,
        factor: float = CALIBRATION_EAR_FACTOR,
    ) -> None:
        if window <= 0:
            raise ValueError("Calibration window must be a positive integer.")
        self._window = window
        self._factor = factor

    def progress(self, state: CalibrationState) -> float:
        if state.complete:
            return 1.0
        return min(1.0, len(state.samples) / self._window)

    def add_sample(self, state: CalibrationState, ear: float) -> bool:
        """Append one sample; return True once calibration is complete."""
        if state.complete:
            return True
        state.samples.append(ear)
        if len(state.samples) < self._window:
            return False
        mean = sum(state.samples) / len(state.samples)
        state.threshold = mean * self._factor
        state.complete = True
        logger.info(
            "Calibration done: mean EAR %.3f, threshold %.3f", mean, state.threshold
        )
        return True
