"""Composite answer scoring: accuracy, speed and concurrent focus."""

from __future__ import annotations

from dataclasses import dataclass
import math

from focus_app.constants.quiz_constants import (
    ACCURACY_POINTS,
    FOCUS_POINTS,
    SPEED_POINTS,
)
from focus_app.core.models import ScoreBreakdown


@dataclass(slots=True)
class ScoredAnswer:
    is_correct: bool
    breakdown: ScoreBreakdown
    total_points: int
    message: str


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def normalize_answer(answer: str) -> str:
    return answer.strip().lower()


def is_answer_correct(answer: str, correct_answer: str | None) -> bool:
    if not correct_answer:
        return False
    return normalize_answer(answer) == normalize_answer(correct_answer)


def score_answer(
    answer: str,
    correct_answer: str | None,
    latency_seconds: float,
    duration_seconds: float,
    focus_score: float,
) -> ScoredAnswer:
    """Score one submission. Pure: identical inputs give identical points.

    Speed credit falls linearly from 30 at zero latency to 0 at the timer's
    expiry and is only awarded for correct answers.
    """
    if duration_seconds <= 0:
        raise ValueError("Question duration must be positive.")

    is_correct = is_answer_correct(answer, correct_answer)
    accuracy = ACCURACY_POINTS if is_correct else 0.0
    speed = 0.0
    if is_correct:
        elapsed = max(0.0, latency_seconds)
        speed = max(0.0, SPEED_POINTS * (1 - elapsed / duration_seconds))
    focus = (max(0.0, min(100.0, focus_score)) / 100) * FOCUS_POINTS
    total = round_half_up(accuracy + speed + focus)

    if is_correct:
        message = f"Correct! +{total}"
    else:
        message = f"Wrong. +{round_half_up(focus)} (Focus)"

    return ScoredAnswer(
        is_correct=is_correct,
        breakdown=ScoreBreakdown(accuracy=accuracy, speed=speed, focus=focus),
        total_points=total,
        message=message,
    )
