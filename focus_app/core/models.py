"""Domain models for focus tracking and live quiz sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from focus_app.constants.focus_constants import (
    CAUSE_INITIALISING,
    EAR_FALLBACK_THRESHOLD,
    MAX_SCORE,
)


class Role(str, Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"


class QuestionMode(str, Enum):
    """How a question is answered. Free-text questions travel as ``MANUAL``."""

    MCQ = "MCQ"
    FREE_TEXT = "MANUAL"


class SessionPhase(str, Enum):
    IDLE = "IDLE"
    LIVE = "LIVE"
    DISCUSSION = "DISCUSSION"


@dataclass(slots=True)
class Point:
    x: float
    y: float


@dataclass(slots=True)
class FaceLandmarks:
    """Eye contours (six ordered points each) and nose points of one detected face."""

    left_eye: list[Point]
    right_eye: list[Point]
    nose: list[Point]


@dataclass(slots=True)
class FaceSignals:
    ear: float
    yaw: float


@dataclass(slots=True)
class CalibrationState:
    """Personal EAR baseline collected at tracking start."""

    samples: list[float] = field(default_factory=list)
    threshold: float = EAR_FALLBACK_THRESHOLD
    complete: bool = False


@dataclass(slots=True)
class FocusState:
    """Per-participant attention state owned by the tracker."""

    score: float = MAX_SCORE
    cause: str = CAUSE_INITIALISING
    is_face_detected: bool = False
    is_looking_away: bool = False
    is_eyes_closed: bool = False
    is_tab_active: bool = True
    missed_frame_streak: int = 0
    low_ear_streak: int = 0
    calibration: CalibrationState = field(default_factory=CalibrationState)
    landmarks: FaceLandmarks | None = None
    calibration_progress: float = 0.0


@dataclass(slots=True)
class QuestionSpec:
    """Question as authored by the teacher."""

    text: str
    mode: QuestionMode
    options: list[str]
    correct_answer: str
    timer_duration_seconds: int


@dataclass(slots=True)
class BankQuestion:
    """Prepared question waiting in the question bank."""

    text: str
    mode: QuestionMode
    options: list[str]
    correct_answer: str
    time_limit_seconds: int | None = None

    def to_spec(self, default_time_limit: int) -> QuestionSpec:
        return QuestionSpec(
            text=self.text,
            mode=self.mode,
            options=list(self.options),
            correct_answer=self.correct_answer,
            timer_duration_seconds=self.time_limit_seconds or default_time_limit,
        )


@dataclass(slots=True)
class ScoreBreakdown:
    accuracy: float
    speed: float
    focus: float


@dataclass(slots=True)
class AnswerRecord:
    """Scored answer; at most one per participant per question."""

    participant_id: str
    display_name: str
    raw_answer: str
    is_correct: bool
    response_latency_seconds: float
    score_breakdown: ScoreBreakdown
    total_points: int
    submitted_at: datetime


@dataclass(slots=True)
class ActiveQuestion:
    """The single question currently open for answers."""

    spec: QuestionSpec
    question_id: str
    start_time: datetime
    end_time: datetime
    answers: dict[str, AnswerRecord] = field(default_factory=dict)
    sealed: bool = False


@dataclass(slots=True)
class ParticipantProfile:
    participant_id: str
    display_name: str
    joined_at: datetime
    cumulative_score: int = 0


@dataclass(slots=True)
class FocusReport:
    """Latest focus state reported by a participant's tracker."""

    score: float
    cause: str | None
    is_tab_active: bool
    is_face_detected: bool
    is_looking_away: bool
    is_eyes_closed: bool
    reported_at: datetime


@dataclass(slots=True)
class LeaderboardRow:
    participant_id: str
    display_name: str
    score: int


@dataclass(slots=True)
class FocusSnapshotRow:
    participant_id: str
    display_name: str
    score: float
    cause: str | None
    is_looking_away: bool
    is_eyes_closed: bool


@dataclass(slots=True)
class DistractionAlert:
    participant_id: str
    display_name: str
    score: float
    cause: str
