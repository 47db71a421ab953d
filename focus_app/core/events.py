"""Outbound event messages and their wire payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from focus_app.core.models import (
    ActiveQuestion,
    DistractionAlert,
    FocusSnapshotRow,
    LeaderboardRow,
)

NEW_QUESTION = "new_question"
ANSWER_RESULT = "answer_result"
ANSWER_REJECTED = "answer_rejected"
TEACHER_UPDATE = "teacher_update"
LEADERBOARD_UPDATE = "leaderboard_update"
CLASS_FOCUS_SNAPSHOT = "class_focus_snapshot"
DISTRACTED_STUDENT = "distracted_student"
USER_COUNT = "user_count"
USER_CONNECTED = "user_connected"
USER_DISCONNECTED = "user_disconnected"
SESSION_PHASE = "session_phase"
VOICE_COMMAND_RESULT = "voice_command_result"
SIGNAL = "signal"


class Audience(str, Enum):
    ALL = "all"
    TEACHERS = "teachers"
    ONE = "one"
    OTHERS = "others"


@dataclass(slots=True)
class OutboundMessage:
    """An event to deliver; ``target`` names the connection for ONE/OTHERS."""

    event: str
    payload: object
    audience: Audience = Audience.ALL
    target: str | None = None


def to_epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def from_epoch_ms(value: float) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def new_question_payload(question: ActiveQuestion, question_html: str) -> dict[str, object]:
    """Question broadcast to every connection.

    Unlike the ``push_question`` payload this carries no ``correctAnswer``:
    the same message reaches students, so the expected answer stays on the
    server and students only learn the outcome through ``answer_result``.
    """
    spec = question.spec
    return {
        "questionId": question.question_id,
        "questionText": spec.text,
        "questionHtml": question_html,
        "mode": spec.mode.value,
        "options": list(spec.options),
        "timerDuration": spec.timer_duration_seconds,
        "startTime": to_epoch_ms(question.start_time),
        "endTime": to_epoch_ms(question.end_time),
    }


def leaderboard_payload(rows: list[LeaderboardRow]) -> list[dict[str, object]]:
    return [{"id": row.participant_id, "name": row.display_name, "score": row.score} for row in rows]


def focus_snapshot_payload(rows: list[FocusSnapshotRow]) -> list[dict[str, object]]:
    return [
        {
            "studentId": row.participant_id,
            "name": row.display_name,
            "score": row.score,
            "cause": row.cause,
            "isLookingAway": row.is_looking_away,
            "isEyesClosed": row.is_eyes_closed,
        }
        for row in rows
    ]


def distraction_payload(alert: DistractionAlert) -> dict[str, object]:
    return {
        "studentId": alert.participant_id,
        "studentName": alert.display_name,
        "score": alert.score,
        "cause": alert.cause,
    }
