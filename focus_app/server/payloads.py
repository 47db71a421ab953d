"""Payload schemas for inbound event-channel messages."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from focus_app.constants.quiz_constants import MAX_EPOCH_MS, MAX_TIME_LIMIT_SECONDS
from focus_app.core.models import QuestionMode, QuestionSpec, Role


class _CamelPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EventEnvelope(BaseModel):
    """Every frame on the channel is ``{"event": ..., "data": ...}``."""

    event: str
    data: Any = None


class JoinPayload(_CamelPayload):
    name: str = ""
    role: Role

    @field_validator("role", mode="before")
    @classmethod
    def _upper_role(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value


class FocusUpdatePayload(_CamelPayload):
    timestamp: float | None = None
    is_tab_active: bool = Field(True, alias="isTabActive")
    is_face_detected: bool = Field(False, alias="isFaceDetected")
    is_looking_away: bool = Field(False, alias="isLookingAway")
    is_eyes_closed: bool = Field(False, alias="isEyesClosed")
    cause: str | None = None
    score: float = Field(ge=0, le=100)


class PushQuestionPayload(_CamelPayload):
    question_text: str = Field(alias="questionText")
    mode: QuestionMode = QuestionMode.FREE_TEXT
    options: list[str] = Field(default_factory=list)
    correct_answer: str = Field("", alias="correctAnswer")
    timer_duration: int = Field(alias="timerDuration", gt=0, le=MAX_TIME_LIMIT_SECONDS)

    @field_validator("mode", mode="before")
    @classmethod
    def _accept_free_text_alias(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().upper() == "FREE_TEXT":
            return QuestionMode.FREE_TEXT.value
        return value

    def to_spec(self) -> QuestionSpec:
        return QuestionSpec(
            text=self.question_text,
            mode=self.mode,
            options=list(self.options),
            correct_answer=self.correct_answer,
            timer_duration_seconds=self.timer_duration,
        )


class SubmitAnswerPayload(_CamelPayload):
    question_id: str = Field(alias="questionId")
    answer: str
    submit_time: float | None = Field(None, alias="submitTime", ge=0, le=MAX_EPOCH_MS)


class VoiceCommandPayload(_CamelPayload):
    transcript: str


class SignalPayload(_CamelPayload):
    target: str
    signal: Any = None
    type: str | None = None
