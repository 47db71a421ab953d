"""Service for managing the active question and its answer window."""

from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

from focus_app.constants.quiz_constants import DISCUSSION_DELAY_SECONDS
from focus_app.core.models import (
    ActiveQuestion,
    AnswerRecord,
    QuestionSpec,
    SessionPhase,
)


class AnswerRejectedError(RuntimeError):
    """Raised when a submission cannot be attributed to the active question."""


class QuestionSession:
    """Holds at most one :class:`ActiveQuestion`.

    ``question_id`` doubles as the version of the active-question cell:
    every check and mutation names the id it expects, so an answer aimed at
    a superseded question can never land on its replacement.
    """

    def __init__(self, discussion_delay_seconds: float = DISCUSSION_DELAY_SECONDS) -> None:
        self._current: ActiveQuestion | None = None
        self._phase: SessionPhase = SessionPhase.IDLE
        self._discussion_delay = timedelta(seconds=discussion_delay_seconds)

    def start_question(self, spec: QuestionSpec, now: datetime) -> ActiveQuestion:
        """Open a fresh question, sealing the previous one in the same step.

        The new question is fully built before anything is sealed, so a
        failure leaves the previous question open.
        """
        question = ActiveQuestion(
            spec=spec,
            question_id=uuid4().hex,
            start_time=now,
            end_time=now + timedelta(seconds=spec.timer_duration_seconds),
        )
        if self._current is not None:
            self._current.sealed = True
        self._current = question
        self._phase = SessionPhase.LIVE
        return question

    def get_current_question(self) -> ActiveQuestion | None:
        return self._current

    def is_current(self, question_id: str) -> bool:
        return self._current is not None and self._current.question_id == question_id

    def get_phase(self) -> SessionPhase:
        return self._phase

    def enter_discussion(self, question_id: str) -> bool:
        """Flip to discussion if ``question_id`` is still the live question."""
        if not self.is_current(question_id) or self._phase is not SessionPhase.LIVE:
            return False
        self._phase = SessionPhase.DISCUSSION
        return True

    def discussion_due_at(self) -> datetime | None:
        if self._current is None:
            return None
        return self._current.end_time + self._discussion_delay

    def check_submission(
        self,
        participant_id: str,
        question_id: str,
        received_at: datetime,
    ) -> ActiveQuestion:
        """Return the question an answer may be recorded against, or raise."""
        question = self._current
        if question is None or question.sealed:
            raise AnswerRejectedError("No question is currently active.")
        if question_id != question.question_id:
            raise AnswerRejectedError("Answer refers to a question that is no longer active.")
        if participant_id in question.answers:
            raise AnswerRejectedError("Participant already answered this question.")
        if received_at > question.end_time:
            raise AnswerRejectedError("Time limit for this question has passed.")
        return question

    def record_answer(self, question_id: str, record: AnswerRecord) -> None:
        if not self.is_current(question_id):
            raise AnswerRejectedError("Answer refers to a question that is no longer active.")
        assert self._current is not None
        if record.participant_id in self._current.answers:
            raise AnswerRejectedError("Participant already answered this question.")
        self._current.answers[record.participant_id] = record

    def clear(self) -> None:
        if self._current is not None:
            self._current.sealed = True
        self._current = None
        self._phase = SessionPhase.IDLE
