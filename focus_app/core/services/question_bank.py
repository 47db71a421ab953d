"""Service for managing prepared questions and validating question specs."""

from __future__ import annotations

from focus_app.constants.quiz_constants import DEFAULT_TIME_LIMIT_SECONDS, MAX_TIME_LIMIT_SECONDS
from focus_app.core.models import BankQuestion, QuestionMode, QuestionSpec


def prepare_question_spec(spec: QuestionSpec) -> QuestionSpec:
    """Validate and normalize a question before it goes live."""
    cleaned_text = spec.text.strip()
    if not cleaned_text:
        raise ValueError("Question text must not be empty.")
    if not isinstance(spec.timer_duration_seconds, int) or spec.timer_duration_seconds <= 0:
        raise ValueError("Timer duration must be a positive integer number of seconds.")
    if spec.timer_duration_seconds > MAX_TIME_LIMIT_SECONDS:
        raise ValueError(f"Timer duration cannot exceed {MAX_TIME_LIMIT_SECONDS} seconds.")

    options: list[str] = []
    if spec.mode is QuestionMode.MCQ:
        options = [option.strip() for option in spec.options]
        if len(options) < 2:
            raise ValueError("Multiple-choice questions need at least two options.")
        if any(not option for option in options):
            raise ValueError("Option text cannot be empty.")

    return QuestionSpec(
        text=cleaned_text,
        mode=spec.mode,
        options=options,
        correct_answer=spec.correct_answer.strip(),
        timer_duration_seconds=spec.timer_duration_seconds,
    )


class QuestionBank:
    """Ordered prepared questions with a cursor for voice-driven pushing."""

    def __init__(self, default_time_limit: int = DEFAULT_TIME_LIMIT_SECONDS) -> None:
        self._questions: list[BankQuestion] = []
        self._cursor: int = 0
        self.set_default_time_limit(default_time_limit)

    def load_questions(self, questions: list[BankQuestion]) -> None:
        """Replace the bank with a new list of questions."""
        if not questions:
            raise ValueError("Question bank must contain at least one question.")
        self._questions = list(questions)
        self._cursor = 0

    def get_questions(self) -> list[BankQuestion]:
        return list(self._questions)

    def get_cursor(self) -> int:
        return self._cursor

    def get_default_time_limit(self) -> int:
        return self._default_time_limit

    def set_default_time_limit(self, seconds: int) -> None:
        if not 0 < seconds <= MAX_TIME_LIMIT_SECONDS:
            raise ValueError(f"Time limit must be between 1 and {MAX_TIME_LIMIT_SECONDS} seconds.")
        self._default_time_limit = seconds

    def current_spec(self) -> QuestionSpec | None:
        if not 0 <= self._cursor < len(self._questions):
            return None
        return self._questions[self._cursor].to_spec(self._default_time_limit)

    def advance(self) -> QuestionSpec | None:
        """Move the cursor forward and return the question now under it."""
        if self._cursor < len(self._questions):
            self._cursor += 1
        return self.current_spec()
