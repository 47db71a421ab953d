"""Utilities for importing prepared questions from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    Q: Question text (supports markdown). Additional lines until the next
       marker are treated as part of the question.
    A: First option text
    B: Second option text
    ...up to F
    CORRECT: A-F        (multiple choice)
    ANSWER: free text   (blocks without options)
    TIMELIMIT: seconds  (optional; the session default applies otherwise)

A block with options is a multiple-choice question; a block without options
is a free-text question and must give its expected ``ANSWER``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from focus_app.constants.quiz_constants import MAX_TIME_LIMIT_SECONDS
from focus_app.core.models import BankQuestion, QuestionMode


class QuestionImportError(Exception):
    """Raised when a question definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuestions:
    source: str
    questions: list[BankQuestion]


_OPTION_ORDER = ["A", "B", "C", "D", "E", "F"]


def load_questions_from_file(file_path: Path) -> ImportedQuestions:
    text = file_path.read_text(encoding="utf-8")
    return ImportedQuestions(source=str(file_path), questions=parse_questions(text))


def parse_questions(text: str) -> list[BankQuestion]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())

    questions = [_parse_block(block) for block in blocks if block]
    if not questions:
        raise QuestionImportError("Question file did not contain any questions.")
    return questions


def _parse_block(block: str) -> BankQuestion:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letter: str | None = None
    expected_answer: str | None = None
    time_limit_seconds: int | None = None
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if upper.startswith("ANSWER:"):
            expected_answer = line.split(":", 1)[1].strip()
            current_section = None
            continue

        if upper.startswith("TIMELIMIT:"):
            time_limit_seconds = _parse_time_limit(line.split(":", 1)[1].strip())
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in _OPTION_ORDER and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in _OPTION_ORDER:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuestionImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuestionImportError("Question text missing (Q: ...)")

    if not options:
        if not expected_answer:
            raise QuestionImportError("Free-text questions must define ANSWER.")
        return BankQuestion(
            text=question_text,
            mode=QuestionMode.FREE_TEXT,
            options=[],
            correct_answer=expected_answer,
            time_limit_seconds=time_limit_seconds,
        )

    letters = _OPTION_ORDER[: len(options)]
    if sorted(options) != letters:
        raise QuestionImportError("Options must be consecutive letters starting at A.")
    if len(letters) < 2:
        raise QuestionImportError("Multiple-choice questions need at least two options.")
    option_list = [options[letter].strip() for letter in letters]
    if any(not option for option in option_list):
        raise QuestionImportError("Option text cannot be empty.")
    if correct_letter not in letters:
        raise QuestionImportError(f"CORRECT must be one of {', '.join(letters)}.")

    return BankQuestion(
        text=question_text,
        mode=QuestionMode.MCQ,
        options=option_list,
        correct_answer=option_list[letters.index(correct_letter)],
        time_limit_seconds=time_limit_seconds,
    )


def _parse_time_limit(raw_value: str) -> int:
    if not raw_value:
        raise QuestionImportError("TIMELIMIT must include an integer value.")
    try:
        parsed_value = int(raw_value)
    except ValueError as exc:
        raise QuestionImportError("TIMELIMIT must be an integer number of seconds.") from exc
    if not 0 < parsed_value <= MAX_TIME_LIMIT_SECONDS:
        raise QuestionImportError(f"TIMELIMIT must be between 1 and {MAX_TIME_LIMIT_SECONDS} seconds.")
    return parsed_value
