"""Record sink for session history.

The live session never depends on these records; they back the post-session
reports. :class:`RecordStore` is the boundary a database adapter implements,
:class:`InMemoryRecordStore` is the process-local implementation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Protocol
from uuid import uuid4

from focus_app.core.models import QuestionMode, ScoreBreakdown


class RecordStoreError(Exception):
    """Raised when a record cannot be written or read."""


@dataclass(slots=True)
class AttendanceEntry:
    participant_id: str
    display_name: str
    action: str  # JOIN or LEAVE
    timestamp: datetime


@dataclass(slots=True)
class SessionRecord:
    session_id: str
    teacher_id: str
    start_time: datetime
    end_time: datetime | None = None
    active: bool = True
    total_students_joined: int = 0
    attendance_log: list[AttendanceEntry] = field(default_factory=list)


@dataclass(slots=True)
class QuestionRecord:
    record_id: str
    session_id: str
    question_id: str
    text: str
    mode: QuestionMode
    options: list[str]
    correct_answer: str
    timer_duration_seconds: int
    sent_at: datetime


@dataclass(slots=True)
class AnswerLogRecord:
    record_id: str
    question_record_id: str
    participant_id: str
    display_name: str
    answer: str
    is_correct: bool
    points: int
    response_time_seconds: float
    stats: ScoreBreakdown
    submitted_at: datetime


@dataclass(slots=True)
class FocusLogRecord:
    session_id: str
    participant_id: str
    display_name: str
    score: float
    is_tab_active: bool
    is_face_detected: bool
    is_looking_away: bool
    is_eyes_closed: bool
    cause: str
    timestamp: datetime


class RecordStore(Protocol):
    def create_session(self, session_id: str, teacher_id: str, start_time: datetime) -> SessionRecord: ...

    def get_session(self, session_id: str) -> SessionRecord | None: ...

    def close_session(self, session_id: str, end_time: datetime) -> None: ...

    def log_attendance(self, session_id: str, entry: AttendanceEntry) -> None: ...

    def create_question(self, record: QuestionRecord) -> QuestionRecord: ...

    def create_answer(self, record: AnswerLogRecord) -> AnswerLogRecord: ...

    def create_focus_log(self, record: FocusLogRecord) -> FocusLogRecord: ...

    def find_questions(self, session_id: str) -> list[QuestionRecord]: ...

    def find_answers(self, question_record_ids: list[str]) -> list[AnswerLogRecord]: ...

    def find_focus_logs(self, session_id: str) -> list[FocusLogRecord]: ...


def new_record_id() -> str:
    return uuid4().hex


class InMemoryRecordStore:
    """Process-local :class:`RecordStore`."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[str, SessionRecord] = {}
        self._questions: list[QuestionRecord] = []
        self._answers: list[AnswerLogRecord] = []
        self._focus_logs: list[FocusLogRecord] = []

    def create_session(self, session_id: str, teacher_id: str, start_time: datetime) -> SessionRecord:
        record = SessionRecord(session_id=session_id, teacher_id=teacher_id, start_time=start_time)
        with self._lock:
            if session_id in self._sessions:
                raise RecordStoreError(f"Session {session_id} already exists")
            self._sessions[record.session_id] = record
        return record

    def get_session(self, session_id: str) -> SessionRecord | None:
        with self._lock:
            return self._sessions.get(session_id)

    def close_session(self, session_id: str, end_time: datetime) -> None:
        with self._lock:
            record = self._require_session(session_id)
            record.end_time = end_time
            record.active = False

    def log_attendance(self, session_id: str, entry: AttendanceEntry) -> None:
        with self._lock:
            record = self._require_session(session_id)
            record.attendance_log.append(entry)
            if entry.action == "JOIN":
                record.total_students_joined += 1

    def create_question(self, record: QuestionRecord) -> QuestionRecord:
        with self._lock:
            self._require_session(record.session_id)
            self._questions.append(record)
        return record

    def create_answer(self, record: AnswerLogRecord) -> AnswerLogRecord:
        with self._lock:
            self._answers.append(record)
        return record

    def create_focus_log(self, record: FocusLogRecord) -> FocusLogRecord:
        with self._lock:
            self._focus_logs.append(record)
        return record

    def find_questions(self, session_id: str) -> list[QuestionRecord]:
        with self._lock:
            return [q for q in self._questions if q.session_id == session_id]

    def find_answers(self, question_record_ids: list[str]) -> list[AnswerLogRecord]:
        wanted = set(question_record_ids)
        with self._lock:
            return [a for a in self._answers if a.question_record_id in wanted]

    def find_focus_logs(self, session_id: str) -> list[FocusLogRecord]:
        with self._lock:
            return [f for f in self._focus_logs if f.session_id == session_id]

    def _require_session(self, session_id: str) -> SessionRecord:
        record = self._sessions.get(session_id)
        if record is None:
            raise RecordStoreError(f"Unknown session {session_id}")
        return record
