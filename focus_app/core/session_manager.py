"""Business logic for a live focus session, shared between socket and REST handlers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from threading import Lock

from focus_app.core import events
from focus_app.core.events import Audience, OutboundMessage
from focus_app.core.markdown_renderer import renderer
from focus_app.core.models import (
    ActiveQuestion,
    AnswerRecord,
    BankQuestion,
    FocusReport,
    ParticipantProfile,
    QuestionSpec,
    Role,
    SessionPhase,
)
from focus_app.core.scoring import score_answer
from focus_app.core.services.focus_aggregator import derive_cause
from focus_app.core.services.question_bank import QuestionBank, prepare_question_spec
from focus_app.core.services.question_session import AnswerRejectedError
from focus_app.core.services.record_store import (
    AnswerLogRecord,
    AttendanceEntry,
    FocusLogRecord,
    QuestionRecord,
    RecordStore,
    RecordStoreError,
    new_record_id,
)
from focus_app.core.services.session_store import SessionStore
from focus_app.core.voice_commands import TIMER_PRESETS, VoiceCommand, classify_transcript

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def fallback_display_name(participant_id: str) -> str:
    return f"Student {participant_id[:4]}"


@dataclass(slots=True)
class PushResult:
    question: ActiveQuestion
    discussion_due_at: datetime
    messages: list[OutboundMessage] = field(default_factory=list)


@dataclass(slots=True)
class VoiceResult:
    command: VoiceCommand
    messages: list[OutboundMessage] = field(default_factory=list)
    push: PushResult | None = None


class SessionManager:
    """Facade over the session store, question bank and record sink.

    Every operation returns the messages it wants delivered instead of
    writing to sockets, so transport stays in the server layer.
    """

    def __init__(
        self,
        records: RecordStore,
        question_bank: QuestionBank | None = None,
        clock: Callable[[], datetime] = _utcnow,
        teacher_id: str = "default_teacher",
    ) -> None:
        self._lock = Lock()
        self._records = records
        self._bank = question_bank or QuestionBank()
        self._clock = clock
        self._teacher_id = teacher_id
        self._store: SessionStore | None = None
        self._connections: set[str] = set()
        self._question_record_ids: dict[str, str] = {}

    @property
    def records(self) -> RecordStore:
        return self._records

    # --- Session lifecycle ---

    def start_session(self) -> SessionStore:
        with self._lock:
            now = self._clock()
            if self._store is not None and self._store.is_active:
                self._close_store(now)
            store = SessionStore(started_at=now)
            self._persist(
                "create session",
                lambda: self._records.create_session(store.session_id, self._teacher_id, now),
            )
            self._store = store
            self._question_record_ids.clear()
            logger.info("New session started: %s", store.session_id)
            return store

    def end_session(self) -> None:
        with self._lock:
            if self._store is None or not self._store.is_active:
                return
            self._close_store(self._clock())
            self._store = None

    def get_session_id(self) -> str | None:
        with self._lock:
            return self._store.session_id if self._store else None

    def get_phase(self) -> SessionPhase:
        with self._lock:
            return self._store.questions.get_phase() if self._store else SessionPhase.IDLE

    def get_current_question(self) -> ActiveQuestion | None:
        with self._lock:
            return self._store.questions.get_current_question() if self._store else None

    def get_profile(self, participant_id: str) -> ParticipantProfile | None:
        with self._lock:
            return self._store.scoreboard.get_profile(participant_id) if self._store else None

    # --- Connections and attendance ---

    def connect(self, connection_id: str) -> list[OutboundMessage]:
        with self._lock:
            self._connections.add(connection_id)
            return [
                self._user_count_message(),
                OutboundMessage(events.USER_CONNECTED, connection_id, Audience.OTHERS, connection_id),
            ]

    def join(self, connection_id: str, display_name: str, role: Role) -> list[OutboundMessage]:
        with self._lock:
            store = self._require_store()
            name = display_name.strip() or fallback_display_name(connection_id)
            logger.info("User joined: %s (%s)", name, role.value)
            if role is Role.STUDENT:
                now = self._clock()
                store.scoreboard.register(connection_id, name, now)
                entry = AttendanceEntry(participant_id=connection_id, display_name=name, action="JOIN", timestamp=now)
                self._persist("log join", lambda: self._records.log_attendance(store.session_id, entry))
            return [self._user_count_message()]

    def disconnect(self, connection_id: str) -> list[OutboundMessage]:
        with self._lock:
            self._connections.discard(connection_id)
            store = self._store
            if store is not None:
                profile = store.scoreboard.remove(connection_id)
                store.focus.remove(connection_id)
                if profile is not None:
                    entry = AttendanceEntry(
                        participant_id=connection_id,
                        display_name=profile.display_name,
                        action="LEAVE",
                        timestamp=self._clock(),
                    )
                    self._persist("log leave", lambda: self._records.log_attendance(store.session_id, entry))
            return [
                self._user_count_message(),
                OutboundMessage(events.USER_DISCONNECTED, connection_id, Audience.OTHERS, connection_id),
            ]

    # --- Question lifecycle ---

    def push_question(self, spec: QuestionSpec) -> PushResult:
        with self._lock:
            return self._push_locked(spec)

    def enter_discussion(self, question_id: str) -> list[OutboundMessage]:
        """Mark the session as discussing ``question_id`` if it is still live."""
        with self._lock:
            if self._store is None or not self._store.questions.enter_discussion(question_id):
                return []
            return [self._phase_message(self._store)]

    def stop_question(self) -> list[OutboundMessage]:
        with self._lock:
            if self._store is None:
                return []
            question = self._store.questions.get_current_question()
            if question is None or not self._store.questions.enter_discussion(question.question_id):
                return []
            return [self._phase_message(self._store)]

    def submit_answer(
        self,
        participant_id: str,
        question_id: str,
        answer: str,
        submit_time: datetime | None = None,
    ) -> list[OutboundMessage]:
        with self._lock:
            store = self._store
            if store is None:
                return []
            received_at = self._clock()
            try:
                question = store.questions.check_submission(participant_id, question_id, received_at)
            except AnswerRejectedError as exc:
                logger.info("Answer from %s rejected: %s", participant_id, exc)
                return [
                    OutboundMessage(
                        events.ANSWER_REJECTED,
                        {"questionId": question_id, "reason": str(exc)},
                        Audience.ONE,
                        participant_id,
                    )
                ]

            submitted_at = submit_time or received_at
            latency = (submitted_at - question.start_time).total_seconds()
            scored = score_answer(
                answer=answer,
                correct_answer=question.spec.correct_answer,
                latency_seconds=latency,
                duration_seconds=question.spec.timer_duration_seconds,
                focus_score=store.focus.latest_score(participant_id),
            )

            profile = store.scoreboard.get_profile(participant_id)
            if profile is None:
                profile = store.scoreboard.register(
                    participant_id, fallback_display_name(participant_id), received_at
                )
            record = AnswerRecord(
                participant_id=participant_id,
                display_name=profile.display_name,
                raw_answer=answer,
                is_correct=scored.is_correct,
                response_latency_seconds=max(0.0, latency),
                score_breakdown=scored.breakdown,
                total_points=scored.total_points,
                submitted_at=submitted_at,
            )
            store.questions.record_answer(question.question_id, record)
            total_score = store.scoreboard.add_points(profile, scored.total_points)
            self._persist_answer(question, record)

            return [
                OutboundMessage(
                    events.ANSWER_RESULT,
                    {
                        "questionId": question.question_id,
                        "correct": scored.is_correct,
                        "points": scored.total_points,
                        "message": scored.message,
                        "totalScore": total_score,
                    },
                    Audience.ONE,
                    participant_id,
                ),
                OutboundMessage(
                    events.TEACHER_UPDATE,
                    {
                        "totalAnswers": len(question.answers),
                        "lastAnswer": {
                            "studentId": participant_id,
                            "isCorrect": scored.is_correct,
                            "points": scored.total_points,
                        },
                    },
                ),
                OutboundMessage(
                    events.LEADERBOARD_UPDATE,
                    events.leaderboard_payload(store.scoreboard.get_top_scorers()),
                ),
            ]

    # --- Focus aggregation ---

    def record_focus(self, participant_id: str, report: FocusReport) -> list[OutboundMessage]:
        with self._lock:
            store = self._store
            if store is None:
                return []
            profile = store.scoreboard.get_profile(participant_id)
            name = profile.display_name if profile else fallback_display_name(participant_id)
            alert = store.focus.record(participant_id, name, report)

            messages: list[OutboundMessage] = []
            if alert is not None:
                messages.append(
                    OutboundMessage(events.DISTRACTED_STUDENT, events.distraction_payload(alert), Audience.TEACHERS)
                )
            messages.append(
                OutboundMessage(
                    events.CLASS_FOCUS_SNAPSHOT,
                    events.focus_snapshot_payload(store.focus.snapshot(store.scoreboard.get_profiles())),
                )
            )

            log = FocusLogRecord(
                session_id=store.session_id,
                participant_id=participant_id,
                display_name=name,
                score=report.score,
                is_tab_active=report.is_tab_active,
                is_face_detected=report.is_face_detected,
                is_looking_away=report.is_looking_away,
                is_eyes_closed=report.is_eyes_closed,
                cause=derive_cause(report),
                timestamp=report.reported_at,
            )
            self._persist("log focus", lambda: self._records.create_focus_log(log))
            return messages

    # --- Question bank and voice commands ---

    def load_question_bank(self, questions: list[BankQuestion]) -> None:
        with self._lock:
            self._bank.load_questions(questions)

    def get_question_bank(self) -> list[BankQuestion]:
        with self._lock:
            return self._bank.get_questions()

    def get_bank_cursor(self) -> int:
        with self._lock:
            return self._bank.get_cursor()

    def get_default_time_limit(self) -> int:
        with self._lock:
            return self._bank.get_default_time_limit()

    def handle_voice_command(self, transcript: str) -> VoiceResult:
        match = classify_transcript(transcript)
        with self._lock:
            result = VoiceResult(command=match.command)
            detail = ""
            if match.command in (VoiceCommand.TOPIC_FINISHED, VoiceCommand.PUSH_QUESTION):
                spec = self._bank.current_spec()
                if spec is None:
                    detail = "No prepared question to push."
                else:
                    result.push = self._push_locked(spec)
            elif match.command is VoiceCommand.NEXT_QUESTION:
                spec = self._bank.advance()
                if spec is None:
                    detail = "Question bank exhausted."
                else:
                    result.push = self._push_locked(spec)
            elif match.command is VoiceCommand.STOP_TIMER:
                question = self._store.questions.get_current_question() if self._store else None
                if question is not None and self._store.questions.enter_discussion(question.question_id):
                    result.messages.append(self._phase_message(self._store))
                else:
                    detail = "No live question to stop."
            elif match.command in TIMER_PRESETS:
                self._bank.set_default_time_limit(TIMER_PRESETS[match.command])
                detail = f"Timer set to {TIMER_PRESETS[match.command]} seconds."

            if result.push is not None:
                result.messages.extend(result.push.messages)
            result.messages.append(
                OutboundMessage(
                    events.VOICE_COMMAND_RESULT,
                    {
                        "command": match.command.value,
                        "transcript": match.transcript,
                        "questionId": result.push.question.question_id if result.push else None,
                        "detail": detail,
                    },
                    Audience.TEACHERS,
                )
            )
            return result

    # --- Internal helpers ---

    def _push_locked(self, spec: QuestionSpec) -> PushResult:
        store = self._require_store()
        prepared = prepare_question_spec(spec)
        now = self._clock()
        question = store.questions.start_question(prepared, now)
        logger.info("Question pushed: %s (%ss)", question.question_id, prepared.timer_duration_seconds)

        record = QuestionRecord(
            record_id=new_record_id(),
            session_id=store.session_id,
            question_id=question.question_id,
            text=prepared.text,
            mode=prepared.mode,
            options=list(prepared.options),
            correct_answer=prepared.correct_answer,
            timer_duration_seconds=prepared.timer_duration_seconds,
            sent_at=now,
        )
        if self._persist("save question", lambda: self._records.create_question(record)):
            self._question_record_ids[question.question_id] = record.record_id

        payload = events.new_question_payload(question, renderer.render_fragment(prepared.text))
        return PushResult(
            question=question,
            discussion_due_at=store.questions.discussion_due_at(),
            messages=[
                OutboundMessage(events.NEW_QUESTION, payload),
                self._phase_message(store),
            ],
        )

    def _persist_answer(self, question: ActiveQuestion, record: AnswerRecord) -> None:
        question_record_id = self._question_record_ids.get(question.question_id)
        if question_record_id is None:
            return
        log = AnswerLogRecord(
            record_id=new_record_id(),
            question_record_id=question_record_id,
            participant_id=record.participant_id,
            display_name=record.display_name,
            answer=record.raw_answer,
            is_correct=record.is_correct,
            points=record.total_points,
            response_time_seconds=record.response_latency_seconds,
            stats=record.score_breakdown,
            submitted_at=record.submitted_at,
        )
        self._persist("save answer", lambda: self._records.create_answer(log))

    def _persist(self, action: str, operation: Callable[[], object]) -> bool:
        """Run a best-effort write; the live session never depends on it."""
        try:
            operation()
        except RecordStoreError:
            logger.warning("Persistence error (%s); continuing in memory", action, exc_info=True)
            return False
        return True

    def _close_store(self, now: datetime) -> None:
        assert self._store is not None
        session_id = self._store.session_id
        self._store.end(now)
        self._persist("close session", lambda: self._records.close_session(session_id, now))
        logger.info("Session ended: %s", session_id)

    def _require_store(self) -> SessionStore:
        if self._store is None or not self._store.is_active:
            raise RuntimeError("No session is in progress.")
        return self._store

    def _user_count_message(self) -> OutboundMessage:
        students = self._store.scoreboard.count() if self._store else 0
        return OutboundMessage(events.USER_COUNT, students if students > 0 else len(self._connections))

    def _phase_message(self, store: SessionStore) -> OutboundMessage:
        question = store.questions.get_current_question()
        return OutboundMessage(
            events.SESSION_PHASE,
            {
                "phase": store.questions.get_phase().value,
                "questionId": question.question_id if question else None,
            },
        )
