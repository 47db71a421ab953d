"""Aggregate post-session report built from the record sink."""

from __future__ import annotations

from collections import defaultdict

from focus_app.core.events import to_epoch_ms
from focus_app.core.services.record_store import (
    AnswerLogRecord,
    QuestionRecord,
    RecordStore,
)


def build_session_report(records: RecordStore, session_id: str) -> dict[str, object] | None:
    """Return counts, accuracy, focus averages, attendance and rankings.

    Returns None when the session is unknown.
    """
    session = records.get_session(session_id)
    if session is None:
        return None

    questions = records.find_questions(session_id)
    answers = records.find_answers([q.record_id for q in questions])
    focus_logs = records.find_focus_logs(session_id)

    correct_answers = sum(1 for a in answers if a.is_correct)
    avg_accuracy = (correct_answers / len(answers)) * 100 if answers else 0.0
    avg_focus = sum(log.score for log in focus_logs) / len(focus_logs) if focus_logs else 0.0

    rankings = _rank_students(answers)
    duration_seconds = None
    if session.end_time is not None:
        duration_seconds = round((session.end_time - session.start_time).total_seconds())

    return {
        "session": {
            "sessionId": session.session_id,
            "teacherId": session.teacher_id,
            "startTime": to_epoch_ms(session.start_time),
            "endTime": to_epoch_ms(session.end_time) if session.end_time else None,
            "active": session.active,
            "totalStudentsJoined": session.total_students_joined,
            "actualDuration": duration_seconds,
        },
        "stats": {
            "totalQuestions": len(questions),
            "totalAnswers": len(answers),
            "avgAccuracy": round(avg_accuracy),
            "avgFocus": round(avg_focus),
            "topStudent": rankings[0] if rankings else None,
        },
        "attendance": [
            {
                "studentId": entry.participant_id,
                "name": entry.display_name,
                "action": entry.action,
                "timestamp": to_epoch_ms(entry.timestamp),
            }
            for entry in session.attendance_log
        ],
        "rankings": rankings,
    }


def build_analysis_context(records: RecordStore, session_id: str) -> dict[str, object] | None:
    """Structured input for the narrative report service."""
    session = records.get_session(session_id)
    if session is None:
        return None
    questions = records.find_questions(session_id)
    answers = records.find_answers([q.record_id for q in questions])
    focus_logs = records.find_focus_logs(session_id)

    end_time = session.end_time or (focus_logs[-1].timestamp if focus_logs else session.start_time)
    duration_minutes = round((end_time - session.start_time).total_seconds() / 60)
    correct = sum(1 for a in answers if a.is_correct)
    avg_accuracy = round(correct / len(answers) * 100) if answers else 0
    avg_focus = round(sum(log.score for log in focus_logs) / len(focus_logs)) if focus_logs else 0

    return {
        "meta": {
            "durationMinutes": duration_minutes,
            "totalQuestions": len(questions),
            "averageAccuracy": f"{avg_accuracy}%",
            "averageFocus": f"{avg_focus}%",
            "studentsJoined": session.total_students_joined,
        },
        "topicPerformance": [_topic_performance(q, answers) for q in questions],
    }


def _topic_performance(question: QuestionRecord, answers: list[AnswerLogRecord]) -> dict[str, object]:
    own = [a for a in answers if a.question_record_id == question.record_id]
    correct = sum(1 for a in own if a.is_correct)
    accuracy = round(correct / len(own) * 100) if own else 0
    avg_response = sum(a.response_time_seconds for a in own) / len(own) if own else None
    return {
        "topic": question.text,
        "type": question.mode.value,
        "answers": len(own),
        "accuracy": f"{accuracy}%",
        "avgResponseTime": f"{avg_response:.1f}s" if avg_response is not None else "N/A",
    }


def _rank_students(answers: list[AnswerLogRecord]) -> list[dict[str, object]]:
    totals: dict[str, int] = defaultdict(int)
    for answer in answers:
        totals[answer.display_name] += answer.points
    ordered = sorted(totals.items(), key=lambda item: -item[1])
    return [{"name": name, "score": score} for name, score in ordered]
