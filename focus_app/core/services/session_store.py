"""Session-scoped live state shared by every event handler."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from focus_app.core.services.focus_aggregator import FocusAggregator
from focus_app.core.services.question_session import QuestionSession
from focus_app.core.services.scoreboard import Scoreboard


@dataclass(slots=True)
class SessionStore:
    """Everything that lives exactly as long as one classroom session.

    Created when the session starts and handed to the orchestrator; calling
    :meth:`end` seals the active question and drops participant state.
    """

    started_at: datetime
    session_id: str = field(default_factory=lambda: uuid4().hex)
    ended_at: datetime | None = None
    questions: QuestionSession = field(default_factory=QuestionSession)
    scoreboard: Scoreboard = field(default_factory=Scoreboard)
    focus: FocusAggregator = field(default_factory=FocusAggregator)

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    def end(self, ended_at: datetime) -> None:
        self.ended_at = ended_at
        self.questions.clear()
        self.scoreboard.clear()
        self.focus.clear()
