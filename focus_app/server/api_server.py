"""FastAPI server exposing the live event channel and session reports."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import json
import logging
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
import uvicorn

from focus_app.constants.network_constants import (
    API_WORKER_COUNT,
    DEFAULT_HOST,
    DEFAULT_PORT,
    WEBSOCKET_PATH,
)
from focus_app.core import events
from focus_app.core.events import Audience, OutboundMessage, from_epoch_ms
from focus_app.core.models import FocusReport, Role
from focus_app.core.question_importer import QuestionImportError, parse_questions
from focus_app.core.services.narrative_report import NarrativeReportService
from focus_app.core.services.session_report import build_analysis_context, build_session_report
from focus_app.core.session_manager import PushResult, SessionManager
from focus_app.server.connection_hub import ConnectionHub
from focus_app.server.payloads import (
    EventEnvelope,
    FocusUpdatePayload,
    JoinPayload,
    PushQuestionPayload,
    SignalPayload,
    SubmitAnswerPayload,
    VoiceCommandPayload,
)

logger = logging.getLogger(__name__)


def _get_session_manager_dependency(session_manager: SessionManager):
    def dependency() -> SessionManager:
        return session_manager

    return dependency


class EventChannel:
    """Routes inbound channel events to the session manager.

    Protocol errors (unknown events, malformed payloads, actions from the
    wrong role) are logged and ignored; they never close the connection.
    """

    def __init__(self, manager: SessionManager, hub: ConnectionHub) -> None:
        self._manager = manager
        self._hub = hub
        self._timers: set[asyncio.Task[None]] = set()
        self._handlers = {
            "join": self._on_join,
            "join_class": self._on_join,
            "focus_update": self._on_focus_update,
            "push_question": self._on_push_question,
            "submit_answer": self._on_submit_answer,
            "voice_command": self._on_voice_command,
            "signal": self._on_signal,
        }

    async def connect(self, websocket: WebSocket) -> str:
        connection_id = await self._hub.register(websocket)
        logger.info("User connected: %s", connection_id)
        await self._hub.dispatch(self._manager.connect(connection_id))
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        self._hub.unregister(connection_id)
        logger.info("User disconnected: %s", connection_id)
        await self._hub.dispatch(self._manager.disconnect(connection_id))

    async def handle_frame(self, connection_id: str, raw: str) -> None:
        try:
            envelope = EventEnvelope.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Ignoring malformed frame from %s: %s", connection_id, exc)
            return
        handler = self._handlers.get(envelope.event)
        if handler is None:
            logger.warning("Ignoring unknown event %r from %s", envelope.event, connection_id)
            return
        try:
            messages = await handler(connection_id, envelope.data)
        except ValidationError as exc:
            logger.warning("Invalid %s payload from %s: %s", envelope.event, connection_id, exc)
            return
        except (ValueError, RuntimeError, OverflowError) as exc:
            logger.warning("Rejected %s from %s: %s", envelope.event, connection_id, exc)
            return
        await self._hub.dispatch(messages)

    async def close(self) -> None:
        for task in list(self._timers):
            task.cancel()
        await asyncio.gather(*self._timers, return_exceptions=True)
        self._timers.clear()

    async def _on_join(self, connection_id: str, data: Any) -> list[OutboundMessage]:
        payload = JoinPayload.model_validate(data)
        messages = self._manager.join(connection_id, payload.name, payload.role)
        self._hub.set_role(connection_id, payload.role)
        return messages

    async def _on_focus_update(self, connection_id: str, data: Any) -> list[OutboundMessage]:
        payload = FocusUpdatePayload.model_validate(data)
        report = FocusReport(
            score=payload.score,
            cause=payload.cause,
            is_tab_active=payload.is_tab_active,
            is_face_detected=payload.is_face_detected,
            is_looking_away=payload.is_looking_away,
            is_eyes_closed=payload.is_eyes_closed,
            reported_at=datetime.now(timezone.utc),
        )
        return self._manager.record_focus(connection_id, report)

    async def _on_push_question(self, connection_id: str, data: Any) -> list[OutboundMessage]:
        self._require_teacher(connection_id)
        payload = PushQuestionPayload.model_validate(data)
        result = self._manager.push_question(payload.to_spec())
        self._schedule_discussion(result)
        return result.messages

    async def _on_submit_answer(self, connection_id: str, data: Any) -> list[OutboundMessage]:
        payload = SubmitAnswerPayload.model_validate(data)
        submit_time = from_epoch_ms(payload.submit_time) if payload.submit_time is not None else None
        return self._manager.submit_answer(connection_id, payload.question_id, payload.answer, submit_time)

    async def _on_voice_command(self, connection_id: str, data: Any) -> list[OutboundMessage]:
        self._require_teacher(connection_id)
        payload = VoiceCommandPayload.model_validate(data)
        result = self._manager.handle_voice_command(payload.transcript)
        if result.push is not None:
            self._schedule_discussion(result.push)
        return result.messages

    async def _on_signal(self, connection_id: str, data: Any) -> list[OutboundMessage]:
        payload = SignalPayload.model_validate(data)
        if not self._hub.is_connected(payload.target):
            return []
        return [
            OutboundMessage(
                events.SIGNAL,
                {"sender": connection_id, "signal": payload.signal, "type": payload.type},
                Audience.ONE,
                payload.target,
            )
        ]

    def _require_teacher(self, connection_id: str) -> None:
        if self._hub.get_role(connection_id) is not Role.TEACHER:
            raise RuntimeError("Only teachers may control questions.")

    def _schedule_discussion(self, result: PushResult) -> None:
        delay = max(0.0, (result.discussion_due_at - datetime.now(timezone.utc)).total_seconds())
        task = asyncio.create_task(self._enter_discussion_later(result.question.question_id, delay))
        self._timers.add(task)
        task.add_done_callback(self._timers.discard)

    async def _enter_discussion_later(self, question_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._hub.dispatch(self._manager.enter_discussion(question_id))


def create_api_app(
    session_manager: SessionManager,
    narrative_service: NarrativeReportService | None = None,
) -> FastAPI:
    """Create a FastAPI application wired to the provided session manager."""
    channel = EventChannel(session_manager, ConnectionHub())

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await channel.close()

    app = FastAPI(title="FocusQuiz API", version="0.1.0", lifespan=lifespan)
    app.state.event_channel = channel
    manager_dep = _get_session_manager_dependency(session_manager)
    narrative = narrative_service or NarrativeReportService()

    @app.websocket(WEBSOCKET_PATH)
    async def event_socket(websocket: WebSocket) -> None:
        connection_id = await channel.connect(websocket)
        try:
            while True:
                raw = await websocket.receive_text()
                await channel.handle_frame(connection_id, raw)
        except WebSocketDisconnect:
            pass
        finally:
            await channel.disconnect(connection_id)

    @app.get("/api/session/current")
    def get_current_session(manager: SessionManager = Depends(manager_dep)) -> dict[str, object]:
        session_id = manager.get_session_id()
        if session_id is None:
            raise HTTPException(status_code=404, detail="No active session")
        return {"sessionId": session_id}

    @app.get("/api/session/{session_id}/report")
    def get_session_report(session_id: str, manager: SessionManager = Depends(manager_dep)) -> dict[str, object]:
        report = build_session_report(manager.records, session_id)
        if report is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return report

    @app.post("/api/session/{session_id}/ai-report")
    def create_ai_report(session_id: str, manager: SessionManager = Depends(manager_dep)) -> dict[str, object]:
        context = build_analysis_context(manager.records, session_id)
        if context is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return {"success": True, "analysis": narrative.generate(context)}

    @app.post("/api/questions/import", status_code=201)
    async def import_questions(request: Request, manager: SessionManager = Depends(manager_dep)) -> dict[str, object]:
        body = (await request.body()).decode("utf-8", errors="replace")
        try:
            questions = parse_questions(body)
            manager.load_question_bank(questions)
        except (QuestionImportError, ValueError) as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"loaded": len(questions)}

    @app.get("/api/questions")
    def list_questions(manager: SessionManager = Depends(manager_dep)) -> dict[str, object]:
        return {
            "cursor": manager.get_bank_cursor(),
            "defaultTimerDuration": manager.get_default_time_limit(),
            "questions": [
                {
                    "questionText": question.text,
                    "mode": question.mode.value,
                    "options": question.options,
                    "timerDuration": question.time_limit_seconds,
                }
                for question in manager.get_question_bank()
            ],
        }

    return app


def run_api_server(
    app: FastAPI,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the app with uvicorn in the current thread until interrupted."""
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info", workers=API_WORKER_COUNT)
    server = uvicorn.Server(config)
    server.run()
