"""Registry of live WebSocket connections and message fan-out."""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import WebSocket

from focus_app.core.events import Audience, OutboundMessage
from focus_app.core.models import Role

logger = logging.getLogger(__name__)


class ConnectionHub:
    """Maps connection ids to sockets and roles; delivers outbound messages."""

    def __init__(self) -> None:
        self._sockets: dict[str, WebSocket] = {}
        self._roles: dict[str, Role] = {}

    async def register(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid4().hex
        self._sockets[connection_id] = websocket
        return connection_id

    def unregister(self, connection_id: str) -> None:
        self._sockets.pop(connection_id, None)
        self._roles.pop(connection_id, None)

    def set_role(self, connection_id: str, role: Role) -> None:
        if connection_id in self._sockets:
            self._roles[connection_id] = role

    def get_role(self, connection_id: str) -> Role | None:
        return self._roles.get(connection_id)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._sockets

    async def dispatch(self, messages: list[OutboundMessage]) -> None:
        for message in messages:
            for connection_id in self._recipients(message):
                await self.send(connection_id, message.event, message.payload)

    async def send(self, connection_id: str, event: str, payload: object) -> None:
        websocket = self._sockets.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send_json({"event": event, "data": payload})
        except Exception as exc:
            # Dead peers are dropped by their own disconnect.
            logger.warning("Failed to send %s to %s: %s", event, connection_id, exc)

    def _recipients(self, message: OutboundMessage) -> list[str]:
        if message.audience is Audience.ONE:
            return [message.target] if message.target in self._sockets else []
        if message.audience is Audience.TEACHERS:
            return [cid for cid, role in self._roles.items() if role is Role.TEACHER]
        if message.audience is Audience.OTHERS:
            return [cid for cid in self._sockets if cid != message.target]
        return list(self._sockets)
