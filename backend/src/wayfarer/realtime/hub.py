"""Live websocket connections and their transport-level room subscriptions."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Set

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from app.monitoring.metrics import realtime_connections

logger = logging.getLogger(__name__)


async def safe_send_json(websocket: WebSocket, data: dict[str, Any]) -> bool:
    """Safely send JSON data through websocket, handling disconnections gracefully.

    Returns True if message was sent successfully, False otherwise.
    """
    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Failed to send websocket message: %s", e)
        return False


def new_connection_id() -> str:
    return uuid.uuid4().hex


@dataclass(eq=False, slots=True)
class Connection:
    """One authenticated websocket and the identity it was opened with."""

    websocket: WebSocket
    user_id: int
    email: str
    name: str
    id: str = field(default_factory=new_connection_id)
    rooms: Set[str] = field(default_factory=set)
    editing_rooms: Set[str] = field(default_factory=set)
    closed: bool = False

    async def send(self, event: str, payload: Any) -> bool:
        return await safe_send_json(self.websocket, {"type": event, "data": payload})


class ConnectionHub:
    """Track open connections and which rooms each one is subscribed to."""

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}
        self._rooms: Dict[str, Set[str]] = {}
        self._lock = asyncio.Lock()

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def is_open(self, connection: Connection) -> bool:
        return not connection.closed and connection.id in self._connections

    async def add(self, connection: Connection) -> None:
        async with self._lock:
            self._connections[connection.id] = connection
            realtime_connections.labels().inc()

    async def remove(self, connection: Connection) -> None:
        async with self._lock:
            connection.closed = True
            if self._connections.pop(connection.id, None) is None:
                return
            for room_key in list(connection.rooms):
                self._discard_locked(room_key, connection)
            realtime_connections.labels().dec()

    async def subscribe(self, room_key: str, connection: Connection) -> None:
        async with self._lock:
            if connection.id not in self._connections:
                return
            self._rooms.setdefault(room_key, set()).add(connection.id)
            connection.rooms.add(room_key)

    async def unsubscribe(self, room_key: str, connection: Connection) -> None:
        async with self._lock:
            self._discard_locked(room_key, connection)

    def is_subscribed(self, room_key: str, connection: Connection) -> bool:
        return connection.id in self._rooms.get(room_key, ())

    async def subscribers(self, *room_keys: str) -> list[Connection]:
        """Connections subscribed to any of ``room_keys``, each listed once."""

        async with self._lock:
            seen: dict[str, Connection] = {}
            for room_key in room_keys:
                for connection_id in self._rooms.get(room_key, ()):
                    connection = self._connections.get(connection_id)
                    if connection is not None:
                        seen.setdefault(connection_id, connection)
            return list(seen.values())

    async def send_many(
        self,
        connections: Iterable[Connection],
        event: str,
        payload: Any,
        *,
        exclude: Iterable[str] | None = None,
    ) -> int:
        exclude_set = set(exclude or ())
        delivered = 0
        for connection in connections:
            if connection.id in exclude_set:
                continue
            if await connection.send(event, payload):
                delivered += 1
        return delivered

    def _discard_locked(self, room_key: str, connection: Connection) -> None:
        connection.rooms.discard(room_key)
        bucket = self._rooms.get(room_key)
        if bucket is None:
            return
        bucket.discard(connection.id)
        if not bucket:
            self._rooms.pop(room_key, None)
