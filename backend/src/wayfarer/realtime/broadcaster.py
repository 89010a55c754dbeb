"""Fan-out of named events to users and itinerary rooms."""

from __future__ import annotations

import logging
from typing import Any

from app.monitoring.metrics import realtime_events_total

from .hub import Connection, ConnectionHub
from .rooms import chat_room_key, editing_room_key, user_channel_key

logger = logging.getLogger(__name__)


class EventBroadcaster:
    """Deliver events over the hub's room subscriptions.

    Delivery is best effort and in-process: no acknowledgement, retry or
    queueing. Targets are snapshotted before sending, so connections joining
    mid-broadcast do not receive the event.
    """

    def __init__(self, hub: ConnectionHub) -> None:
        self._hub = hub

    async def emit(self, connection: Connection, event: str, payload: Any) -> bool:
        delivered = await connection.send(event, payload)
        if delivered:
            realtime_events_total.labels(event, "out").inc()
        return delivered

    async def to_room(
        self,
        room_key: str,
        event: str,
        payload: Any,
        *,
        exclude_connection_id: str | None = None,
        exclude_user_id: int | None = None,
    ) -> int:
        return await self._fan_out(
            (room_key,), event, payload, exclude_connection_id, exclude_user_id=exclude_user_id
        )

    async def to_user(self, user_id: int, event: str, payload: Any) -> int:
        return await self._fan_out((user_channel_key(user_id),), event, payload, None)

    async def to_editing_room(
        self,
        itinerary_id: int,
        event: str,
        payload: Any,
        exclude_connection_id: str | None = None,
    ) -> int:
        return await self._fan_out(
            (editing_room_key(itinerary_id),), event, payload, exclude_connection_id
        )

    async def to_collaboration_channel(self, itinerary_id: int, event: str, payload: Any) -> int:
        """Deliver to chat and editing viewers of the itinerary, once per connection."""

        return await self._fan_out(
            (chat_room_key(itinerary_id), editing_room_key(itinerary_id)), event, payload, None
        )

    async def _fan_out(
        self,
        room_keys: tuple[str, ...],
        event: str,
        payload: Any,
        exclude_connection_id: str | None,
        *,
        exclude_user_id: int | None = None,
    ) -> int:
        targets = await self._hub.subscribers(*room_keys)
        if exclude_user_id is not None:
            targets = [target for target in targets if target.user_id != exclude_user_id]
        exclude = (exclude_connection_id,) if exclude_connection_id else None
        delivered = await self._hub.send_many(targets, event, payload, exclude=exclude)
        if delivered:
            realtime_events_total.labels(event, "out").inc(delivered)
        logger.debug("Delivered %s to %d connection(s) in %s", event, delivered, ", ".join(room_keys))
        return delivered
