"""Track which users are online and through which connections."""

from __future__ import annotations

import logging
from typing import Dict, Set

from app.monitoring.metrics import realtime_online_users

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Map user ids to the set of their live connection ids.

    A user is present in the registry iff at least one of their connections is
    open; the entry is dropped together with the last connection. Methods never
    await, so callers on the event loop observe each mutation atomically.
    """

    def __init__(self) -> None:
        self._connections: Dict[int, Set[str]] = {}

    def register(self, user_id: int, connection_id: str) -> None:
        bucket = self._connections.setdefault(user_id, set())
        came_online = not bucket
        bucket.add(connection_id)
        if came_online:
            logger.debug("User %s came online", user_id)
        realtime_online_users.labels().set(len(self._connections))

    def unregister(self, user_id: int, connection_id: str) -> None:
        bucket = self._connections.get(user_id)
        if bucket is None:
            return
        bucket.discard(connection_id)
        if not bucket:
            self._connections.pop(user_id, None)
            logger.debug("User %s went offline", user_id)
        realtime_online_users.labels().set(len(self._connections))

    def is_online(self, user_id: int) -> bool:
        return bool(self._connections.get(user_id))

    def online_count(self) -> int:
        return len(self._connections)

    def connections_for(self, user_id: int) -> frozenset[str]:
        return frozenset(self._connections.get(user_id, ()))
