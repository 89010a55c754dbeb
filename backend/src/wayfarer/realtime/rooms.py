"""Membership and soft-lock bookkeeping for itinerary editing rooms."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict

from app.monitoring.metrics import realtime_editing_rooms

logger = logging.getLogger(__name__)

EDITING_ROOM_PREFIX = "itinerary"
CHAT_ROOM_PREFIX = "chat"
USER_CHANNEL_PREFIX = "user"


def editing_room_key(itinerary_id: int) -> str:
    return f"{EDITING_ROOM_PREFIX}:{itinerary_id}"


def chat_room_key(itinerary_id: int) -> str:
    return f"{CHAT_ROOM_PREFIX}:{itinerary_id}"


def user_channel_key(user_id: int) -> str:
    return f"{USER_CHANNEL_PREFIX}:{user_id}"


@dataclass(slots=True)
class EditingMember:
    """A user present in an editing room through one primary connection."""

    user_id: int
    name: str
    email: str
    connection_id: str
    active_field: str | None = None

    def to_public(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "userId": self.user_id,
            "name": self.name,
            "email": self.email,
            "connectionId": self.connection_id,
        }
        if self.active_field is not None:
            payload["activeField"] = self.active_field
        return payload


class RoomMembershipTracker:
    """Map room keys to ``{user_id: EditingMember}``.

    Rooms exist only while they have members; removing the last member drops
    the room. A user holds at most one entry per room: joining again replaces
    the previous entry (last join wins).
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, Dict[int, EditingMember]] = {}

    def __contains__(self, room_key: object) -> bool:
        return room_key in self._rooms

    def has_room(self, room_key: str) -> bool:
        return room_key in self._rooms

    def room_count(self) -> int:
        return len(self._rooms)

    def join(self, room_key: str, member: EditingMember) -> list[EditingMember]:
        """Insert or replace ``member`` and return everyone else in the room."""

        bucket = self._rooms.setdefault(room_key, {})
        previous = bucket.get(member.user_id)
        if previous is not None and previous.connection_id != member.connection_id:
            logger.debug(
                "Replacing member %s in %s (connection %s -> %s)",
                member.user_id,
                room_key,
                previous.connection_id,
                member.connection_id,
            )
        bucket[member.user_id] = member
        self._update_gauge()
        return self.roster_excluding(room_key, member.user_id)

    def leave(
        self,
        room_key: str,
        user_id: int,
        *,
        connection_id: str | None = None,
    ) -> EditingMember | None:
        """Remove the member entry, dropping the room once it is empty.

        With ``connection_id`` the entry is only removed while it still belongs
        to that connection.
        """

        bucket = self._rooms.get(room_key)
        if bucket is None:
            return None
        member = bucket.get(user_id)
        if member is None:
            return None
        if connection_id is not None and member.connection_id != connection_id:
            return None
        del bucket[user_id]
        if not bucket:
            self._rooms.pop(room_key, None)
        self._update_gauge()
        return member

    def set_active_field(self, room_key: str, user_id: int, field: str | None) -> bool:
        bucket = self._rooms.get(room_key)
        member = bucket.get(user_id) if bucket else None
        if member is None:
            return False
        member.active_field = field
        return True

    def get(self, room_key: str, user_id: int) -> EditingMember | None:
        bucket = self._rooms.get(room_key)
        return bucket.get(user_id) if bucket else None

    def members(self, room_key: str) -> list[EditingMember]:
        bucket = self._rooms.get(room_key, {})
        return [replace(member) for member in bucket.values()]

    def roster_excluding(self, room_key: str, user_id: int) -> list[EditingMember]:
        bucket = self._rooms.get(room_key, {})
        return [replace(member) for uid, member in bucket.items() if uid != user_id]

    def _update_gauge(self) -> None:
        realtime_editing_rooms.labels().set(len(self._rooms))
