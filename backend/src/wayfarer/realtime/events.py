"""Wire vocabulary of the collaboration socket.

Frames in both directions are JSON objects ``{"type": <event>, "data": {...}}``
with camelCase payload keys.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError
from pydantic.alias_generators import to_camel

from .exceptions import InvalidPayload


class InboundEvent(str, Enum):
    JOIN_ROOM = "join-room"
    LEAVE_ROOM = "leave-room"
    FIELD_CHANGE = "field-change"
    FIELD_FOCUS = "field-focus"
    FIELD_BLUR = "field-blur"
    ACTIVITY_CHANGE = "activity-change"
    CURSOR_MOVE = "cursor-move"
    JOIN_CHAT = "join-chat"
    LEAVE_CHAT = "leave-chat"
    CHAT_TYPING = "chat-typing"


class OutboundEvent(str, Enum):
    USER_JOINED = "user-joined"
    USER_LEFT = "user-left"
    CURRENT_EDITORS = "current-editors"
    FIELD_UPDATE = "field-update"
    FIELD_LOCKED = "field-locked"
    FIELD_UNLOCKED = "field-unlocked"
    ACTIVITY_UPDATE = "activity-update"
    CURSOR_UPDATE = "cursor-update"
    USER_TYPING = "user-typing"
    CHAT_MESSAGE = "chat_message"
    CHAT_MESSAGE_DELETED = "chat_message_deleted"
    NOTIFICATION = "notification"
    ERROR = "error"


def now_ms() -> int:
    return int(time.time() * 1000)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Inbound payloads
# ---------------------------------------------------------------------------


class ItineraryScoped(_WireModel):
    itinerary_id: int


class JoinRoom(ItineraryScoped):
    pass


class LeaveRoom(ItineraryScoped):
    pass


class FieldChange(ItineraryScoped):
    field: str = Field(min_length=1)
    value: Any = None


class FieldFocus(ItineraryScoped):
    field: str = Field(min_length=1)


class FieldBlur(ItineraryScoped):
    field: str = Field(min_length=1)


class ActivityChange(ItineraryScoped):
    action: Literal["add", "update", "delete"]
    index: int | None = None
    activity: Any = None


class CursorMove(ItineraryScoped):
    field: str = Field(min_length=1)
    position: int


class JoinChat(ItineraryScoped):
    pass


class LeaveChat(ItineraryScoped):
    pass


class ChatTyping(ItineraryScoped):
    is_typing: StrictBool


INBOUND_MODELS: dict[InboundEvent, type[ItineraryScoped]] = {
    InboundEvent.JOIN_ROOM: JoinRoom,
    InboundEvent.LEAVE_ROOM: LeaveRoom,
    InboundEvent.FIELD_CHANGE: FieldChange,
    InboundEvent.FIELD_FOCUS: FieldFocus,
    InboundEvent.FIELD_BLUR: FieldBlur,
    InboundEvent.ACTIVITY_CHANGE: ActivityChange,
    InboundEvent.CURSOR_MOVE: CursorMove,
    InboundEvent.JOIN_CHAT: JoinChat,
    InboundEvent.LEAVE_CHAT: LeaveChat,
    InboundEvent.CHAT_TYPING: ChatTyping,
}


def parse_inbound(frame: Any) -> tuple[InboundEvent, ItineraryScoped]:
    """Validate a decoded frame into its event kind and payload model."""

    if not isinstance(frame, dict):
        raise InvalidPayload("Message payload must be a JSON object")
    try:
        kind = InboundEvent(frame.get("type"))
    except ValueError:
        raise InvalidPayload("Unsupported event type") from None
    data = frame.get("data")
    if not isinstance(data, dict):
        raise InvalidPayload()
    try:
        return kind, INBOUND_MODELS[kind].model_validate(data)
    except ValidationError as exc:
        raise InvalidPayload() from exc


# ---------------------------------------------------------------------------
# Outbound payloads
# ---------------------------------------------------------------------------


class UserJoined(_WireModel):
    user_id: int
    name: str
    email: str


class UserLeft(_WireModel):
    user_id: int
    name: str


class FieldUpdate(_WireModel):
    field: str
    value: Any = None
    user_id: int
    user_name: str
    timestamp: int = Field(default_factory=now_ms)

    def to_wire(self) -> dict[str, Any]:
        # ``value: null`` is a legitimate edit (cleared field).
        return self.model_dump(mode="json", by_alias=True)


class FieldLocked(_WireModel):
    field: str
    user_id: int
    user_name: str


class FieldUnlocked(_WireModel):
    field: str
    user_id: int


class ActivityUpdate(_WireModel):
    action: Literal["add", "update", "delete"]
    index: int | None = None
    activity: Any = None
    user_id: int
    user_name: str
    timestamp: int = Field(default_factory=now_ms)


class CursorUpdate(_WireModel):
    user_id: int
    user_name: str
    field: str
    position: int


class UserTyping(_WireModel):
    user_id: int
    user_name: str
    is_typing: bool


def error_payload(message: str) -> dict[str, str]:
    return {"message": message}
