"""Session gateway: authenticates sockets and dispatches collaboration events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict

from fastapi.websockets import WebSocket

from app.monitoring.metrics import realtime_events_total, realtime_handshake_rejections_total

from .access import AccessAuthority
from .broadcaster import EventBroadcaster
from .events import (
    ActivityChange,
    ActivityUpdate,
    ChatTyping,
    CursorMove,
    CursorUpdate,
    FieldBlur,
    FieldChange,
    FieldFocus,
    FieldLocked,
    FieldUnlocked,
    FieldUpdate,
    InboundEvent,
    JoinChat,
    JoinRoom,
    LeaveChat,
    LeaveRoom,
    OutboundEvent,
    UserJoined,
    UserLeft,
    UserTyping,
    error_payload,
    parse_inbound,
)
from .exceptions import (
    AccessDenied,
    AuthRequired,
    InvalidCredential,
    InvalidPayload,
    StaleReference,
)
from .hub import Connection, ConnectionHub
from .interfaces import CredentialVerifier, UserDirectory
from .registry import ConnectionRegistry
from .rooms import (
    EditingMember,
    RoomMembershipTracker,
    chat_room_key,
    editing_room_key,
    user_channel_key,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Connection, Any], Awaitable[None]]


@dataclass(slots=True, frozen=True)
class AuthenticatedUser:
    user_id: int
    email: str
    name: str


class SessionGateway:
    """Own the per-connection lifecycle of the collaboration socket.

    The registry and tracker are injected so each test (or process) works on
    its own tables. All mutations of those tables happen in this class.
    Suspension points are limited to credential verification, profile lookup,
    access checks and socket I/O; interleavings around them follow the
    "last join wins" rule.
    """

    def __init__(
        self,
        *,
        registry: ConnectionRegistry,
        tracker: RoomMembershipTracker,
        hub: ConnectionHub,
        access: AccessAuthority,
        users: UserDirectory,
        verify_credential: CredentialVerifier,
        broadcaster: EventBroadcaster | None = None,
    ) -> None:
        self.registry = registry
        self.tracker = tracker
        self.hub = hub
        self.access = access
        self.broadcaster = broadcaster or EventBroadcaster(hub)
        self._users = users
        self._verify_credential = verify_credential
        self._handlers: Dict[InboundEvent, Handler] = {
            InboundEvent.JOIN_ROOM: self._join_room,
            InboundEvent.LEAVE_ROOM: self._leave_room,
            InboundEvent.FIELD_CHANGE: self._field_change,
            InboundEvent.FIELD_FOCUS: self._field_focus,
            InboundEvent.FIELD_BLUR: self._field_blur,
            InboundEvent.ACTIVITY_CHANGE: self._activity_change,
            InboundEvent.CURSOR_MOVE: self._cursor_move,
            InboundEvent.JOIN_CHAT: self._join_chat,
            InboundEvent.LEAVE_CHAT: self._leave_chat,
            InboundEvent.CHAT_TYPING: self._chat_typing,
        }
        missing = set(InboundEvent) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler registered for {sorted(kind.value for kind in missing)}")

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def authenticate(self, token: str | None) -> AuthenticatedUser:
        """Resolve the handshake credential or raise ``AuthRequired``/``InvalidCredential``."""

        if not token:
            realtime_handshake_rejections_total.labels("missing").inc()
            raise AuthRequired()

        try:
            claims = await self._verify_credential(token)
            profile = await self._users.lookup_user_profile(claims.user_id) if claims else None
        except Exception as exc:
            logger.exception("Socket auth error")
            realtime_handshake_rejections_total.labels("error").inc()
            raise InvalidCredential() from exc

        if claims is None or profile is None:
            realtime_handshake_rejections_total.labels("invalid").inc()
            raise InvalidCredential()

        email = claims.email or profile.email
        return AuthenticatedUser(
            user_id=claims.user_id,
            email=email,
            name=profile.name or email,
        )

    async def connect(self, websocket: WebSocket, user: AuthenticatedUser) -> Connection:
        connection = Connection(
            websocket=websocket,
            user_id=user.user_id,
            email=user.email,
            name=user.name,
        )
        await self.hub.add(connection)
        self.registry.register(user.user_id, connection.id)
        await self.hub.subscribe(user_channel_key(user.user_id), connection)
        logger.info("User connected: %s (%s)", user.name, user.user_id)
        return connection

    async def disconnect(self, connection: Connection) -> None:
        """Treat transport closure as an implicit leave of every joined room.

        Every table is updated before the first await, so a cancelled cleanup
        can only lose the ``user-left`` notices, never leave stale state.
        """

        if connection.closed:
            return
        # Mark closed before the first await so pending joins abandon.
        connection.closed = True
        self.registry.unregister(connection.user_id, connection.id)
        joined = sorted(connection.editing_rooms)
        connection.editing_rooms.clear()
        survivors: dict[str, EditingMember | None] = {}
        for room_key in joined:
            if self.tracker.leave(room_key, connection.user_id, connection_id=connection.id) is None:
                survivors[room_key] = self.tracker.get(room_key, connection.user_id)

        await self.hub.remove(connection)

        for room_key in joined:
            survivor = survivors.get(room_key)
            if survivor is None:
                await self._announce_departure(connection, room_key)
                continue
            # A newer tab owns the entry: peers see the stale tab go and the
            # survivor come back, and the user's own tabs see neither.
            await self._announce_departure(connection, room_key, exclude_user_id=connection.user_id)
            rejoined = UserJoined(user_id=survivor.user_id, name=survivor.name, email=survivor.email)
            await self.broadcaster.to_room(
                room_key,
                OutboundEvent.USER_JOINED.value,
                rejoined.to_wire(),
                exclude_user_id=connection.user_id,
            )
        logger.info("User disconnected: %s (%s)", connection.name, connection.user_id)

    # ------------------------------------------------------------------
    # Inbound dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, connection: Connection, frame: Any) -> None:
        """Handle one decoded frame. Never raises; failures stay scoped to ``connection``."""

        try:
            kind, payload = parse_inbound(frame)
        except InvalidPayload as exc:
            await self._send_error(connection, exc.message)
            return

        realtime_events_total.labels(kind.value, "in").inc()
        try:
            await self._handlers[kind](connection, payload)
        except AccessDenied as exc:
            await self._send_error(connection, exc.message)
        except StaleReference as exc:
            logger.debug("Ignoring %s from connection %s: %s", kind.value, connection.id, exc)
        except Exception:
            logger.exception("Failed to handle %s from connection %s", kind.value, connection.id)
            await self._send_error(connection, "Internal error")

    async def _send_error(self, connection: Connection, message: str) -> None:
        await self.broadcaster.emit(connection, OutboundEvent.ERROR.value, error_payload(message))

    # Editing room -------------------------------------------------------

    async def _join_room(self, connection: Connection, payload: JoinRoom) -> None:
        itinerary_id = payload.itinerary_id
        if not await self.access.can_access(connection.user_id, itinerary_id):
            raise AccessDenied("Access denied to this itinerary")
        if not self.hub.is_open(connection):
            raise StaleReference(f"connection closed before joining itinerary {itinerary_id}")

        room_key = editing_room_key(itinerary_id)
        connection.editing_rooms.add(room_key)
        roster = self.tracker.join(
            room_key,
            EditingMember(
                user_id=connection.user_id,
                name=connection.name,
                email=connection.email,
                connection_id=connection.id,
            ),
        )
        await self.hub.subscribe(room_key, connection)

        joined = UserJoined(user_id=connection.user_id, name=connection.name, email=connection.email)
        await self.broadcaster.to_editing_room(
            itinerary_id,
            OutboundEvent.USER_JOINED.value,
            joined.to_wire(),
            exclude_connection_id=connection.id,
        )
        await self.broadcaster.emit(
            connection,
            OutboundEvent.CURRENT_EDITORS.value,
            [member.to_public() for member in roster],
        )
        logger.info("%s joined room %s", connection.name, room_key)

    async def _leave_room(self, connection: Connection, payload: LeaveRoom) -> None:
        room_key = editing_room_key(payload.itinerary_id)
        if room_key not in connection.editing_rooms:
            raise StaleReference(f"not a member of {room_key}")
        connection.editing_rooms.discard(room_key)
        self.tracker.leave(room_key, connection.user_id)
        await self._announce_departure(connection, room_key)
        await self.hub.unsubscribe(room_key, connection)

    async def _announce_departure(
        self,
        connection: Connection,
        room_key: str,
        *,
        exclude_user_id: int | None = None,
    ) -> None:
        left = UserLeft(user_id=connection.user_id, name=connection.name)
        await self.broadcaster.to_room(
            room_key,
            OutboundEvent.USER_LEFT.value,
            left.to_wire(),
            exclude_connection_id=connection.id,
            exclude_user_id=exclude_user_id,
        )
        logger.info("%s left room %s", connection.name, room_key)

    def _require_editing_room(self, connection: Connection, itinerary_id: int) -> str:
        room_key = editing_room_key(itinerary_id)
        if not self.hub.is_subscribed(room_key, connection):
            raise StaleReference(f"not subscribed to {room_key}")
        return room_key

    async def _relay(self, connection: Connection, room_key: str, event: OutboundEvent, payload: dict) -> None:
        await self.broadcaster.to_room(
            room_key, event.value, payload, exclude_connection_id=connection.id
        )

    async def _field_change(self, connection: Connection, payload: FieldChange) -> None:
        room_key = self._require_editing_room(connection, payload.itinerary_id)
        change = FieldUpdate(
            field=payload.field,
            value=payload.value,
            user_id=connection.user_id,
            user_name=connection.name,
        )
        await self._relay(connection, room_key, OutboundEvent.FIELD_UPDATE, change.to_wire())

    async def _field_focus(self, connection: Connection, payload: FieldFocus) -> None:
        room_key = self._require_editing_room(connection, payload.itinerary_id)
        self.tracker.set_active_field(room_key, connection.user_id, payload.field)
        lock = FieldLocked(field=payload.field, user_id=connection.user_id, user_name=connection.name)
        await self._relay(connection, room_key, OutboundEvent.FIELD_LOCKED, lock.to_wire())

    async def _field_blur(self, connection: Connection, payload: FieldBlur) -> None:
        room_key = self._require_editing_room(connection, payload.itinerary_id)
        self.tracker.set_active_field(room_key, connection.user_id, None)
        unlock = FieldUnlocked(field=payload.field, user_id=connection.user_id)
        await self._relay(connection, room_key, OutboundEvent.FIELD_UNLOCKED, unlock.to_wire())

    async def _activity_change(self, connection: Connection, payload: ActivityChange) -> None:
        room_key = self._require_editing_room(connection, payload.itinerary_id)
        change = ActivityUpdate(
            action=payload.action,
            index=payload.index,
            activity=payload.activity,
            user_id=connection.user_id,
            user_name=connection.name,
        )
        await self._relay(connection, room_key, OutboundEvent.ACTIVITY_UPDATE, change.to_wire())

    async def _cursor_move(self, connection: Connection, payload: CursorMove) -> None:
        room_key = self._require_editing_room(connection, payload.itinerary_id)
        cursor = CursorUpdate(
            user_id=connection.user_id,
            user_name=connection.name,
            field=payload.field,
            position=payload.position,
        )
        await self._relay(connection, room_key, OutboundEvent.CURSOR_UPDATE, cursor.to_wire())

    # Chat room ------------------------------------------------------------

    async def _join_chat(self, connection: Connection, payload: JoinChat) -> None:
        itinerary_id = payload.itinerary_id
        if not await self.access.can_access(connection.user_id, itinerary_id):
            raise AccessDenied("Access denied to this chat")
        if not self.hub.is_open(connection):
            raise StaleReference(f"connection closed before joining chat {itinerary_id}")
        room_key = chat_room_key(itinerary_id)
        await self.hub.subscribe(room_key, connection)
        logger.info("%s joined chat room %s", connection.name, room_key)

    async def _leave_chat(self, connection: Connection, payload: LeaveChat) -> None:
        room_key = chat_room_key(payload.itinerary_id)
        await self.hub.unsubscribe(room_key, connection)
        logger.info("%s left chat room %s", connection.name, room_key)

    async def _chat_typing(self, connection: Connection, payload: ChatTyping) -> None:
        room_key = chat_room_key(payload.itinerary_id)
        if not self.hub.is_subscribed(room_key, connection):
            raise StaleReference(f"not subscribed to {room_key}")
        typing = UserTyping(
            user_id=connection.user_id,
            user_name=connection.name,
            is_typing=payload.is_typing,
        )
        await self._relay(connection, room_key, OutboundEvent.USER_TYPING, typing.to_wire())

    # ------------------------------------------------------------------
    # Hooks for request/response code
    # ------------------------------------------------------------------

    async def notify_user(self, user_id: int, event: str, payload: Any) -> int:
        return await self.broadcaster.to_user(user_id, event, payload)

    async def notify_room(self, itinerary_id: int, event: str, payload: Any) -> int:
        return await self.broadcaster.to_collaboration_channel(itinerary_id, event, payload)

    async def notify_editing_room(self, itinerary_id: int, event: str, payload: Any) -> int:
        return await self.broadcaster.to_editing_room(itinerary_id, event, payload)

    def is_user_online(self, user_id: int) -> bool:
        return self.registry.is_online(user_id)

    def online_user_count(self) -> int:
        return self.registry.online_count()

    def active_editors(self, itinerary_id: int) -> list[EditingMember]:
        return self.tracker.members(editing_room_key(itinerary_id))
