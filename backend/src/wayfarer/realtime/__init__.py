"""In-process coordination of collaborative itinerary editing and chat."""

from .access import AccessAuthority
from .broadcaster import EventBroadcaster
from .events import InboundEvent, OutboundEvent
from .exceptions import (
    AccessCheckFailed,
    AccessDenied,
    AuthenticationError,
    AuthRequired,
    InvalidCredential,
    InvalidPayload,
    RealtimeError,
    StaleReference,
)
from .gateway import AuthenticatedUser, SessionGateway
from .hub import Connection, ConnectionHub, safe_send_json
from .interfaces import CredentialClaims, ItineraryAccess, UserProfile
from .registry import ConnectionRegistry
from .rooms import (
    EditingMember,
    RoomMembershipTracker,
    chat_room_key,
    editing_room_key,
    user_channel_key,
)

__all__ = [
    "AccessAuthority",
    "AccessCheckFailed",
    "AccessDenied",
    "AuthenticatedUser",
    "AuthenticationError",
    "AuthRequired",
    "Connection",
    "ConnectionHub",
    "ConnectionRegistry",
    "CredentialClaims",
    "EditingMember",
    "EventBroadcaster",
    "InboundEvent",
    "InvalidCredential",
    "InvalidPayload",
    "ItineraryAccess",
    "OutboundEvent",
    "RealtimeError",
    "RoomMembershipTracker",
    "SessionGateway",
    "StaleReference",
    "UserProfile",
    "chat_room_key",
    "editing_room_key",
    "safe_send_json",
    "user_channel_key",
]
