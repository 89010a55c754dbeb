"""Error taxonomy for the collaboration layer."""

from __future__ import annotations


class RealtimeError(Exception):
    """Base class for realtime collaboration errors."""


class AuthenticationError(RealtimeError):
    """Raised during the websocket handshake; the connection is refused."""

    reason: str = "Authentication failed"

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


class AuthRequired(AuthenticationError):
    reason = "Authentication required"


class InvalidCredential(AuthenticationError):
    reason = "Invalid token"


class AccessDenied(RealtimeError):
    """The user may not join the requested itinerary room."""

    def __init__(self, message: str = "Access denied to this itinerary") -> None:
        super().__init__(message)
        self.message = message


class AccessCheckFailed(RealtimeError):
    """The backing store could not answer an access question."""


class StaleReference(RealtimeError):
    """An event referenced a room or member that is no longer tracked."""


class InvalidPayload(RealtimeError):
    """An inbound frame could not be parsed into a known event."""

    def __init__(self, message: str = "Invalid payload") -> None:
        super().__init__(message)
        self.message = message
