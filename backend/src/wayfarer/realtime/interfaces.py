"""Contracts for the stores the realtime layer consults but does not own."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Protocol


@dataclass(slots=True, frozen=True)
class CredentialClaims:
    """Identity extracted from a verified bearer token."""

    user_id: int
    email: str


@dataclass(slots=True, frozen=True)
class UserProfile:
    name: str | None
    email: str


@dataclass(slots=True, frozen=True)
class ItineraryAccess:
    """Owner and accepted collaborators of an itinerary."""

    owner_id: int
    accepted_collaborator_ids: frozenset[int] = field(default_factory=frozenset)

    def allows(self, user_id: int) -> bool:
        return user_id == self.owner_id or user_id in self.accepted_collaborator_ids


class ItineraryDirectory(Protocol):
    async def lookup_itinerary_access(self, itinerary_id: int) -> ItineraryAccess | None:
        """Return access data for the itinerary, or ``None`` if it does not exist."""


class UserDirectory(Protocol):
    async def lookup_user_profile(self, user_id: int) -> UserProfile | None:
        """Return display data for the user, or ``None`` if unknown."""


CredentialVerifier = Callable[[str], Awaitable[CredentialClaims | None]]
