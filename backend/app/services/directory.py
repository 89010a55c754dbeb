"""SQLAlchemy-backed lookups consumed by the realtime gateway."""

from __future__ import annotations

from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import CollaboratorStatus, Itinerary, ItineraryCollaborator, User
from wayfarer.realtime.exceptions import AccessCheckFailed
from wayfarer.realtime.interfaces import ItineraryAccess, UserProfile

SessionFactory = Callable[[], Session]


class SqlItineraryDirectory:
    """Resolve itinerary owners and accepted collaborators."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def lookup_itinerary_access(self, itinerary_id: int) -> ItineraryAccess | None:
        try:
            with self._session_factory() as db:
                owner_id = db.execute(
                    select(Itinerary.user_id).where(Itinerary.id == itinerary_id)
                ).scalar_one_or_none()
                if owner_id is None:
                    return None
                collaborator_ids = db.execute(
                    select(ItineraryCollaborator.user_id).where(
                        ItineraryCollaborator.itinerary_id == itinerary_id,
                        ItineraryCollaborator.status == CollaboratorStatus.ACCEPTED,
                    )
                ).scalars().all()
        except SQLAlchemyError as exc:
            raise AccessCheckFailed(f"Could not load access for itinerary {itinerary_id}") from exc
        return ItineraryAccess(owner_id=owner_id, accepted_collaborator_ids=frozenset(collaborator_ids))


class SqlUserDirectory:
    """Resolve display names for authenticated sockets."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def lookup_user_profile(self, user_id: int) -> UserProfile | None:
        with self._session_factory() as db:
            user = db.get(User, user_id)
            if user is None:
                return None
            return UserProfile(name=user.name, email=user.email)
