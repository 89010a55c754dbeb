"""Database models package."""

from .base import Base
from .enums import CollaboratorPermission, CollaboratorStatus, UserRole
from .travel import Itinerary, ItineraryCollaborator, User

__all__ = [
    "Base",
    "User",
    "Itinerary",
    "ItineraryCollaborator",
    "UserRole",
    "CollaboratorPermission",
    "CollaboratorStatus",
]
