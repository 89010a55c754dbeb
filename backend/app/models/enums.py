from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    """Account level roles."""

    USER = "user"
    ADMIN = "admin"


class CollaboratorPermission(str, Enum):
    """What an invited collaborator may do with an itinerary."""

    VIEW = "view"
    EDIT = "edit"


class CollaboratorStatus(str, Enum):
    """Lifecycle states for collaboration invitations."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
