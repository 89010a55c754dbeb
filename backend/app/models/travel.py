from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import CollaboratorPermission, CollaboratorStatus, UserRole


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class User(Base):
    """Registered traveller."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(128))
    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.USER,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    itineraries: Mapped[list["Itinerary"]] = relationship(
        back_populates="owner", cascade="all, delete-orphan"
    )
    collaborations: Mapped[list["ItineraryCollaborator"]] = relationship(
        back_populates="user",
        foreign_keys="ItineraryCollaborator.user_id",
        cascade="all, delete-orphan",
    )


class Itinerary(Base):
    """A trip plan owned by a single user and optionally shared."""

    __tablename__ = "itineraries"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    destination: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    budget: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    activities: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    owner: Mapped[User] = relationship(back_populates="itineraries")
    collaborators: Mapped[list["ItineraryCollaborator"]] = relationship(
        back_populates="itinerary", cascade="all, delete-orphan"
    )


class ItineraryCollaborator(Base):
    """Invitation of a user to view or edit someone else's itinerary."""

    __tablename__ = "itinerary_collaborators"
    __table_args__ = (UniqueConstraint("itinerary_id", "user_id", name="uq_itinerary_collaborator"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    itinerary_id: Mapped[int] = mapped_column(
        ForeignKey("itineraries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission: Mapped[CollaboratorPermission] = mapped_column(
        SAEnum(CollaboratorPermission, name="collaborator_permission", values_callable=_enum_values),
        default=CollaboratorPermission.EDIT,
        nullable=False,
    )
    status: Mapped[CollaboratorStatus] = mapped_column(
        SAEnum(CollaboratorStatus, name="collaborator_status", values_callable=_enum_values),
        default=CollaboratorStatus.PENDING,
        nullable=False,
    )
    invited_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"))
    invited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    itinerary: Mapped[Itinerary] = relationship(back_populates="collaborators")
    user: Mapped[User] = relationship(back_populates="collaborations", foreign_keys=[user_id])
