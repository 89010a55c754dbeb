"""Read-only views over live collaboration state."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, require_itinerary_access
from app.database import get_db
from app.models import User
from app.services.realtime import get_gateway
from wayfarer.realtime import SessionGateway

router = APIRouter(prefix="/realtime", tags=["realtime"])


class RealtimeStatus(BaseModel):
    online_users: int
    active_rooms: int


class UserOnlineStatus(BaseModel):
    user_id: int
    online: bool


class ActiveEditor(BaseModel):
    user_id: int
    name: str
    email: str
    active_field: str | None = None


@router.get("/status", response_model=RealtimeStatus)
def realtime_status(
    current_user: User = Depends(get_current_user),
    gateway: SessionGateway = Depends(get_gateway),
) -> RealtimeStatus:
    return RealtimeStatus(
        online_users=gateway.online_user_count(),
        active_rooms=gateway.tracker.room_count(),
    )


@router.get("/users/{user_id}/online", response_model=UserOnlineStatus)
def user_online_status(
    user_id: int,
    current_user: User = Depends(get_current_user),
    gateway: SessionGateway = Depends(get_gateway),
) -> UserOnlineStatus:
    return UserOnlineStatus(user_id=user_id, online=gateway.is_user_online(user_id))


@router.get("/itineraries/{itinerary_id}/editors", response_model=list[ActiveEditor])
def itinerary_editors(
    itinerary_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: SessionGateway = Depends(get_gateway),
) -> list[ActiveEditor]:
    """List users currently present in the itinerary's editing room."""

    require_itinerary_access(itinerary_id, current_user.id, db)
    return [
        ActiveEditor(
            user_id=member.user_id,
            name=member.name,
            email=member.email,
            active_field=member.active_field,
        )
        for member in gateway.active_editors(itinerary_id)
    ]
