"""FastAPI dependencies for the API layer."""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.security import decode_access_token
from app.database import get_db
from app.models import CollaboratorStatus, Itinerary, ItineraryCollaborator, User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Retrieve the current user from the JWT token."""

    return get_user_from_token(token, db)


def get_user_from_token(token: str, db: Session) -> User:
    """Resolve a user from a JWT token or raise an HTTP 401 error."""

    payload = decode_access_token(token)
    sub = payload.get("sub")
    if sub is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from None

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return user


def has_itinerary_access(itinerary_id: int, user_id: int, db: Session) -> bool:
    """Owner or accepted collaborator check for request/response handlers."""

    owner_id = db.execute(
        select(Itinerary.user_id).where(Itinerary.id == itinerary_id)
    ).scalar_one_or_none()
    if owner_id is None:
        return False
    if owner_id == user_id:
        return True
    collaboration = db.execute(
        select(ItineraryCollaborator.id).where(
            ItineraryCollaborator.itinerary_id == itinerary_id,
            ItineraryCollaborator.user_id == user_id,
            ItineraryCollaborator.status == CollaboratorStatus.ACCEPTED,
        )
    ).scalar_one_or_none()
    return collaboration is not None


def require_itinerary_access(itinerary_id: int, user_id: int, db: Session) -> None:
    """Ensure the user may see the itinerary, raising HTTP 403 otherwise."""

    if not has_itinerary_access(itinerary_id, user_id, db):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to this itinerary",
        )
