"""Authorization gate for itinerary rooms."""

from __future__ import annotations

import logging

from app.monitoring.metrics import realtime_access_checks_total

from .exceptions import AccessCheckFailed
from .interfaces import ItineraryDirectory

logger = logging.getLogger(__name__)


class AccessAuthority:
    """Answer whether a user may act on an itinerary.

    Owners and collaborators with an accepted invitation are admitted. Lookup
    failures are logged and treated as a denial: ``AccessCheckFailed`` from
    the store adapter is reported as the store being unavailable, anything else
    as a failed check.
    """

    def __init__(self, directory: ItineraryDirectory) -> None:
        self._directory = directory

    async def can_access(self, user_id: int, itinerary_id: int) -> bool:
        try:
            access = await self._directory.lookup_itinerary_access(itinerary_id)
        except AccessCheckFailed as exc:
            logger.error(
                "Access store unavailable for user %s on itinerary %s: %s",
                user_id,
                itinerary_id,
                exc.__cause__ or exc,
            )
            realtime_access_checks_total.labels("unavailable").inc()
            return False
        except Exception:
            logger.exception(
                "Access check failed for user %s on itinerary %s", user_id, itinerary_id
            )
            realtime_access_checks_total.labels("failed").inc()
            return False

        allowed = access is not None and access.allows(user_id)
        realtime_access_checks_total.labels("granted" if allowed else "denied").inc()
        return allowed
