"""Process-wide collaboration state and its lifecycle helpers."""

from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.orm import Session

from app.core.security import verify_credential
from app.database import SessionLocal
from app.services.directory import SqlItineraryDirectory, SqlUserDirectory
from wayfarer.realtime import (
    AccessAuthority,
    ConnectionHub,
    ConnectionRegistry,
    RoomMembershipTracker,
    SessionGateway,
)

logger = logging.getLogger(__name__)


def build_gateway(session_factory: Callable[[], Session] = SessionLocal) -> SessionGateway:
    """Assemble a gateway with fresh in-memory tables bound to ``session_factory``."""

    return SessionGateway(
        registry=ConnectionRegistry(),
        tracker=RoomMembershipTracker(),
        hub=ConnectionHub(),
        access=AccessAuthority(SqlItineraryDirectory(session_factory)),
        users=SqlUserDirectory(session_factory),
        verify_credential=verify_credential,
    )


gateway = build_gateway()


def get_gateway() -> SessionGateway:
    return gateway


async def shutdown_realtime() -> None:
    """Close every open collaboration socket so clients reconnect elsewhere."""

    connections = gateway.hub.connections()
    for connection in connections:
        try:
            await connection.websocket.close(code=1001, reason="Server shutting down")
        except RuntimeError:
            continue
    if connections:
        logger.info("Closed %d collaboration socket(s) on shutdown", len(connections))
