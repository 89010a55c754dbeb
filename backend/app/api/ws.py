"""WebSocket endpoint for realtime itinerary collaboration."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from functools import partial
from typing import Any, Dict, TypeVar

import anyio
from fastapi import APIRouter, Depends, WebSocket, status
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from app.config import get_settings
from app.services.realtime import get_gateway
from wayfarer.realtime import AuthenticationError, SessionGateway, safe_send_json
from wayfarer.realtime.events import OutboundEvent, error_payload

router = APIRouter(prefix="/ws", tags=["ws"])

settings = get_settings()

logger = logging.getLogger(__name__)

T = TypeVar("T")

_KEEPALIVE_TYPES = {"ping", "pong"}


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    timeout_seconds: float | int | None,
    ping_interval_seconds: float | int | None,
    ping_payload: Dict[str, Any] | None = None,
) -> AsyncIterator[T]:
    """Yield messages from *receiver* while sending keepalive pings when idle."""

    ping_payload = ping_payload or {"type": "ping"}
    timeout = float(timeout_seconds) if timeout_seconds else 0.0
    interval = float(ping_interval_seconds) if ping_interval_seconds else 0.0
    last_activity = time.monotonic()
    last_ping_sent: float | None = None

    while True:
        try:
            if timeout > 0:
                message = await asyncio.wait_for(receiver(), timeout=timeout)
            else:
                message = await receiver()
        except asyncio.TimeoutError:
            if websocket.application_state != WebSocketState.CONNECTED:
                break

            now = time.monotonic()
            should_ping = interval <= 0 or (
                now - last_activity >= interval
                and (last_ping_sent is None or now - last_ping_sent >= interval)
            )
            if should_ping:
                if not await safe_send_json(websocket, ping_payload):
                    break
                last_ping_sent = now
            continue
        except asyncio.CancelledError:  # pragma: no cover - cooperative cancellation
            raise
        except (RuntimeError, WebSocketDisconnect):
            break
        else:
            last_activity = time.monotonic()
            last_ping_sent = None
            yield message


def _extract_token(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if not token:
        auth_header = websocket.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.removeprefix("Bearer ").strip()
    return token or None


async def _receive_frame(websocket: WebSocket) -> str | bytes:
    """Receive one text or binary frame, raising ``WebSocketDisconnect`` on close."""

    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE), message.get("reason"))
    if message.get("text") is not None:
        return message["text"]
    return message.get("bytes") or b""


async def _send_error(websocket: WebSocket, message: str) -> None:
    await safe_send_json(websocket, {"type": OutboundEvent.ERROR.value, "data": error_payload(message)})


@router.websocket("/collaboration")
async def websocket_collaboration(
    websocket: WebSocket,
    gateway: SessionGateway = Depends(get_gateway),
) -> None:
    """Carry editing presence, field locks, edits and chat typing for itineraries."""

    try:
        user = await gateway.authenticate(_extract_token(websocket))
    except AuthenticationError as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.reason)
        return

    await websocket.accept()
    connection = await gateway.connect(websocket, user)

    try:
        async for raw_message in iter_keepalive_messages(
            websocket,
            partial(_receive_frame, websocket),
            timeout_seconds=settings.websocket_keepalive_timeout_seconds,
            ping_interval_seconds=settings.websocket_keepalive_ping_interval_seconds,
        ):
            if isinstance(raw_message, bytes):
                await _send_error(websocket, "Invalid message format")
                continue

            try:
                payload = json.loads(raw_message)
            except json.JSONDecodeError:
                await _send_error(websocket, "Invalid message format")
                continue

            if isinstance(payload, dict) and payload.get("type") in _KEEPALIVE_TYPES:
                if payload["type"] == "ping":
                    await safe_send_json(websocket, {"type": "pong"})
                continue

            await gateway.dispatch(connection, payload)
    except WebSocketDisconnect:
        pass
    finally:
        # The server may cancel this task once the peer is gone; finish cleanup.
        with anyio.CancelScope(shield=True):
            await gateway.disconnect(connection)
