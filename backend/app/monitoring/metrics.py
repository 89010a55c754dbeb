"""Metric definitions for the collaboration layer."""

from __future__ import annotations

from .registry import registry


realtime_connections = registry.gauge(
    "realtime_active_connections",
    "Number of authenticated collaboration websockets handled by this process.",
)

realtime_online_users = registry.gauge(
    "realtime_online_users",
    "Number of distinct users with at least one live connection.",
)

realtime_editing_rooms = registry.gauge(
    "realtime_editing_rooms",
    "Number of itinerary editing rooms with at least one member.",
)

realtime_events_total = registry.counter(
    "realtime_events_total",
    "Count of realtime events processed by the collaboration gateway.",
    label_names=("event", "direction"),
)

realtime_access_checks_total = registry.counter(
    "realtime_access_checks_total",
    "Outcome of itinerary access checks performed for room joins.",
    label_names=("outcome",),
)

realtime_handshake_rejections_total = registry.counter(
    "realtime_handshake_rejections_total",
    "Websocket handshakes refused during authentication.",
    label_names=("reason",),
)
