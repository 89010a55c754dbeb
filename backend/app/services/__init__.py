"""Application service helpers."""

from .directory import SqlItineraryDirectory, SqlUserDirectory
from .realtime import build_gateway, get_gateway, shutdown_realtime

__all__ = [
    "SqlItineraryDirectory",
    "SqlUserDirectory",
    "build_gateway",
    "get_gateway",
    "shutdown_realtime",
]
