"""Monitoring helpers and metric registry for the backend services."""

from . import metrics, registry

__all__ = ["metrics", "registry"]
