"""Core utilities for the Wayfarer backend."""

from .security import create_access_token, decode_access_token, verify_credential

__all__ = ["create_access_token", "decode_access_token", "verify_credential"]
