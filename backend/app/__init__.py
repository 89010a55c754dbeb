"""Wayfarer backend application."""
