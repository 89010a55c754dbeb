"""Wayfarer collaborative itinerary backend."""
