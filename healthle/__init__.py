"""Healthle - health consultation backend."""

__version__ = "0.1.0"
