"""Event construction for the telemetry SDK."""

from .factory import EventFactory

__all__ = ["EventFactory"]
