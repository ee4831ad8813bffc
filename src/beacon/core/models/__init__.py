"""
Core domain models package for the telemetry SDK.

This package provides the records that flow through the event pipeline:
events and batches, the user and session identities, and delivery responses.
"""

from .base import from_iso, new_id, to_iso, utcnow
from .event import Batch, ClickEvent, Event, PageView
from .response import ApiResponse, BatchOutcome, ResponseMetadata
from .session import BrowserInfo, DeviceInfo, LocationInfo, Session
from .user import User

__all__ = [
    # Base utilities
    "from_iso",
    "new_id",
    "to_iso",
    "utcnow",
    # Event models
    "Event",
    "PageView",
    "ClickEvent",
    "Batch",
    # Identity models
    "User",
    "Session",
    "DeviceInfo",
    "BrowserInfo",
    "LocationInfo",
    # Delivery models
    "ApiResponse",
    "BatchOutcome",
    "ResponseMetadata",
]
