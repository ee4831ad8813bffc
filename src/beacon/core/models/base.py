"""
Core domain models base module for the telemetry SDK.

This module provides common imports and helpers used across the different
model types: identifier generation, UTC timestamps and the ISO-8601
conversions used by both the wire format and persisted records.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ...utils.validation import validate_dataclass


def new_id() -> str:
    """Generate a fresh random identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def from_timestamp_ms(value: float) -> datetime:
    """Convert epoch milliseconds to a UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to ISO-8601, passing None through."""
    return value.isoformat() if value is not None else None


def from_iso(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string into an aware datetime.

    Naive values are assumed to be UTC. ``Z`` suffixes are accepted.
    """
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Whole milliseconds between two datetimes."""
    return int((end - start).total_seconds() * 1000)


def compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in data.items() if value is not None}
