"""
Event models for the telemetry SDK.

This module defines the records produced by the event factory and owned by
the pipeline queue:
- Event: the uniform record delivered to the collector
- PageView / ClickEvent: specialized records normalized into Events
- Batch: an ordered group of events submitted in one delivery attempt

Events are frozen once created. The property map is copied at construction
into a read-only view, so neither the caller nor a listener can change a
queued event.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .base import compact, new_id, to_iso, utcnow, validate_dataclass
from ..constants import EVENT_SOURCE, SDK_VERSION


@validate_dataclass
@dataclass(frozen=True)
class Event:
    """
    Immutable record of a tracked occurrence.

    Attributes:
        id (str): Unique event identifier
        name (str): Event name matching ``[A-Za-z0-9_-]+``
        timestamp (datetime): Creation time (UTC), never mutated
        properties (Mapping[str, Any]): Read-only primitive-valued properties
        category (Optional[str]): Optional grouping category
        action (Optional[str]): Optional action name
        label (Optional[str]): Optional free-form label
        value (Optional[float]): Optional numeric value
        user_id (Optional[str]): User id snapshot at creation
        session_id (Optional[str]): Session id snapshot at creation
        source (str): Producer of the event
        schema_version (str): Wire schema version
    """

    id: str
    name: str
    timestamp: datetime
    properties: Mapping[str, Any] = field(default_factory=dict)
    category: Optional[str] = None
    action: Optional[str] = None
    label: Optional[str] = None
    value: Optional[float] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    source: str = EVENT_SOURCE
    schema_version: str = SDK_VERSION

    def __post_init__(self):
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the collector's JSON shape (camelCase keys)."""
        return compact(
            {
                "id": self.id,
                "name": self.name,
                "category": self.category,
                "action": self.action,
                "label": self.label,
                "value": self.value,
                "properties": dict(self.properties),
                "userId": self.user_id,
                "sessionId": self.session_id,
                "timestamp": to_iso(self.timestamp),
                "source": self.source,
                "schemaVersion": self.schema_version,
            }
        )


@validate_dataclass
@dataclass(frozen=True)
class PageView:
    """Specialized record for a page view before normalization."""

    id: str
    url: str
    timestamp: datetime
    title: Optional[str] = None
    referrer: Optional[str] = None
    properties: Mapping[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None
    session_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))


@validate_dataclass
@dataclass(frozen=True)
class ClickEvent:
    """
    Specialized record for a click before normalization.

    Attributes:
        element (str): Identifier of the clicked element
        selector (Optional[str]): Selector used to locate the element
        text (Optional[str]): Visible text of the element
        coordinates (Optional[Tuple[float, float]]): Click position (x, y)
    """

    id: str
    element: str
    timestamp: datetime
    selector: Optional[str] = None
    text: Optional[str] = None
    coordinates: Optional[Tuple[float, float]] = None
    properties: Mapping[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None
    session_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))


@dataclass
class Batch:
    """
    Ordered group of events submitted together.

    Batches exist only for the duration of one delivery attempt and are never
    persisted.
    """

    events: List[Event]
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def size(self) -> int:
        return len(self.events)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "events": [event.to_wire() for event in self.events],
            "timestamp": to_iso(self.timestamp),
            "size": self.size,
        }
