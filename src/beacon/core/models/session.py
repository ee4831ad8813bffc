"""
Session models for the telemetry SDK.

This module defines the session record and the environment snapshots taken
when a session starts. The snapshots are closed, explicitly typed structures;
how they are collected is left to an environment probe.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .base import compact, from_iso, to_iso, validate_dataclass


@dataclass
class DeviceInfo:
    """Host device snapshot."""

    type: Optional[str] = None
    os: Optional[str] = None
    os_version: Optional[str] = None
    cpu_count: Optional[int] = None
    memory_total_mb: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeviceInfo":
        return cls(**{k: data.get(k) for k in cls.__dataclass_fields__})


@dataclass
class BrowserInfo:
    """Runtime (user agent) snapshot."""

    name: Optional[str] = None
    version: Optional[str] = None
    user_agent: Optional[str] = None
    language: Optional[str] = None
    timezone: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrowserInfo":
        return cls(**{k: data.get(k) for k in cls.__dataclass_fields__})


@dataclass
class LocationInfo:
    """Coarse location snapshot."""

    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    timezone: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocationInfo":
        return cls(**{k: data.get(k) for k in cls.__dataclass_fields__})


@validate_dataclass
@dataclass
class Session:
    """
    A visit by one user.

    A session with no ``end_time`` is active. ``duration`` is only computed
    when the session ends, as ``end_time - start_time`` in milliseconds.

    Attributes:
        id (str): Session identifier
        user_id (str): Owning user id
        start_time (datetime): Session start (UTC)
        end_time (Optional[datetime]): Session end, None while active
        duration (Optional[int]): Length in ms, set at end
        properties (Dict[str, Any]): Primitive-valued custom properties
        device (Optional[DeviceInfo]): Device snapshot at start
        browser (Optional[BrowserInfo]): Runtime snapshot at start
        location (Optional[LocationInfo]): Location snapshot at start
    """

    id: str
    user_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    device: Optional[DeviceInfo] = None
    browser: Optional[BrowserInfo] = None
    location: Optional[LocationInfo] = None

    def __post_init__(self):
        self.properties = dict(self.properties)

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "duration": self.duration,
            "properties": dict(self.properties),
            "device": compact(asdict(self.device)) if self.device else None,
            "browser": compact(asdict(self.browser)) if self.browser else None,
            "location": compact(asdict(self.location)) if self.location else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            start_time=from_iso(data["start_time"]),
            end_time=from_iso(data.get("end_time")),
            duration=data.get("duration"),
            properties=dict(data.get("properties") or {}),
            device=DeviceInfo.from_dict(data["device"]) if data.get("device") else None,
            browser=BrowserInfo.from_dict(data["browser"]) if data.get("browser") else None,
            location=LocationInfo.from_dict(data["location"]) if data.get("location") else None,
        )
