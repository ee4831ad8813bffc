"""
User model for the telemetry SDK.

A user is either anonymous (synthesized locally before ``identify``) or
identified. The current user is replaced wholesale on identify, alias and
reset rather than mutated in place.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

from .base import from_iso, to_iso, validate_dataclass


@validate_dataclass
@dataclass
class User:
    """
    Current user identity.

    Attributes:
        id (str): User identifier
        properties (Dict[str, Any]): Primitive-valued custom properties
        created_at (datetime): When the identity was first created
        last_seen_at (datetime): Last identify/alias/update time
        anonymous (bool): True for locally synthesized identities
    """

    id: str
    created_at: datetime
    last_seen_at: datetime
    properties: Dict[str, Any] = field(default_factory=dict)
    anonymous: bool = False

    def __post_init__(self):
        self.properties = dict(self.properties)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "properties": dict(self.properties),
            "created_at": to_iso(self.created_at),
            "last_seen_at": to_iso(self.last_seen_at),
            "anonymous": self.anonymous,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            properties=dict(data.get("properties") or {}),
            created_at=from_iso(data["created_at"]),
            last_seen_at=from_iso(data.get("last_seen_at") or data["created_at"]),
            anonymous=bool(data.get("anonymous", False)),
        )
