"""
Delivery response models.

The collector wraps every payload in a generic envelope
``{success, data?, error?, metadata: {timestamp, requestId, version}}``.
Delivery failures are carried in ``ApiResponse.error`` rather than raised.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..exceptions import BeaconError
from .base import to_iso

BATCH_STATUSES = ("success", "partial", "failed")


@dataclass
class ResponseMetadata:
    """Correlation data attached to every response."""

    timestamp: datetime
    request_id: str
    version: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": to_iso(self.timestamp),
            "requestId": self.request_id,
            "version": self.version,
        }


@dataclass
class BatchOutcome:
    """
    Collector verdict for one submitted batch.

    Attributes:
        status (str): One of "success", "partial" or "failed"
        processed_count (int): Events accepted by the collector
        failed_count (int): Events rejected by the collector
        errors (List[Any]): Per-event error descriptions, if any
    """

    status: str
    processed_count: int = 0
    failed_count: int = 0
    errors: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchOutcome":
        """Build from a response payload with camelCase or snake_case keys."""
        return cls(
            status=str(data.get("status", "success")),
            processed_count=int(data.get("processedCount", data.get("processed_count", 0)) or 0),
            failed_count=int(data.get("failedCount", data.get("failed_count", 0)) or 0),
            errors=list(data.get("errors") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "processedCount": self.processed_count,
            "failedCount": self.failed_count,
            "errors": list(self.errors),
        }


@dataclass
class ApiResponse:
    """
    Result of a delivery request.

    Attributes:
        success (bool): Whether the request ultimately succeeded
        data (Any): Unwrapped response payload on success
        error (Optional[BeaconError]): NetworkError or HttpError on failure
        metadata (Optional[ResponseMetadata]): Correlation data
    """

    success: bool
    data: Any = None
    error: Optional[BeaconError] = None
    metadata: Optional[ResponseMetadata] = None
