"""
Analytics read client.

Aggregation happens on the collector; this client only validates the
requested time range and returns the server's payload.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from .core.exceptions import DeliveryError, ValidationError
from .core.models import from_iso
from .infrastructure.delivery import DeliveryClient

logger = logging.getLogger(__name__)

TimeBound = Union[datetime, str]


def _parse_bound(value: Optional[TimeBound], name: str) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return from_iso(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name} time: {value!r}")


class AnalyticsClient:
    """Fetches server-side aggregates through the delivery client."""

    def __init__(self, delivery: DeliveryClient):
        self.delivery = delivery

    async def get_analytics(
        self, start: Optional[TimeBound] = None, end: Optional[TimeBound] = None
    ) -> Dict[str, Any]:
        """
        Fetch aggregates, optionally bounded by a time range.

        Args:
            start: Range start (datetime or ISO-8601 string)
            end: Range end (datetime or ISO-8601 string)

        Returns:
            Dict[str, Any]: The collector's aggregate payload

        Raises:
            ValidationError: If only one bound is given or start is after end
            DeliveryError: If the request ultimately fails
        """
        start_at = _parse_bound(start, "start")
        end_at = _parse_bound(end, "end")
        if (start_at is None) != (end_at is None):
            raise ValidationError("Both start and end must be provided together")
        if start_at is not None and start_at > end_at:
            raise ValidationError("start must not be after end")

        response = await self.delivery.get_analytics(start_at, end_at)
        if not response.success:
            logger.error(f"Failed to fetch analytics: {response.error}")
            raise response.error or DeliveryError("Failed to fetch analytics")
        return response.data if isinstance(response.data, dict) else {"data": response.data}
