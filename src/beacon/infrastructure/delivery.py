"""
Delivery client for the telemetry SDK.

This module submits batches to the collector over HTTP using aiohttp. It offers:
- Batch and single-event submission
- The analytics read endpoint
- A generic ``request`` with per-attempt timeout and exponential backoff

Delivery failures are never raised. Every call returns an ApiResponse whose
``error`` carries a NetworkError (transport failure) or an HttpError
(non-success status) once retries are exhausted.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote, urlencode

import aiohttp

from ..core.config import RetryConfig, SDKConfig
from ..core.constants import SDK_VERSION
from ..core.exceptions import DeliveryError, HttpError, NetworkError
from ..core.models import (
    ApiResponse,
    Batch,
    BatchOutcome,
    Event,
    ResponseMetadata,
    new_id,
    to_iso,
    utcnow,
)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class DeliveryClient:
    """
    HTTP client for the collector API.

    The aiohttp session is created lazily on first use and closed by
    ``close()`` unless it was supplied by the caller.

    Attributes:
        config (SDKConfig): SDK configuration (endpoint, key, timeouts, retry)
    """

    def __init__(
        self,
        config: SDKConfig,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the delivery client.

        Args:
            config: SDK configuration
            session: Existing aiohttp session to use (not closed by this client)
            sleep: Coroutine used for backoff delays, called with seconds
        """
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep

    async def __aenter__(self) -> "DeliveryClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    @property
    def api_root(self) -> str:
        return f"{self.config.base_url}/api/{quote(self.config.api_key, safe='')}"

    def build_headers(self, request_id: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-API-Key": self.config.api_key,
            REQUEST_ID_HEADER: request_id,
            "X-SDK-Version": SDK_VERSION,
        }

    def calculate_delay(self, attempt: int, retry_config: Optional[RetryConfig] = None) -> float:
        """
        Backoff delay after a failed attempt.

        Args:
            attempt: 0-indexed attempt that just failed
            retry_config: Policy to apply (defaults to the configured one)

        Returns:
            float: Delay in milliseconds, capped at ``max_delay``
        """
        retry = retry_config or self.config.retry_config
        return min(retry.initial_delay * retry.backoff_multiplier**attempt, retry.max_delay)

    @staticmethod
    def _parse_body(text: str) -> Any:
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return text

    @staticmethod
    def _parse_error_body(text: str) -> Any:
        try:
            return json.loads(text)
        except ValueError:
            return {"message": text}

    @staticmethod
    def _metadata(request_id: str) -> ResponseMetadata:
        return ResponseMetadata(timestamp=utcnow(), request_id=request_id, version=SDK_VERSION)

    def _success(self, text: str, request_id: str) -> ApiResponse:
        body = self._parse_body(text)
        metadata = self._metadata(request_id)
        # Unwrap the {success, data, error, metadata} envelope when present
        if isinstance(body, dict) and "success" in body:
            if not body["success"]:
                error = body.get("error")
                message = error.get("message") if isinstance(error, dict) else error
                return ApiResponse(
                    success=False,
                    error=DeliveryError(str(message or "Request rejected by collector")),
                    metadata=metadata,
                )
            return ApiResponse(success=True, data=body.get("data"), metadata=metadata)
        return ApiResponse(success=True, data=body, metadata=metadata)

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
        timeout: Optional[float] = None,
        retry_config: Optional[RetryConfig] = None,
    ) -> ApiResponse:
        """
        Perform an HTTP request with retries.

        A request fails when the transport raises (connection error, timeout)
        or the status is outside 2xx. Failures are retried up to
        ``max_retries`` times, sleeping ``calculate_delay(k)`` after attempt k.

        Args:
            method: HTTP method
            url: Absolute URL
            headers: Extra headers merged over the default ones
            body: JSON-serializable request body
            timeout: Per-attempt timeout in ms (defaults to ``request_timeout``)
            retry_config: Retry policy (defaults to the configured one)

        Returns:
            ApiResponse: Successful payload, or the terminal error
        """
        retry = retry_config or self.config.retry_config
        timeout_ms = timeout if timeout is not None else self.config.request_timeout
        request_id = new_id()
        request_headers = self.build_headers(request_id)
        request_headers.update(headers or {})
        payload = json.dumps(body) if body is not None else None
        client_timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
        session = self._get_session()

        last_error: Optional[BaseException] = None
        attempts = 0
        for attempt in range(retry.max_retries + 1):
            attempts = attempt + 1
            try:
                async with session.request(
                    method, url, headers=request_headers, data=payload, timeout=client_timeout
                ) as response:
                    text = await response.text()
                    response_id = response.headers.get(REQUEST_ID_HEADER) or request_id
                    if 200 <= response.status < 300:
                        logger.debug(f"{method} {url} succeeded on attempt {attempts}")
                        return self._success(text, response_id)
                    last_error = HttpError(
                        response.status,
                        response.reason or "",
                        self._parse_error_body(text),
                        attempts,
                    )
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = e

            logger.warning(f"{method} {url} failed on attempt {attempts}: {last_error}")
            if (
                isinstance(last_error, HttpError)
                and 400 <= last_error.status < 500
                and not retry.retry_on_client_errors
            ):
                break
            if attempt < retry.max_retries:
                await self._sleep(self.calculate_delay(attempt, retry) / 1000)

        if isinstance(last_error, HttpError):
            error: DeliveryError = last_error
        else:
            error = NetworkError(
                f"Request failed after {attempts} attempts: {last_error}",
                cause=last_error,
                attempts=attempts,
            )
        logger.error(f"{method} {url} gave up after {attempts} attempts: {error}")
        return ApiResponse(success=False, error=error, metadata=self._metadata(request_id))

    async def send_batch(self, batch: Batch) -> ApiResponse:
        """
        Submit a batch of events.

        Returns:
            ApiResponse: ``data`` is the collector's BatchOutcome on success
        """
        response = await self.request("POST", f"{self.api_root}/events/batch", body=batch.to_wire())
        if response.success:
            if isinstance(response.data, dict):
                response.data = BatchOutcome.from_dict(response.data)
            else:
                response.data = BatchOutcome(status="success", processed_count=batch.size)
        return response

    async def send_event(self, event: Event) -> ApiResponse:
        """Submit a single event."""
        return await self.request("POST", f"{self.api_root}/events", body=event.to_wire())

    async def get_analytics(self, start=None, end=None) -> ApiResponse:
        """
        Fetch server-side aggregates, optionally bounded by a time range.

        Args:
            start: Range start (datetime or ISO-8601 string)
            end: Range end (datetime or ISO-8601 string)
        """
        url = f"{self.api_root}/analytics"
        params = {}
        if start is not None:
            params["start"] = start if isinstance(start, str) else to_iso(start)
        if end is not None:
            params["end"] = end if isinstance(end, str) else to_iso(end)
        if params:
            url = f"{url}?{urlencode(params)}"
        return await self.request("GET", url)
