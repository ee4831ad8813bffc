"""
Shared test fixtures.

The network is never touched: delivery goes through FakeSession, a stand-in
for aiohttp.ClientSession that replays scripted responses or transport
errors. Backoff sleeps are recorded instead of awaited, and time-dependent
behavior runs on a manual clock.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

import pytest

from beacon.core.config import RetryConfig, SDKConfig, StorageConfig
from beacon.core.enums import StorageType
from beacon.core.models import BrowserInfo, DeviceInfo, LocationInfo
from beacon.infrastructure.delivery import DeliveryClient
from beacon.infrastructure.storage import KeyValueStore
from beacon.sdk import BeaconSDK

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def time(self) -> float:
        return self.current.timestamp()

    def advance(self, ms: float) -> None:
        self.current += timedelta(milliseconds=ms)


class FakeResponse:
    """Minimal aiohttp response usable as an async context manager."""

    def __init__(self, status: int = 200, body: Any = "", headers=None, reason: str = "OK"):
        self.status = status
        self.reason = reason
        self.headers = headers or {}
        self._body = body if isinstance(body, str) else json.dumps(body)

    async def text(self) -> str:
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _RaisingContext:
    def __init__(self, error: BaseException):
        self.error = error

    async def __aenter__(self):
        raise self.error

    async def __aexit__(self, exc_type, exc, tb):
        return False


class GatedResponse:
    """Response that stays in flight until its gate is set."""

    def __init__(self, gate: asyncio.Event, outcome: Any):
        self.gate = gate
        self.outcome = outcome

    async def __aenter__(self):
        await self.gate.wait()
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return await self.outcome.__aenter__()

    async def __aexit__(self, exc_type, exc, tb):
        return False


def ok_response(data: Any = None, headers=None) -> FakeResponse:
    if data is None:
        data = {"status": "success", "processedCount": 1, "failedCount": 0}
    return FakeResponse(200, {"success": True, "data": data}, headers=headers)


def error_response(status: int = 500, body: Any = None, reason: str = "Server Error") -> FakeResponse:
    return FakeResponse(status, body if body is not None else {"message": "boom"}, reason=reason)


class FakeSession:
    """
    aiohttp.ClientSession stand-in.

    Each request consumes the next scripted outcome: a FakeResponse or an
    exception raised on entering the response context. When the script runs
    out, requests succeed.
    """

    def __init__(self, outcomes: Optional[List[Any]] = None):
        self.outcomes = list(outcomes or [])
        self.requests: List[dict] = []
        self.closed = False

    def script(self, *outcomes: Any) -> None:
        self.outcomes.extend(outcomes)

    def request(self, method: str, url: str, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        outcome = self.outcomes.pop(0) if self.outcomes else ok_response()
        if isinstance(outcome, BaseException):
            return _RaisingContext(outcome)
        return outcome

    def sent_bodies(self) -> List[Any]:
        return [json.loads(r["data"]) for r in self.requests if r.get("data")]

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Replacement for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeProbe:
    """Deterministic environment probe."""

    def device_info(self):
        return DeviceInfo(type="desktop", os="Linux", os_version="6.1", cpu_count=8)

    def browser_info(self):
        return BrowserInfo(name="CPython", version="3.12.0", language="en_US", timezone="UTC")

    def location_info(self):
        return LocationInfo(country="NZ", timezone="Pacific/Auckland")


@pytest.fixture
def clock():
    """Fixture providing a manual clock."""
    return ManualClock()


@pytest.fixture
def retry_config():
    """Fixture providing a fast retry policy."""
    return RetryConfig(max_retries=3, initial_delay=100, max_delay=1000, backoff_multiplier=2)


@pytest.fixture
def config(retry_config):
    """Fixture providing an SDK configuration backed by memory storage."""
    return SDKConfig(
        api_key="test-key",
        base_url="https://collector.test",
        batch_size=3,
        flush_interval=60000,
        retry_config=retry_config,
        storage_config=StorageConfig(type=StorageType.MEMORY),
    )


@pytest.fixture
def memory_store(clock):
    """Fixture providing an uninitialized in-memory key-value store."""
    return KeyValueStore(StorageConfig(type=StorageType.MEMORY), clock=clock.time)


@pytest.fixture
def fake_session():
    """Fixture providing a scripted HTTP session."""
    return FakeSession()


@pytest.fixture
def sleep():
    """Fixture providing a recording sleep."""
    return RecordingSleep()


@pytest.fixture
def delivery(config, fake_session, sleep):
    """Fixture providing a delivery client wired to the fake session."""
    return DeliveryClient(config, session=fake_session, sleep=sleep)


@pytest.fixture
def sdk(config, delivery):
    """Fixture providing an uninitialized SDK with fake collaborators."""
    storage = KeyValueStore(config.storage_config)
    return BeaconSDK(config, storage=storage, delivery=delivery, probe=FakeProbe())


@pytest.fixture
def make_ok():
    """Fixture providing a builder for successful collector responses."""
    return ok_response


@pytest.fixture
def make_error():
    """Fixture providing a builder for failed collector responses."""
    return error_response


@pytest.fixture
def make_response():
    """Fixture providing a builder for arbitrary responses."""
    return FakeResponse


@pytest.fixture
def make_gated():
    """Fixture providing a builder for responses held until a gate opens."""
    return GatedResponse


@pytest.fixture
def probe():
    """Fixture providing a deterministic environment probe."""
    return FakeProbe()
