"""
Tests for the pipeline coordinator.
"""

import asyncio

import pytest

from beacon.core.config import RetryConfig
from beacon.core.enums import Notification, SDKState
from beacon.core.exceptions import (
    InvalidOperationError,
    NotInitializedError,
    SDKError,
    ValidationError,
)
from beacon.infrastructure.storage import KeyValueStore, MemoryStoragePlugin
from beacon.sdk import BeaconSDK


class BrokenPlugin(MemoryStoragePlugin):
    async def set_item(self, key, value):
        raise OSError("disk full")


@pytest.fixture
async def ready_sdk(sdk, config):
    """Fixture providing an initialized SDK without session auto-tracking."""
    config.auto_track_sessions = False
    await sdk.initialize()
    yield sdk
    await sdk.destroy()


def event_names(body):
    return [event["name"] for event in body["events"]]


async def test_operations_require_initialize(sdk):
    """Test that tracking and flushing fail before initialize."""
    with pytest.raises(NotInitializedError):
        await sdk.track("early")
    with pytest.raises(NotInitializedError):
        await sdk.flush()


async def test_initialize(sdk):
    """Test that initialize brings identity up and tracks the session start."""
    messages = []
    sdk.subscribe(Notification.SUCCESS, messages.append)

    await sdk.initialize()
    try:
        assert sdk.state is SDKState.READY
        assert sdk.get_current_user().anonymous
        assert sdk.get_current_session().user_id == sdk.get_current_user().id
        assert sdk.queue_size == 1
        assert messages == ["SDK initialized"]

        await sdk.initialize()
        assert sdk.queue_size == 1
    finally:
        await sdk.destroy()


async def test_initialize_applies_user_properties(sdk, config):
    """Test that configured user properties are merged at start-up."""
    config.auto_track_sessions = False
    config.user_properties = {"tier": "gold"}

    async with sdk:
        assert sdk.get_current_user().properties == {"tier": "gold"}


async def test_initialization_failure(config, delivery, probe):
    """Test that a storage failure leaves the SDK uninitialized."""
    storage = KeyValueStore(config.storage_config, plugin=BrokenPlugin())
    sdk = BeaconSDK(config, storage=storage, delivery=delivery, probe=probe)
    errors = []
    sdk.subscribe(Notification.ERROR, errors.append)

    with pytest.raises(SDKError) as exc_info:
        await sdk.initialize()

    assert exc_info.value.code == "INITIALIZATION_ERROR"
    assert sdk.state is SDKState.UNINITIALIZED
    assert errors == [exc_info.value]


async def test_batch_size_triggers_one_flush(ready_sdk, fake_session):
    """Test that reaching the batch size flushes exactly once."""
    for name in ("a", "b", "c"):
        await ready_sdk.track(name)

    assert len(fake_session.requests) == 1
    assert event_names(fake_session.sent_bodies()[0]) == ["a", "b", "c"]
    assert ready_sdk.queue_size == 0


async def test_event_payload_carries_identity(ready_sdk, fake_session):
    """Test that delivered events carry the user and session ids."""
    event = await ready_sdk.track("signup", {"plan": "pro"}, "account", "create", "hero", 1)
    await ready_sdk.flush()

    wire = fake_session.sent_bodies()[0]["events"][0]
    assert wire["id"] == event.id
    assert wire["userId"] == ready_sdk.get_current_user().id
    assert wire["sessionId"] == ready_sdk.get_current_session().id
    assert wire["properties"] == {"plan": "pro"}
    assert wire["category"] == "account"


async def test_failed_flush_requeues_in_order(ready_sdk, fake_session, make_error):
    """Test that a failed batch is retried later without loss or duplication."""
    fake_session.script(*[make_error(503) for _ in range(4)])
    await ready_sdk.track("a")
    await ready_sdk.track("b")

    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.flush()

    assert exc_info.value.code == "FLUSH_ERROR"
    assert ready_sdk.queue_size == 2

    await ready_sdk.track("c")

    bodies = fake_session.sent_bodies()
    assert len(bodies) == 5
    assert event_names(bodies[-1]) == ["a", "b", "c"]
    assert ready_sdk.queue_size == 0


async def test_auto_flush_failure_raises_from_track(ready_sdk, fake_session, make_error):
    """Test that a failed batch-size flush surfaces from the tracking call."""
    errors = []
    ready_sdk.subscribe(Notification.ERROR, errors.append)
    fake_session.script(*[make_error(500) for _ in range(4)])
    await ready_sdk.track("a")
    await ready_sdk.track("b")

    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.track("c")

    assert exc_info.value.code == "TRACKING_ERROR"
    assert isinstance(exc_info.value.cause, SDKError)
    assert exc_info.value.cause.code == "FLUSH_ERROR"
    assert ready_sdk.queue_size == 3
    assert [e.code for e in errors] == ["FLUSH_ERROR", "TRACKING_ERROR"]
    assert errors[0].user_id == ready_sdk.get_current_user().id
    assert errors[0].session_id == ready_sdk.get_current_session().id


async def test_auto_flush_failure_codes_per_operation(ready_sdk, fake_session, make_error):
    """Test that page views and clicks report a triggered flush failure under their own code."""
    fake_session.script(*[make_error(500) for _ in range(8)])
    await ready_sdk.track("a")
    await ready_sdk.track("b")

    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.track_page_view("https://example.com/")
    assert exc_info.value.code == "PAGE_VIEW_ERROR"

    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.track_click("cta")
    assert exc_info.value.code == "CLICK_ERROR"
    assert ready_sdk.queue_size == 4


async def test_overlapping_flushes_keep_every_event_once(
    ready_sdk, config, fake_session, make_error, make_gated
):
    """Test that a flush failing while another succeeded loses and repeats nothing."""
    config.retry_config = RetryConfig(max_retries=0)
    gate = asyncio.Event()
    fake_session.script(make_gated(gate, make_error(503)))
    await ready_sdk.track("a")
    await ready_sdk.track("b")

    first = asyncio.create_task(ready_sdk.flush())
    for _ in range(50):
        if fake_session.requests:
            break
        await asyncio.sleep(0.01)
    assert ready_sdk.queue_size == 0

    await ready_sdk.track("c")
    await ready_sdk.flush()

    gate.set()
    with pytest.raises(SDKError) as exc_info:
        await first
    assert exc_info.value.code == "FLUSH_ERROR"
    assert ready_sdk.queue_size == 2

    await ready_sdk.flush()

    bodies = fake_session.sent_bodies()
    assert [event_names(body) for body in bodies] == [["a", "b"], ["c"], ["a", "b"]]
    delivered = [name for body in bodies[1:] for name in event_names(body)]
    assert sorted(delivered) == ["a", "b", "c"]
    assert ready_sdk.queue_size == 0



async def test_flush_empty_queue(ready_sdk, fake_session):
    """Test that flushing an empty queue sends nothing."""
    assert await ready_sdk.flush() is None
    assert fake_session.requests == []


async def test_flush_notifies_outcome(ready_sdk, make_ok, fake_session):
    """Test that SUCCESS listeners receive the batch outcome."""
    outcomes = []
    ready_sdk.subscribe(Notification.SUCCESS, outcomes.append)
    fake_session.script(make_ok({"status": "success", "processedCount": 1, "failedCount": 0}))
    await ready_sdk.track("a")

    outcome = await ready_sdk.flush()

    assert outcome.processed_count == 1
    assert outcomes == [outcome]


async def test_invalid_event_is_wrapped(ready_sdk):
    """Test that validation failures surface as TRACKING_ERROR."""
    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.track("not valid")

    assert exc_info.value.code == "TRACKING_ERROR"
    assert isinstance(exc_info.value.cause, ValidationError)
    assert ready_sdk.queue_size == 0


async def test_page_view_and_click(ready_sdk):
    """Test that page views and clicks are queued as uniform events."""
    page_view = await ready_sdk.track_page_view("https://example.com", "Home")
    click = await ready_sdk.track_click("cta", coordinates=(1, 2))

    assert page_view.name == "page_view"
    assert click.properties == {"element": "cta", "x": 1, "y": 2}
    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.track_page_view("")
    assert exc_info.value.code == "PAGE_VIEW_ERROR"
    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.track_click("")
    assert exc_info.value.code == "CLICK_ERROR"


async def test_event_listeners(ready_sdk):
    """Test sync, async and failing EVENT listeners."""
    seen = []

    async def async_listener(event):
        seen.append(("async", event.name))

    def broken_listener(event):
        raise RuntimeError("listener bug")

    ready_sdk.subscribe(Notification.EVENT, broken_listener)
    ready_sdk.subscribe(Notification.EVENT, lambda event: seen.append(("sync", event.name)))
    ready_sdk.subscribe(Notification.EVENT, async_listener)

    await ready_sdk.track("a")

    assert seen == [("sync", "a"), ("async", "a")]
    assert ready_sdk.unsubscribe(Notification.EVENT, async_listener)
    assert not ready_sdk.unsubscribe(Notification.EVENT, async_listener)


async def test_identify_and_alias(ready_sdk):
    """Test identity operations through the facade."""
    anonymous_id = ready_sdk.get_current_user().id

    user = await ready_sdk.alias(anonymous_id, "user-1")
    assert user.id == "user-1"

    user = await ready_sdk.identify("user-1", {"plan": "pro"})
    assert user.properties == {"plan": "pro"}
    assert ready_sdk.queue_size == 0

    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.alias("missing", "user-1")
    assert exc_info.value.code == "USER_ALIAS_ERROR"

    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.identify("")
    assert exc_info.value.code == "USER_IDENTIFICATION_ERROR"

    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.update_user_properties({"nested": {"a": 1}})
    assert exc_info.value.code == "USER_UPDATE_ERROR"


async def test_reset_discards_queue(ready_sdk, fake_session):
    """Test that reset drops queued events and starts a fresh identity."""
    await ready_sdk.identify("user-1")
    session_id = ready_sdk.get_current_session().id
    await ready_sdk.track("a")

    await ready_sdk.reset()

    assert ready_sdk.queue_size == 0
    user = ready_sdk.get_current_user()
    assert user.anonymous
    assert user.id != "user-1"
    session = ready_sdk.get_current_session()
    assert session.id != session_id
    assert session.user_id == user.id

    await ready_sdk.flush()
    assert fake_session.requests == []


async def test_destroy_flushes_and_is_final(sdk, fake_session):
    """Test that destroy delivers pending events and cannot be undone."""
    await sdk.initialize()
    await sdk.track("last")

    await sdk.destroy()

    assert sdk.state is SDKState.DESTROYED
    assert event_names(fake_session.sent_bodies()[0]) == ["session_start", "last"]
    with pytest.raises(InvalidOperationError):
        await sdk.initialize()
    with pytest.raises(NotInitializedError):
        await sdk.track("late")
    await sdk.destroy()


async def test_destroy_reports_failed_final_flush(sdk, fake_session, make_error):
    """Test that destroy completes and then raises when the final flush fails."""
    await sdk.initialize()
    fake_session.script(*[make_error(500) for _ in range(4)])

    with pytest.raises(SDKError) as exc_info:
        await sdk.destroy()

    assert exc_info.value.code == "DESTROY_ERROR"
    assert sdk.state is SDKState.DESTROYED
    assert sdk.queue_size == 0


async def test_periodic_flush(sdk, config, fake_session):
    """Test that the timer flushes the queue without reaching the batch size."""
    config.flush_interval = 10
    await sdk.initialize()
    try:
        for _ in range(50):
            if fake_session.requests:
                break
            await asyncio.sleep(0.01)

        assert event_names(fake_session.sent_bodies()[0]) == ["session_start"]
        assert sdk.queue_size == 0
    finally:
        await sdk.destroy()


async def test_periodic_flush_failure_is_reported(sdk, config, fake_session, make_error):
    """Test that a timer flush failure reaches listeners and the timer keeps running."""
    config.flush_interval = 10
    config.auto_track_sessions = False
    config.retry_config = RetryConfig(max_retries=0)
    errors = []
    sdk.subscribe(Notification.ERROR, errors.append)
    fake_session.script(make_error(500))
    await sdk.initialize()
    try:
        await sdk.track("a")
        for _ in range(100):
            if len(fake_session.requests) >= 2 and sdk.queue_size == 0:
                break
            await asyncio.sleep(0.01)

        assert [e.code for e in errors] == ["FLUSH_ERROR"]
        assert [event_names(body) for body in fake_session.sent_bodies()] == [["a"], ["a"]]
        assert sdk.queue_size == 0
        assert sdk.state is SDKState.READY
    finally:
        await sdk.destroy()


async def test_calls_during_final_flush_are_rejected(ready_sdk, fake_session, make_ok, make_gated):
    """Test that tracking while destroy is flushing fails instead of being dropped."""
    gate = asyncio.Event()
    fake_session.script(make_gated(gate, make_ok()))
    await ready_sdk.track("a")

    closing = asyncio.create_task(ready_sdk.destroy())
    for _ in range(50):
        if fake_session.requests:
            break
        await asyncio.sleep(0.01)

    with pytest.raises(NotInitializedError):
        await ready_sdk.track("late")
    with pytest.raises(NotInitializedError):
        await ready_sdk.flush()

    gate.set()
    await closing

    assert ready_sdk.state is SDKState.DESTROYED
    assert [event_names(body) for body in fake_session.sent_bodies()] == [["a"]]



async def test_get_analytics(ready_sdk, fake_session, make_ok):
    """Test analytics through the facade."""
    fake_session.script(make_ok({"events": 3}))

    assert await ready_sdk.get_analytics() == {"events": 3}
    with pytest.raises(SDKError) as exc_info:
        await ready_sdk.get_analytics("2024-01-01T00:00:00Z")
    assert exc_info.value.code == "ANALYTICS_ERROR"
