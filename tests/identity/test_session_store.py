"""
Tests for the session store.
"""

import pytest

from beacon.core.constants import SESSION_KEY, SESSION_PROPERTIES_KEY, SESSION_TIMEOUT_MS
from beacon.core.exceptions import ResourceNotFoundError, ValidationError
from beacon.identity import EnvironmentProbe, SessionStore


class BrokenProbe:
    def device_info(self):
        raise RuntimeError("no sensors")

    def browser_info(self):
        return None

    def location_info(self):
        return None


@pytest.fixture
async def storage(memory_store):
    """Fixture providing an initialized in-memory store."""
    await memory_store.initialize()
    return memory_store


@pytest.fixture
async def sessions(storage, probe, clock):
    """Fixture providing an initialized session store."""
    store = SessionStore(storage, probe=probe, clock=clock.now)
    await store.initialize("user-1")
    return store


async def test_initialize_starts_new_session(sessions, storage, clock):
    """Test that a fresh store starts and persists a session."""
    session = sessions.get_current_session()

    assert not sessions.resumed
    assert session.user_id == "user-1"
    assert session.start_time == clock.now()
    assert session.is_active
    assert session.device.os == "Linux"
    assert session.browser.name == "CPython"
    assert session.location.country == "NZ"
    assert (await storage.get(SESSION_KEY))["id"] == session.id


async def test_default_owner_is_anonymous(storage, clock):
    """Test the owner of a session started without a user id."""
    store = SessionStore(storage, clock=clock.now)

    session = await store.initialize()

    assert session.user_id == "anonymous"
    assert session.device is None


async def test_resumes_recent_session(sessions, storage, probe, clock):
    """Test that a stored session younger than the timeout is resumed."""
    session_id = sessions.get_session_id()
    clock.advance(SESSION_TIMEOUT_MS - 1)

    restarted = SessionStore(storage, probe=probe, clock=clock.now)
    session = await restarted.initialize("user-1")

    assert restarted.resumed
    assert session.id == session_id
    assert session.device == sessions.get_current_session().device


async def test_expired_session_is_replaced(sessions, storage, probe, clock):
    """Test that a stored session past the timeout yields a new session."""
    session_id = sessions.get_session_id()
    clock.advance(SESSION_TIMEOUT_MS)

    restarted = SessionStore(storage, probe=probe, clock=clock.now)
    session = await restarted.initialize("user-1")

    assert not restarted.resumed
    assert session.id != session_id


async def test_ended_session_is_not_resumed(sessions, storage, probe, clock):
    """Test that an ended session is never resumed."""
    session_id = sessions.get_session_id()
    await sessions.end_session()

    restarted = SessionStore(storage, probe=probe, clock=clock.now)
    session = await restarted.initialize("user-1")

    assert session.id != session_id


async def test_end_session_records_duration(sessions, storage, clock):
    """Test that ending a session persists end time and duration."""
    clock.advance(90000)

    ended = await sessions.end_session()

    assert ended.duration == 90000
    assert ended.end_time == clock.now()
    assert not sessions.is_session_active()
    assert sessions.get_session_duration() == 0
    assert (await storage.get(SESSION_KEY))["duration"] == 90000
    assert await sessions.end_session() is None


async def test_start_session_ends_previous(sessions, storage, clock):
    """Test that starting a session replaces the active one."""
    first = sessions.get_session_id()
    clock.advance(1000)

    session = await sessions.start_session("user-2", {"campaign": "spring"})

    assert session.id != first
    assert session.user_id == "user-2"
    assert await storage.get(SESSION_PROPERTIES_KEY) == {"campaign": "spring"}


async def test_session_duration(sessions, clock):
    """Test elapsed time of the active session."""
    clock.advance(2500)

    assert sessions.get_session_duration() == 2500


async def test_update_session_properties(sessions):
    """Test that session properties merge and respect the limit."""
    await sessions.update_session_properties({f"k{i}": i for i in range(20)})
    session = await sessions.update_session_properties({"k0": "changed"})

    assert session.properties["k0"] == "changed"
    with pytest.raises(ValidationError):
        await sessions.update_session_properties({f"n{i}": i for i in range(6)})
    assert len(sessions.get_current_session().properties) == 20


async def test_update_without_session(sessions):
    """Test that updating properties with no active session fails."""
    await sessions.end_session()

    with pytest.raises(ResourceNotFoundError):
        await sessions.update_session_properties({"a": 1})


async def test_probe_failure_leaves_snapshot_empty(storage, clock):
    """Test that a failing probe does not prevent a session from starting."""
    store = SessionStore(storage, probe=BrokenProbe(), clock=clock.now)

    session = await store.initialize()

    assert session.device is None
    assert store.is_session_active()


async def test_reset_removes_session_records(sessions, storage):
    """Test that reset ends the session and deletes its records."""
    await sessions.reset()

    assert sessions.get_current_session() is None
    assert await storage.get(SESSION_KEY) is None
    assert await storage.get(SESSION_PROPERTIES_KEY) is None


def test_fake_probe_satisfies_protocol(probe):
    """Test that probes are recognised structurally."""
    assert isinstance(probe, EnvironmentProbe)
    assert isinstance(BrokenProbe(), EnvironmentProbe)
