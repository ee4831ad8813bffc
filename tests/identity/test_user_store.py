"""
Tests for the user identity store.
"""

import pytest

from beacon.core.constants import ANONYMOUS_RECORD_TTL, USER_KEY, USER_PROPERTIES_KEY
from beacon.core.exceptions import ResourceNotFoundError, ValidationError
from beacon.identity import UserStore, anonymous_key


@pytest.fixture
async def storage(memory_store):
    """Fixture providing an initialized in-memory store."""
    await memory_store.initialize()
    return memory_store


@pytest.fixture
async def users(storage, clock):
    """Fixture providing an initialized user store."""
    store = UserStore(storage, clock=clock.now)
    await store.initialize()
    return store


async def test_initialize_creates_anonymous_user(users, storage, clock):
    """Test that a fresh store synthesizes and persists an anonymous user."""
    user = users.get_current_user()

    assert user.anonymous
    assert user.created_at == clock.now()
    assert not users.is_identified()
    assert (await storage.get(USER_KEY))["id"] == user.id
    assert await storage.get(anonymous_key(user.id)) is not None


async def test_anonymous_record_expires(users, storage, clock):
    """Test that the aliasing record carries a TTL."""
    anonymous_id = users.get_user_id()

    clock.advance(ANONYMOUS_RECORD_TTL + 1)

    assert await storage.get(anonymous_key(anonymous_id)) is None


async def test_initialize_loads_stored_user(users, storage, clock):
    """Test that a second store instance picks up the persisted user."""
    await users.identify("user-1", {"plan": "pro"})

    reloaded = UserStore(storage, clock=clock.now)
    user = await reloaded.initialize()

    assert user.id == "user-1"
    assert user.properties == {"plan": "pro"}
    assert reloaded.is_identified()


async def test_initialize_replaces_corrupt_user(storage, clock):
    """Test that an unreadable stored user is replaced by an anonymous one."""
    await storage.set(USER_KEY, {"unexpected": True})

    store = UserStore(storage, clock=clock.now)
    user = await store.initialize()

    assert user.anonymous


async def test_identify_merges_properties(users, storage, clock):
    """Test that identify keeps created_at and merges properties."""
    created_at = users.get_current_user().created_at
    await users.update_properties({"plan": "free", "locale": "en"})
    clock.advance(5000)

    user = await users.identify("user-1", {"plan": "pro"})

    assert user.id == "user-1"
    assert not user.anonymous
    assert user.properties == {"plan": "pro", "locale": "en"}
    assert user.created_at == created_at
    assert user.last_seen_at == clock.now()
    assert await storage.get(USER_PROPERTIES_KEY) == {"plan": "pro", "locale": "en"}


async def test_identify_rejects_empty_id(users):
    """Test that an empty user id is rejected."""
    with pytest.raises(ValidationError):
        await users.identify("")


async def test_identify_is_all_or_nothing(users, storage):
    """Test that one invalid property rejects the whole update."""
    before = users.get_current_user()

    with pytest.raises(ValidationError):
        await users.identify("user-1", {"plan": "pro", "bad key": 1})

    assert users.get_current_user() == before
    assert (await storage.get(USER_KEY))["id"] == before.id


async def test_merged_properties_limit(users):
    """Test that the limit applies to the merged property map."""
    await users.update_properties({f"k{i}": i for i in range(40)})

    with pytest.raises(ValidationError):
        await users.update_properties({f"n{i}": i for i in range(11)})

    assert len(users.get_user_properties()) == 40


async def test_alias_moves_anonymous_record(users, storage, clock):
    """Test that alias re-keys the anonymous identity and deletes its record."""
    anonymous_id = users.get_user_id()
    await users.update_properties({"referrer": "ad"})
    created_at = users.get_current_user().created_at

    user = await users.alias(anonymous_id, "user-1")

    assert user.id == "user-1"
    assert not user.anonymous
    assert user.properties == {"referrer": "ad"}
    assert user.created_at == created_at
    assert await storage.get(anonymous_key(anonymous_id)) is None
    assert (await storage.get(USER_KEY))["id"] == "user-1"


async def test_alias_unknown_anonymous_id(users):
    """Test that aliasing a missing record raises ResourceNotFoundError."""
    with pytest.raises(ResourceNotFoundError):
        await users.alias("no-such-id", "user-1")


async def test_alias_requires_both_ids(users):
    """Test that alias validates its arguments."""
    with pytest.raises(ValidationError):
        await users.alias(users.get_user_id(), "")


async def test_snapshots_are_copies(users):
    """Test that callers cannot mutate the stored handle."""
    users.get_current_user().properties["leak"] = True
    users.get_user_properties()["leak"] = True

    assert users.get_user_properties() == {}


async def test_reset_creates_new_anonymous_user(users, storage):
    """Test that reset forgets the identified user."""
    await users.identify("user-1", {"plan": "pro"})

    user = await users.reset()

    assert user.anonymous
    assert user.id != "user-1"
    assert user.properties == {}
    assert (await storage.get(USER_KEY))["id"] == user.id


async def test_update_without_user(storage, clock):
    """Test that updating before initialization fails."""
    store = UserStore(storage, clock=clock.now)

    with pytest.raises(ResourceNotFoundError):
        await store.update_properties({"a": 1})
    assert store.get_user_id() is None
    assert store.get_user_properties() == {}
