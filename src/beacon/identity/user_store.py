"""
Identity store for the telemetry SDK.

This module tracks the current user. Before ``identify`` is called the user is
anonymous: a locally synthesized identity with a random id. Anonymous
identities are also kept under an ``anonymous_<id>`` record so that a later
``alias`` can re-key their data under the identified user id.

All property changes are validated as a whole before anything is persisted,
and every change is persisted before the in-memory handle is replaced.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from ..core.constants import (
    ANONYMOUS_KEY_PREFIX,
    ANONYMOUS_RECORD_TTL,
    MAX_USER_PROPERTIES,
    USER_KEY,
    USER_PROPERTIES_KEY,
)
from ..core.exceptions import ResourceNotFoundError
from ..core.models import User, new_id, utcnow
from ..infrastructure.storage import KeyValueStore
from ..utils.validation import ensure_non_empty, ensure_valid_properties

logger = logging.getLogger(__name__)


def anonymous_key(anonymous_id: str) -> str:
    """Storage key of the aliasing record for an anonymous id."""
    return f"{ANONYMOUS_KEY_PREFIX}{anonymous_id}"


class UserStore:
    """
    Store for the current user identity.

    Attributes:
        storage (KeyValueStore): Shared key-value store
    """

    def __init__(self, storage: KeyValueStore, clock: Callable[[], datetime] = utcnow):
        """
        Initialize the identity store.

        Args:
            storage: Shared key-value store
            clock: Time source returning aware UTC datetimes
        """
        self.storage = storage
        self._clock = clock
        self._user: Optional[User] = None

    async def initialize(self) -> User:
        """
        Load the persisted user, or synthesize an anonymous one.

        Returns:
            User: The current user
        """
        data = await self.storage.get(USER_KEY)
        if data is not None:
            try:
                self._user = User.from_dict(data)
                logger.debug(f"Loaded user {self._user.id}")
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Discarding unreadable stored user: {str(e)}")
        if self._user is None:
            await self._create_anonymous_user()
        return self.get_current_user()

    async def _persist(self, user: User) -> None:
        await self.storage.set(USER_KEY, user.to_dict())
        await self.storage.set(USER_PROPERTIES_KEY, dict(user.properties))
        if user.anonymous:
            await self.storage.set(
                anonymous_key(user.id), user.to_dict(), ttl=ANONYMOUS_RECORD_TTL
            )

    async def _create_anonymous_user(self) -> User:
        now = self._clock()
        user = User(id=new_id(), created_at=now, last_seen_at=now, anonymous=True)
        await self._persist(user)
        self._user = user
        logger.info(f"Created anonymous user {user.id}")
        return user

    async def identify(self, user_id: str, properties: Optional[Mapping[str, Any]] = None) -> User:
        """
        Identify the current user.

        Properties are merged over the existing ones (new values win) and the
        record's id is replaced with ``user_id``.

        Args:
            user_id: Identified user id
            properties: Properties to merge

        Returns:
            User: The identified user

        Raises:
            ValidationError: If the id is empty or the merged properties are invalid
        """
        ensure_non_empty(user_id, "User id")
        incoming = ensure_valid_properties(properties, MAX_USER_PROPERTIES, "user properties")
        now = self._clock()

        if self._user is not None:
            merged = ensure_valid_properties(
                {**self._user.properties, **incoming}, MAX_USER_PROPERTIES, "user properties"
            )
            user = replace(
                self._user, id=user_id, properties=merged, last_seen_at=now, anonymous=False
            )
        else:
            user = User(id=user_id, created_at=now, last_seen_at=now, properties=incoming)

        await self._persist(user)
        self._user = user
        logger.info(f"Identified user {user_id}")
        return self.get_current_user()

    async def alias(self, anonymous_id: str, user_id: str) -> User:
        """
        Re-key an anonymous identity under an identified user id.

        Properties and creation time of the anonymous record are kept, and the
        anonymous record is deleted.

        Raises:
            ValidationError: If either id is empty
            ResourceNotFoundError: If no record exists for ``anonymous_id``
        """
        ensure_non_empty(anonymous_id, "Anonymous id")
        ensure_non_empty(user_id, "User id")

        data = await self.storage.get(anonymous_key(anonymous_id))
        if data is None:
            raise ResourceNotFoundError(f"Anonymous user not found: {anonymous_id}")

        user = replace(
            User.from_dict(data), id=user_id, anonymous=False, last_seen_at=self._clock()
        )
        await self._persist(user)
        await self.storage.remove(anonymous_key(anonymous_id))
        self._user = user
        logger.info(f"Aliased anonymous user {anonymous_id} to {user_id}")
        return self.get_current_user()

    async def update_properties(self, properties: Mapping[str, Any]) -> User:
        """
        Merge properties into the current user.

        Raises:
            ValidationError: If the merged properties are invalid
            ResourceNotFoundError: If there is no current user
        """
        if self._user is None:
            raise ResourceNotFoundError("No current user")
        incoming = ensure_valid_properties(properties, MAX_USER_PROPERTIES, "user properties")
        merged = ensure_valid_properties(
            {**self._user.properties, **incoming}, MAX_USER_PROPERTIES, "user properties"
        )
        user = replace(self._user, properties=merged, last_seen_at=self._clock())
        await self._persist(user)
        self._user = user
        return self.get_current_user()

    def get_current_user(self) -> Optional[User]:
        """Snapshot of the current user, or None before initialization."""
        return replace(self._user) if self._user is not None else None

    def get_user_id(self) -> Optional[str]:
        return self._user.id if self._user is not None else None

    def get_user_properties(self) -> Dict[str, Any]:
        return dict(self._user.properties) if self._user is not None else {}

    def is_identified(self) -> bool:
        return self._user is not None and not self._user.anonymous

    async def reset(self) -> User:
        """
        Forget the current user and start over as a fresh anonymous user.

        Returns:
            User: The new anonymous user
        """
        await self.storage.remove(USER_KEY)
        await self.storage.remove(USER_PROPERTIES_KEY)
        self._user = None
        return replace(await self._create_anonymous_user())
