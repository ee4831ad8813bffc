"""
Session store for the telemetry SDK.

This module tracks the current session. A stored session is resumed at
initialization only while it is younger than the session timeout, measured
from its start time. Every mutation persists the full session record before
the in-memory handle changes.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from ..core.constants import (
    ANONYMOUS_SESSION_USER,
    MAX_SESSION_PROPERTIES,
    SESSION_KEY,
    SESSION_PROPERTIES_KEY,
    SESSION_TIMEOUT_MS,
)
from ..core.exceptions import ResourceNotFoundError
from ..core.models import Session, new_id, utcnow
from ..core.models.base import elapsed_ms
from ..infrastructure.storage import KeyValueStore
from ..utils.validation import ensure_valid_properties
from .probe import EnvironmentProbe

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Store for the current session.

    Attributes:
        storage (KeyValueStore): Shared key-value store
        probe (Optional[EnvironmentProbe]): Source of environment snapshots
        timeout_ms (int): Maximum age of a resumable session
        resumed (bool): Whether the last initialize resumed a stored session
    """

    def __init__(
        self,
        storage: KeyValueStore,
        probe: Optional[EnvironmentProbe] = None,
        clock: Callable[[], datetime] = utcnow,
        timeout_ms: int = SESSION_TIMEOUT_MS,
    ):
        self.storage = storage
        self.probe = probe
        self.timeout_ms = timeout_ms
        self.resumed = False
        self._clock = clock
        self._session: Optional[Session] = None

    async def initialize(self, user_id: Optional[str] = None) -> Session:
        """
        Resume the stored session if it is still valid, otherwise start a new one.

        Args:
            user_id: Owner of a newly created session

        Returns:
            Session: The active session
        """
        stored: Optional[Session] = None
        data = await self.storage.get(SESSION_KEY)
        if data is not None:
            try:
                stored = Session.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Discarding unreadable stored session: {str(e)}")

        if (
            stored is not None
            and stored.is_active
            and elapsed_ms(stored.start_time, self._clock()) < self.timeout_ms
        ):
            self._session = stored
            self.resumed = True
            logger.info(f"Resumed session {stored.id}")
            return self.get_current_session()

        if stored is not None:
            logger.info(f"Stored session {stored.id} expired, starting a new one")
        self.resumed = False
        return await self.start_session(user_id)

    def _snapshot(self, name: str) -> Any:
        if self.probe is None:
            return None
        try:
            return getattr(self.probe, name)()
        except Exception as e:
            logger.warning(f"Environment probe {name} failed: {str(e)}")
            return None

    async def _persist(self, session: Session) -> None:
        await self.storage.set(SESSION_KEY, session.to_dict())
        await self.storage.set(SESSION_PROPERTIES_KEY, dict(session.properties))

    async def start_session(
        self, user_id: Optional[str] = None, properties: Optional[Mapping[str, Any]] = None
    ) -> Session:
        """
        End any active session and start a new one.

        Args:
            user_id: Owner of the session (defaults to "anonymous")
            properties: Initial session properties

        Returns:
            Session: The new active session

        Raises:
            ValidationError: If the properties are invalid
        """
        props = ensure_valid_properties(properties, MAX_SESSION_PROPERTIES, "session properties")
        await self.end_session()

        session = Session(
            id=new_id(),
            user_id=user_id or ANONYMOUS_SESSION_USER,
            start_time=self._clock(),
            properties=props,
            device=self._snapshot("device_info"),
            browser=self._snapshot("browser_info"),
            location=self._snapshot("location_info"),
        )
        await self._persist(session)
        self._session = session
        logger.info(f"Started session {session.id}")
        return self.get_current_session()

    async def end_session(self) -> Optional[Session]:
        """
        End the active session. No-op when there is none.

        Returns:
            Optional[Session]: The ended session record
        """
        if self._session is None:
            return None
        now = self._clock()
        ended = replace(
            self._session, end_time=now, duration=elapsed_ms(self._session.start_time, now)
        )
        await self._persist(ended)
        self._session = None
        logger.info(f"Ended session {ended.id} after {ended.duration} ms")
        return ended

    async def update_session_properties(self, properties: Mapping[str, Any]) -> Session:
        """
        Merge properties into the active session.

        Raises:
            ValidationError: If the merged properties are invalid
            ResourceNotFoundError: If no session is active
        """
        if self._session is None:
            raise ResourceNotFoundError("No active session")
        incoming = ensure_valid_properties(properties, MAX_SESSION_PROPERTIES, "session properties")
        merged = ensure_valid_properties(
            {**self._session.properties, **incoming}, MAX_SESSION_PROPERTIES, "session properties"
        )
        session = replace(self._session, properties=merged)
        await self._persist(session)
        self._session = session
        return self.get_current_session()

    def get_current_session(self) -> Optional[Session]:
        return replace(self._session) if self._session is not None else None

    def get_session_id(self) -> Optional[str]:
        return self._session.id if self._session is not None else None

    def get_session_duration(self) -> int:
        """Elapsed ms since the active session started, 0 when none is active."""
        if self._session is None:
            return 0
        return elapsed_ms(self._session.start_time, self._clock())

    def is_session_active(self) -> bool:
        return self._session is not None

    async def reset(self) -> None:
        """End the active session and remove session records from storage."""
        await self.end_session()
        await self.storage.remove(SESSION_KEY)
        await self.storage.remove(SESSION_PROPERTIES_KEY)
        self._session = None
