"""
Pipeline coordinator for the telemetry SDK.

This module provides BeaconSDK, the public facade of the event pipeline. It:
- Brings storage, user identity and session up in dependency order
- Builds events through the event factory and owns the in-memory queue
- Flushes the queue when it reaches the batch size and on a periodic timer
- Delivers batches through the delivery client, re-queueing them on failure
- Notifies registered listeners of queued events, errors and deliveries

Every public operation that fails is wrapped in an SDKError carrying a stable
code and the current user and session ids; the error is reported to ERROR
listeners and raised. A failed batch-size flush is raised from the tracking
call that triggered it. Timer-driven flush failures only reach listeners.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .analytics import AnalyticsClient
from .core.config import SDKConfig
from .core.enums import Notification, SDKState
from .core.exceptions import (
    DeliveryError,
    InvalidOperationError,
    NotInitializedError,
    SDKError,
)
from .core.models import Batch, BatchOutcome, Event, Session, User
from .identity import EnvironmentProbe, PlatformProbe, SessionStore, UserStore
from .infrastructure.delivery import DeliveryClient
from .infrastructure.storage import KeyValueStore
from .tracking import EventFactory

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

Listener = Callable[[Any], Any]


def configure_debug_logging() -> None:
    """Attach a DEBUG console handler to the SDK logger (once per process)."""
    root = logging.getLogger("beacon")
    if any(getattr(h, "_beacon_debug", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._beacon_debug = True
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)


class BeaconSDK:
    """
    Facade over the event pipeline.

    Collaborators can be injected for testing or to share resources; by
    default they are built from the configuration.

    Attributes:
        config (SDKConfig): SDK configuration
        storage (KeyValueStore): Shared local persistence
        delivery (DeliveryClient): Collector client
        user_store (UserStore): Current user identity
        session_store (SessionStore): Current session
        factory (EventFactory): Event construction
        analytics (AnalyticsClient): Analytics read client
        subscribers (Dict[Notification, List[Listener]]): Registered listeners
    """

    def __init__(
        self,
        config: SDKConfig,
        storage: Optional[KeyValueStore] = None,
        delivery: Optional[DeliveryClient] = None,
        probe: Optional[EnvironmentProbe] = None,
    ):
        """
        Initialize the SDK.

        Args:
            config: SDK configuration
            storage: Key-value store (defaults to the configured backend)
            delivery: Delivery client (defaults to an aiohttp-backed client)
            probe: Environment probe for session snapshots
        """
        self.config = config
        if config.debug:
            configure_debug_logging()

        self.storage = storage or KeyValueStore(config.storage_config)
        self.delivery = delivery or DeliveryClient(config)
        self.user_store = UserStore(self.storage)
        self.session_store = SessionStore(
            self.storage, probe if probe is not None else PlatformProbe()
        )
        self.factory = EventFactory(self.user_store, self.session_store)
        self.analytics = AnalyticsClient(self.delivery)

        self.subscribers: Dict[Notification, List[Listener]] = {
            kind: [] for kind in Notification
        }
        self._queue: List[Event] = []
        self._state = SDKState.UNINITIALIZED
        self._flush_task: Optional[asyncio.Task] = None
        self._closing = False

    async def __aenter__(self) -> "BeaconSDK":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.destroy()

    # State and accessors

    @property
    def state(self) -> SDKState:
        return self._state

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    def get_current_user(self) -> Optional[User]:
        return self.user_store.get_current_user()

    def get_current_session(self) -> Optional[Session]:
        return self.session_store.get_current_session()

    def _require_ready(self) -> None:
        if self._state is not SDKState.READY:
            raise NotInitializedError(f"SDK is not initialized (state: {self._state.value})")
        if self._closing:
            raise NotInitializedError("SDK is shutting down")

    # Listeners

    def subscribe(self, kind: Notification, handler: Listener) -> None:
        """
        Register a listener.

        EVENT listeners receive each queued Event, ERROR listeners the SDKError,
        SUCCESS listeners a message (initialize) or the BatchOutcome (flush).
        Handlers may be plain functions or coroutines.
        """
        logger.debug(f"Adding {kind.value} listener")
        self.subscribers[kind].append(handler)

    def unsubscribe(self, kind: Notification, handler: Listener) -> bool:
        """
        Remove a listener.

        Returns:
            True if handler was removed, False otherwise
        """
        if handler in self.subscribers[kind]:
            self.subscribers[kind].remove(handler)
            return True
        return False

    def clear_subscribers(self, kind: Optional[Notification] = None) -> None:
        if kind:
            self.subscribers[kind] = []
        else:
            self.subscribers = {k: [] for k in Notification}

    async def _notify(self, kind: Notification, payload: Any) -> None:
        for handler in list(self.subscribers[kind]):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in {kind.value} listener: {str(e)}")

    async def _fail(self, code: str, message: str, cause: BaseException) -> SDKError:
        """Wrap a failure with identity context and report it to ERROR listeners."""
        error = SDKError(
            code,
            f"{message}: {cause}",
            cause=cause,
            user_id=self.user_store.get_user_id(),
            session_id=self.session_store.get_session_id(),
        )
        logger.error(f"{code}: {error.message}")
        await self._notify(Notification.ERROR, error)
        return error

    # Lifecycle

    async def initialize(self) -> None:
        """
        Bring the pipeline to the ready state.

        Storage, user identity and session are initialized in that order, then
        the periodic flush timer starts.

        Raises:
            InvalidOperationError: If the SDK was destroyed or is initializing
            SDKError: INITIALIZATION_ERROR if a component fails to start
        """
        if self._state is SDKState.DESTROYED:
            raise InvalidOperationError("A destroyed SDK instance cannot be reused")
        if self._state is SDKState.INITIALIZING:
            raise InvalidOperationError("SDK initialization already in progress")
        if self._state is SDKState.READY:
            logger.debug("SDK already initialized")
            return

        self._state = SDKState.INITIALIZING
        try:
            await self.storage.initialize()
            user = await self.user_store.initialize()
            if self.config.user_properties:
                user = await self.user_store.update_properties(self.config.user_properties)
            await self.session_store.initialize(user.id)
        except Exception as e:
            self._state = SDKState.UNINITIALIZED
            raise (await self._fail("INITIALIZATION_ERROR", "Failed to initialize SDK", e)) from e

        self._start_flush_timer()
        self._state = SDKState.READY
        logger.info(f"SDK initialized ({self.config.environment})")

        if self.config.auto_track_sessions and not self.session_store.resumed:
            try:
                await self._enqueue(self.factory.create_session_start_event())
            except SDKError:
                pass  # reported to listeners, the event stays queued
        if self.config.auto_track_page_views:
            logger.debug("Page view auto-tracking enabled")
        await self._notify(Notification.SUCCESS, "SDK initialized")

    def _start_flush_timer(self) -> None:
        async def _timer():
            interval = self.config.flush_interval / 1000
            while True:
                await asyncio.sleep(interval)
                try:
                    await self.flush()
                except SDKError:
                    pass  # already logged and reported to listeners
                except Exception as e:
                    logger.error(f"Periodic flush failed: {str(e)}")

        self._flush_task = asyncio.create_task(_timer())

    async def _stop_flush_timer(self) -> None:
        task, self._flush_task = self._flush_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def destroy(self) -> None:
        """
        Shut the pipeline down.

        The timer stops first, then the queue is flushed one last time and all
        resources are released. The SDK ends up destroyed even if the final
        flush fails; that failure is then raised. Operations started while the
        final flush is in flight fail with NotInitializedError.

        Raises:
            SDKError: DESTROY_ERROR if the final flush or teardown failed
        """
        if self._state is SDKState.DESTROYED:
            return

        self._closing = True
        await self._stop_flush_timer()
        failure: Optional[BaseException] = None
        if self._state is SDKState.READY:
            try:
                await self._flush()
            except SDKError as e:
                failure = e

        error: Optional[SDKError] = None
        if failure is not None:
            error = await self._fail("DESTROY_ERROR", "Final flush failed", failure)

        self.clear_subscribers()
        self._queue = []
        try:
            await self.delivery.close()
            await self.storage.close()
        except Exception as e:
            logger.error(f"Failed to release SDK resources: {str(e)}")
            if error is None:
                error = SDKError(
                    "DESTROY_ERROR",
                    f"Failed to release SDK resources: {e}",
                    cause=e,
                    user_id=self.user_store.get_user_id(),
                    session_id=self.session_store.get_session_id(),
                )
        finally:
            self._state = SDKState.DESTROYED
            logger.info("SDK destroyed")

        if error is not None:
            raise error

    # Tracking

    async def _enqueue(self, event: Event) -> None:
        self._queue.append(event)
        logger.debug(f"Queued {event.name} ({len(self._queue)}/{self.config.batch_size})")
        await self._notify(Notification.EVENT, event)
        if len(self._queue) >= self.config.batch_size:
            await self._flush()

    async def track(
        self,
        name: str,
        properties: Optional[Mapping[str, Any]] = None,
        category: Optional[str] = None,
        action: Optional[str] = None,
        label: Optional[str] = None,
        value: Optional[float] = None,
    ) -> Event:
        """
        Track a custom event.

        Returns:
            Event: The queued event

        Raises:
            NotInitializedError: If the SDK is not ready
            SDKError: TRACKING_ERROR if the event is invalid or the flush it
                triggered failed
        """
        self._require_ready()
        try:
            event = self.factory.create_event(name, properties, category, action, label, value)
            await self._enqueue(event)
        except Exception as e:
            raise (await self._fail("TRACKING_ERROR", "Failed to track event", e)) from e
        return event

    async def track_page_view(
        self,
        url: str,
        title: Optional[str] = None,
        referrer: Optional[str] = None,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> Event:
        """
        Track a page view, queued as a uniform ``page_view`` event.

        Raises:
            NotInitializedError: If the SDK is not ready
            SDKError: PAGE_VIEW_ERROR if the page view is invalid or the flush
                it triggered failed
        """
        self._require_ready()
        try:
            page_view = self.factory.create_page_view(url, title, referrer, properties)
            event = self.factory.page_view_to_event(page_view)
            await self._enqueue(event)
        except Exception as e:
            raise (await self._fail("PAGE_VIEW_ERROR", "Failed to track page view", e)) from e
        return event

    async def track_click(
        self,
        element: str,
        selector: Optional[str] = None,
        text: Optional[str] = None,
        properties: Optional[Mapping[str, Any]] = None,
        coordinates: Optional[Sequence[float]] = None,
    ) -> Event:
        """
        Track a click, queued as a uniform ``click`` event.

        Raises:
            NotInitializedError: If the SDK is not ready
            SDKError: CLICK_ERROR if the click is invalid or the flush it
                triggered failed
        """
        self._require_ready()
        try:
            click = self.factory.create_click_event(element, selector, text, properties, coordinates)
            event = self.factory.click_to_event(click)
            await self._enqueue(event)
        except Exception as e:
            raise (await self._fail("CLICK_ERROR", "Failed to track click", e)) from e
        return event

    async def track_event(self, event: Event) -> Event:
        """Queue a prebuilt event, such as one from a lifecycle constructor."""
        self._require_ready()
        try:
            await self._enqueue(event)
        except Exception as e:
            raise (await self._fail("TRACKING_ERROR", "Failed to track event", e)) from e
        return event

    # Identity

    async def identify(self, user_id: str, properties: Optional[Mapping[str, Any]] = None) -> User:
        """
        Identify the current user. No event is queued.

        Raises:
            SDKError: USER_IDENTIFICATION_ERROR on invalid input or storage failure
        """
        self._require_ready()
        try:
            return await self.user_store.identify(user_id, properties)
        except Exception as e:
            raise (
                await self._fail("USER_IDENTIFICATION_ERROR", "Failed to identify user", e)
            ) from e

    async def alias(self, anonymous_id: str, user_id: str) -> User:
        """
        Re-key an anonymous identity under ``user_id``. No event is queued.

        Raises:
            SDKError: USER_ALIAS_ERROR if the anonymous record is missing or
                the input is invalid
        """
        self._require_ready()
        try:
            return await self.user_store.alias(anonymous_id, user_id)
        except Exception as e:
            raise (await self._fail("USER_ALIAS_ERROR", "Failed to alias user", e)) from e

    async def update_user_properties(self, properties: Mapping[str, Any]) -> User:
        self._require_ready()
        try:
            return await self.user_store.update_properties(properties)
        except Exception as e:
            raise (
                await self._fail("USER_UPDATE_ERROR", "Failed to update user properties", e)
            ) from e

    async def reset(self) -> None:
        """
        Forget the current user and session and discard the queue.

        Unflushed events are lost. A fresh anonymous user and a new session
        are started.

        Raises:
            SDKError: RESET_ERROR if storage fails
        """
        self._require_ready()
        discarded = len(self._queue)
        self._queue = []
        try:
            user = await self.user_store.reset()
            await self.session_store.reset()
            await self.session_store.start_session(user.id)
        except Exception as e:
            raise (await self._fail("RESET_ERROR", "Failed to reset SDK", e)) from e
        logger.info(f"SDK reset, discarded {discarded} queued events")

    # Delivery

    async def flush(self) -> Optional[BatchOutcome]:
        """
        Deliver every queued event as one batch.

        The queue is swapped for an empty one before any suspension, so events
        queued during delivery land in the new queue. On failure the drained
        events are put back at the front of the queue in their original order.

        Returns:
            Optional[BatchOutcome]: The collector's verdict, None if the queue
                was empty

        Raises:
            NotInitializedError: If the SDK is not ready
            SDKError: FLUSH_ERROR if delivery failed
        """
        self._require_ready()
        return await self._flush()

    async def _flush(self) -> Optional[BatchOutcome]:
        if not self._queue:
            return None

        events, self._queue = self._queue, []
        batch = Batch(events=events)
        logger.debug(f"Flushing batch {batch.id} with {batch.size} events")
        try:
            response = await self.delivery.send_batch(batch)
            if not response.success:
                raise response.error or DeliveryError("Batch delivery failed")
        except asyncio.CancelledError:
            self._queue[:0] = events
            raise
        except Exception as e:
            self._queue[:0] = events
            raise (
                await self._fail("FLUSH_ERROR", f"Failed to flush {len(events)} events", e)
            ) from e

        outcome = response.data
        logger.info(f"Delivered batch {batch.id} ({batch.size} events)")
        await self._notify(Notification.SUCCESS, outcome)
        return outcome

    async def get_analytics(self, start=None, end=None) -> Dict[str, Any]:
        """
        Fetch server-side aggregates.

        Raises:
            SDKError: ANALYTICS_ERROR if the range is invalid or the request fails
        """
        self._require_ready()
        try:
            return await self.analytics.get_analytics(start, end)
        except Exception as e:
            raise (await self._fail("ANALYTICS_ERROR", "Failed to fetch analytics", e)) from e
