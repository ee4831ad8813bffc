"""
Event factory for the telemetry SDK.

This module builds event records from caller-supplied fields plus the current
identity context. Every record snapshots the user and session ids at
construction time, so later identity changes never alter an existing event.

Validation happens before a record is returned; on failure a ValidationError
is raised and no record is produced. Page views and clicks are built as
specialized records and normalized into the uniform Event shape before they
reach the queue.
"""

import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from ..core.constants import CLICK_EVENT, MAX_EVENT_PROPERTIES, PAGE_VIEW_EVENT
from ..core.enums import LifecycleEvent
from ..core.exceptions import ValidationError
from ..core.models import ClickEvent, Event, PageView, new_id, utcnow
from ..identity import SessionStore, UserStore
from ..utils.validation import (
    TypeRule,
    ensure_non_empty,
    ensure_valid_name,
    ensure_valid_properties,
)

logger = logging.getLogger(__name__)

_number_rule = TypeRule((int, float), "must be a finite number")
_text_rule = TypeRule(str, "must be a string")


def _check_optional_text(value: Any, field_name: str) -> None:
    if value is not None and not _text_rule.validate(value):
        raise ValidationError(f"{field_name} {_text_rule.error_message}")


def _check_number(value: Any, field_name: str) -> None:
    if not _number_rule.validate(value) or not math.isfinite(value):
        raise ValidationError(f"{field_name} {_number_rule.error_message}")


class EventFactory:
    """
    Builds validated event records stamped with identity context.

    Attributes:
        user_store (UserStore): Source of the current user id
        session_store (SessionStore): Source of the current session id
    """

    def __init__(
        self,
        user_store: UserStore,
        session_store: SessionStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.user_store = user_store
        self.session_store = session_store
        self._clock = clock

    def _context(self) -> Dict[str, Optional[str]]:
        return {
            "user_id": self.user_store.get_user_id(),
            "session_id": self.session_store.get_session_id(),
        }

    def create_event(
        self,
        name: str,
        properties: Optional[Mapping[str, Any]] = None,
        category: Optional[str] = None,
        action: Optional[str] = None,
        label: Optional[str] = None,
        value: Optional[float] = None,
    ) -> Event:
        """
        Build a custom event.

        Args:
            name: Event name matching ``[A-Za-z0-9_-]+``
            properties: Up to 100 primitive-valued properties
            category: Optional category (same pattern as the name)
            action: Optional action (same pattern as the name)
            label: Optional free-form label
            value: Optional finite number

        Returns:
            Event: The new event

        Raises:
            ValidationError: If any field is invalid
        """
        ensure_valid_name(name, "name")
        if category is not None:
            ensure_valid_name(category, "category")
        if action is not None:
            ensure_valid_name(action, "action")
        _check_optional_text(label, "Event label")
        if value is not None:
            _check_number(value, "Event value")
        props = ensure_valid_properties(properties, MAX_EVENT_PROPERTIES, "event properties")

        event = Event(
            id=new_id(),
            name=name,
            timestamp=self._clock(),
            properties=props,
            category=category,
            action=action,
            label=label,
            value=value,
            **self._context(),
        )
        logger.debug(f"Created event {event.name} ({event.id})")
        return event

    def create_page_view(
        self,
        url: str,
        title: Optional[str] = None,
        referrer: Optional[str] = None,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> PageView:
        """
        Build a page view record.

        Raises:
            ValidationError: If the url is empty or any field is invalid
        """
        ensure_non_empty(url, "Page view url")
        _check_optional_text(title, "Page view title")
        _check_optional_text(referrer, "Page view referrer")
        props = ensure_valid_properties(properties, MAX_EVENT_PROPERTIES, "event properties")
        return PageView(
            id=new_id(),
            url=url,
            timestamp=self._clock(),
            title=title,
            referrer=referrer,
            properties=props,
            **self._context(),
        )

    def create_click_event(
        self,
        element: str,
        selector: Optional[str] = None,
        text: Optional[str] = None,
        properties: Optional[Mapping[str, Any]] = None,
        coordinates: Optional[Sequence[float]] = None,
    ) -> ClickEvent:
        """
        Build a click record.

        Args:
            element: Identifier of the clicked element
            selector: Selector used to locate the element
            text: Visible text of the element
            properties: Up to 100 primitive-valued properties
            coordinates: Optional (x, y) click position

        Raises:
            ValidationError: If the element is empty or any field is invalid
        """
        ensure_non_empty(element, "Click element")
        _check_optional_text(selector, "Click selector")
        _check_optional_text(text, "Click text")
        point: Optional[Tuple[float, float]] = None
        if coordinates is not None:
            if isinstance(coordinates, (str, bytes)) or len(coordinates) != 2:
                raise ValidationError("Click coordinates must be an (x, y) pair")
            for coordinate in coordinates:
                _check_number(coordinate, "Click coordinate")
            point = (coordinates[0], coordinates[1])
        props = ensure_valid_properties(properties, MAX_EVENT_PROPERTIES, "event properties")
        return ClickEvent(
            id=new_id(),
            element=element,
            timestamp=self._clock(),
            selector=selector,
            text=text,
            coordinates=point,
            properties=props,
            **self._context(),
        )

    def page_view_to_event(self, page_view: PageView) -> Event:
        """
        Normalize a page view into a uniform ``page_view`` event.

        The url, title and referrer are folded into the properties. A caller
        property with the same name wins. The event keeps the id, timestamp and
        identity snapshot of the page view.

        Raises:
            ValidationError: If the folded properties exceed the limit
        """
        folded = {"url": page_view.url, "title": page_view.title, "referrer": page_view.referrer}
        props = ensure_valid_properties(
            {**{k: v for k, v in folded.items() if v is not None}, **page_view.properties},
            MAX_EVENT_PROPERTIES,
            "event properties",
        )
        return Event(
            id=page_view.id,
            name=PAGE_VIEW_EVENT,
            timestamp=page_view.timestamp,
            properties=props,
            category="page",
            action="view",
            user_id=page_view.user_id,
            session_id=page_view.session_id,
        )

    def click_to_event(self, click: ClickEvent) -> Event:
        """
        Normalize a click into a uniform ``click`` event.

        The element, selector and text, plus ``x``/``y`` when coordinates are
        present, are folded into the properties. A caller property with the same
        name wins.

        Raises:
            ValidationError: If the folded properties exceed the limit
        """
        folded: Dict[str, Any] = {
            "element": click.element,
            "selector": click.selector,
            "text": click.text,
        }
        if click.coordinates is not None:
            folded["x"], folded["y"] = click.coordinates
        props = ensure_valid_properties(
            {**{k: v for k, v in folded.items() if v is not None}, **click.properties},
            MAX_EVENT_PROPERTIES,
            "event properties",
        )
        return Event(
            id=click.id,
            name=CLICK_EVENT,
            timestamp=click.timestamp,
            properties=props,
            category="interaction",
            action="click",
            user_id=click.user_id,
            session_id=click.session_id,
        )

    # Lifecycle events

    def create_session_start_event(self) -> Event:
        return self.create_event(
            LifecycleEvent.SESSION_START.value, category="session", action="start"
        )

    def create_session_end_event(self) -> Event:
        return self.create_event(
            LifecycleEvent.SESSION_END.value,
            properties={"duration": self.session_store.get_session_duration()},
            category="session",
            action="end",
        )

    def create_user_identify_event(
        self, user_id: str, properties: Optional[Mapping[str, Any]] = None
    ) -> Event:
        ensure_non_empty(user_id, "User id")
        return self.create_event(
            LifecycleEvent.USER_IDENTIFY.value,
            properties={**(properties or {}), "user_id": user_id},
            category="user",
            action="identify",
        )

    def create_user_alias_event(self, anonymous_id: str, user_id: str) -> Event:
        ensure_non_empty(anonymous_id, "Anonymous id")
        ensure_non_empty(user_id, "User id")
        return self.create_event(
            LifecycleEvent.USER_ALIAS.value,
            properties={"anonymous_id": anonymous_id, "user_id": user_id},
            category="user",
            action="alias",
        )

    def create_user_reset_event(self) -> Event:
        return self.create_event(LifecycleEvent.USER_RESET.value, category="user", action="reset")
