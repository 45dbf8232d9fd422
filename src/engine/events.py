"""
Stackrift Event Bus

Synchronous publish/subscribe. Every publish runs the subscriber categories
in a fixed order:
1. DIRECT - handlers subscribed by name, in registration order
2. KEYWORD - the keyword fan-out hook, if installed
"""

from enum import Enum
from typing import Callable, Optional
import logging

from .types import Event, EventType, EventResult

logger = logging.getLogger(__name__)


EventHandler = Callable[[Event], Optional[EventResult]]


class SubscriberCategory(Enum):
    DIRECT = 1
    KEYWORD = 2


# Publish order
CATEGORY_ORDER = (SubscriberCategory.DIRECT, SubscriberCategory.KEYWORD)


class EventBus:
    """Dispatches events to subscribers and the keyword fan-out."""

    def __init__(self):
        self._subscribers: dict[EventType, list[EventHandler]] = {}
        self._fanout: Optional[EventHandler] = None
        self._timestamp = 0

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        self._subscribers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def install_fanout(self, hook: Optional[EventHandler]) -> None:
        """Install (or clear, with None) the single keyword fan-out hook."""
        self._fanout = hook

    def handlers_for(self, category: SubscriberCategory, event_type: EventType) -> list[EventHandler]:
        if category == SubscriberCategory.DIRECT:
            # Copy so handlers may unsubscribe themselves mid-publish
            return list(self._subscribers.get(event_type, []))
        return [self._fanout] if self._fanout else []

    def publish(self, event_type: EventType, payload: Optional[dict] = None) -> EventResult:
        """
        Publish an event.

        Returns SUPPRESSED if any handler suppressed the default behavior.
        A handler that raises is logged; its siblings still run.
        """
        self._timestamp += 1
        event = Event(type=event_type, payload=payload or {}, timestamp=self._timestamp)
        result = EventResult.UNHANDLED

        for category in CATEGORY_ORDER:
            for handler in self.handlers_for(category, event_type):
                try:
                    outcome = handler(event)
                except Exception:
                    logger.exception("Handler %r failed on %s", handler, event_type.value)
                    continue
                if outcome == EventResult.SUPPRESSED:
                    result = EventResult.SUPPRESSED

        return result
