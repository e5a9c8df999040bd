"""
In-process pub/sub for backup events.

Usage:
    bus = get_event_bus()
    bus.subscribe('conflict.detected', lambda event: ask_user(event.existing))
    bus.subscribe('*', audit_log.append)
"""

import logging
from collections import defaultdict
from threading import Lock
from typing import Any, Callable, DefaultDict, List, Optional

logger = logging.getLogger(__name__)

WILDCARD = '*'

Subscriber = Callable[[Any], None]


class EventBus:
    """
    Thread-safe event bus keyed by ``event_type``.

    Callbacks run synchronously on the publishing thread, type-specific
    subscribers before wildcard ones. A failing callback is logged and
    skipped; the publisher never sees its exception.
    """

    def __init__(self) -> None:
        self._subscribers: DefaultDict[str, List[Subscriber]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, event_type: str, callback: Subscriber) -> None:
        """Register ``callback`` for ``event_type`` ('*' for every event)"""
        with self._lock:
            self._subscribers[event_type].append(callback)
        logger.debug(f"Subscribed {getattr(callback, '__name__', repr(callback))} to {event_type}")

    def unsubscribe(self, event_type: str, callback: Subscriber) -> bool:
        """
        Returns:
            True if the callback was registered and is now removed
        """
        with self._lock:
            callbacks = self._subscribers.get(event_type)
            if not callbacks or callback not in callbacks:
                return False
            callbacks.remove(callback)
            if not callbacks:
                del self._subscribers[event_type]
            return True

    def _snapshot(self, event_type: str) -> List[Subscriber]:
        with self._lock:
            return list(self._subscribers.get(event_type, ())) + list(self._subscribers.get(WILDCARD, ()))

    def publish(self, event: Any) -> int:
        """
        Deliver an event to its subscribers.

        Returns:
            Number of callbacks that ran without raising
        """
        event_type = getattr(event, 'event_type', None)
        if event_type is None:
            logger.warning(f"Dropping {type(event).__name__}: no event_type")
            return 0

        delivered = 0
        for callback in self._snapshot(event_type):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Subscriber for {event_type} raised: {e}", exc_info=True)
                continue
            delivered += 1
        logger.debug(f"Published {event_type} to {delivered} subscribers")
        return delivered

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()

    def subscriber_count(self, event_type: Optional[str] = None) -> int:
        """Subscribers of one event type, or of all types when omitted"""
        with self._lock:
            if event_type is not None:
                return len(self._subscribers.get(event_type, ()))
            return sum(len(callbacks) for callbacks in self._subscribers.values())


_global_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Return the process-wide bus, creating it on first use"""
    global _global_bus
    if _global_bus is None:
        _global_bus = EventBus()
    return _global_bus


def reset_event_bus() -> None:
    """Replace the process-wide bus with an empty one (used by tests)"""
    global _global_bus
    _global_bus = EventBus()


__all__ = ['EventBus', 'WILDCARD', 'get_event_bus', 'reset_event_bus']
