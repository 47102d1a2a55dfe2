"""Notification channel for configuration events."""

from collections import defaultdict
from collections.abc import Callable
from enum import Enum
import logging
from typing import Any, DefaultDict

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "ConfigEvent",
    "NotificationChannel",
]


class ConfigEvent(str, Enum):
    """Enum for configuration events."""

    SET = "set"
    """A value was written through the coordinator: ``(name, value)``."""

    DELETE = "delete"
    """A value was removed through the coordinator: ``(name,)``."""

    CHANGED = "changed"
    """A refresh produced a non-empty patch: ``(snapshot, patch)``."""

    REFRESH = "refresh"
    """A refresh cycle completed: ``(snapshot,)``."""


class NotificationChannel:
    """Registry of listener callbacks keyed by event.

    Listeners are invoked synchronously in registration order. A failing
    listener is logged and does not prevent the others from running.
    """

    def __init__(self) -> None:
        """Initialize the NotificationChannel."""
        self._listeners: DefaultDict[ConfigEvent, list[Callable[..., None]]] = (
            defaultdict(list)
        )

    def add_listener(
        self, event: ConfigEvent, callback: Callable[..., None]
    ) -> Callable[[], None]:
        """Register a callback for an event, returning a function to remove it."""

        def remove() -> None:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        self._listeners[event].append(callback)
        return remove

    def listener_count(self, event: ConfigEvent) -> int:
        """Return the number of callbacks registered for the event."""
        return len(self._listeners[event])

    def fire_event(self, event: ConfigEvent, *args: Any) -> None:
        """Invoke every listener registered for the event."""
        for cb in list(self._listeners[event]):
            try:
                cb(*args)
            except Exception:
                _LOGGER.exception("Listener callback failed for event %s", event)
