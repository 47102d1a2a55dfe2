"""Module for in memory configuration store."""

from collections.abc import Mapping
import logging
from typing import Any

from refreshing_config.exceptions import AlreadySubscribedError
from refreshing_config.extension import (
    ChangePublisher,
    ProactivePolicy,
    PublishOperation,
    Refreshable,
)

from .store import ConfigStore

_LOGGER = logging.getLogger(__name__)


class InMemoryPubSub(ProactivePolicy, ChangePublisher):
    """Refresh the subscriber whenever a change is published.

    Attach the same instance as an extension to a writer and to a reader
    coordinator so writes made through one refresh the other.
    """

    def __init__(self) -> None:
        """Initialize the InMemoryPubSub."""
        self._subscriber: Refreshable | None = None

    def subscribe(self, subscriber: Refreshable) -> None:
        if self._subscriber is not None:
            raise AlreadySubscribedError("Already subscribed")
        self._subscriber = subscriber

    def unsubscribe(self) -> None:
        self._subscriber = None

    def publish(
        self, operation: PublishOperation, name: str, value: Any = None
    ) -> None:
        _LOGGER.debug("Published %s of %s", operation.value, name)
        self.refresh_subscriber()

    def refresh_subscriber(self) -> None:
        """Ask the subscriber, if any, to refresh without waiting for it."""
        if self._subscriber is None:
            return
        try:
            self._subscriber.refresh()
        except Exception:
            _LOGGER.exception("Failed to refresh subscriber")


class InMemoryConfigStore(ConfigStore):
    """Configuration store backed by a dict."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        """Initialize the InMemoryConfigStore with optional initial values."""
        self._values: dict[str, Any] = dict(values or {})

    async def fetch_all(self) -> dict[str, Any]:
        return dict(self._values)

    async def write(self, name: str, value: Any) -> None:
        _LOGGER.debug("Writing %s to in memory store", name)
        self._values[name] = value

    async def remove(self, name: str) -> None:
        _LOGGER.debug("Removing %s from in memory store", name)
        self._values.pop(name, None)

    def to_extension(self) -> InMemoryPubSub:
        """Return a new pub/sub extension for coordinators sharing this store."""
        return InMemoryPubSub()
