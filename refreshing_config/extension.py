"""Capability contracts for objects attached to a RefreshingConfig.

An extension implements any subset of the contracts below by inheriting
from the matching base classes. RefreshingConfig.with_extension inspects
an extension with isinstance and wires each capability it finds.
"""

from abc import ABC, abstractmethod
from enum import Enum
import asyncio
from typing import Any, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from .snapshot import Snapshot

__all__ = [
    "Refreshable",
    "ReactivePolicy",
    "ProactivePolicy",
    "ChangePublisher",
    "PublishOperation",
]


class Refreshable(Protocol):
    """An object that a proactive policy can ask to refresh."""

    def refresh(self) -> "asyncio.Future[Snapshot]":
        """Start or join a refresh, returning the shared pending result."""


class PublishOperation(str, Enum):
    """Local mutation reported to a ChangePublisher."""

    SET = "set"
    DELETE = "delete"


class ReactivePolicy(ABC):
    """Consulted before a read to decide whether the cache is stale."""

    @abstractmethod
    def should_refresh(self) -> bool:
        """Return True if the next read should refresh from the store."""


class ProactivePolicy(ABC):
    """Signals its subscriber to refresh without being asked."""

    @abstractmethod
    def subscribe(self, subscriber: Refreshable) -> None:
        """Start signalling the subscriber.

        Raises AlreadySubscribedError if a subscriber is already attached.
        """

    @abstractmethod
    def unsubscribe(self) -> None:
        """Stop signalling the subscriber. Safe to call when not subscribed."""


class ChangePublisher(ABC):
    """Informed after a local write or remove so others can be notified."""

    @abstractmethod
    def publish(
        self, operation: PublishOperation, name: str, value: Any = None
    ) -> None:
        """Publish a local mutation of the named value."""
