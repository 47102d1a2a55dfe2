"""Built in refresh policies.

Reactive policies are asked before every read whether the cached snapshot
should be refreshed. Proactive policies trigger refreshes on their own.
"""

import asyncio
from collections.abc import Callable
import logging
import time

from .exceptions import AlreadySubscribedError, InvalidArgumentError
from .extension import ProactivePolicy, ReactivePolicy, Refreshable
from .tasks import TaskService, get_task_service

__all__ = [
    "AlwaysRefreshPolicy",
    "NeverRefreshPolicy",
    "StaleRefreshPolicy",
    "IntervalRefreshPolicy",
]

_LOGGER = logging.getLogger(__name__)


def _check_duration(duration: float) -> float:
    """Return the duration in seconds or raise if it is not a positive number."""
    if (
        isinstance(duration, bool)
        or not isinstance(duration, (int, float))
        or duration <= 0
    ):
        raise InvalidArgumentError(f"Invalid duration: {duration!r}")
    return float(duration)


class AlwaysRefreshPolicy(ReactivePolicy):
    """Refresh on every read."""

    def should_refresh(self) -> bool:
        return True


class NeverRefreshPolicy(ReactivePolicy):
    """Never refresh on read; only the first read and writes refresh."""

    def should_refresh(self) -> bool:
        return False


class StaleRefreshPolicy(ReactivePolicy):
    """Refresh when the last refresh is older than ``duration`` seconds."""

    def __init__(
        self, duration: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        """Initialize StaleRefreshPolicy.

        Args:
            duration: Maximum age in seconds before a read refreshes.
            clock: Source of the current time in seconds.
        """
        self._duration = _check_duration(duration)
        self._clock = clock
        self._last_refresh: float | None = None

    @property
    def duration(self) -> float:
        return self._duration

    def should_refresh(self) -> bool:
        now = self._clock()
        if self._last_refresh is None or now - self._last_refresh >= self._duration:
            self._last_refresh = now
            return True
        return False


class IntervalRefreshPolicy(ProactivePolicy):
    """Refresh the subscriber every ``duration`` seconds.

    The ticker runs as a background task on the current event loop, so
    the policy must be subscribed from within a running loop.
    """

    def __init__(
        self, duration: float, task_service: TaskService | None = None
    ) -> None:
        """Initialize IntervalRefreshPolicy.

        Args:
            duration: Seconds between refreshes.
            task_service: Service owning the ticker task, defaults to the
                service of the current context.
        """
        self._duration = _check_duration(duration)
        self._task_service = task_service
        self._subscriber: Refreshable | None = None
        self._ticker: asyncio.Task[None] | None = None

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def subscribed(self) -> bool:
        return self._subscriber is not None

    def subscribe(self, subscriber: Refreshable) -> None:
        if self._subscriber is not None:
            raise AlreadySubscribedError("Already subscribed")
        task_service = self._task_service or get_task_service()
        self._ticker = task_service.create_background_task(
            self._tick(subscriber), name=f"interval-refresh-{self._duration}s"
        )
        self._subscriber = subscriber
        _LOGGER.debug("Refreshing every %ss", self._duration)

    def unsubscribe(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self._subscriber = None

    async def _tick(self, subscriber: Refreshable) -> None:
        while True:
            await asyncio.sleep(self._duration)
            try:
                # Unsubscribing must not cancel a refresh shared with readers
                await asyncio.shield(subscriber.refresh())
            except Exception as err:
                _LOGGER.warning("Interval refresh failed: %s", err)
