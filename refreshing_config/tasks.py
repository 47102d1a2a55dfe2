"""Task tracking for refresh cycles and background tickers.

Refresh cycles and proactive refresh tickers run as asyncio tasks. The task
service holds a reference to each of them so they are not garbage collected
mid-flight and so failures nobody awaited are still observed and logged.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Coroutine, Generator
import contextlib
import contextvars
from functools import partial
import logging
from typing import Any

__all__ = [
    "TaskService",
    "TaskServiceImpl",
    "get_task_service",
    "task_service_context",
]

_LOGGER = logging.getLogger(__name__)


class TaskService(ABC):
    """Service for tracking refresh tasks and long running tickers."""

    @abstractmethod
    def create_task(
        self, coro: Coroutine[None, None, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Create and track a short lived task, such as a single refresh.

        Args:
            coro: The coroutine to run as a task
            name: Optional task name used in logs

        Returns:
            The created task
        """

    @abstractmethod
    def create_background_task(
        self, coro: Coroutine[None, None, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Create and track a task that may never finish, such as a ticker."""

    @abstractmethod
    async def block_till_done(self) -> None:
        """Wait for all short lived tasks to settle.

        Background tasks are not waited on.
        """

    @abstractmethod
    def get_num_active_tasks(self) -> int:
        """Get the number of short lived tasks still running."""


class TaskServiceImpl(TaskService):
    """Task service backed by the running event loop."""

    def __init__(self) -> None:
        """Initialize the task service."""
        self._active_tasks: set[asyncio.Task[Any]] = set()
        self._background_tasks: set[asyncio.Task[Any]] = set()

    def create_task(
        self, coro: Coroutine[None, None, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        return self._track(self._active_tasks, coro, name)

    def create_background_task(
        self, coro: Coroutine[None, None, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        return self._track(self._background_tasks, coro, name)

    def _track(
        self,
        task_set: set[asyncio.Task[Any]],
        coro: Coroutine[None, None, Any],
        name: str | None,
    ) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        task_set.add(task)
        task.add_done_callback(partial(self._task_done, task_set))
        return task

    def _task_done(
        self, task_set: set[asyncio.Task[Any]], task: asyncio.Task[Any]
    ) -> None:
        """Stop tracking a finished task.

        Retrieving the exception marks it as observed, so a refresh that failed
        while nobody awaited it does not warn at garbage collection.
        """
        task_set.discard(task)
        if task.cancelled():
            return
        if (err := task.exception()) is not None:
            _LOGGER.debug("Task %s failed: %s", task.get_name(), err)

    async def block_till_done(self) -> None:
        active_tasks = list(self._active_tasks)
        if not active_tasks:
            await asyncio.sleep(0)
            return
        _LOGGER.debug("Waiting for %d tasks to settle", len(active_tasks))
        await asyncio.gather(*active_tasks, return_exceptions=True)

    def get_num_active_tasks(self) -> int:
        return len(self._active_tasks)


_task_service_ctx: contextvars.ContextVar[TaskService | None] = contextvars.ContextVar(
    "_task_service_ctx", default=None
)


def get_task_service() -> TaskService:
    """Get the task service of the current context, creating one if unset."""
    instance = _task_service_ctx.get()
    if instance is None:
        _LOGGER.debug("Creating default task service")
        instance = TaskServiceImpl()
        _task_service_ctx.set(instance)
    return instance


@contextlib.contextmanager
def task_service_context(
    service: TaskService | None = None,
) -> Generator[TaskService, None, None]:
    """Install a task service for the duration of the context.

    Args:
        service: Optional existing TaskService instance to use. If None,
                 a new instance will be created.
    """
    service = service or TaskServiceImpl()
    token = _task_service_ctx.set(service)
    try:
        yield service
    finally:
        _task_service_ctx.reset(token)
