"""Tests for the TaskServiceImpl."""

import asyncio
import logging
from typing import Any

import pytest

from refreshing_config.tasks import (
    TaskServiceImpl,
    get_task_service,
    task_service_context,
)

_LOGGER = logging.getLogger(__name__)


async def test_create_and_complete_task(task_service: TaskServiceImpl) -> None:
    """Test creating and completing a task."""

    async def refresh() -> Any:
        await asyncio.sleep(0.01)
        return {"foo": "bar"}

    task = task_service.create_task(refresh())
    assert task in task_service._active_tasks
    assert task_service.get_num_active_tasks() == 1

    assert await task == {"foo": "bar"}
    assert task not in task_service._active_tasks
    assert task_service.get_num_active_tasks() == 0


async def test_block_till_done(task_service: TaskServiceImpl) -> None:
    """Test blocking until all tasks are done, including failed ones."""

    async def refresh() -> Any:
        await asyncio.sleep(0.01)
        return "done"

    async def failing_refresh() -> Any:
        await asyncio.sleep(0.01)
        raise ValueError("store unavailable")

    tasks = [task_service.create_task(refresh()) for _ in range(3)]
    tasks.append(task_service.create_task(failing_refresh()))
    assert task_service.get_num_active_tasks() == 4

    await task_service.block_till_done()

    assert task_service.get_num_active_tasks() == 0
    for task in tasks:
        assert task.done()
    with pytest.raises(ValueError, match="store unavailable"):
        tasks[-1].result()


async def test_block_till_done_no_tasks(task_service: TaskServiceImpl) -> None:
    """Test blocking with nothing to wait for."""
    await task_service.block_till_done()


async def test_unobserved_failure_is_logged(
    task_service: TaskServiceImpl, caplog: pytest.LogCaptureFixture
) -> None:
    """Test that a failure nobody awaited is logged."""

    async def failing_refresh() -> Any:
        raise ValueError("store unavailable")

    with caplog.at_level(logging.DEBUG, logger="refreshing_config.tasks"):
        task_service.create_task(failing_refresh(), name="refresh-config")
        await asyncio.sleep(0.01)

    assert "Task refresh-config failed: store unavailable" in caplog.text
    assert task_service.get_num_active_tasks() == 0


async def test_background_task_cancellation(task_service: TaskServiceImpl) -> None:
    """Test that cancelled background tasks are cleaned up."""

    async def ticker() -> Any:
        await asyncio.sleep(10)

    task = task_service.create_background_task(ticker())
    assert task in task_service._background_tasks
    assert task_service.get_num_active_tasks() == 0

    task.cancel()
    await asyncio.sleep(0.01)

    assert task not in task_service._background_tasks
    assert task.cancelled()


def test_context() -> None:
    """Test the context variable accessor."""
    with task_service_context() as task_service:
        service1 = get_task_service()
        assert service1 is task_service
        assert get_task_service() is service1

    explicit = TaskServiceImpl()
    with task_service_context(explicit) as task_service:
        assert task_service is explicit
        assert get_task_service() is explicit
        assert service1 is not explicit
