"""Shared fixtures for refreshing-config tests."""

from typing import Any
from unittest.mock import MagicMock

import pytest

from refreshing_config.store import ConfigStore
from refreshing_config.tasks import TaskServiceImpl


@pytest.fixture
def task_service() -> TaskServiceImpl:
    """Fixture for creating a TaskServiceImpl instance."""
    return TaskServiceImpl()


@pytest.fixture
def values() -> dict[str, Any]:
    """Values returned by the mock store."""
    return {"foo": "bar"}


@pytest.fixture
def store(values: dict[str, Any]) -> MagicMock:
    """A mock store whose methods are AsyncMocks."""
    mock_store = MagicMock(spec=ConfigStore)
    mock_store.fetch_all.return_value = values
    return mock_store
