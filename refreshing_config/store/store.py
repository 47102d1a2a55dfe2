"""Backing store contract for configuration values."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any


class ConfigStore(ABC):
    """Abstract base class for a store of configuration values.

    Only fetch_all is required. Stores that do not support mutation leave
    write and remove unimplemented, and calling them is a programming error.
    """

    @abstractmethod
    async def fetch_all(self) -> Mapping[str, Any]:
        """Return every configuration value held by the store."""

    async def write(self, name: str, value: Any) -> None:
        """Write a single configuration value."""
        raise NotImplementedError(f"{self.__class__.__name__} does not support write")

    async def remove(self, name: str) -> None:
        """Remove a single configuration value."""
        raise NotImplementedError(f"{self.__class__.__name__} does not support remove")
