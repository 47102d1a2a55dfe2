"""Module for a configuration store kept in a YAML file."""

import asyncio
from collections.abc import Callable
import logging
import pathlib
from typing import Any

import aiofiles
from aiofiles.ospath import exists
import yaml

from refreshing_config.exceptions import StoreError

from .store import ConfigStore

_LOGGER = logging.getLogger(__name__)


class YamlFileConfigStore(ConfigStore):
    """Configuration store holding a single YAML mapping in a file.

    A missing file reads as an empty mapping and is created on the first
    write. Writes rewrite the whole document.
    """

    def __init__(self, path: pathlib.Path | str) -> None:
        """Initialize the YamlFileConfigStore."""
        self._path = pathlib.Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> pathlib.Path:
        return self._path

    async def _read(self) -> dict[str, Any]:
        if not await exists(self._path):
            _LOGGER.debug("Config file %s does not exist", self._path)
            return {}
        async with aiofiles.open(str(self._path)) as config_file:
            content = await config_file.read()
        try:
            doc = yaml.safe_load(content)
        except yaml.YAMLError as err:
            raise StoreError(f"Unable to parse config file {self._path}: {err}") from err
        if doc is None:
            return {}
        if not isinstance(doc, dict):
            raise StoreError(
                f"Config file {self._path} must contain a mapping, got {type(doc).__name__}"
            )
        return doc

    async def _update(self, func: Callable[[dict[str, Any]], None]) -> None:
        async with self._lock:
            values = await self._read()
            func(values)
            content = yaml.dump(values, sort_keys=False, explicit_start=True)
            async with aiofiles.open(str(self._path), mode="w") as config_file:
                await config_file.write(content)

    async def fetch_all(self) -> dict[str, Any]:
        return await self._read()

    async def write(self, name: str, value: Any) -> None:
        _LOGGER.debug("Writing %s to %s", name, self._path)

        def update(values: dict[str, Any]) -> None:
            values[name] = value

        await self._update(update)

    async def remove(self, name: str) -> None:
        _LOGGER.debug("Removing %s from %s", name, self._path)

        def update(values: dict[str, Any]) -> None:
            values.pop(name, None)

        await self._update(update)
