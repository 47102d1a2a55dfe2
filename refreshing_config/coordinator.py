"""Refreshing configuration cache.

RefreshingConfig owns a Snapshot of every value in a ConfigStore and keeps
it current. Reads consult the attached reactive policies to decide whether
to refresh first, proactive policies trigger refreshes on their own, and
writes always refresh afterwards.

Concurrent refresh requests are coalesced: while a fetch is in flight every
caller joins the same task and observes the same resulting snapshot. Each
refresh diffs the fetched values against the snapshot, patches the snapshot
in place and notifies listeners.
"""

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Iterable, Mapping
import logging
from types import TracebackType
from typing import Any, Self

from .context import trace_context
from .events import ConfigEvent, NotificationChannel
from .exceptions import InvalidArgumentError, MissingDependencyError, PatchApplyError
from .extension import (
    ChangePublisher,
    ProactivePolicy,
    PublishOperation,
    ReactivePolicy,
)
from .patch import PatchOperation, affected_keys, apply_patch, compare, parse_patch
from .snapshot import RESERVED_KEY, Snapshot
from .store import ConfigStore
from .tasks import TaskService, get_task_service

__all__ = [
    "RefreshingConfig",
]

_LOGGER = logging.getLogger(__name__)


class RefreshingConfig(NotificationChannel):
    """A cached view of a ConfigStore that refreshes itself.

    Listeners registered with add_listener receive ConfigEvent.SET and
    ConfigEvent.DELETE after local mutations, ConfigEvent.CHANGED when a
    refresh altered the snapshot and ConfigEvent.REFRESH after every
    refresh. CHANGED is also fired on the channel of the snapshot itself.
    """

    def __init__(
        self, store: ConfigStore, task_service: TaskService | None = None
    ) -> None:
        """Initialize RefreshingConfig.

        Args:
            store: The store holding the configuration values.
            task_service: Service owning refresh tasks, defaults to the
                service of the current context.
        """
        super().__init__()
        if not store:
            _LOGGER.debug("Missing store")
            raise MissingDependencyError("Missing store")
        self._store = store
        self._task_service = task_service
        self.refresh_policies: list[ReactivePolicy] = []
        self.change_publishers: list[ChangePublisher] = []
        self._subscriptions: list[ProactivePolicy] = []
        self._snapshot = Snapshot()
        self._first_time = True
        self._refresh_task: asyncio.Task[Snapshot] | None = None

    @property
    def store(self) -> ConfigStore:
        return self._store

    @property
    def snapshot(self) -> Snapshot:
        """The live snapshot, without refreshing."""
        return self._snapshot

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None

    def get(self, name: str) -> Awaitable[Any]:
        """Return an awaitable resolving to the named value, or None if absent.

        A missing name raises InvalidArgumentError immediately rather than
        from the awaitable.
        """
        if not name:
            raise InvalidArgumentError("Missing name")
        return self._get(name)

    async def _get(self, name: str) -> Any:
        snapshot = await self.refresh_if_needed()
        return snapshot.get(name)

    async def get_all(self) -> Snapshot:
        """Return the live snapshot after refreshing if needed."""
        return await self.refresh_if_needed()

    async def set(self, name: str, value: Any) -> Snapshot:
        """Write a value to the store, notify and refresh."""
        await self._store.write(name, value)
        _LOGGER.debug("Set %s", name)
        self.fire_event(ConfigEvent.SET, name, value)
        self._publish(PublishOperation.SET, name, value)
        return await asyncio.shield(self.refresh())

    async def delete(self, name: str) -> Snapshot:
        """Remove a value from the store, notify and refresh."""
        await self._store.remove(name)
        _LOGGER.debug("Deleted %s", name)
        self.fire_event(ConfigEvent.DELETE, name)
        self._publish(PublishOperation.DELETE, name)
        return await asyncio.shield(self.refresh())

    def _publish(self, operation: PublishOperation, name: str, value: Any = None) -> None:
        for publisher in self.change_publishers:
            try:
                publisher.publish(operation, name, value)
            except Exception:
                _LOGGER.exception(
                    "Change publisher %s failed to publish %s of %s",
                    publisher.__class__.__name__,
                    operation.value,
                    name,
                )

    async def apply(
        self, patches: Iterable[PatchOperation | Mapping[str, Any]]
    ) -> None:
        """Apply a patch by writing or removing every affected key in the store.

        Keys still present after the patch are written, keys the patch
        removed are deleted and keys absent before and after are skipped.
        Writes are issued concurrently and keys that succeed are kept even if
        others fail, in which case PatchApplyError is raised.
        """
        operations = parse_patch(patches)
        snapshot = await self.refresh_if_needed()
        after = apply_patch(snapshot.to_dict(), operations)

        pending: list[tuple[str, Awaitable[Snapshot]]] = []
        for key in affected_keys(operations):
            if key == RESERVED_KEY:
                _LOGGER.debug("Ignoring patch of reserved key %s", key)
                continue
            if key in after:
                pending.append((key, self.set(key, after[key])))
            elif key in snapshot:
                pending.append((key, self.delete(key)))
        if not pending:
            return

        results = await asyncio.gather(
            *(aw for _, aw in pending), return_exceptions=True
        )
        failed = [
            (key, result)
            for (key, _), result in zip(pending, results)
            if isinstance(result, BaseException)
        ]
        if failed:
            raise PatchApplyError(
                [key for key, _ in failed], [err for _, err in failed]
            )

    def with_extension(self, extension: object | None) -> Self:
        """Attach an extension by the capabilities it implements.

        Proactive policies are subscribed to this instance, reactive policies
        are consulted before reads and change publishers are told about
        local writes. Returns self so calls can be chained.
        """
        if extension is None:
            return self
        if isinstance(extension, ProactivePolicy):
            extension.subscribe(self)
            self._subscriptions.append(extension)
        if isinstance(extension, ReactivePolicy):
            self.refresh_policies.append(extension)
        if isinstance(extension, ChangePublisher):
            self.change_publishers.append(extension)
        return self

    def refresh(self) -> asyncio.Task[Snapshot]:
        """Refresh from the store, joining a refresh already in flight.

        Returns the task of the refresh; every caller that joins it receives
        the same snapshot, or the same error. Callers that may be cancelled
        should await it through asyncio.shield so the shared fetch survives.
        """
        if self._refresh_task is not None:
            _LOGGER.debug("Joining refresh in flight")
            return self._refresh_task
        task_service = self._task_service or get_task_service()
        self._refresh_task = task_service.create_task(
            self._refresh(), name="refresh-config"
        )
        return self._refresh_task

    async def _refresh(self) -> Snapshot:
        try:
            with trace_context("Refresh config"):
                values = await self._store.fetch_all()
                snapshot = self._snapshot
                config_patch = [
                    op for op in compare(snapshot, values) if op.key != RESERVED_KEY
                ]
                if config_patch:
                    apply_patch(snapshot, config_patch)
                    snapshot.version += 1
                    _LOGGER.debug(
                        "Config changed (%d operations, version %d)",
                        len(config_patch),
                        snapshot.version,
                    )
                    self.fire_event(ConfigEvent.CHANGED, snapshot, config_patch)
                    snapshot.channel.fire_event(
                        ConfigEvent.CHANGED, snapshot, config_patch
                    )
                self._first_time = False
                self.fire_event(ConfigEvent.REFRESH, snapshot)
                return snapshot
        finally:
            self._refresh_task = None

    async def refresh_if_needed(self) -> Snapshot:
        """Refresh if no refresh succeeded yet or any reactive policy asks for it.

        A read arriving while a refresh is in flight joins it. Cancelling a
        reader does not cancel the refresh shared with other readers.
        """
        if self._refresh_task is not None or self._first_time:
            should_refresh = True
        else:
            should_refresh = any(
                policy.should_refresh() for policy in self.refresh_policies
            )
        if should_refresh:
            return await asyncio.shield(self.refresh())
        return self._snapshot

    async def watch_changes(
        self,
    ) -> AsyncGenerator[tuple[Snapshot, list[PatchOperation]], None]:
        """Yield ``(snapshot, patch)`` for every subsequent change."""
        queue: asyncio.Queue[tuple[Snapshot, list[PatchOperation]]] = asyncio.Queue()

        def callback(snapshot: Snapshot, config_patch: list[PatchOperation]) -> None:
            queue.put_nowait((snapshot, config_patch))

        remove_listener = self.add_listener(ConfigEvent.CHANGED, callback)
        try:
            while True:
                yield await queue.get()
        except asyncio.CancelledError:
            _LOGGER.debug("watch_changes cancelled")
            raise
        finally:
            remove_listener()

    def close(self) -> None:
        """Unsubscribe every proactive extension attached to this instance."""
        for extension in self._subscriptions:
            try:
                extension.unsubscribe()
            except Exception:
                _LOGGER.exception(
                    "Failed to unsubscribe %s", extension.__class__.__name__
                )
        self._subscriptions.clear()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
