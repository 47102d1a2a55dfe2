"""The cached copy of all configuration values."""

import copy
from typing import Any

from .events import NotificationChannel

__all__ = [
    "RESERVED_KEY",
    "Snapshot",
]

RESERVED_KEY = "_config"
"""Key name reserved for the notification handle of a snapshot.

Patch operations addressing this key are never applied, routed to the
store or reported to listeners.
"""


class Snapshot(dict[str, Any]):
    """Mapping of configuration key to opaque value.

    A coordinator owns a single snapshot for its lifetime and patches it in
    place on every refresh, so a reference handed out earlier observes later
    updates. Compare ``version`` to detect that an update happened.
    """

    def __init__(self, channel: NotificationChannel | None = None) -> None:
        """Initialize an empty Snapshot."""
        super().__init__()
        self.channel = channel or NotificationChannel()
        self.version = 0

    def to_dict(self) -> dict[str, Any]:
        """Return a detached deep copy of the configuration values."""
        return copy.deepcopy(dict(self))

    def __repr__(self) -> str:
        return f"Snapshot(version={self.version}, {dict.__repr__(self)})"
