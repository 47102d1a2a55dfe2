"""
refreshing-config keeps an in-process snapshot of configuration values from a
pluggable store and refreshes it on demand, on a schedule or when another
component publishes a change.

```python
store = InMemoryConfigStore({"foo": "bar"})
config = RefreshingConfig(store).with_extension(StaleRefreshPolicy(30))
assert await config.get("foo") == "bar"
```
"""

from . import config, exceptions, patch
from .coordinator import RefreshingConfig
from .events import ConfigEvent, NotificationChannel
from .extension import (
    ChangePublisher,
    ProactivePolicy,
    PublishOperation,
    ReactivePolicy,
    Refreshable,
)
from .patch import PatchOp, PatchOperation
from .policy import (
    AlwaysRefreshPolicy,
    IntervalRefreshPolicy,
    NeverRefreshPolicy,
    StaleRefreshPolicy,
)
from .snapshot import RESERVED_KEY, Snapshot
from .store import (
    ConfigStore,
    InMemoryConfigStore,
    InMemoryPubSub,
    YamlFileConfigStore,
)

__all__ = [
    "RefreshingConfig",
    "ConfigEvent",
    "NotificationChannel",
    "ChangePublisher",
    "ProactivePolicy",
    "PublishOperation",
    "ReactivePolicy",
    "Refreshable",
    "PatchOp",
    "PatchOperation",
    "AlwaysRefreshPolicy",
    "IntervalRefreshPolicy",
    "NeverRefreshPolicy",
    "StaleRefreshPolicy",
    "RESERVED_KEY",
    "Snapshot",
    "ConfigStore",
    "InMemoryConfigStore",
    "InMemoryPubSub",
    "YamlFileConfigStore",
    # Modules
    "config",
    "exceptions",
    "patch",
]
