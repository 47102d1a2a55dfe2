"""
The store module defines the backing store contract used by RefreshingConfig
and ships simple implementations of it.

- ConfigStore is the abstract adapter: fetch everything, optionally write or
  remove a single value.
- InMemoryConfigStore keeps values in a dict and pairs with InMemoryPubSub to
  refresh other coordinators in the same process after a write.
- YamlFileConfigStore keeps values in a YAML document on disk.
"""

from .store import ConfigStore
from .in_memory import InMemoryConfigStore, InMemoryPubSub
from .yaml_file import YamlFileConfigStore

__all__ = [
    "ConfigStore",
    "InMemoryConfigStore",
    "InMemoryPubSub",
    "YamlFileConfigStore",
]
