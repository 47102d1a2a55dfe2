"""Configuration objects for refreshing-config.

Refresh policies can be described declaratively, for example in a YAML
file shipped with an application, and built into policy instances:

```yaml
---
policies:
- kind: stale
  duration: 30
- kind: interval
  duration: 300
```
"""

from dataclasses import dataclass, field
from enum import Enum
import logging
from pathlib import Path
from typing import cast

import aiofiles
from mashumaro import DataClassDictMixin
from mashumaro.codecs.yaml import yaml_decode
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField

from .exceptions import InvalidArgumentError
from .extension import ProactivePolicy, ReactivePolicy
from .policy import (
    AlwaysRefreshPolicy,
    IntervalRefreshPolicy,
    NeverRefreshPolicy,
    StaleRefreshPolicy,
)
from .tasks import TaskService

__all__ = [
    "PolicyKind",
    "RefreshPolicyConfig",
    "RefreshConfig",
    "build_policy",
    "build_policies",
    "load_refresh_config",
]

_LOGGER = logging.getLogger(__name__)


class PolicyKind(str, Enum):
    """Built in refresh policy types."""

    ALWAYS = "always"
    NEVER = "never"
    STALE = "stale"
    INTERVAL = "interval"


@dataclass
class RefreshPolicyConfig(DataClassDictMixin):
    """Configuration for a single refresh policy."""

    kind: PolicyKind
    """Type of policy to build."""

    duration: float | None = None
    """Seconds, required by the stale and interval policies."""

    class Config(BaseConfig):
        omit_none = True


@dataclass
class RefreshConfig(DataClassDictMixin):
    """Configuration for the refresh policies attached to a RefreshingConfig."""

    policies: list[RefreshPolicyConfig] = field(default_factory=list)
    """Policies in the order they are consulted."""

    class Config(BaseConfig):
        omit_none = True

    @classmethod
    def parse_yaml(cls, content: str) -> "RefreshConfig":
        """Parse a serialized refresh configuration."""
        try:
            return yaml_decode(content, cls)
        except (InvalidFieldValue, MissingField, ValueError) as err:
            raise InvalidArgumentError(f"Invalid refresh configuration: {err}") from err


def build_policy(
    config: RefreshPolicyConfig, task_service: TaskService | None = None
) -> ReactivePolicy | ProactivePolicy:
    """Return the policy described by the configuration."""
    if config.kind == PolicyKind.ALWAYS:
        return AlwaysRefreshPolicy()
    if config.kind == PolicyKind.NEVER:
        return NeverRefreshPolicy()
    if config.duration is None:
        raise InvalidArgumentError(f"Policy '{config.kind.value}' requires a duration")
    if config.kind == PolicyKind.STALE:
        return StaleRefreshPolicy(config.duration)
    return IntervalRefreshPolicy(config.duration, task_service=task_service)


def build_policies(
    config: RefreshConfig, task_service: TaskService | None = None
) -> list[ReactivePolicy | ProactivePolicy]:
    """Return the policies described by the configuration, in order."""
    return [build_policy(policy, task_service) for policy in config.policies]


async def load_refresh_config(path: Path) -> RefreshConfig:
    """Return the contents of a refresh configuration YAML file."""
    async with aiofiles.open(str(path)) as config_file:
        content = await config_file.read()
    if not content.strip():
        _LOGGER.debug("Refresh configuration %s is empty", path)
        return RefreshConfig()
    return cast(RefreshConfig, RefreshConfig.parse_yaml(content))
