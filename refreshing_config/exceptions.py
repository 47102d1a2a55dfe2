"""Exceptions related to refreshing-config."""

__all__ = [
    "ConfigException",
    "InvalidArgumentError",
    "AlreadySubscribedError",
    "MissingDependencyError",
    "InvalidPatchError",
    "PatchApplyError",
    "StoreError",
]


class ConfigException(Exception):
    """Generic base exception used for this library."""


class InvalidArgumentError(ConfigException, ValueError):
    """Raised when a caller passes a missing or malformed argument."""


class AlreadySubscribedError(ConfigException):
    """Raised when a proactive extension already has a subscriber."""


class MissingDependencyError(ConfigException):
    """Raised when a required collaborator, such as the store, is missing."""


class InvalidPatchError(ConfigException):
    """Raised when a patch operation is malformed or cannot be applied."""


class PatchApplyError(ConfigException):
    """Raised when one or more keys of a patch failed to reach the store.

    Keys that were written successfully are not rolled back.
    """

    def __init__(self, keys: list[str], errors: list[BaseException]) -> None:
        super().__init__(
            f"Failed to apply patch for keys {keys}: "
            + "; ".join(str(err) or err.__class__.__name__ for err in errors)
        )
        self.keys = keys
        self.errors = errors


class StoreError(ConfigException):
    """Raised when a bundled store cannot read or write its backing data."""
