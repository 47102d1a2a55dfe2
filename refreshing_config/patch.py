"""Module for computing and applying configuration patches.

A patch is an ordered list of add, replace and remove operations in the
style of a JSON patch, describing how to turn one snapshot into another.
Only the first path segment of an operation matters when routing a patch
to a store; deeper segments address values nested inside a mapping.
"""

from collections.abc import Iterable, Mapping, MutableMapping
import copy
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, TypeVar

import yaml
from mashumaro import DataClassDictMixin
from mashumaro.exceptions import InvalidFieldValue, MissingField

from .exceptions import InvalidPatchError

__all__ = [
    "PatchOp",
    "PatchOperation",
    "compare",
    "apply_patch",
    "affected_keys",
    "parse_patch",
    "load_patch_yaml",
    "dump_patch_yaml",
]

_LOGGER = logging.getLogger(__name__)

M = TypeVar("M", bound=MutableMapping[str, Any])


class PatchOp(str, Enum):
    """Supported patch operations."""

    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"


def escape_segment(segment: str) -> str:
    """Escape a key for use as a JSON pointer segment."""
    return segment.replace("~", "~0").replace("/", "~1")


def unescape_segment(segment: str) -> str:
    """Reverse escape_segment."""
    return segment.replace("~1", "/").replace("~0", "~")


def _split_path(path: str) -> list[str]:
    if not path.startswith("/"):
        raise InvalidPatchError(f"Invalid patch path '{path}': must start with '/'")
    return [unescape_segment(part) for part in path[1:].split("/")]


@dataclass
class PatchOperation(DataClassDictMixin):
    """A single patch operation."""

    op: PatchOp
    """Kind of operation."""

    path: str
    """JSON pointer of the affected value e.g. ``/key`` or ``/key/nested``."""

    value: Any = None
    """New value for add and replace operations."""

    @property
    def segments(self) -> list[str]:
        """Return the unescaped path segments."""
        return _split_path(self.path)

    @property
    def key(self) -> str:
        """Return the top level key addressed by this operation."""
        return self.segments[0]

    def __post_serialize__(self, d: dict[Any, Any]) -> dict[Any, Any]:
        if self.op == PatchOp.REMOVE:
            d.pop("value", None)
        return d

    @classmethod
    def add(cls, path: str, value: Any) -> "PatchOperation":
        return cls(op=PatchOp.ADD, path=path, value=value)

    @classmethod
    def replace(cls, path: str, value: Any) -> "PatchOperation":
        return cls(op=PatchOp.REPLACE, path=path, value=value)

    @classmethod
    def remove(cls, path: str) -> "PatchOperation":
        return cls(op=PatchOp.REMOVE, path=path)


def _compare(
    old: Mapping[str, Any],
    new: Mapping[str, Any],
    prefix: str,
    patches: list[PatchOperation],
) -> None:
    for key, old_value in old.items():
        path = f"{prefix}/{escape_segment(key)}"
        if key not in new:
            patches.append(PatchOperation.remove(path))
            continue
        new_value = new[key]
        if old_value == new_value:
            continue
        if isinstance(old_value, Mapping) and isinstance(new_value, Mapping):
            _compare(old_value, new_value, path, patches)
        else:
            patches.append(PatchOperation.replace(path, copy.deepcopy(new_value)))
    for key, new_value in new.items():
        if key not in old:
            patches.append(
                PatchOperation.add(
                    f"{prefix}/{escape_segment(key)}", copy.deepcopy(new_value)
                )
            )


def compare(old: Mapping[str, Any], new: Mapping[str, Any]) -> list[PatchOperation]:
    """Return the operations that transform ``old`` into ``new``.

    Removals and replacements are emitted in the key order of ``old``,
    followed by additions in the key order of ``new``. Values that are
    mappings on both sides are compared recursively so that a change to a
    nested value yields a single nested operation.
    """
    patches: list[PatchOperation] = []
    _compare(old, new, "", patches)
    return patches


def _resolve_parent(
    target: MutableMapping[str, Any], op: PatchOperation
) -> tuple[MutableMapping[str, Any] | None, str]:
    """Walk to the container of the final path segment."""
    segments = op.segments
    parent: Any = target
    for i, segment in enumerate(segments[:-1]):
        if not isinstance(parent, MutableMapping) or segment not in parent:
            if op.op == PatchOp.REMOVE:
                return None, segments[-1]
            raise InvalidPatchError(
                f"Cannot {op.op.value} '{op.path}': "
                f"'/{'/'.join(segments[: i + 1])}' does not exist"
            )
        parent = parent[segment]
    if not isinstance(parent, MutableMapping):
        raise InvalidPatchError(
            f"Cannot {op.op.value} '{op.path}': parent is not a mapping"
        )
    return parent, segments[-1]


def apply_patch(target: M, patches: Iterable[PatchOperation]) -> M:
    """Apply the operations to ``target`` in place, in order.

    Removing a value that does not exist is not an error.
    """
    for op in patches:
        parent, name = _resolve_parent(target, op)
        if parent is None:
            continue
        if op.op == PatchOp.REMOVE:
            parent.pop(name, None)
        else:
            parent[name] = copy.deepcopy(op.value)
    return target


def affected_keys(patches: Iterable[PatchOperation]) -> list[str]:
    """Return the unique top level keys touched by the patches, in order."""
    return list({op.key: True for op in patches}.keys())


def parse_patch(
    data: Iterable[PatchOperation | Mapping[str, Any]],
) -> list[PatchOperation]:
    """Parse JSON patch style dicts into PatchOperations.

    PatchOperation instances are passed through unchanged.
    """
    if isinstance(data, (str, bytes, Mapping)):
        raise InvalidPatchError(f"Patch must be a list of operations, got {data!r}")
    result: list[PatchOperation] = []
    for item in data:
        if isinstance(item, PatchOperation):
            op = item
        elif isinstance(item, Mapping):
            try:
                op = PatchOperation.from_dict(dict(item))
            except (InvalidFieldValue, MissingField, ValueError) as err:
                raise InvalidPatchError(f"Invalid patch operation {item}: {err}") from err
            if op.op != PatchOp.REMOVE and "value" not in item:
                raise InvalidPatchError(f"Patch operation {item} is missing a value")
        else:
            raise InvalidPatchError(f"Invalid patch operation {item!r}")
        _split_path(op.path)
        result.append(op)
    return result


def load_patch_yaml(content: str) -> list[PatchOperation]:
    """Parse a YAML (or JSON) document holding a list of patch operations."""
    try:
        doc = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise InvalidPatchError(f"Unable to parse patch: {err}") from err
    if doc is None:
        return []
    if not isinstance(doc, list):
        raise InvalidPatchError(f"Patch document must be a list, got {type(doc).__name__}")
    return parse_patch(doc)


def dump_patch_yaml(patches: Iterable[PatchOperation]) -> str:
    """Serialize patch operations as a YAML list."""
    return yaml.dump(
        [op.to_dict() for op in patches], sort_keys=False, explicit_start=True
    )
