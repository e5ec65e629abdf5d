# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Typed rewrite operation variants and batch validation."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from codesession.errors import MalformedOperation, UnknownOperation
from codesession.provider import RewriteBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rename:
    """Rename every identifier token spelled ``old_name``."""

    tag: ClassVar[str] = "rename"
    old_name: str
    new_name: str

    def apply(self, builder: RewriteBuilder) -> RewriteBuilder:
        return builder.rename(self.old_name, self.new_name)

    def to_parameters(self) -> dict[str, Any]:
        return {"oldName": self.old_name, "newName": self.new_name}


@dataclass(frozen=True)
class RemoveUnusedImports:
    """Drop import specifiers that are never referenced."""

    tag: ClassVar[str] = "removeUnusedImports"

    def apply(self, builder: RewriteBuilder) -> RewriteBuilder:
        return builder.remove_unused_imports()

    def to_parameters(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class ReplaceIn:
    """Replace text inside nodes matching ``node_type``."""

    tag: ClassVar[str] = "replaceIn"
    node_type: str
    pattern: str
    replacement: str

    def apply(self, builder: RewriteBuilder) -> RewriteBuilder:
        return builder.replace_in(self.node_type, self.pattern, self.replacement)

    def to_parameters(self) -> dict[str, Any]:
        return {
            "nodeType": self.node_type,
            "pattern": self.pattern,
            "replacement": self.replacement,
        }


@dataclass(frozen=True)
class InsertBefore:
    """Insert text above every node matching ``pattern``."""

    tag: ClassVar[str] = "insertBefore"
    pattern: str
    text: str

    def apply(self, builder: RewriteBuilder) -> RewriteBuilder:
        return builder.insert_before(self.pattern, self.text)

    def to_parameters(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "text": self.text}


@dataclass(frozen=True)
class InsertAfter:
    """Insert text below every node matching ``pattern``."""

    tag: ClassVar[str] = "insertAfter"
    pattern: str
    text: str

    def apply(self, builder: RewriteBuilder) -> RewriteBuilder:
        return builder.insert_after(self.pattern, self.text)

    def to_parameters(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "text": self.text}


Operation = Union[Rename, RemoveUnusedImports, ReplaceIn, InsertBefore, InsertAfter]

# Wire parameter names per tag, in constructor order.
_OPERATION_FIELDS: dict[str, tuple[type, tuple[str, ...]]] = {
    Rename.tag: (Rename, ("oldName", "newName")),
    RemoveUnusedImports.tag: (RemoveUnusedImports, ()),
    ReplaceIn.tag: (ReplaceIn, ("nodeType", "pattern", "replacement")),
    InsertBefore.tag: (InsertBefore, ("pattern", "text")),
    InsertAfter.tag: (InsertAfter, ("pattern", "text")),
}

OPERATION_TAGS: tuple[str, ...] = tuple(_OPERATION_FIELDS)


def parse_operation(raw: Any, index: int = 0) -> Operation:
    """Validate one batch step and build its typed variant.

    Parameters are read from a nested ``parameters`` object when present,
    otherwise from the step object itself.

    Args:
        raw: Step object as received from the caller.
        index: Position of the step in its batch, used in messages.

    Returns:
        Typed operation variant.

    Raises:
        UnknownOperation: If the step has no recognized ``type``.
        MalformedOperation: If a required parameter is missing or not a string.
    """
    if not isinstance(raw, Mapping):
        raise UnknownOperation(f"Operation {index} must be an object with a 'type'")
    tag = raw.get("type")
    if not isinstance(tag, str) or tag not in _OPERATION_FIELDS:
        raise UnknownOperation(
            f"Unknown operation type at index {index}: {tag!r} "
            f"(expected one of {', '.join(OPERATION_TAGS)})"
        )

    nested = raw.get("parameters")
    if nested is not None and not isinstance(nested, Mapping):
        raise MalformedOperation(f"Operation {index} ({tag}): 'parameters' must be an object")
    source = nested if nested is not None else raw

    cls, wire_names = _OPERATION_FIELDS[tag]
    values: list[str] = []
    for wire_name in wire_names:
        value = source.get(wire_name)
        if not isinstance(value, str):
            raise MalformedOperation(
                f"Operation {index} ({tag}): parameter '{wire_name}' must be a string"
            )
        values.append(value)
    return cls(*values)


def parse_operations(raw: Any) -> list[Operation]:
    """Validate a whole batch before any step is applied.

    Args:
        raw: Sequence of step objects.

    Returns:
        Typed operations in the order supplied.

    Raises:
        UnknownOperation: If the batch is not a list or a step has no
            recognized ``type``.
        MalformedOperation: If a step has unusable parameters.
    """
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise UnknownOperation("Operations must be a list of operation objects")
    operations = [parse_operation(step, index) for index, step in enumerate(raw)]
    logger.debug(f"Operations validated (count={len(operations)})")
    return operations
