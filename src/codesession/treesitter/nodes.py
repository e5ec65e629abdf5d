# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Syntax tree and node wrappers over tree-sitter parse results."""

import logging
from collections.abc import Iterator
from typing import Any

from tree_sitter import Node, Tree

from codesession.treesitter.scopes import analyze_scopes
from codesession.treesitter.selector import TYPE_ALIASES, compile_selector

logger = logging.getLogger(__name__)

IDENTIFIER_TYPES: frozenset[str] = frozenset(
    {
        "identifier",
        "property_identifier",
        "shorthand_property_identifier",
        "shorthand_property_identifier_pattern",
        "type_identifier",
        "statement_identifier",
    }
)
FUNCTION_TYPES = TYPE_ALIASES["function"]
CLASS_TYPES = TYPE_ALIASES["class"]
IMPORT_TYPES = TYPE_ALIASES["import"]

_NAME_FIELDS: tuple[str, ...] = ("name", "property", "key")
_PATTERN_TYPES: frozenset[str] = frozenset({"object_pattern", "array_pattern"})


class TreeNode:
    """Expose one named tree-sitter node with document-relative metadata."""

    def __init__(self, raw: Node, tree: "SyntaxTree") -> None:
        self._raw = raw
        self._tree = tree

    @property
    def tree(self) -> "SyntaxTree":
        return self._tree

    @property
    def type(self) -> str:
        return self._raw.type

    @property
    def text(self) -> str:
        return self._tree.node_text(self._raw)

    @property
    def line(self) -> int:
        return self._raw.start_point[0] + 1

    @property
    def column(self) -> int:
        return self._raw.start_point[1]

    @property
    def end_line(self) -> int:
        return self._raw.end_point[0] + 1

    @property
    def end_column(self) -> int:
        return self._raw.end_point[1]

    @property
    def start_byte(self) -> int:
        return self._raw.start_byte

    @property
    def end_byte(self) -> int:
        return self._raw.end_byte

    @property
    def start_position(self) -> dict[str, int]:
        return {"row": self._raw.start_point[0], "column": self._raw.start_point[1]}

    @property
    def end_position(self) -> dict[str, int]:
        return {"row": self._raw.end_point[0], "column": self._raw.end_point[1]}

    @property
    def has_error(self) -> bool:
        return bool(self._raw.has_error)

    @property
    def children(self) -> list["TreeNode"]:
        return [TreeNode(child, self._tree) for child in self._raw.named_children]

    @property
    def parent(self) -> "TreeNode | None":
        parent = self._raw.parent
        if parent is None:
            return None
        return TreeNode(parent, self._tree)

    @property
    def name(self) -> str | None:
        """Return the declared or referenced name carried by this node.

        Identifier-like nodes name themselves; declarations use their
        ``name``/``property``/``key`` field; calls use their callee text;
        unnamed function and class expressions borrow the name of the
        variable, assignment target, or object key they are bound to.
        """
        raw = self._raw
        if raw.type in IDENTIFIER_TYPES:
            return self.text
        if raw.type == "call_expression":
            return self.field_text("function")
        if raw.type == "new_expression":
            return self.field_text("constructor")
        if raw.type == "jsx_element":
            opening = raw.child_by_field_name("open_tag")
            if opening is None:
                return None
            return TreeNode(opening, self._tree).name
        if raw.type == "jsx_attribute":
            first = raw.named_children[0] if raw.named_children else None
            return self._tree.node_text(first) if first is not None else None
        for field_name in _NAME_FIELDS:
            child = raw.child_by_field_name(field_name)
            if child is None:
                continue
            if child.type in _PATTERN_TYPES:
                return None
            return self._tree.node_text(child)
        if raw.type in FUNCTION_TYPES or raw.type in CLASS_TYPES:
            return self._binding_name()
        return None

    def has_token(self, token_type: str) -> bool:
        """Check whether a direct child (named or anonymous) has the given type."""
        return any(child.type == token_type for child in self._raw.children)

    def field(self, field_name: str) -> "TreeNode | None":
        child = self._raw.child_by_field_name(field_name)
        if child is None:
            return None
        return TreeNode(child, self._tree)

    def field_text(self, field_name: str) -> str | None:
        child = self._raw.child_by_field_name(field_name)
        if child is None:
            return None
        return self._tree.node_text(child)

    def iter_descendants(self) -> Iterator["TreeNode"]:
        """Yield named descendants in document order, excluding this node."""
        stack = list(reversed(self._raw.named_children))
        while stack:
            current = stack.pop()
            yield TreeNode(current, self._tree)
            stack.extend(reversed(current.named_children))

    def find(self, pattern: str) -> "TreeNode | None":
        selector = compile_selector(pattern)
        return next(
            (node for node in self.iter_descendants() if selector.matches(node)), None
        )

    def find_all(self, pattern: str) -> list["TreeNode"]:
        selector = compile_selector(pattern)
        return [node for node in self.iter_descendants() if selector.matches(node)]

    def _binding_name(self) -> str | None:
        parent = self._raw.parent
        if parent is None:
            return None
        if parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
        elif parent.type == "assignment_expression":
            target = parent.child_by_field_name("left")
        elif parent.type == "pair":
            target = parent.child_by_field_name("key")
        elif parent.type in ("field_definition", "public_field_definition"):
            target = parent.child_by_field_name("property") or parent.child_by_field_name(
                "name"
            )
        else:
            return None
        if target is None or target.type in _PATTERN_TYPES:
            return None
        return self._tree.node_text(target)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TreeNode):
            return NotImplemented
        return self._tree is other._tree and self._key() == other._key()

    def __hash__(self) -> int:
        return hash((id(self._tree), self._key()))

    def __repr__(self) -> str:
        return f"TreeNode(type={self.type!r}, line={self.line}, column={self.column})"

    def _key(self) -> tuple[int, int, str]:
        return (self._raw.start_byte, self._raw.end_byte, self._raw.type)


class SyntaxTree:
    """Hold one parsed source text together with its tree-sitter tree.

    Attributes:
        source: Exact source text that was parsed.
        language: Canonical language tag of the grammar used.
    """

    def __init__(self, raw: Tree, source: str, language: str) -> None:
        self._raw = raw
        self.source = source
        self.language = language
        self._source_bytes = source.encode("utf-8")

    @property
    def source_bytes(self) -> bytes:
        return self._source_bytes

    @property
    def root(self) -> TreeNode:
        return TreeNode(self._raw.root_node, self)

    def node_text(self, raw: Node) -> str:
        return self._source_bytes[raw.start_byte : raw.end_byte].decode(
            "utf-8", errors="replace"
        )

    def iter_nodes(self) -> Iterator[TreeNode]:
        """Yield the root and every named descendant in document order."""
        root = self.root
        yield root
        yield from root.iter_descendants()

    def find(self, pattern: str) -> TreeNode | None:
        selector = compile_selector(pattern)
        return next((node for node in self.iter_nodes() if selector.matches(node)), None)

    def find_all(self, pattern: str) -> list[TreeNode]:
        selector = compile_selector(pattern)
        return [node for node in self.iter_nodes() if selector.matches(node)]

    def functions(self) -> list[TreeNode]:
        return [node for node in self.iter_nodes() if node.type in FUNCTION_TYPES]

    def classes(self) -> list[TreeNode]:
        return [node for node in self.iter_nodes() if node.type in CLASS_TYPES]

    def imports(self) -> list[TreeNode]:
        return [node for node in self.iter_nodes() if node.type in IMPORT_TYPES]

    def node_at(self, line: int, column: int) -> TreeNode | None:
        """Return the deepest named node covering a position.

        Args:
            line: Line number (1-based).
            column: Column number (0-based, in bytes).

        Returns:
            Matching node, or ``None`` when the position is outside the document.
        """
        root = self._raw.root_node
        if line < 1 or column < 0 or line - 1 > root.end_point[0]:
            return None
        point = (line - 1, column)
        raw = root.named_descendant_for_point_range(point, point)
        if raw is None:
            return None
        return TreeNode(raw, self)

    def analyze_scopes(self, include_builtins: bool = False) -> dict[str, Any]:
        return analyze_scopes(self.root, include_builtins=include_builtins)
