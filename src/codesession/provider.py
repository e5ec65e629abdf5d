# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Structural and rewrite provider contracts consumed by the session core."""

from typing import Any, Protocol


class StructuralNode(Protocol):
    """Describe one node of a structural tree.

    Attributes:
        type: Grammar node type.
        text: Exact source text covered by the node.
        line: Start line (1-based).
        column: Start column (0-based).
        name: Declared or referenced name, when the node carries one.
        has_error: Whether the subtree contains parse errors.
    """

    type: str
    text: str
    line: int
    column: int
    end_line: int
    end_column: int
    name: str | None
    has_error: bool

    @property
    def children(self) -> list["StructuralNode"]: ...

    @property
    def parent(self) -> "StructuralNode | None": ...

    @property
    def start_position(self) -> dict[str, int]: ...

    @property
    def end_position(self) -> dict[str, int]: ...

    def find(self, pattern: str) -> "StructuralNode | None":
        """Return the first descendant matching ``pattern``."""

    def find_all(self, pattern: str) -> list["StructuralNode"]:
        """Return every descendant matching ``pattern`` in document order."""


class StructuralTree(Protocol):
    """Describe a parsed document as produced by a structural provider."""

    language: str
    source: str

    @property
    def root(self) -> StructuralNode: ...

    def find(self, pattern: str) -> StructuralNode | None:
        """Return the first node matching ``pattern``.

        Raises:
            PatternError: If the pattern is malformed.
        """

    def find_all(self, pattern: str) -> list[StructuralNode]:
        """Return every node matching ``pattern`` in document order.

        Raises:
            PatternError: If the pattern is malformed.
        """

    def functions(self) -> list[StructuralNode]:
        """Return function-like nodes in document order."""

    def classes(self) -> list[StructuralNode]:
        """Return class nodes in document order."""

    def imports(self) -> list[StructuralNode]:
        """Return import statements in document order."""

    def node_at(self, line: int, column: int) -> StructuralNode | None:
        """Return the deepest named node at a 1-based line and 0-based column."""

    def analyze_scopes(self, include_builtins: bool = False) -> dict[str, Any]:
        """Return a JSON-shaped scope report for the document."""


class RewriteBuilder(Protocol):
    """Describe a chainable edit builder bound to one structural tree.

    Every step returns a new builder whose text is the previous step's output;
    the receiver is never modified.
    """

    def rename(self, old_name: str, new_name: str) -> "RewriteBuilder": ...

    def remove_unused_imports(self) -> "RewriteBuilder": ...

    def replace_in(
        self, node_type: str, pattern: str, replacement: str
    ) -> "RewriteBuilder": ...

    def insert_before(self, pattern: str, text: str) -> "RewriteBuilder": ...

    def insert_after(self, pattern: str, text: str) -> "RewriteBuilder": ...

    def to_string(self) -> str:
        """Materialize the cumulative edit as source text."""


class StructuralProvider(Protocol):
    """Turn source text into structural trees and rewrite builders."""

    def parse(
        self, text: str, language: str | None = None, path: str | None = None
    ) -> StructuralTree:
        """Parse source text.

        Args:
            text: Source text to parse.
            language: Optional language hint.
            path: Optional origin path used for language detection.

        Returns:
            Parsed structural tree.

        Raises:
            ParseFailure: If the text or language is rejected outright.
        """

    def rewriter(self, tree: StructuralTree) -> RewriteBuilder:
        """Return a rewrite builder rooted at ``tree``."""
