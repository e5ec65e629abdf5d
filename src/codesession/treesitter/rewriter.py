# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Rewrite JavaScript-family source text through structural edits."""

import logging
import re
import textwrap
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Literal

from codesession.errors import PatternError
from codesession.treesitter.nodes import IDENTIFIER_TYPES, SyntaxTree, TreeNode

logger = logging.getLogger(__name__)

Reparse = Callable[[str], SyntaxTree]
InsertPosition = Literal["before", "after"]

_USAGE_TYPES: frozenset[str] = frozenset(
    {"identifier", "type_identifier", "shorthand_property_identifier"}
)
_REGEX_LITERAL = re.compile(r"^/(.+)/([a-z]*)$", re.DOTALL)
_REGEX_FLAGS: dict[str, int] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": 0,
    "g": 0,
}
# JavaScript named groups and backreferences, unless the opening is escaped.
_JS_NAMED_GROUP = re.compile(r"(?<!\\)\(\?<([A-Za-z_]\w*)>")
_JS_NAMED_BACKREF = re.compile(r"(?<!\\)\\k<([A-Za-z_]\w*)>")


class RewriteError(RuntimeError):
    """Represent rewrite-phase failure."""


@dataclass(frozen=True)
class TextEdit:
    """Replace the byte range ``[start, end)`` with ``replacement``.

    Args:
        start: Start byte offset.
        end: End byte offset; equal to ``start`` for insertions.
        replacement: UTF-8 encoded replacement.
    """

    start: int
    end: int
    replacement: bytes


def apply_edits(source: bytes, edits: list[TextEdit]) -> bytes:
    """Apply non-overlapping edits to a source buffer.

    Args:
        source: Original UTF-8 source.
        edits: Edits in any order.

    Returns:
        Edited source.

    Raises:
        RewriteError: If two edits overlap or an edit falls outside the source.
    """
    ordered = sorted(edits, key=lambda edit: (edit.start, edit.end))
    pieces: list[bytes] = []
    cursor = 0
    for edit in ordered:
        if edit.start < cursor:
            raise RewriteError(
                f"Overlapping edits at byte {edit.start} (previous edit ends at {cursor})"
            )
        if edit.end < edit.start or edit.end > len(source):
            raise RewriteError(f"Edit range {edit.start}-{edit.end} is outside the source")
        pieces.append(source[cursor : edit.start])
        pieces.append(edit.replacement)
        cursor = edit.end
    pieces.append(source[cursor:])
    return b"".join(pieces)


class Rewriter:
    """Build a chain of structural edits over one syntax tree.

    Each step edits the current text, re-parses it, and returns a new
    ``Rewriter``; the receiver is left untouched, so a failing step never
    exposes partially edited text.
    """

    def __init__(
        self, tree: SyntaxTree, reparse: Reparse, steps: tuple[str, ...] = ()
    ) -> None:
        """Initialize builder state.

        Args:
            tree: Syntax tree of the current text.
            reparse: Parses edited text with the tree's language.
            steps: Descriptions of the steps applied so far.
        """
        self._tree = tree
        self._reparse = reparse
        self._steps = steps

    @property
    def tree(self) -> SyntaxTree:
        return self._tree

    @property
    def steps(self) -> tuple[str, ...]:
        return self._steps

    def rename(self, old_name: str, new_name: str) -> "Rewriter":
        """Rename every identifier token spelled ``old_name``.

        Strings, comments and template text are not identifier tokens and are
        left as they are.

        Args:
            old_name: Current identifier text.
            new_name: Replacement identifier text.

        Returns:
            Builder over the renamed text.
        """
        encoded = new_name.encode("utf-8")
        edits = [
            TextEdit(node.start_byte, node.end_byte, encoded)
            for node in self._tree.iter_nodes()
            if node.type in IDENTIFIER_TYPES and node.text == old_name
        ]
        logger.info(f"Rename derived (old_name={old_name} new_name={new_name} sites={len(edits)})")
        return self._derive(edits, f"rename {old_name} -> {new_name}")

    def remove_unused_imports(self) -> "Rewriter":
        """Drop import specifiers whose local names are never referenced.

        Statements left with no used specifier are removed together with
        their line; side-effect imports (``import "x"``) are kept.

        Returns:
            Builder over the cleaned text.
        """
        used = _used_names(self._tree)
        source = self._tree.source_bytes
        edits: list[TextEdit] = []
        removed = 0
        for statement in self._tree.imports():
            plan = _ImportPlan.from_statement(statement)
            if plan is None or plan.all_used(used):
                continue
            removed += plan.unused_count(used)
            rebuilt = plan.rebuild(used)
            if rebuilt is None:
                start, end = _line_span(source, statement.start_byte, statement.end_byte)
                edits.append(TextEdit(start, end, b""))
            else:
                edits.append(
                    TextEdit(statement.start_byte, statement.end_byte, rebuilt.encode("utf-8"))
                )
        logger.info(f"Unused imports derived (specifiers_removed={removed})")
        return self._derive(edits, "remove unused imports")

    def replace_in(self, node_type: str, pattern: str, replacement: str) -> "Rewriter":
        """Replace text inside nodes matching a selector.

        Args:
            node_type: Selector naming the nodes to edit; nested matches are
                covered by their outermost match.
            pattern: ``/regex/flags`` for a regular expression (``g`` replaces
                every match), otherwise a literal replaced everywhere.
            replacement: Replacement text; ``$1``, ``$&``, ``$<name>`` and
                ``$$`` are expanded for regular expressions.

        Returns:
            Builder over the edited text.

        Raises:
            PatternError: If the selector or regular expression is malformed.
        """
        substitute = _compile_substitution(pattern, replacement)
        edits: list[TextEdit] = []
        for node in _outermost(self._tree.find_all(node_type)):
            original = node.text
            updated = substitute(original)
            if updated != original:
                edits.append(
                    TextEdit(node.start_byte, node.end_byte, updated.encode("utf-8"))
                )
        logger.info(f"Replacement derived (node_type={node_type} nodes_changed={len(edits)})")
        return self._derive(edits, f"replace in {node_type}")

    def insert_before(self, pattern: str, text: str) -> "Rewriter":
        """Insert ``text`` on its own line above every node matching ``pattern``."""
        edits = self._insertion_edits(pattern, text, "before")
        return self._derive(edits, f"insert before {pattern}")

    def insert_after(self, pattern: str, text: str) -> "Rewriter":
        """Insert ``text`` on its own line below every node matching ``pattern``."""
        edits = self._insertion_edits(pattern, text, "after")
        return self._derive(edits, f"insert after {pattern}")

    def to_string(self) -> str:
        return self._tree.source

    def _insertion_edits(
        self, pattern: str, text: str, position: InsertPosition
    ) -> list[TextEdit]:
        nodes = self._tree.find_all(pattern)
        if not nodes:
            raise PatternError(pattern, "pattern matched no nodes")
        source = self._tree.source_bytes
        seen_offsets: set[int] = set()
        edits: list[TextEdit] = []
        for node in nodes:
            line_start = source.rfind(b"\n", 0, node.start_byte) + 1
            indent = _leading_whitespace(source, line_start)
            block = _indent_block(text, indent)
            if position == "before":
                offset = line_start
                payload = f"{block}\n"
            else:
                newline = source.find(b"\n", node.end_byte)
                offset = len(source) if newline == -1 else newline
                payload = f"\n{block}"
            if offset in seen_offsets:
                continue
            seen_offsets.add(offset)
            edits.append(TextEdit(offset, offset, payload.encode("utf-8")))
        logger.info(
            f"Insertion derived (pattern={pattern} position={position} sites={len(edits)})"
        )
        return edits

    def _derive(self, edits: list[TextEdit], step: str) -> "Rewriter":
        steps = self._steps + (step,)
        if not edits:
            return Rewriter(self._tree, self._reparse, steps)
        updated = apply_edits(self._tree.source_bytes, edits)
        try:
            text = updated.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RewriteError(f"Edited source is not valid UTF-8: {exc}") from exc
        return Rewriter(self._reparse(text), self._reparse, steps)


@dataclass(frozen=True)
class _ImportPlan:
    """Describe the local bindings introduced by one import statement."""

    statement: TreeNode
    default: TreeNode | None
    namespace: TreeNode | None
    namespace_local: str | None
    specifiers: tuple[tuple[TreeNode, str], ...]

    @classmethod
    def from_statement(cls, statement: TreeNode) -> "_ImportPlan | None":
        clause = next(
            (child for child in statement.children if child.type == "import_clause"), None
        )
        if clause is None:
            return None
        default = None
        namespace = None
        namespace_local = None
        specifiers: list[tuple[TreeNode, str]] = []
        for part in clause.children:
            if part.type == "identifier":
                default = part
            elif part.type == "namespace_import":
                namespace = part
                identifier = next(
                    (child for child in part.children if child.type == "identifier"), None
                )
                namespace_local = identifier.text if identifier is not None else None
            elif part.type == "named_imports":
                for specifier in part.children:
                    if specifier.type != "import_specifier":
                        continue
                    local = specifier.field_text("alias") or specifier.field_text("name")
                    if local is not None:
                        specifiers.append((specifier, local))
        return cls(
            statement=statement,
            default=default,
            namespace=namespace,
            namespace_local=namespace_local,
            specifiers=tuple(specifiers),
        )

    def locals(self) -> list[str]:
        names = [local for _, local in self.specifiers]
        if self.default is not None:
            names.append(self.default.text)
        if self.namespace_local is not None:
            names.append(self.namespace_local)
        return names

    def all_used(self, used: set[str]) -> bool:
        return all(name in used for name in self.locals())

    def unused_count(self, used: set[str]) -> int:
        return sum(1 for name in self.locals() if name not in used)

    def rebuild(self, used: set[str]) -> str | None:
        """Render the statement with only used bindings, or ``None`` if none remain."""
        parts: list[str] = []
        if self.default is not None and self.default.text in used:
            parts.append(self.default.text)
        if self.namespace is not None and self.namespace_local in used:
            parts.append(self.namespace.text)
        kept = [specifier.text for specifier, local in self.specifiers if local in used]
        if kept:
            parts.append("{ " + ", ".join(kept) + " }")
        if not parts:
            return None
        type_prefix = "type " if self.statement.has_token("type") else ""
        module = self.statement.field_text("source") or "''"
        semicolon = ";" if self.statement.text.rstrip().endswith(";") else ""
        return f"import {type_prefix}{', '.join(parts)} from {module}{semicolon}"


def _used_names(tree: SyntaxTree) -> set[str]:
    """Collect identifier texts referenced outside import statements."""
    used: set[str] = set()
    for node in _iter_outside_imports(tree.root):
        if node.type in _USAGE_TYPES:
            used.add(node.text)
    return used


def _iter_outside_imports(root: TreeNode) -> Iterator[TreeNode]:
    stack = [root]
    while stack:
        current = stack.pop()
        if current.type == "import_statement":
            continue
        yield current
        stack.extend(reversed(current.children))


def _outermost(nodes: list[TreeNode]) -> list[TreeNode]:
    kept: list[TreeNode] = []
    for node in nodes:
        if kept and node.start_byte >= kept[-1].start_byte and node.end_byte <= kept[-1].end_byte:
            continue
        kept.append(node)
    return kept


def _line_span(source: bytes, start: int, end: int) -> tuple[int, int]:
    """Widen a range to whole lines when nothing else shares those lines."""
    line_start = source.rfind(b"\n", 0, start) + 1
    if source[line_start:start].strip():
        return start, end
    line_end = source.find(b"\n", end)
    if line_end == -1:
        line_end = len(source)
    if source[end:line_end].strip():
        return start, end
    if line_end < len(source):
        line_end += 1
    return line_start, line_end


def _leading_whitespace(source: bytes, line_start: int) -> str:
    end = line_start
    while end < len(source) and source[end : end + 1] in (b" ", b"\t"):
        end += 1
    return source[line_start:end].decode("utf-8")


def _indent_block(text: str, indent: str) -> str:
    lines = textwrap.dedent(text).strip("\n").split("\n")
    return "\n".join(f"{indent}{line}" if line.strip() else line for line in lines)


def _compile_substitution(pattern: str, replacement: str) -> Callable[[str], str]:
    """Build a text substitution from a literal or ``/regex/flags`` pattern.

    Raises:
        PatternError: If the pattern is empty, uses unknown flags, or does
            not compile.
    """
    if not pattern:
        raise PatternError(pattern, "replacement pattern is empty")
    literal = _REGEX_LITERAL.match(pattern)
    if literal is None:
        return lambda text: text.replace(pattern, replacement)

    body, flag_text = literal.groups()
    flags = 0
    for flag in flag_text:
        if flag not in _REGEX_FLAGS:
            raise PatternError(pattern, f"unsupported regular expression flag '{flag}'")
        flags |= _REGEX_FLAGS[flag]
    try:
        compiled = re.compile(_python_regex(body), flags)
    except re.error as exc:
        raise PatternError(pattern, f"invalid regular expression: {exc}") from exc
    count = 0 if "g" in flag_text else 1

    def substitute(text: str) -> str:
        return compiled.sub(lambda match: _expand_replacement(replacement, match), text, count=count)

    return substitute


def _python_regex(body: str) -> str:
    """Rewrite JavaScript-only named group syntax into its ``re`` spelling.

    Lookbehinds (``(?<=``, ``(?<!``) are left alone.
    """
    body = _JS_NAMED_GROUP.sub(r"(?P<\1>", body)
    return _JS_NAMED_BACKREF.sub(r"(?P=\1)", body)


def _expand_replacement(replacement: str, match: re.Match[str]) -> str:
    """Expand JavaScript-style ``$`` references in a replacement string."""
    group_count = match.re.groups
    pieces: list[str] = []
    index = 0
    while index < len(replacement):
        char = replacement[index]
        following = replacement[index + 1] if index + 1 < len(replacement) else ""
        if char != "$" or not following:
            pieces.append(char)
            index += 1
            continue
        if following == "$":
            pieces.append("$")
            index += 2
            continue
        if following == "&":
            pieces.append(match.group(0))
            index += 2
            continue
        if following.isdigit():
            two_digits = replacement[index + 1 : index + 3]
            if len(two_digits) == 2 and two_digits.isdigit() and 0 < int(two_digits) <= group_count:
                pieces.append(match.group(int(two_digits)) or "")
                index += 3
                continue
            if 0 < int(following) <= group_count:
                pieces.append(match.group(int(following)) or "")
                index += 2
                continue
        if following == "<":
            close = replacement.find(">", index + 2)
            name = replacement[index + 2 : close] if close != -1 else ""
            if name in match.re.groupindex:
                pieces.append(match.group(name) or "")
                index = close + 1
                continue
        pieces.append(char)
        index += 1
    return "".join(pieces)
