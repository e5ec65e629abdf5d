# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Compile and match structural patterns against syntax tree nodes.

Patterns use a CSS-like selector syntax::

    function[name="main"]
    class[name^="User"] > class_body method[static]
    call[text*="console.log"], call[text*="console.warn"]
    function:has(call[text*="fetch"]):not([async])

A compound selector is a node type (or alias, or ``*``) followed by
attribute filters and ``:has(...)`` / ``:not(...)`` pseudo-classes.
Compounds are joined by a descendant (whitespace) or child (``>``)
combinator, and alternatives are separated by commas.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

from codesession.errors import PatternError

logger = logging.getLogger(__name__)

TYPE_ALIASES: dict[str, frozenset[str]] = {
    "function": frozenset(
        {
            "function_declaration",
            "function_expression",
            "function",
            "arrow_function",
            "method_definition",
            "generator_function_declaration",
            "generator_function",
        }
    ),
    "class": frozenset({"class_declaration", "class", "abstract_class_declaration"}),
    "method": frozenset({"method_definition"}),
    "call": frozenset({"call_expression"}),
    "string": frozenset({"string", "template_string"}),
    "import": frozenset({"import_statement"}),
    "export": frozenset({"export_statement"}),
    "variable": frozenset({"variable_declarator"}),
    "property": frozenset({"field_definition", "public_field_definition"}),
    "jsx": frozenset({"jsx_element", "jsx_self_closing_element"}),
}

_ATTRIBUTE_OPERATORS: tuple[str, ...] = ("*=", "^=", "$=", "!=", "~=", "=")
_IDENT_CHARS = re.compile(r"[A-Za-z0-9_\-]")


class MatchableNode(Protocol):
    """Node surface required by selector matching."""

    type: str
    text: str
    line: int
    column: int
    name: str | None

    @property
    def parent(self) -> "MatchableNode | None": ...

    def iter_descendants(self) -> Iterator["MatchableNode"]: ...

    def has_token(self, token_type: str) -> bool: ...

    def field_text(self, field_name: str) -> str | None: ...


@dataclass(frozen=True)
class AttributeFilter:
    """Represent one ``[name op value]`` filter."""

    name: str
    operator: str | None
    value: str | None
    regex: re.Pattern[str] | None = None

    def matches(self, node: MatchableNode) -> bool:
        if self.operator is None:
            if self.name == "name":
                return bool(node.name)
            return node.has_token(self.name) or node.field_text(self.name) is not None
        actual = _attribute_value(node, self.name)
        expected = self.value or ""
        if self.operator == "!=":
            return actual != expected
        if actual is None:
            return False
        if self.operator == "=":
            return actual == expected
        if self.operator == "*=":
            return expected in actual
        if self.operator == "^=":
            return actual.startswith(expected)
        if self.operator == "$=":
            return actual.endswith(expected)
        return self.regex is not None and self.regex.search(actual) is not None


@dataclass(frozen=True)
class Compound:
    """Represent one compound selector (type, filters, pseudo-classes)."""

    types: frozenset[str] | None
    attributes: tuple[AttributeFilter, ...] = ()
    has: tuple["Selector", ...] = ()
    excludes: tuple["Selector", ...] = ()

    def matches(self, node: MatchableNode) -> bool:
        if self.types is not None and node.type not in self.types:
            return False
        if not all(attribute.matches(node) for attribute in self.attributes):
            return False
        for selector in self.has:
            if not any(selector.matches(child) for child in node.iter_descendants()):
                return False
        return not any(selector.matches(node) for selector in self.excludes)


@dataclass(frozen=True)
class Chain:
    """Represent compounds joined by combinators.

    Attributes:
        steps: ``(combinator, compound)`` pairs; the first combinator is empty.
    """

    steps: tuple[tuple[str, Compound], ...]

    def matches(self, node: MatchableNode) -> bool:
        return self._match_at(node, len(self.steps) - 1)

    def _match_at(self, node: MatchableNode, index: int) -> bool:
        combinator, compound = self.steps[index]
        if not compound.matches(node):
            return False
        if index == 0:
            return True
        if combinator == ">":
            parent = node.parent
            return parent is not None and self._match_at(parent, index - 1)
        ancestor = node.parent
        while ancestor is not None:
            if self._match_at(ancestor, index - 1):
                return True
            ancestor = ancestor.parent
        return False


@dataclass(frozen=True)
class Selector:
    """Represent a compiled pattern."""

    pattern: str
    alternatives: tuple[Chain, ...]

    def matches(self, node: MatchableNode) -> bool:
        return any(chain.matches(node) for chain in self.alternatives)


@lru_cache(maxsize=256)
def compile_selector(pattern: str) -> Selector:
    """Compile a pattern string.

    Args:
        pattern: Selector text.

    Returns:
        Compiled selector.

    Raises:
        PatternError: If the pattern is empty or malformed.
    """
    if not pattern.strip():
        raise PatternError(pattern, "pattern is empty")
    parser = _SelectorParser(pattern)
    selector = parser.parse()
    logger.debug(f"Compiled pattern (pattern={pattern} alternatives={len(selector.alternatives)})")
    return selector


def resolve_type(name: str) -> frozenset[str]:
    """Resolve a type name or alias to concrete grammar node types."""
    if name in TYPE_ALIASES:
        return TYPE_ALIASES[name]
    return frozenset({name.replace("-", "_")})


def _attribute_value(node: MatchableNode, name: str) -> str | None:
    if name == "name":
        return node.name
    if name == "text":
        return node.text
    if name == "type":
        return node.type
    if name == "line":
        return str(node.line)
    if name == "column":
        return str(node.column)
    return node.field_text(name)


class _SelectorParser:
    """Recursive-descent parser for selector text."""

    def __init__(self, pattern: str) -> None:
        self._pattern = pattern
        self._pos = 0

    def parse(self) -> Selector:
        alternatives = self._parse_alternatives()
        self._skip_whitespace()
        if self._peek() is not None:
            raise self._error(f"unexpected '{self._peek()}'")
        return Selector(pattern=self._pattern, alternatives=alternatives)

    def _parse_alternatives(self) -> tuple[Chain, ...]:
        alternatives = [self._parse_chain()]
        while True:
            self._skip_whitespace()
            if self._peek() != ",":
                break
            self._pos += 1
            alternatives.append(self._parse_chain())
        return tuple(alternatives)

    def _parse_chain(self) -> Chain:
        self._skip_whitespace()
        steps: list[tuple[str, Compound]] = [("", self._parse_compound())]
        while True:
            had_whitespace = self._skip_whitespace()
            current = self._peek()
            if current is None or current in ",)":
                break
            if current == ">":
                self._pos += 1
                self._skip_whitespace()
                steps.append((">", self._parse_compound()))
            elif had_whitespace:
                steps.append((" ", self._parse_compound()))
            else:
                raise self._error(f"unexpected '{current}'")
        return Chain(steps=tuple(steps))

    def _parse_compound(self) -> Compound:
        start = self._pos
        types: frozenset[str] | None = None
        attributes: list[AttributeFilter] = []
        has: list[Selector] = []
        excludes: list[Selector] = []

        if self._peek() == "*":
            self._pos += 1
        elif self._peek_is_ident():
            types = resolve_type(self._read_ident())

        while True:
            current = self._peek()
            if current == "[":
                attributes.append(self._parse_attribute())
            elif current == ":":
                kind, selector = self._parse_pseudo()
                if kind == "has":
                    has.append(selector)
                else:
                    excludes.append(selector)
            else:
                break

        if self._pos == start:
            found = self._peek()
            detail = "unexpected end of pattern" if found is None else f"unexpected '{found}'"
            raise self._error(f"{detail}, expected a node type, '*', '[' or ':'")
        return Compound(
            types=types,
            attributes=tuple(attributes),
            has=tuple(has),
            excludes=tuple(excludes),
        )

    def _parse_attribute(self) -> AttributeFilter:
        self._expect("[")
        self._skip_whitespace()
        if not self._peek_is_ident():
            raise self._error("expected attribute name")
        name = self._read_ident()
        self._skip_whitespace()
        if self._peek() == "]":
            self._pos += 1
            return AttributeFilter(name=name, operator=None, value=None)

        operator = next(
            (
                candidate
                for candidate in _ATTRIBUTE_OPERATORS
                if self._pattern.startswith(candidate, self._pos)
            ),
            None,
        )
        if operator is None:
            raise self._error(f"expected an operator or ']' after attribute '{name}'")
        self._pos += len(operator)
        self._skip_whitespace()
        value = self._read_value()
        self._skip_whitespace()
        self._expect("]")

        regex = None
        if operator == "~=":
            try:
                regex = re.compile(value)
            except re.error as exc:
                raise self._error(f"invalid regular expression '{value}': {exc}") from exc
        return AttributeFilter(name=name, operator=operator, value=value, regex=regex)

    def _parse_pseudo(self) -> tuple[str, Selector]:
        self._expect(":")
        if not self._peek_is_ident():
            raise self._error("expected pseudo-class name")
        kind = self._read_ident()
        if kind not in ("has", "not"):
            raise self._error(f"unsupported pseudo-class ':{kind}'")
        self._expect("(")
        inner_start = self._pos
        alternatives = self._parse_alternatives()
        inner_text = self._pattern[inner_start : self._pos].strip()
        self._skip_whitespace()
        self._expect(")")
        return kind, Selector(pattern=inner_text, alternatives=alternatives)

    def _read_value(self) -> str:
        quote = self._peek()
        if quote in ("'", '"'):
            self._pos += 1
            chars: list[str] = []
            while True:
                current = self._peek()
                if current is None:
                    raise self._error("unterminated string")
                self._pos += 1
                if current == "\\" and self._peek() is not None:
                    chars.append(self._pattern[self._pos])
                    self._pos += 1
                    continue
                if current == quote:
                    return "".join(chars)
                chars.append(current)
        start = self._pos
        while self._peek() is not None and self._peek() not in "] \t\r\n":
            self._pos += 1
        if self._pos == start:
            raise self._error("expected attribute value")
        return self._pattern[start : self._pos]

    def _read_ident(self) -> str:
        start = self._pos
        while self._peek_is_ident():
            self._pos += 1
        return self._pattern[start : self._pos]

    def _peek(self) -> str | None:
        if self._pos >= len(self._pattern):
            return None
        return self._pattern[self._pos]

    def _peek_is_ident(self) -> bool:
        current = self._peek()
        return current is not None and _IDENT_CHARS.match(current) is not None

    def _skip_whitespace(self) -> bool:
        start = self._pos
        while self._peek() is not None and self._peek().isspace():
            self._pos += 1
        return self._pos > start

    def _expect(self, char: str) -> None:
        if self._peek() != char:
            found = self._peek()
            found_text = "end of pattern" if found is None else f"'{found}'"
            raise self._error(f"expected '{char}' but found {found_text}")
        self._pos += 1

    def _error(self, detail: str) -> PatternError:
        return PatternError(self._pattern, f"{detail} at position {self._pos}")
