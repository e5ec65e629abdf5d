# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Lexical scope analysis over JavaScript-family syntax trees."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)

KNOWN_GLOBALS: frozenset[str] = frozenset(
    {
        "Array",
        "BigInt",
        "Boolean",
        "Buffer",
        "Date",
        "Error",
        "Infinity",
        "Intl",
        "JSON",
        "Map",
        "Math",
        "NaN",
        "Number",
        "Object",
        "Promise",
        "Proxy",
        "RangeError",
        "Reflect",
        "RegExp",
        "Set",
        "String",
        "Symbol",
        "SyntaxError",
        "TypeError",
        "URL",
        "URLSearchParams",
        "WeakMap",
        "WeakSet",
        "__dirname",
        "__filename",
        "alert",
        "arguments",
        "clearInterval",
        "clearTimeout",
        "console",
        "decodeURIComponent",
        "document",
        "encodeURIComponent",
        "exports",
        "fetch",
        "global",
        "globalThis",
        "isFinite",
        "isNaN",
        "localStorage",
        "module",
        "navigator",
        "parseFloat",
        "parseInt",
        "process",
        "queueMicrotask",
        "require",
        "sessionStorage",
        "setInterval",
        "setTimeout",
        "structuredClone",
        "undefined",
        "window",
    }
)

_FUNCTION_SCOPE_TYPES: frozenset[str] = frozenset(
    {
        "function_declaration",
        "function_expression",
        "function",
        "arrow_function",
        "method_definition",
        "generator_function_declaration",
        "generator_function",
    }
)
_CLASS_SCOPE_TYPES: frozenset[str] = frozenset(
    {"class_declaration", "class", "abstract_class_declaration"}
)
_LOOP_SCOPE_TYPES: frozenset[str] = frozenset({"for_statement", "for_in_statement"})
_DECLARED_IN_PARENT: frozenset[str] = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "abstract_class_declaration",
    }
)
_REFERENCE_TYPES: frozenset[str] = frozenset({"identifier", "shorthand_property_identifier"})
_JSX_NAME_PARENTS: frozenset[str] = frozenset(
    {"jsx_opening_element", "jsx_closing_element", "jsx_self_closing_element"}
)


class ScopeNode(Protocol):
    """Node surface required by scope analysis."""

    type: str
    text: str
    line: int
    column: int
    start_byte: int
    end_byte: int

    @property
    def children(self) -> list["ScopeNode"]: ...

    @property
    def parent(self) -> "ScopeNode | None": ...

    def field(self, field_name: str) -> "ScopeNode | None": ...


@dataclass
class Binding:
    """Represent one declared name within a scope."""

    name: str
    kind: str
    line: int
    column: int
    exported: bool = False
    references: int = 0


@dataclass
class Scope:
    """Represent one lexical scope and its declarations."""

    scope_id: int
    kind: str
    node_type: str
    line: int
    column: int
    parent: "Scope | None"
    bindings: dict[str, Binding] = field(default_factory=dict)

    def function_scope(self) -> "Scope":
        """Return the nearest enclosing scope that receives ``var`` declarations."""
        scope: Scope = self
        while scope.kind not in ("function", "module") and scope.parent is not None:
            scope = scope.parent
        return scope

    def resolve(self, name: str) -> Binding | None:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.bindings:
                return scope.bindings[name]
            scope = scope.parent
        return None

    def ancestors(self) -> Iterator["Scope"]:
        scope = self.parent
        while scope is not None:
            yield scope
            scope = scope.parent


class _ScopeBuilder:
    """Walk one syntax tree, declaring bindings and collecting references."""

    def __init__(self) -> None:
        self.scopes: list[Scope] = []
        self._declaration_sites: set[tuple[int, int]] = set()
        self._pending: list[tuple[ScopeNode, Scope]] = []

    def build(self, root: ScopeNode) -> None:
        module = self._open_scope("module", root, parent=None)
        stack: list[tuple[ScopeNode, Scope]] = [(root, module)]
        while stack:
            node, scope = stack.pop()
            inner = self._enter(node, scope) if node is not root else scope
            if node.type in _REFERENCE_TYPES and self._is_reference(node):
                self._pending.append((node, scope))
            for child in reversed(node.children):
                stack.append((child, inner))

        for node, scope in self._pending:
            binding = scope.resolve(node.text)
            if binding is not None:
                binding.references += 1

    def unresolved(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for node, scope in self._pending:
            if scope.resolve(node.text) is None:
                counts[node.text] = counts.get(node.text, 0) + 1
        return counts

    def _enter(self, node: ScopeNode, scope: Scope) -> Scope:
        node_type = node.type
        if node_type in _FUNCTION_SCOPE_TYPES:
            return self._enter_function(node, scope)
        if node_type in _CLASS_SCOPE_TYPES:
            name_node = node.field("name")
            if name_node is not None and node_type in _DECLARED_IN_PARENT:
                self._declare(scope, name_node, "class", node)
            inner = self._open_scope("class", node, parent=scope)
            if name_node is not None and node_type not in _DECLARED_IN_PARENT:
                self._declare(inner, name_node, "class", node)
            return inner
        if node_type == "statement_block":
            parent = node.parent
            if parent is not None and (
                parent.type in _FUNCTION_SCOPE_TYPES or parent.type == "catch_clause"
            ):
                return scope
            return self._open_scope("block", node, parent=scope)
        if node_type in _LOOP_SCOPE_TYPES:
            inner = self._open_scope("loop", node, parent=scope)
            self._declare_loop_target(node, inner)
            return inner
        if node_type == "catch_clause":
            inner = self._open_scope("catch", node, parent=scope)
            parameter = node.field("parameter")
            if parameter is not None:
                for identifier in _pattern_identifiers(parameter):
                    self._declare(inner, identifier, "catch", node)
            return inner
        if node_type == "variable_declaration":
            self._declare_declarators(node, scope.function_scope(), "var")
        elif node_type == "lexical_declaration":
            kind_node = node.field("kind")
            kind = kind_node.text if kind_node is not None else node.text.split(" ", 1)[0]
            self._declare_declarators(node, scope, kind)
        elif node_type == "import_statement":
            self._declare_imports(node, scope.function_scope())
        elif node_type in ("import_specifier", "export_specifier"):
            self._mark_specifier_sites(node)
        return scope

    def _enter_function(self, node: ScopeNode, scope: Scope) -> Scope:
        name_node = node.field("name")
        if name_node is not None and node.type in _DECLARED_IN_PARENT:
            self._declare(scope, name_node, "function", node)
        inner = self._open_scope("function", node, parent=scope)
        if name_node is not None and node.type in ("function_expression", "function", "generator_function"):
            self._declare(inner, name_node, "function", node)
        if name_node is not None and node.type == "method_definition":
            self._declaration_sites.add(_site(name_node))
        for field_name in ("parameters", "parameter"):
            parameters = node.field(field_name)
            if parameters is None:
                continue
            for identifier in _pattern_identifiers(parameters):
                self._declare(inner, identifier, "parameter", node)
        return inner

    def _declare_loop_target(self, node: ScopeNode, scope: Scope) -> None:
        if node.type != "for_in_statement":
            return
        left = node.field("left")
        if left is None:
            return
        kind_node = node.field("kind")
        kind = kind_node.text if kind_node is not None else None
        if kind is None:
            return
        target_scope = scope.function_scope() if kind == "var" else scope
        for identifier in _pattern_identifiers(left):
            self._declare(target_scope, identifier, kind, node)

    def _declare_declarators(self, node: ScopeNode, scope: Scope, kind: str) -> None:
        for declarator in node.children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.field("name")
            if name_node is None:
                continue
            for identifier in _pattern_identifiers(name_node):
                self._declare(scope, identifier, kind, node)

    def _declare_imports(self, node: ScopeNode, scope: Scope) -> None:
        for clause in node.children:
            if clause.type != "import_clause":
                continue
            for part in clause.children:
                if part.type == "identifier":
                    self._declare(scope, part, "import", node)
                elif part.type == "namespace_import":
                    for identifier in part.children:
                        if identifier.type == "identifier":
                            self._declare(scope, identifier, "import", node)
                elif part.type == "named_imports":
                    for specifier in part.children:
                        if specifier.type != "import_specifier":
                            continue
                        local = specifier.field("alias") or specifier.field("name")
                        if local is not None:
                            self._declare(scope, local, "import", node)

    def _mark_specifier_sites(self, node: ScopeNode) -> None:
        name_node = node.field("name")
        alias_node = node.field("alias")
        if node.type == "import_specifier" and alias_node is not None and name_node is not None:
            self._declaration_sites.add(_site(name_node))
        if node.type == "export_specifier" and alias_node is not None:
            self._declaration_sites.add(_site(alias_node))

    def _declare(
        self, scope: Scope, identifier: ScopeNode, kind: str, declaring: ScopeNode
    ) -> None:
        self._declaration_sites.add(_site(identifier))
        name = identifier.text
        if name in scope.bindings:
            return
        scope.bindings[name] = Binding(
            name=name,
            kind=kind,
            line=identifier.line,
            column=identifier.column,
            exported=_is_exported(declaring),
        )

    def _open_scope(self, kind: str, node: ScopeNode, parent: Scope | None) -> Scope:
        scope = Scope(
            scope_id=len(self.scopes),
            kind=kind,
            node_type=node.type,
            line=node.line,
            column=node.column,
            parent=parent,
        )
        self.scopes.append(scope)
        return scope

    def _is_reference(self, node: ScopeNode) -> bool:
        if _site(node) in self._declaration_sites:
            return False
        parent = node.parent
        if parent is not None and parent.type in _JSX_NAME_PARENTS and node.text[:1].islower():
            return False
        return True


def analyze_scopes(root: ScopeNode, include_builtins: bool = False) -> dict[str, Any]:
    """Analyze lexical scopes of a syntax tree.

    Args:
        root: Root node of the document.
        include_builtins: Whether unresolved references to well-known runtime
            globals (``console``, ``Math``, ...) are reported.

    Returns:
        JSON-shaped report with scopes, bindings, shadowed and unused
        bindings, and unresolved global references.
    """
    builder = _ScopeBuilder()
    builder.build(root)

    scopes_payload: list[dict[str, Any]] = []
    shadowed: list[dict[str, Any]] = []
    unused: list[dict[str, Any]] = []
    for scope in builder.scopes:
        bindings_payload = []
        for binding in scope.bindings.values():
            bindings_payload.append(
                {
                    "name": binding.name,
                    "kind": binding.kind,
                    "line": binding.line,
                    "column": binding.column,
                    "references": binding.references,
                    "exported": binding.exported,
                }
            )
            outer = next(
                (
                    ancestor
                    for ancestor in scope.ancestors()
                    if binding.name in ancestor.bindings
                ),
                None,
            )
            if outer is not None:
                shadowed.append(
                    {
                        "name": binding.name,
                        "line": binding.line,
                        "scopeId": scope.scope_id,
                        "shadowsScopeId": outer.scope_id,
                        "shadowsLine": outer.bindings[binding.name].line,
                    }
                )
            if binding.references == 0 and not binding.exported:
                unused.append(
                    {
                        "name": binding.name,
                        "kind": binding.kind,
                        "line": binding.line,
                        "scopeId": scope.scope_id,
                    }
                )
        scopes_payload.append(
            {
                "id": scope.scope_id,
                "kind": scope.kind,
                "nodeType": scope.node_type,
                "line": scope.line,
                "column": scope.column,
                "parentId": scope.parent.scope_id if scope.parent is not None else None,
                "bindings": bindings_payload,
            }
        )

    globals_payload = [
        {"name": name, "count": count, "builtin": name in KNOWN_GLOBALS}
        for name, count in sorted(builder.unresolved().items())
        if include_builtins or name not in KNOWN_GLOBALS
    ]
    logger.debug(
        f"Scope analysis completed (scopes={len(scopes_payload)} "
        f"shadowed={len(shadowed)} unused={len(unused)} globals={len(globals_payload)})"
    )
    return {
        "scopeCount": len(scopes_payload),
        "scopes": scopes_payload,
        "shadowedBindings": shadowed,
        "unusedBindings": unused,
        "globalReferences": globals_payload,
    }


def _pattern_identifiers(node: ScopeNode) -> list[ScopeNode]:
    """Collect identifiers bound by a parameter list or destructuring pattern.

    Default values are not descended into.
    """
    node_type = node.type
    if node_type in ("identifier", "shorthand_property_identifier_pattern"):
        return [node]
    if node_type in ("assignment_pattern", "object_assignment_pattern"):
        left = node.field("left")
        return _pattern_identifiers(left) if left is not None else []
    if node_type == "pair_pattern":
        value = node.field("value")
        return _pattern_identifiers(value) if value is not None else []
    if node_type in ("required_parameter", "optional_parameter"):
        pattern = node.field("pattern")
        return _pattern_identifiers(pattern) if pattern is not None else []
    if node_type in ("formal_parameters", "object_pattern", "array_pattern", "rest_pattern"):
        collected: list[ScopeNode] = []
        for child in node.children:
            collected.extend(_pattern_identifiers(child))
        return collected
    return []


def _is_exported(declaring: ScopeNode) -> bool:
    parent = declaring.parent
    return parent is not None and parent.type == "export_statement"


def _site(node: ScopeNode) -> tuple[int, int]:
    return (node.start_byte, node.end_byte)
