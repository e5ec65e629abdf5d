# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Structural queries and the facet cache over the live document."""

import logging
import re
from typing import Any

from codesession.config import SessionConfig, truncate
from codesession.model import FacetName
from codesession.provider import StructuralNode
from codesession.store import SessionStore

logger = logging.getLogger(__name__)

_MODULE_FROM = re.compile(r"""from\s+['"]([^'"]+)['"]""")
_MODULE_BARE = re.compile(r"""^\s*import\s+['"]([^'"]+)['"]""")
_DEFAULT_SPECIFIER = re.compile(r"import\s+(?:type\s+)?(\w+)(?=\s*[,{]|\s+from)")
_NAMED_SPECIFIERS = re.compile(r"import\s*(?:type\s+)?(?:\w+\s*,\s*)?{([^}]+)}")
_NAMESPACE_SPECIFIER = re.compile(r"import\s*(?:type\s+)?(?:\w+\s*,\s*)?\*\s*as\s+(\w+)")


def module_name(import_text: str) -> str:
    """Return the module an import statement reads from, or ``unknown``."""
    match = _MODULE_FROM.search(import_text) or _MODULE_BARE.search(import_text)
    return match.group(1) if match else "unknown"


def import_specifiers(import_text: str) -> list[str]:
    """List the imported names of an import statement.

    Named specifiers are reported by their imported (not local) name;
    a namespace import is reported as ``* as <local>``.

    Args:
        import_text: Source text of one import statement.

    Returns:
        Specifiers in default, named, namespace order.
    """
    specifiers: list[str] = []
    default = _DEFAULT_SPECIFIER.search(import_text)
    if default and default.group(1) != "type":
        specifiers.append(default.group(1))
    named = _NAMED_SPECIFIERS.search(import_text)
    if named:
        for part in named.group(1).split(","):
            imported = part.strip().split(" as ")[0].strip()
            if imported:
                specifiers.append(imported)
    namespace = _NAMESPACE_SPECIFIER.search(import_text)
    if namespace:
        specifiers.append(f"* as {namespace.group(1)}")
    return specifiers


class AnalysisCache:
    """Answer structural queries and keep the function/class/import facets.

    Facet queries (``functions``, ``classes``, ``imports``) overwrite their
    own field of the session snapshot. Point queries and scope analysis read
    the document without touching the snapshot.
    """

    def __init__(self, store: SessionStore, config: SessionConfig | None = None) -> None:
        self._store = store
        self._config = config or SessionConfig()

    def functions(
        self, include_anonymous: bool = True, async_only: bool = False
    ) -> list[dict[str, Any]]:
        """Return the functions facet.

        Args:
            include_anonymous: Keep functions that carry no name.
            async_only: Keep only functions whose text mentions ``async``.

        Returns:
            Shaped function items in document order.

        Raises:
            NoDocumentLoaded: If nothing has been loaded yet.
        """
        with self._store.locked():
            document = self._store.require()
            nodes = document.tree.functions()
            if async_only:
                nodes = [node for node in nodes if "async" in node.text]
            if not include_anonymous:
                nodes = [node for node in nodes if node.name and node.name.strip()]
            items = [
                {
                    "name": node.name or "anonymous",
                    "type": node.type,
                    "line": node.line,
                    "column": node.column,
                    "endLine": node.end_line,
                    "isAsync": "async" in node.text,
                    "text": truncate(node.text, self._config.function_text_chars),
                }
                for node in nodes
            ]
            self._write("functions", items, document.version)
        return items

    def classes(
        self, include_properties: bool = True, include_methods: bool = True
    ) -> list[dict[str, Any]]:
        """Return the classes facet.

        Args:
            include_properties: Attach each class's field definitions.
            include_methods: Attach each class's method definitions.

        Returns:
            Shaped class items in document order.

        Raises:
            NoDocumentLoaded: If nothing has been loaded yet.
        """
        with self._store.locked():
            document = self._store.require()
            items = [
                self._shape_class(node, include_properties, include_methods)
                for node in document.tree.classes()
            ]
            self._write("classes", items, document.version)
        return items

    def imports(self, include_type_imports: bool = True) -> list[dict[str, Any]]:
        """Return the imports facet.

        Args:
            include_type_imports: Keep imports whose text mentions ``type ``.

        Returns:
            Shaped import items in document order.

        Raises:
            NoDocumentLoaded: If nothing has been loaded yet.
        """
        with self._store.locked():
            document = self._store.require()
            nodes = document.tree.imports()
            if not include_type_imports:
                nodes = [node for node in nodes if "type " not in node.text]
            items = [
                {
                    "module": module_name(node.text),
                    "specifiers": import_specifiers(node.text),
                    "line": node.line,
                    "column": node.column,
                    "isTypeOnly": "type " in node.text,
                    "text": node.text,
                }
                for node in nodes
            ]
            self._write("imports", items, document.version)
        return items

    def find(self, pattern: str) -> dict[str, Any] | None:
        """Describe the first node matching ``pattern``, or ``None``.

        Raises:
            NoDocumentLoaded: If nothing has been loaded yet.
            PatternError: If the pattern is malformed.
        """
        with self._store.locked():
            node = self._store.require().tree.find(pattern)
        if node is None:
            return None
        return {
            **self._describe(node, self._config.match_text_chars),
            "startPosition": node.start_position,
            "endPosition": node.end_position,
            "childrenCount": len(node.children),
        }

    def find_all(
        self, pattern: str, limit: int | None = None
    ) -> tuple[int, list[dict[str, Any]]]:
        """Describe every node matching ``pattern``.

        Args:
            pattern: Structural pattern.
            limit: Maximum number of described matches; all when ``None``.

        Returns:
            Total match count and the described (possibly limited) matches.

        Raises:
            NoDocumentLoaded: If nothing has been loaded yet.
            PatternError: If the pattern is malformed.
        """
        with self._store.locked():
            nodes = self._store.require().tree.find_all(pattern)
        shown = nodes if limit is None else nodes[:limit]
        return len(nodes), [
            self._describe(node, self._config.list_text_chars) for node in shown
        ]

    def node_at(self, line: int, column: int) -> dict[str, Any] | None:
        """Describe the deepest node at a 1-based line and 0-based column.

        Raises:
            NoDocumentLoaded: If nothing has been loaded yet.
        """
        with self._store.locked():
            node = self._store.require().tree.node_at(line, column)
        if node is None:
            return None
        parent = node.parent
        return {
            **self._describe(node, self._config.match_text_chars),
            "startPosition": node.start_position,
            "endPosition": node.end_position,
            "parent": {"type": parent.type, "name": parent.name} if parent else None,
            "childrenCount": len(node.children),
        }

    def scopes(self, include_builtins: bool = False) -> dict[str, Any]:
        """Return the scope report of the live document.

        Raises:
            NoDocumentLoaded: If nothing has been loaded yet.
        """
        with self._store.locked():
            document = self._store.require()
            report = document.tree.analyze_scopes(include_builtins=include_builtins)
        logger.info(
            f"Scopes analyzed (scopes={report.get('scopeCount')} "
            f"globals={len(report.get('globalReferences', []))})"
        )
        return report

    def _shape_class(
        self, node: StructuralNode, include_properties: bool, include_methods: bool
    ) -> dict[str, Any]:
        item: dict[str, Any] = {
            "name": node.name or "anonymous",
            "type": node.type,
            "line": node.line,
            "column": node.column,
        }
        if include_methods:
            item["methods"] = [
                {
                    "name": method.name or "anonymous",
                    "line": method.line,
                    "isStatic": "static" in method.text,
                    "isAsync": "async" in method.text,
                }
                for method in node.find_all("method")
            ]
        if include_properties:
            item["properties"] = [
                {
                    "name": prop.name or "unknown",
                    "line": prop.line,
                    "isStatic": "static" in prop.text,
                }
                for prop in node.find_all("property")
            ]
        return item

    def _describe(self, node: StructuralNode, text_limit: int) -> dict[str, Any]:
        return {
            "type": node.type,
            "text": truncate(node.text, text_limit),
            "line": node.line,
            "column": node.column,
            "name": node.name,
        }

    def _write(self, facet: FacetName, items: list[dict[str, Any]], version: int) -> None:
        self._store.write_facet(facet, items, version)
        logger.info(f"Facet refreshed (facet={facet} items={len(items)} version={version})")
