# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Route named operations to the session and shape uniform responses."""

import functools
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from codesession.errors import InvalidArguments, NotFound, SessionError
from codesession.model import DocumentSummary
from codesession.operations import OPERATION_TAGS
from codesession.pipeline import TransformOutcome
from codesession.session import Session

logger = logging.getLogger(__name__)

RESOURCE_URIS: dict[str, str] = {
    "ast://current": "Current document summary",
    "ast://analysis": "Latest analysis snapshot",
    "ast://transforms": "Transform history and supported rewrite operations",
}
REWRITE_TOOLS: tuple[str, ...] = (
    "rename_identifier",
    "remove_unused_imports",
    "transform_code",
    "insert_code",
)


@dataclass(frozen=True)
class ToolResponse:
    """Uniform response envelope for every operation.

    Attributes:
        summary: Short human-readable outcome.
        payload: Machine-readable result, if any.
        is_error: Whether the operation failed.
        error_kind: Error taxonomy name when ``is_error`` is set.
        body: Preformatted text rendered instead of the payload.
    """

    summary: str
    payload: Any = None
    is_error: bool = False
    error_kind: str | None = None
    body: str | None = None

    @classmethod
    def failure(cls, action: str, exc: SessionError) -> "ToolResponse":
        return cls(
            summary=f"Error {action}: {exc.kind}: {exc}",
            payload={"error": exc.kind, "message": str(exc)},
            is_error=True,
            error_kind=exc.kind,
        )

    def to_text(self) -> str:
        if self.body is not None:
            return f"{self.summary}\n{self.body}"
        if self.payload is None or self.is_error:
            return self.summary
        return f"{self.summary}\n{_dump(self.payload)}"

    def to_payload(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "payload": self.payload,
            "isError": self.is_error,
            "errorKind": self.error_kind,
        }


Handler = TypeVar("Handler", bound=Callable[..., ToolResponse])


def _boundary(action: str) -> Callable[[Handler], Handler]:
    """Convert every exception raised by a handler into an error response."""

    def decorate(method: Handler) -> Handler:
        @functools.wraps(method)
        def wrapper(self: "Dispatcher", *args: Any, **kwargs: Any) -> ToolResponse:
            try:
                return method(self, *args, **kwargs)
            except SessionError as exc:
                logger.warning(f"Operation failed (action={action} kind={exc.kind} error={exc})")
                return ToolResponse.failure(action, exc)
            except Exception as exc:
                logger.exception(f"Unexpected provider error (action={action})")
                return ToolResponse(
                    summary=f"Error {action}: ProviderFailure: {exc}",
                    payload={"error": "ProviderFailure", "message": str(exc)},
                    is_error=True,
                    error_kind="ProviderFailure",
                )

        return wrapper  # type: ignore[return-value]

    return decorate


@dataclass(frozen=True)
class _Argument:
    wire: str
    name: str
    kinds: tuple[type, ...]
    required: bool = False
    minimum: int | None = None


_ROUTES: dict[str, tuple[_Argument, ...]] = {
    "parse_code": (
        _Argument("source", "source", (str,), required=True),
        _Argument("isFilePath", "is_file_path", (bool,)),
        _Argument("language", "language", (str,)),
    ),
    "find_pattern": (_Argument("pattern", "pattern", (str,), required=True),),
    "find_all_pattern": (
        _Argument("pattern", "pattern", (str,), required=True),
        _Argument("limit", "limit", (int,), minimum=1),
    ),
    "get_functions": (
        _Argument("includeAnonymous", "include_anonymous", (bool,)),
        _Argument("asyncOnly", "async_only", (bool,)),
    ),
    "get_classes": (
        _Argument("includeProperties", "include_properties", (bool,)),
        _Argument("includeMethods", "include_methods", (bool,)),
    ),
    "get_imports": (_Argument("includeTypeImports", "include_type_imports", (bool,)),),
    "rename_identifier": (
        _Argument("oldName", "old_name", (str,), required=True),
        _Argument("newName", "new_name", (str,), required=True),
        _Argument("preview", "preview", (bool,)),
    ),
    "remove_unused_imports": (_Argument("preview", "preview", (bool,)),),
    "transform_code": (
        _Argument("operations", "operations", (list, tuple), required=True),
        _Argument("preview", "preview", (bool,)),
    ),
    "insert_code": (
        _Argument("pattern", "pattern", (str,), required=True),
        _Argument("code", "code", (str,), required=True),
        _Argument("position", "position", (str,), required=True),
        _Argument("preview", "preview", (bool,)),
    ),
    "get_node_at_position": (
        _Argument("line", "line", (int,), required=True),
        _Argument("column", "column", (int,), required=True),
    ),
    "analyze_scopes": (_Argument("includeBuiltins", "include_builtins", (bool,)),),
}

TOOL_NAMES: tuple[str, ...] = tuple(_ROUTES)


def _bind(name: str, arguments: Mapping[str, Any]) -> dict[str, Any]:
    bound: dict[str, Any] = {}
    for argument in _ROUTES[name]:
        value = arguments.get(argument.wire)
        if value is None:
            if argument.required:
                raise InvalidArguments(f"{name}: missing required argument '{argument.wire}'")
            continue
        # bool is an int subclass; only accept it where a bool is declared.
        wrong_bool = isinstance(value, bool) and bool not in argument.kinds
        if wrong_bool or not isinstance(value, argument.kinds):
            expected = "/".join(kind.__name__ for kind in argument.kinds)
            raise InvalidArguments(
                f"{name}: argument '{argument.wire}' must be {expected} "
                f"(got {type(value).__name__})"
            )
        if argument.minimum is not None and value < argument.minimum:
            raise InvalidArguments(
                f"{name}: argument '{argument.wire}' must be at least {argument.minimum} "
                f"(got {value})"
            )
        bound[argument.name] = value
    return bound


class Dispatcher:
    """Serve the operation and resource surface of one session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def call(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResponse:
        """Route a named operation with wire (camelCase) arguments.

        Args:
            name: Operation name.
            arguments: JSON-shaped argument object.

        Returns:
            Response envelope; never raises.
        """
        logger.debug(f"Operation requested (name={name})")
        if name not in _ROUTES:
            return ToolResponse(
                summary=f"Unknown tool: {name}",
                payload={"error": "UnknownTool", "message": f"Unknown tool: {name}"},
                is_error=True,
                error_kind="UnknownTool",
            )
        try:
            bound = _bind(name, arguments or {})
        except InvalidArguments as exc:
            logger.warning(f"Rejected arguments (name={name} error={exc})")
            return ToolResponse.failure("validating arguments", exc)
        return getattr(self, name)(**bound)

    @_boundary("parsing code")
    def parse_code(
        self, source: str, is_file_path: bool | None = None, language: str | None = None
    ) -> ToolResponse:
        summary = self._session.store.load(source, is_file_path=is_file_path, language=language)
        details = (
            f"Language: {summary.language}\n"
            f"Lines: {summary.line_count}\n"
            f"Characters: {summary.character_count}\n"
            f"Parse errors: {'Yes' if summary.has_parse_errors else 'No'}\n"
            f"Root node type: {summary.root_node_type}"
        )
        return ToolResponse(
            summary=f"Successfully parsed {summary.file_path or 'code string'}",
            payload=summary.to_payload(),
            body=details,
        )

    @_boundary("finding pattern")
    def find_pattern(self, pattern: str) -> ToolResponse:
        match = self._session.analysis.find(pattern)
        if match is None:
            return ToolResponse(summary=f"No match found for pattern: {pattern}")
        return ToolResponse(summary=f'Found match for pattern "{pattern}":', payload=match)

    @_boundary("finding pattern")
    def find_all_pattern(self, pattern: str, limit: int | None = None) -> ToolResponse:
        total, matches = self._session.analysis.find_all(pattern, limit=limit)
        shown = f" (showing first {len(matches)})" if limit else ""
        return ToolResponse(
            summary=f'Found {total} matches for pattern "{pattern}"{shown}:',
            payload=matches,
        )

    @_boundary("getting functions")
    def get_functions(
        self, include_anonymous: bool = True, async_only: bool = False
    ) -> ToolResponse:
        items = self._session.analysis.functions(
            include_anonymous=include_anonymous, async_only=async_only
        )
        return ToolResponse(summary=f"Found {len(items)} functions:", payload=items)

    @_boundary("getting classes")
    def get_classes(
        self, include_properties: bool = True, include_methods: bool = True
    ) -> ToolResponse:
        items = self._session.analysis.classes(
            include_properties=include_properties, include_methods=include_methods
        )
        return ToolResponse(summary=f"Found {len(items)} classes:", payload=items)

    @_boundary("getting imports")
    def get_imports(self, include_type_imports: bool = True) -> ToolResponse:
        items = self._session.analysis.imports(include_type_imports=include_type_imports)
        return ToolResponse(summary=f"Found {len(items)} imports:", payload=items)

    @_boundary("renaming identifier")
    def rename_identifier(
        self, old_name: str, new_name: str, preview: bool = False
    ) -> ToolResponse:
        outcome = self._session.pipeline.rename_identifier(old_name, new_name, preview=preview)
        return self._rewrite_response(f'Renamed "{old_name}" to "{new_name}"', outcome)

    @_boundary("removing unused imports")
    def remove_unused_imports(self, preview: bool = False) -> ToolResponse:
        outcome = self._session.pipeline.remove_unused_imports(preview=preview)
        return self._rewrite_response("Removed unused imports", outcome)

    @_boundary("transforming code")
    def transform_code(self, operations: list[Any], preview: bool = False) -> ToolResponse:
        outcome = self._session.pipeline.apply_operations(operations, preview=preview)
        return self._rewrite_response(f"Applied {len(operations)} transformations", outcome)

    @_boundary("inserting code")
    def insert_code(
        self, pattern: str, code: str, position: str, preview: bool = False
    ) -> ToolResponse:
        outcome = self._session.pipeline.insert_code(
            pattern, code, position, preview=preview  # type: ignore[arg-type]
        )
        return self._rewrite_response(f'Inserted code {position} pattern "{pattern}"', outcome)

    @_boundary("getting node at position")
    def get_node_at_position(self, line: int, column: int) -> ToolResponse:
        node = self._session.analysis.node_at(line, column)
        if node is None:
            return ToolResponse(summary=f"No node found at position {line}:{column}")
        return ToolResponse(summary=f"Node at position {line}:{column}:", payload=node)

    @_boundary("analyzing scopes")
    def analyze_scopes(self, include_builtins: bool = False) -> ToolResponse:
        report = self._session.analysis.scopes(include_builtins=include_builtins)
        return ToolResponse(summary="Scope Analysis Results:", payload=report)

    def read_resource(self, uri: str) -> dict[str, Any]:
        """Return the JSON view behind a resource URI without changing state.

        Raises:
            NotFound: If the URI names no resource.
        """
        store = self._session.store
        if uri == "ast://current":
            document = store.current()
            if document is None:
                return {"error": "No document currently loaded"}
            return DocumentSummary.from_document(document).to_payload()
        if uri == "ast://analysis":
            snapshot = store.snapshot()
            if snapshot.is_empty:
                return {"error": "No analysis results available"}
            return snapshot.to_payload()
        if uri == "ast://transforms":
            return {
                "history": [record.to_payload() for record in self._session.log.records()],
                "availableOperations": list(REWRITE_TOOLS),
                "operationTypes": list(OPERATION_TAGS),
            }
        raise NotFound(f"Unknown resource: {uri}")

    def read_resource_text(self, uri: str) -> str:
        return _dump(self.read_resource(uri))

    def _rewrite_response(self, description: str, outcome: TransformOutcome) -> ToolResponse:
        preview = not outcome.committed
        prefix = "Preview: " if preview else ""
        label = "Preview:" if preview else "Result:"
        return ToolResponse(
            summary=f"{prefix}{description}",
            payload={
                "text": outcome.text,
                "mode": outcome.record.mode,
                "documentVersion": outcome.document_version,
            },
            body=f"\n{label}\n{outcome.text}",
        )


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)
