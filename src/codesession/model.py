# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Domain models for session state."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from codesession.provider import StructuralTree

FacetName = Literal["functions", "classes", "imports"]
TransformMode = Literal["preview", "commit"]


@dataclass(frozen=True)
class Document:
    """Represent the single live parsed document.

    Attributes:
        source: Exact source text.
        origin: Resolved file path, or ``None`` for inline source.
        language: Declared or inferred language tag.
        tree: Structural tree derived from ``source``.
        loaded_at: UTC time the current text was parsed.
        version: 1 after load, incremented by each commit.
    """

    source: str
    origin: str | None
    language: str
    tree: StructuralTree
    loaded_at: datetime
    version: int = 1


@dataclass(frozen=True)
class DocumentSummary:
    """Represent the metadata reported after a load."""

    file_path: str | None
    language: str
    line_count: int
    character_count: int
    has_parse_errors: bool
    root_node_type: str
    children_count: int
    version: int
    loaded_at: datetime

    @classmethod
    def from_document(cls, document: Document) -> "DocumentSummary":
        """Summarize a document.

        Args:
            document: Document to summarize.

        Returns:
            Summary with line/character counts and root metadata.
        """
        root = document.tree.root
        return cls(
            file_path=document.origin,
            language=document.language,
            line_count=len(document.source.split("\n")),
            character_count=len(document.source),
            has_parse_errors=root.has_error,
            root_node_type=root.type,
            children_count=len(root.children),
            version=document.version,
            loaded_at=document.loaded_at,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "filePath": self.file_path,
            "language": self.language,
            "lineCount": self.line_count,
            "characterCount": self.character_count,
            "hasParseErrors": self.has_parse_errors,
            "rootNodeType": self.root_node_type,
            "childrenCount": self.children_count,
            "version": self.version,
            "timestamp": self.loaded_at.isoformat(),
        }


@dataclass(frozen=True)
class AnalysisSnapshot:
    """Represent the cached analysis facets of the live document.

    Facets are overwritten one at a time by their own query; the stamps
    follow the latest facet write.

    Attributes:
        functions: Shaped function facet items.
        classes: Shaped class facet items.
        imports: Shaped import facet items.
        captured_at: UTC time of the latest facet write, ``None`` when empty.
        document_version: Document version the latest facet was derived from.
    """

    functions: tuple[dict[str, Any], ...] = ()
    classes: tuple[dict[str, Any], ...] = ()
    imports: tuple[dict[str, Any], ...] = ()
    captured_at: datetime | None = None
    document_version: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.captured_at is None

    def to_payload(self) -> dict[str, Any]:
        return {
            "functions": list(self.functions),
            "classes": list(self.classes),
            "imports": list(self.imports),
            "timestamp": self.captured_at.isoformat() if self.captured_at else None,
            "documentVersion": self.document_version,
        }


@dataclass(frozen=True)
class TransformRecord:
    """Represent one rewrite invocation in the transform log.

    Attributes:
        operation: Invoked operation name.
        parameters: Parameters as supplied by the caller.
        preview: Candidate text, truncated.
        mode: Whether the candidate was previewed or committed.
        recorded_at: UTC time the record was appended.
    """

    operation: str
    parameters: dict[str, Any]
    preview: str
    mode: TransformMode
    recorded_at: datetime = field(compare=False)

    def to_payload(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "parameters": self.parameters,
            "preview": self.preview,
            "mode": self.mode,
            "timestamp": self.recorded_at.isoformat(),
        }
