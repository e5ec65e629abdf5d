# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Session store owning the live document and its analysis snapshot."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from codesession.config import SessionConfig
from codesession.errors import NoDocumentLoaded, NotFound, ParseFailure
from codesession.model import AnalysisSnapshot, Document, DocumentSummary, FacetName
from codesession.provider import StructuralProvider

logger = logging.getLogger(__name__)


def looks_like_path(source: str, max_length: int = 200) -> bool:
    """Guess whether ``source`` is a file path rather than inline code.

    The guess is deliberately crude: input without newlines or semicolons
    and shorter than ``max_length`` counts as a path, so a short one-line
    snippet without a semicolon (``const x = 1``) is taken for a path.
    Callers override the guess with an explicit ``is_file_path``.

    Args:
        source: Caller input.
        max_length: Exclusive length bound for paths.

    Returns:
        True when the input should be read from disk.
    """
    return "\n" not in source and ";" not in source and len(source) < max_length


class SessionStore:
    """Hold the single live document and the analysis snapshot derived from it.

    All writes to session state go through this class, under one lock that
    callers also take (``locked()``) around read-derive-write sequences.
    """

    def __init__(
        self, provider: StructuralProvider, config: SessionConfig | None = None
    ) -> None:
        """Initialize an empty store.

        Args:
            provider: Structural provider used to parse documents.
            config: Session limits and defaults.
        """
        self._provider = provider
        self._config = config or SessionConfig()
        self._document: Document | None = None
        self._snapshot = AnalysisSnapshot()
        self._lock = threading.RLock()

    @property
    def provider(self) -> StructuralProvider:
        return self._provider

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the session lock for the duration of the block."""
        with self._lock:
            yield

    def load(
        self,
        source: str,
        is_file_path: bool | None = None,
        language: str | None = None,
    ) -> DocumentSummary:
        """Load a document, replacing the current one.

        Args:
            source: File path or inline source text.
            is_file_path: Explicit path/inline choice; guessed when ``None``.
            language: Optional language hint.

        Returns:
            Summary of the loaded document.

        Raises:
            NotFound: If a path does not resolve to a file.
            ParseFailure: If the file cannot be read or the provider rejects
                the text.
        """
        treat_as_path = (
            looks_like_path(source, self._config.path_max_length)
            if is_file_path is None
            else is_file_path
        )
        hint = language or self._config.default_language
        if treat_as_path:
            text, origin = self._read_source_file(source)
        else:
            text, origin = source, None

        tree = self._provider.parse(text, language=hint, path=origin)
        document = Document(
            source=text,
            origin=origin,
            language=tree.language,
            tree=tree,
            loaded_at=datetime.now(tz=timezone.utc),
        )
        with self._lock:
            self._document = document
            self.clear_snapshot()
        logger.info(
            f"Document loaded (origin={origin or 'inline'} language={document.language} "
            f"characters={len(text)} has_error={tree.root.has_error})"
        )
        return DocumentSummary.from_document(document)

    def current(self) -> Document | None:
        return self._document

    def require(self) -> Document:
        """Return the live document.

        Raises:
            NoDocumentLoaded: If nothing has been loaded yet.
        """
        document = self._document
        if document is None:
            raise NoDocumentLoaded()
        return document

    def replace(self, new_text: str) -> Document:
        """Swap in new source text for the live document.

        The text is re-parsed with the document's language; origin is kept
        and the version is incremented. On failure the previous document
        stays in place.

        Args:
            new_text: Replacement source text.

        Returns:
            The new live document.

        Raises:
            NoDocumentLoaded: If nothing has been loaded yet.
            ParseFailure: If the provider rejects the new text.
        """
        with self._lock:
            document = self.require()
            tree = self._provider.parse(
                new_text, language=document.language, path=document.origin
            )
            updated = replace(
                document,
                source=new_text,
                tree=tree,
                loaded_at=datetime.now(tz=timezone.utc),
                version=document.version + 1,
            )
            self._document = updated
        logger.info(
            f"Document replaced (version={updated.version} characters={len(new_text)})"
        )
        return updated

    def snapshot(self) -> AnalysisSnapshot:
        return self._snapshot

    def write_facet(
        self, facet: FacetName, items: list[dict[str, Any]], document_version: int
    ) -> AnalysisSnapshot:
        """Overwrite one analysis facet, leaving the others as they are.

        Args:
            facet: Facet to overwrite.
            items: Shaped facet items.
            document_version: Version of the document the items came from.

        Returns:
            The updated snapshot.
        """
        with self._lock:
            self._snapshot = replace(
                self._snapshot,
                **{facet: tuple(items)},
                captured_at=datetime.now(tz=timezone.utc),
                document_version=document_version,
            )
            return self._snapshot

    def clear_snapshot(self) -> None:
        """Drop every cached facet, as when a new document is loaded."""
        with self._lock:
            self._snapshot = AnalysisSnapshot()

    def _read_source_file(self, source: str) -> tuple[str, str]:
        path = Path(source).expanduser().resolve()
        if not path.exists():
            logger.warning(f"Source path does not exist (path={path})")
            raise NotFound(f"File not found: {path}")
        if not path.is_file():
            logger.warning(f"Source path is not a file (path={path})")
            raise NotFound(f"Not a file: {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Failed reading source file (path={path} error={exc})")
            raise ParseFailure(f"Unable to read {path}: {exc}") from exc
        return text, str(path)
