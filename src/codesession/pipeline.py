# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Two-phase derive/finalize pipeline for rewrite operations."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

from codesession.config import SessionConfig, truncate
from codesession.errors import MalformedOperation, ProviderFailure, SessionError
from codesession.history import TransformLog
from codesession.model import TransformRecord
from codesession.operations import (
    InsertAfter,
    InsertBefore,
    Operation,
    RemoveUnusedImports,
    Rename,
    parse_operations,
)
from codesession.provider import StructuralTree
from codesession.store import SessionStore

logger = logging.getLogger(__name__)

InsertPosition = Literal["before", "after"]


@dataclass(frozen=True)
class TransformOutcome:
    """Result of one rewrite invocation.

    Attributes:
        text: Full candidate text produced by the derivation.
        committed: Whether the candidate replaced the live document.
        record: Record appended to the transform log.
        document_version: Version of the live document once finalized.
    """

    text: str
    committed: bool
    record: TransformRecord
    document_version: int


class TransformPipeline:
    """Derive candidate text from typed operations, then preview or commit it.

    Every entry point funnels into ``run``. Derivation never writes session
    state; finalization commits (when asked) and appends exactly one record.
    A failure anywhere leaves the document and the log untouched.
    """

    def __init__(
        self,
        store: SessionStore,
        log: TransformLog,
        config: SessionConfig | None = None,
    ) -> None:
        self._store = store
        self._log = log
        self._config = config or SessionConfig()

    def rename_identifier(
        self, old_name: str, new_name: str, preview: bool = False
    ) -> TransformOutcome:
        operation = Rename(old_name, new_name)
        return self.run(
            "rename_identifier", operation.to_parameters(), [operation], preview
        )

    def remove_unused_imports(self, preview: bool = False) -> TransformOutcome:
        return self.run("remove_unused_imports", {}, [RemoveUnusedImports()], preview)

    def insert_code(
        self,
        pattern: str,
        code: str,
        position: InsertPosition,
        preview: bool = False,
    ) -> TransformOutcome:
        """Insert ``code`` before or after every node matching ``pattern``.

        Raises:
            MalformedOperation: If ``position`` is neither ``before`` nor ``after``.
        """
        if position == "before":
            operation: Operation = InsertBefore(pattern, code)
        elif position == "after":
            operation = InsertAfter(pattern, code)
        else:
            raise MalformedOperation(
                f"Insert position must be 'before' or 'after' (got {position!r})"
            )
        parameters = {"pattern": pattern, "code": code, "position": position}
        return self.run("insert_code", parameters, [operation], preview)

    def apply_operations(
        self, raw_operations: Sequence[Any], preview: bool = False
    ) -> TransformOutcome:
        """Validate a batch eagerly, then run it as one derivation.

        Raises:
            UnknownOperation: If any step is unrecognized; nothing is derived.
        """
        operations = parse_operations(raw_operations)
        parameters = {"operations": [_wire_step(operation) for operation in operations]}
        return self.run("transform_code", parameters, operations, preview)

    def run(
        self,
        name: str,
        parameters: dict[str, Any],
        operations: Sequence[Operation],
        preview: bool,
    ) -> TransformOutcome:
        """Derive candidate text and finalize it as a preview or a commit.

        Args:
            name: Operation name recorded in the log.
            parameters: Parameters recorded in the log.
            operations: Typed operations applied in order.
            preview: Return the candidate without changing the document.

        Returns:
            Outcome carrying the candidate text and the appended record.

        Raises:
            NoDocumentLoaded: If nothing has been loaded yet.
            PatternError: If a step's pattern is malformed or matches nothing
                where a match is required.
            ParseFailure: If the committed text cannot be re-parsed.
            ProviderFailure: If the rewrite provider fails otherwise.
        """
        with self._store.locked():
            document = self._store.require()
            text = self._derive(document.tree, operations)
            if not preview:
                document = self._store.replace(text)
            record = TransformRecord(
                operation=name,
                parameters=parameters,
                preview=truncate(text, self._config.record_preview_chars),
                mode="preview" if preview else "commit",
                recorded_at=datetime.now(tz=timezone.utc),
            )
            self._log.append(record)
        logger.info(
            f"Transform finalized (operation={name} steps={len(operations)} "
            f"mode={record.mode} characters={len(text)})"
        )
        return TransformOutcome(
            text=text,
            committed=not preview,
            record=record,
            document_version=document.version,
        )

    def _derive(self, tree: StructuralTree, operations: Sequence[Operation]) -> str:
        builder = self._store.provider.rewriter(tree)
        for index, operation in enumerate(operations):
            try:
                builder = operation.apply(builder)
            except SessionError:
                logger.warning(
                    f"Derivation aborted (step={index} operation={operation.tag})"
                )
                raise
            except Exception as exc:
                logger.warning(
                    f"Rewrite provider failed (step={index} operation={operation.tag} "
                    f"error={exc})"
                )
                raise ProviderFailure(
                    f"Rewrite step {index} ({operation.tag}) failed: {exc}"
                ) from exc
        return builder.to_string()


def _wire_step(operation: Operation) -> dict[str, Any]:
    return {"type": operation.tag, "parameters": operation.to_parameters()}
