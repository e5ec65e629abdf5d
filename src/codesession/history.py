# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Transform log contracts and the in-memory implementation."""

import logging
from typing import Protocol

from codesession.model import TransformRecord

logger = logging.getLogger(__name__)


class TransformLog(Protocol):
    """Define the append-only log of rewrite invocations."""

    def append(self, record: TransformRecord) -> None:
        """Append one record."""

    def records(self) -> list[TransformRecord]:
        """Return all records in append order."""

    def __len__(self) -> int: ...


class InMemoryTransformLog:
    """Keep transform records for the life of the process."""

    def __init__(self) -> None:
        self._records: list[TransformRecord] = []

    def append(self, record: TransformRecord) -> None:
        self._records.append(record)
        logger.debug(
            f"Transform recorded (operation={record.operation} mode={record.mode} "
            f"size={len(self._records)})"
        )

    def records(self) -> list[TransformRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)
