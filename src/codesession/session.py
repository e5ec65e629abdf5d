# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Explicit session context shared by every request handler."""

from dataclasses import dataclass

from codesession.analysis import AnalysisCache
from codesession.config import SessionConfig
from codesession.history import InMemoryTransformLog, TransformLog
from codesession.pipeline import TransformPipeline
from codesession.provider import StructuralProvider
from codesession.store import SessionStore
from codesession.treesitter import TreeSitterProvider


@dataclass(frozen=True)
class Session:
    """Bundle the state owner and the services that read and write through it.

    Attributes:
        config: Session limits and defaults.
        store: Owner of the document and analysis snapshot.
        log: Transform log.
        analysis: Structural queries and facet cache.
        pipeline: Rewrite pipeline.
    """

    config: SessionConfig
    store: SessionStore
    log: TransformLog
    analysis: AnalysisCache
    pipeline: TransformPipeline

    @classmethod
    def create(
        cls,
        config: SessionConfig | None = None,
        provider: StructuralProvider | None = None,
        log: TransformLog | None = None,
    ) -> "Session":
        """Wire a fresh, empty session.

        Args:
            config: Session limits; defaults when omitted.
            provider: Structural provider; tree-sitter when omitted.
            log: Transform log; in-memory when omitted.

        Returns:
            New session with no document loaded.
        """
        config = config or SessionConfig()
        store = SessionStore(provider or TreeSitterProvider(), config)
        log = log if log is not None else InMemoryTransformLog()
        return cls(
            config=config,
            store=store,
            log=log,
            analysis=AnalysisCache(store, config),
            pipeline=TransformPipeline(store, log, config),
        )
