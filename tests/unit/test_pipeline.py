# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for the transform pipeline."""

import threading

import pytest

from codesession.errors import (
    MalformedOperation,
    NoDocumentLoaded,
    PatternError,
    ProviderFailure,
    UnknownOperation,
)
from codesession.session import Session
from codesession.treesitter import TreeSitterProvider

INLINE = "function hello() { console.log('world'); }"


@pytest.fixture
def session() -> Session:
    session = Session.create()
    session.store.load(INLINE)
    return session


class _FailingBuilder:
    def rename(self, old_name: str, new_name: str) -> "_FailingBuilder":
        raise RuntimeError("engine exploded")


class _FailingRewriteProvider(TreeSitterProvider):
    def rewriter(self, tree):
        return _FailingBuilder()


class _Gate:
    """Pause the first rename until released."""

    def __init__(self) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()
        self._paused = False

    def pause(self) -> None:
        if self._paused:
            return
        self._paused = True
        self.entered.set()
        self.release.wait(timeout=5)


class _PausingBuilder:
    def __init__(self, inner, gate: _Gate) -> None:
        self._inner = inner
        self._gate = gate

    def rename(self, old_name: str, new_name: str) -> "_PausingBuilder":
        self._gate.pause()
        return _PausingBuilder(self._inner.rename(old_name, new_name), self._gate)

    def to_string(self) -> str:
        return self._inner.to_string()


class _PausingRewriteProvider(TreeSitterProvider):
    def __init__(self, gate: _Gate) -> None:
        super().__init__()
        self._gate = gate

    def rewriter(self, tree):
        return _PausingBuilder(super().rewriter(tree), self._gate)


def test_ph4_pipe_001_preview_leaves_document_untouched(session: Session) -> None:
    before = session.store.require()

    outcome = session.pipeline.rename_identifier("hello", "greet", preview=True)

    assert "function greet()" in outcome.text
    assert outcome.committed is False
    assert outcome.record.mode == "preview"
    assert session.store.require() is before
    assert session.analysis.functions()[0]["name"] == "hello"


def test_ph4_pipe_002_commit_replaces_document_and_bumps_version(
    session: Session,
) -> None:
    outcome = session.pipeline.rename_identifier("hello", "greet")

    document = session.store.require()
    assert outcome.committed is True
    assert document.source == outcome.text
    assert document.version == 2
    assert session.analysis.functions()[0]["name"] == "greet"


def test_ph4_pipe_003_every_invocation_appends_one_record(session: Session) -> None:
    session.pipeline.rename_identifier("hello", "greet", preview=True)
    session.pipeline.remove_unused_imports()
    session.pipeline.insert_code("function", "// top", "before", preview=True)
    session.pipeline.apply_operations([{"type": "removeUnusedImports"}], preview=True)

    records = session.log.records()
    assert [record.operation for record in records] == [
        "rename_identifier",
        "remove_unused_imports",
        "insert_code",
        "transform_code",
    ]
    assert [record.mode for record in records] == ["preview", "commit", "preview", "preview"]
    assert records[0].parameters == {"oldName": "hello", "newName": "greet"}
    assert records[3].parameters == {
        "operations": [{"type": "removeUnusedImports", "parameters": {}}]
    }


def test_ph4_pipe_004_record_preview_is_truncated() -> None:
    session = Session.create()
    session.store.load("const value = 1;\n" * 60)

    outcome = session.pipeline.rename_identifier("value", "v", preview=True)

    assert len(outcome.text) > 500
    assert outcome.record.preview == outcome.text[:500] + "..."


def test_ph4_pipe_005_unknown_operation_fails_before_any_edit(session: Session) -> None:
    before = session.store.require()

    with pytest.raises(UnknownOperation):
        session.pipeline.apply_operations(
            [{"type": "rename", "oldName": "hello", "newName": "x"}, {"type": "bogus"}]
        )

    assert session.store.require() is before
    assert len(session.log) == 0


def test_ph4_pipe_006_failing_later_step_commits_nothing(session: Session) -> None:
    before = session.store.require()

    with pytest.raises(PatternError):
        session.pipeline.apply_operations(
            [
                {"type": "rename", "parameters": {"oldName": "hello", "newName": "x"}},
                {"type": "insertBefore", "parameters": {"pattern": "class", "text": "y"}},
            ]
        )

    assert session.store.require() is before
    assert len(session.log) == 0


def test_ph4_pipe_007_batch_applies_steps_in_order(session: Session) -> None:
    outcome = session.pipeline.apply_operations(
        [
            {"type": "rename", "parameters": {"oldName": "hello", "newName": "greet"}},
            {
                "type": "replaceIn",
                "parameters": {"nodeType": "string", "pattern": "world", "replacement": "all"},
            },
            {"type": "insertAfter", "parameters": {"pattern": "function", "text": "greet();"}},
        ]
    )

    assert outcome.text == "function greet() { console.log('all'); }\ngreet();"
    assert session.store.require().source == outcome.text


def test_ph4_pipe_008_rename_round_trip_leaves_no_old_identifier() -> None:
    session = Session.create()
    source = "const total = 1;\nfunction add(n) { return total + n; }\nadd(total);\n"
    session.store.load(source)
    session.analysis.functions()

    outcome = session.pipeline.rename_identifier("total", "sum")
    session.store.load(outcome.text, is_file_path=False)

    assert session.store.require().tree.find('identifier[text="total"]') is None
    assert len(session.store.require().tree.find_all('identifier[text="sum"]')) == 3


def test_ph4_pipe_009_commit_keeps_existing_snapshot(session: Session) -> None:
    session.analysis.functions()

    session.pipeline.rename_identifier("hello", "greet")

    snapshot = session.store.snapshot()
    assert snapshot.functions[0]["name"] == "hello"
    assert snapshot.document_version == 1


def test_ph4_pipe_010_invalid_insert_position_is_malformed(session: Session) -> None:
    with pytest.raises(MalformedOperation, match="'middle'"):
        session.pipeline.insert_code("function", "x();", "middle")

    assert len(session.log) == 0


def test_ph4_pipe_011_unexpected_rewrite_errors_become_provider_failures() -> None:
    session = Session.create(provider=_FailingRewriteProvider())
    session.store.load(INLINE)

    with pytest.raises(ProviderFailure, match="engine exploded"):
        session.pipeline.rename_identifier("hello", "greet")

    assert session.store.require().version == 1
    assert len(session.log) == 0


def test_ph4_pipe_012_rewrites_require_a_document() -> None:
    with pytest.raises(NoDocumentLoaded):
        Session.create().pipeline.remove_unused_imports(preview=True)


def test_ph4_pipe_013_concurrent_rewrites_derive_against_committed_text() -> None:
    gate = _Gate()
    session = Session.create(provider=_PausingRewriteProvider(gate))
    session.store.load("let a = 1;")
    first = threading.Thread(target=session.pipeline.rename_identifier, args=("a", "b"))
    second = threading.Thread(target=session.pipeline.rename_identifier, args=("b", "c"))

    first.start()
    assert gate.entered.wait(timeout=5)
    second.start()
    second.join(timeout=0.2)
    assert second.is_alive()
    assert session.store.require().version == 1

    gate.release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    document = session.store.require()
    assert document.source == "let c = 1;"
    assert document.version == 3
    assert [record.mode for record in session.log.records()] == ["commit", "commit"]


def test_ph4_pipe_014_outcome_carries_finalized_document_version(session: Session) -> None:
    preview = session.pipeline.rename_identifier("hello", "greet", preview=True)
    commit = session.pipeline.rename_identifier("hello", "greet")

    assert preview.document_version == 1
    assert commit.document_version == 2
