# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for request dispatching and response shaping."""

import json
from pathlib import Path

import pytest

from codesession.dispatcher import TOOL_NAMES, Dispatcher
from codesession.errors import NotFound

INLINE = "function hello() { console.log('world'); }"


def _loaded(dispatcher: Dispatcher, source: str = INLINE) -> Dispatcher:
    response = dispatcher.call("parse_code", {"source": source})
    assert response.is_error is False
    return dispatcher


def test_ph4_disp_001_hello_scenario_preview_does_not_commit(
    dispatcher: Dispatcher,
) -> None:
    _loaded(dispatcher)

    functions = dispatcher.call("get_functions", {})
    preview = dispatcher.call(
        "rename_identifier", {"oldName": "hello", "newName": "greet", "preview": True}
    )
    after = dispatcher.call("get_functions", {})

    assert [(item["name"], item["isAsync"]) for item in functions.payload] == [
        ("hello", False)
    ]
    assert "greet" in preview.payload["text"]
    assert preview.to_text().startswith('Preview: Renamed "hello" to "greet"')
    assert after.payload[0]["name"] == "hello"


def test_ph4_disp_002_missing_file_is_not_found_and_leaves_no_document(
    dispatcher: Dispatcher, tmp_path: Path
) -> None:
    response = dispatcher.call("parse_code", {"source": str(tmp_path / "missing.js")})

    assert response.is_error is True
    assert response.error_kind == "NotFound"
    assert "NotFound" in response.to_text()
    assert dispatcher.session.store.current() is None


def test_ph4_disp_003_unknown_batch_operation_leaves_document(
    dispatcher: Dispatcher,
) -> None:
    _loaded(dispatcher)
    before = dispatcher.session.store.require()

    response = dispatcher.call(
        "transform_code",
        {
            "operations": [
                {"type": "rename", "oldName": "x", "newName": "y"},
                {"type": "bogus"},
            ]
        },
    )

    assert response.is_error is True
    assert response.error_kind == "UnknownOperation"
    assert dispatcher.session.store.require() is before


def test_ph4_disp_004_queries_before_load_tell_caller_to_parse_first(
    dispatcher: Dispatcher,
) -> None:
    for name in TOOL_NAMES:
        if name == "parse_code":
            continue
        arguments = {
            "pattern": "function",
            "oldName": "a",
            "newName": "b",
            "operations": [],
            "code": "x();",
            "position": "after",
            "line": 1,
            "column": 0,
        }
        response = dispatcher.call(name, arguments)

        assert response.is_error is True, name
        assert response.error_kind == "NoDocumentLoaded", name
        assert "parse_code first" in response.to_text(), name


def test_ph4_disp_005_parse_code_summary_text_and_payload(
    dispatcher: Dispatcher, tmp_path: Path
) -> None:
    source_file = tmp_path / "widget.jsx"
    source_file.write_text("const App = () => <div>hi</div>;\n", encoding="utf-8")

    response = dispatcher.call("parse_code", {"source": str(source_file)})

    assert response.payload["language"] == "jsx"
    assert response.payload["filePath"] == str(source_file.resolve())
    assert response.payload["hasParseErrors"] is False
    text = response.to_text()
    assert text.startswith(f"Successfully parsed {source_file.resolve()}\n")
    assert "Parse errors: No" in text
    assert "Root node type: program" in text


def test_ph4_disp_006_find_queries_shape_and_truncate(dispatcher: Dispatcher) -> None:
    _loaded(dispatcher, "const s = '" + "x" * 300 + "';\nfoo();\nbar();\n")

    single = dispatcher.call("find_pattern", {"pattern": "string"})
    limited = dispatcher.call("find_all_pattern", {"pattern": "call", "limit": 1})
    missing = dispatcher.call("find_pattern", {"pattern": "class"})

    assert len(single.payload["text"]) == 203
    assert single.payload["startPosition"] == {"row": 0, "column": 10}
    assert limited.summary == 'Found 2 matches for pattern "call" (showing first 1):'
    assert [item["name"] for item in limited.payload] == ["foo"]
    assert missing.is_error is False
    assert missing.to_text() == "No match found for pattern: class"


def test_ph4_disp_007_malformed_pattern_is_error_quoting_pattern(
    dispatcher: Dispatcher,
) -> None:
    _loaded(dispatcher)

    response = dispatcher.call("find_all_pattern", {"pattern": "call[name="})

    assert response.is_error is True
    assert response.error_kind == "PatternError"
    assert "'call[name='" in response.to_text()


def test_ph4_disp_008_node_at_position_reports_parent(dispatcher: Dispatcher) -> None:
    _loaded(dispatcher)

    found = dispatcher.call("get_node_at_position", {"line": 1, "column": 9})
    outside = dispatcher.call("get_node_at_position", {"line": 99, "column": 0})

    assert found.payload["text"] == "hello"
    assert found.payload["parent"]["type"] == "function_declaration"
    assert outside.summary == "No node found at position 99:0"


def test_ph4_disp_009_invalid_and_unknown_calls_are_error_responses(
    dispatcher: Dispatcher,
) -> None:
    unknown = dispatcher.call("drop_tables", {})
    missing = dispatcher.call("rename_identifier", {"oldName": "a"})
    wrong_type = dispatcher.call("get_node_at_position", {"line": True, "column": 0})

    assert unknown.is_error and unknown.error_kind == "UnknownTool"
    assert missing.error_kind == "InvalidArguments"
    assert "'newName'" in missing.summary
    assert wrong_type.error_kind == "InvalidArguments"


def test_ph4_disp_010_resources_reflect_session_state(dispatcher: Dispatcher) -> None:
    assert dispatcher.read_resource("ast://current") == {
        "error": "No document currently loaded"
    }
    assert dispatcher.read_resource("ast://analysis") == {
        "error": "No analysis results available"
    }

    _loaded(dispatcher)
    dispatcher.call("get_functions", {})
    dispatcher.call("remove_unused_imports", {"preview": True})

    current = dispatcher.read_resource("ast://current")
    analysis = json.loads(dispatcher.read_resource_text("ast://analysis"))
    transforms = dispatcher.read_resource("ast://transforms")

    assert current["rootNodeType"] == "program"
    assert current["version"] == 1
    assert analysis["functions"][0]["name"] == "hello"
    assert analysis["documentVersion"] == 1
    assert [record["operation"] for record in transforms["history"]] == [
        "remove_unused_imports"
    ]
    assert transforms["availableOperations"] == [
        "rename_identifier",
        "remove_unused_imports",
        "transform_code",
        "insert_code",
    ]
    assert "replaceIn" in transforms["operationTypes"]


def test_ph4_disp_011_resource_reads_do_not_mutate_state(dispatcher: Dispatcher) -> None:
    _loaded(dispatcher)
    before = dispatcher.session.store.require()

    for uri in ("ast://current", "ast://analysis", "ast://transforms"):
        dispatcher.read_resource(uri)

    assert dispatcher.session.store.require() is before
    assert dispatcher.session.store.snapshot().is_empty
    assert len(dispatcher.session.log) == 0
    with pytest.raises(NotFound):
        dispatcher.read_resource("ast://nothing")


def test_ph4_disp_012_scope_analysis_is_served(dispatcher: Dispatcher) -> None:
    _loaded(dispatcher, "let a = 1;\nfunction f() { return a; }\n")

    response = dispatcher.call("analyze_scopes", {"includeBuiltins": True})

    assert response.is_error is False
    assert response.payload["scopeCount"] == 2
    assert response.to_text().startswith("Scope Analysis Results:\n{")


def test_ph4_disp_013_commit_response_reports_new_version(dispatcher: Dispatcher) -> None:
    _loaded(dispatcher)

    response = dispatcher.call(
        "insert_code",
        {"pattern": "function", "code": "hello();", "position": "after"},
    )

    assert response.payload["mode"] == "commit"
    assert response.payload["documentVersion"] == 2
    assert response.to_text().endswith("Result:\n" + response.payload["text"])


def test_ph4_disp_014_non_positive_limit_is_invalid(dispatcher: Dispatcher) -> None:
    _loaded(dispatcher, "foo();\nbar();\nbaz();\n")

    negative = dispatcher.call("find_all_pattern", {"pattern": "call", "limit": -1})
    zero = dispatcher.call("find_all_pattern", {"pattern": "call", "limit": 0})
    unlimited = dispatcher.call("find_all_pattern", {"pattern": "call"})

    assert negative.error_kind == "InvalidArguments"
    assert "'limit' must be at least 1" in negative.summary
    assert zero.error_kind == "InvalidArguments"
    assert unlimited.summary == 'Found 3 matches for pattern "call":'
