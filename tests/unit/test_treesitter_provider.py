# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for the tree-sitter structural provider."""

import pytest

from codesession.errors import ParseFailure
from codesession.treesitter import TreeSitterProvider
from codesession.treesitter.languages import (
    UnsupportedLanguageError,
    detect_language,
    normalize_language,
)


def test_ph1_lang_001_extension_wins_over_content() -> None:
    assert detect_language("const x = 1;", path="/tmp/app.tsx") == "tsx"
    assert detect_language("const x = 1;", path="/tmp/app.mjs") == "javascript"
    assert detect_language("interface A { x: number }", path="/tmp/app.js") == "javascript"


def test_ph1_lang_002_content_markers_pick_grammar() -> None:
    assert detect_language("interface User { id: number }") == "typescript"
    assert detect_language("const el = <div>hi</div>;") == "jsx"
    assert detect_language("const el: string = <b>x</b>;") == "tsx"
    assert detect_language("const x = 1;") == "javascript"


def test_ph1_lang_003_normalize_aliases_and_reject_unknown() -> None:
    assert normalize_language("TS") == "typescript"
    assert normalize_language("js") == "javascript"
    with pytest.raises(UnsupportedLanguageError):
        normalize_language("python")


def test_ph1_tree_001_parse_reports_root_and_language() -> None:
    tree = TreeSitterProvider().parse("function hello() { console.log('world'); }")

    assert tree.language == "javascript"
    assert tree.root.type == "program"
    assert tree.root.has_error is False
    assert len(tree.root.children) == 1


def test_ph1_tree_002_unsupported_language_hint_is_parse_failure() -> None:
    with pytest.raises(ParseFailure, match="Unsupported language"):
        TreeSitterProvider().parse("x = 1", language="cobol")


def test_ph1_tree_003_malformed_code_still_parses_with_error_flag() -> None:
    tree = TreeSitterProvider().parse("function (( {")

    assert tree.root.has_error is True


def test_ph1_tree_004_functions_carry_declared_or_bound_names() -> None:
    source = (
        "function hello() { return 1; }\n"
        "const add = (a, b) => a + b;\n"
        "const obj = { run: function () {} };\n"
        "[1].map(() => 2);\n"
    )
    tree = TreeSitterProvider().parse(source)

    names = [(node.type, node.name) for node in tree.functions()]

    assert names == [
        ("function_declaration", "hello"),
        ("arrow_function", "add"),
        ("function_expression", "run"),
        ("arrow_function", None),
    ]


def test_ph1_tree_005_classes_and_imports_in_document_order() -> None:
    source = (
        "import a from 'a';\n"
        "import { b } from 'b';\n"
        "class First {}\n"
        "const Second = class {};\n"
    )
    tree = TreeSitterProvider().parse(source)

    assert [node.name for node in tree.classes()] == ["First", "Second"]
    assert [node.line for node in tree.imports()] == [1, 2]


def test_ph1_tree_006_node_at_returns_deepest_named_node() -> None:
    tree = TreeSitterProvider().parse("function hello() { console.log('world'); }")

    node = tree.node_at(1, 9)

    assert node is not None
    assert node.type == "identifier"
    assert node.text == "hello"
    assert node.parent is not None
    assert node.parent.type == "function_declaration"
    assert tree.node_at(40, 0) is None


def test_ph1_tree_007_positions_are_one_based_lines_zero_based_columns() -> None:
    tree = TreeSitterProvider().parse("const a = 1;\n  call(a);\n")

    call = tree.find("call")

    assert call is not None
    assert call.name == "call"
    assert (call.line, call.column) == (2, 2)
    assert call.start_position == {"row": 1, "column": 2}
    assert call.end_position == {"row": 1, "column": 9}


def test_ph1_tree_008_typescript_grammar_handles_type_annotations() -> None:
    tree = TreeSitterProvider().parse(
        "export function greet(name: string): string { return name; }",
        language="ts",
    )

    assert tree.language == "typescript"
    assert tree.root.has_error is False
    assert [node.name for node in tree.functions()] == ["greet"]
