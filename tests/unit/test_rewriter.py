# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for the chainable structural rewriter."""

import pytest

from codesession.errors import PatternError
from codesession.treesitter import RewriteError, TreeSitterProvider
from codesession.treesitter.rewriter import TextEdit, apply_edits


def _rewriter(source: str, language: str | None = None):
    provider = TreeSitterProvider()
    return provider.rewriter(provider.parse(source, language=language))


def test_ph2_rw_001_rename_skips_strings_and_comments() -> None:
    source = "const a = 1;\nconst s = 'a';\n// a\nconsole.log(a);\n"

    result = _rewriter(source).rename("a", "b").to_string()

    assert result == "const b = 1;\nconst s = 'a';\n// a\nconsole.log(b);\n"


def test_ph2_rw_002_builder_steps_leave_receiver_untouched() -> None:
    source = "let count = 0;\ncount += 1;\n"
    original = _rewriter(source)

    renamed = original.rename("count", "total")

    assert original.to_string() == source
    assert renamed.to_string() == "let total = 0;\ntotal += 1;\n"
    assert renamed.steps == ("rename count -> total",)


def test_ph2_rw_003_chained_steps_see_previous_output() -> None:
    source = "function old() {}\nold();\n"

    result = _rewriter(source).rename("old", "mid").rename("mid", "fresh").to_string()

    assert result == "function fresh() {}\nfresh();\n"


def test_ph2_rw_004_remove_unused_imports_trims_specifiers_and_lines() -> None:
    source = (
        "import { used, unused } from 'lib';\n"
        "import gone from 'gone';\n"
        "import './side.js';\n"
        "used();\n"
    )

    result = _rewriter(source).remove_unused_imports().to_string()

    assert result == "import { used } from 'lib';\nimport './side.js';\nused();\n"


def test_ph2_rw_005_remove_unused_imports_keeps_aliases_and_namespaces() -> None:
    source = (
        "import * as path from 'path';\n"
        "import { join as joinPath, resolve } from 'path';\n"
        "path.sep;\n"
        "joinPath('a');\n"
    )

    result = _rewriter(source).remove_unused_imports().to_string()

    assert "import * as path from 'path';" in result
    assert "import { join as joinPath } from 'path';" in result
    assert "resolve" not in result


def test_ph2_rw_006_replace_in_regex_with_global_flag_and_groups() -> None:
    source = "const url = 'http://localhost:3000';\nconst other = 'localhost';\n"

    everywhere = _rewriter(source).replace_in("string", "/localhost/g", "api.example.com")
    port = _rewriter(source).replace_in("string", r"/(\w+):3000/", "$1:8080")

    assert everywhere.to_string() == (
        "const url = 'http://api.example.com:3000';\nconst other = 'api.example.com';\n"
    )
    assert "'http://localhost:8080'" in port.to_string()


def test_ph2_rw_007_replace_in_literal_pattern_and_scoped_node_type() -> None:
    source = "const a = 'old';\nold();\n"

    result = _rewriter(source).replace_in("string", "old", "new").to_string()

    assert result == "const a = 'new';\nold();\n"


def test_ph2_rw_008_replace_in_rejects_bad_regex() -> None:
    with pytest.raises(PatternError, match="invalid regular expression"):
        _rewriter("const a = 'x';").replace_in("string", "/(unclosed/", "y")


def test_ph2_rw_009_insert_before_and_after_use_node_indentation() -> None:
    source = "function a() {\n  return 1;\n}\n"

    before = _rewriter(source).insert_before("return_statement", "log();").to_string()
    after = _rewriter(source).insert_after("function_declaration", "a();").to_string()

    assert before == "function a() {\n  log();\n  return 1;\n}\n"
    assert after == "function a() {\n  return 1;\n}\na();\n"


def test_ph2_rw_010_insert_without_match_raises_pattern_error() -> None:
    with pytest.raises(PatternError) as excinfo:
        _rewriter("const a = 1;\n").insert_after("class", "x();")

    assert excinfo.value.pattern == "class"


def test_ph2_rw_011_overlapping_edits_are_rejected() -> None:
    edits = [TextEdit(0, 4, b"x"), TextEdit(2, 6, b"y")]

    with pytest.raises(RewriteError, match="Overlapping"):
        apply_edits(b"abcdefgh", edits)


def test_ph2_rw_012_apply_edits_orders_insertions_and_replacements() -> None:
    edits = [TextEdit(4, 4, b"+"), TextEdit(0, 1, b"A")]

    assert apply_edits(b"abcdef", edits) == b"Abcd+ef"


def test_ph2_rw_013_typescript_type_identifiers_are_renamed() -> None:
    source = "interface User { id: number }\nconst u: User = { id: 1 };\n"

    result = _rewriter(source, language="typescript").rename("User", "Account").to_string()

    assert result == "interface Account { id: number }\nconst u: Account = { id: 1 };\n"


def test_ph2_rw_014_replace_in_accepts_javascript_named_groups() -> None:
    source = "const a = 'b';\nconst d = 'xx';\n"

    named = _rewriter(source).replace_in("string", "/(?<n>b)/", "[$<n>]")
    backref = _rewriter(source).replace_in("string", r"/(?<c>x)\k<c>/", "$<c>")
    lookbehind = _rewriter(source).replace_in("string", "/(?<!x)x/", "y")

    assert named.to_string() == "const a = '[b]';\nconst d = 'xx';\n"
    assert backref.to_string() == "const a = 'b';\nconst d = 'x';\n"
    assert lookbehind.to_string() == "const a = 'b';\nconst d = 'yx';\n"
