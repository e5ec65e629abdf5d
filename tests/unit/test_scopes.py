# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for lexical scope analysis."""

from codesession.treesitter import TreeSitterProvider

SOURCE = (
    "var g = 1;\n"
    "function outer(x) {\n"
    "  let g = x;\n"
    "  if (x) {\n"
    "    var hoisted = 2;\n"
    "  }\n"
    "  return g + unknownThing;\n"
    "}\n"
    "console.log(outer(1));\n"
)


def _report(source: str = SOURCE, include_builtins: bool = False) -> dict:
    tree = TreeSitterProvider().parse(source)
    return tree.analyze_scopes(include_builtins=include_builtins)


def _bindings(report: dict, kind: str) -> dict[str, dict]:
    scope = next(scope for scope in report["scopes"] if scope["kind"] == kind)
    return {binding["name"]: binding for binding in scope["bindings"]}


def test_ph2_scope_001_var_hoists_to_function_scope() -> None:
    report = _report()

    module = _bindings(report, "module")
    function = _bindings(report, "function")

    assert set(module) == {"g", "outer"}
    assert set(function) == {"x", "g", "hoisted"}
    assert function["hoisted"]["kind"] == "var"
    assert function["g"]["kind"] == "let"
    assert function["x"]["kind"] == "parameter"
    assert {scope["kind"] for scope in report["scopes"]} == {"module", "function", "block"}
    assert report["scopeCount"] == 3


def test_ph2_scope_002_references_resolve_to_nearest_binding() -> None:
    report = _report()

    module = _bindings(report, "module")
    function = _bindings(report, "function")

    assert module["outer"]["references"] == 1
    assert module["g"]["references"] == 0
    assert function["g"]["references"] == 1
    assert function["x"]["references"] == 2


def test_ph2_scope_003_shadowed_and_unused_bindings_are_reported() -> None:
    report = _report()

    assert [item["name"] for item in report["shadowedBindings"]] == ["g"]
    assert {item["name"] for item in report["unusedBindings"]} == {"g", "hoisted"}


def test_ph2_scope_004_builtin_globals_only_reported_on_request() -> None:
    without = _report()
    with_builtins = _report(include_builtins=True)

    assert without["globalReferences"] == [
        {"name": "unknownThing", "count": 1, "builtin": False}
    ]
    assert {"name": "console", "count": 1, "builtin": True} in with_builtins[
        "globalReferences"
    ]


def test_ph2_scope_005_imports_and_exports_are_bindings() -> None:
    source = (
        "import { readFile as read } from 'fs';\n"
        "export const loader = () => read('x');\n"
        "const unused = 1;\n"
    )

    report = _report(source)
    module = _bindings(report, "module")

    assert module["read"]["kind"] == "import"
    assert module["read"]["references"] == 1
    assert "readFile" not in module
    assert module["loader"]["exported"] is True
    assert [item["name"] for item in report["unusedBindings"]] == ["unused"]


def test_ph2_scope_006_catch_and_loop_scopes_declare_their_targets() -> None:
    source = (
        "for (const item of [1, 2]) { console.log(item); }\n"
        "try { run(); } catch (err) { console.error(err); }\n"
    )

    report = _report(source)

    assert _bindings(report, "loop")["item"]["references"] == 1
    assert _bindings(report, "catch")["err"]["references"] == 1
    assert [item["name"] for item in report["globalReferences"]] == ["run"]
