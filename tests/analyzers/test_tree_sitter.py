"""Tests for the tree-sitter parsing helpers."""

from __future__ import annotations

import pytest

from storegraph.analyzers.tree_sitter import (
    SourceParseError,
    SourceParser,
    iter_nodes,
    line_of,
    promote_dialect,
    string_value,
)


def test_parser_handles_every_dialect() -> None:
    parser = SourceParser()
    samples = {
        "js": "export const a = 1;\n",
        "jsx": "export const A = () => <div />;\n",
        "ts": "export const a: number = 1;\n",
        "tsx": "export const A = (p: { n: number }) => <div>{p.n}</div>;\n",
    }
    for dialect, code in samples.items():
        source = parser.parse(f"file.{dialect}", code, dialect)
        assert source.dialect == dialect
        assert source.root.type == "program"


def test_parser_rejects_trees_with_errors() -> None:
    with pytest.raises(SourceParseError, match="broken.ts"):
        SourceParser().parse("broken.ts", "export const = ;\n", "ts")


def test_typescript_syntax_fails_under_javascript_grammar() -> None:
    with pytest.raises(SourceParseError):
        SourceParser().parse("typed.js", "let a: number = 1;\ninterface A { b: string }\n", "js")


def test_iter_nodes_line_of_and_string_value() -> None:
    code = 'import { atom } from "nanostores";\n\nconst a = atom(1);\nconst b = atom(2);\n'
    source = SourceParser().parse("stores.js", code, "js")

    calls = list(iter_nodes(source.root, "call_expression"))
    assert [line_of(call) for call in calls] == [3, 4]
    assert source.text(calls[0]) == "atom(1)"

    statement = source.root.named_children[0]
    assert string_value(statement.child_by_field_name("source"), source) == "nanostores"
    assert string_value(None, source) is None


def test_promote_dialect_keeps_most_capable() -> None:
    assert promote_dialect("js", "ts") == "ts"
    assert promote_dialect("ts", "jsx") == "ts"
    assert promote_dialect("jsx", "tsx") == "tsx"
    assert promote_dialect("tsx", None) == "tsx"
