"""Tests for subscriber container detection and store resolution."""

from __future__ import annotations

from storegraph.analyzers.bindings import IdentityResolver
from storegraph.analyzers.imports import collect_hook_imports
from storegraph.analyzers.relations import RelationSet
from storegraph.analyzers.stores import StoreTable
from storegraph.analyzers.subscribers import (
    SubscriberAnalyzer,
    find_container,
    infer_subscriber_kind,
    is_hook_call,
)
from storegraph.analyzers.tree_sitter import SourceParser, iter_nodes
from storegraph.config import ModuleRegistry
from storegraph.models import SUBSCRIBER_KINDS, IdentityKey, Store


def _store(name: str, file: str, line: int = 1) -> tuple[IdentityKey, Store]:
    return (
        IdentityKey(name, file, line),
        Store(id=f"store:{file}#{name}", file=file, line=line, kind="atom", name=name),
    )


def _analyzer(entries) -> SubscriberAnalyzer:
    return SubscriberAnalyzer(
        ModuleRegistry.with_defaults(), IdentityResolver({}), StoreTable(entries), RelationSet()
    )


def test_infer_subscriber_kind() -> None:
    assert infer_subscriber_kind("src/useCounter.ts", "useCounter") == "hook"
    assert infer_subscriber_kind("src/hooks.ts", "use") == "hook"
    assert infer_subscriber_kind("src/hooks.ts", "user") == "unknown"
    assert infer_subscriber_kind("src/cartEffect.ts", "cartEffect") == "effect"
    assert infer_subscriber_kind("src/x.ts", "SideEffects") == "effect"
    assert infer_subscriber_kind("src/Counter.tsx", "Counter") == "component"
    assert infer_subscriber_kind("src/Counter.ts", "Counter") == "component"
    assert infer_subscriber_kind("src/anon.ts") == "unknown"
    assert infer_subscriber_kind("src/Anon.tsx") == "component"
    assert infer_subscriber_kind("src/panel.vue") == "component"
    assert infer_subscriber_kind("src/helpers.mjs", "Helper") == "unknown"
    assert {infer_subscriber_kind("src/a.ts", name) for name in ("useA", "onEffect", "A", "a")} == set(SUBSCRIBER_KINDS)


def test_name_fallback_prefers_unique_then_same_file() -> None:
    analyzer = _analyzer(
        [_store("$x", "a.ts"), _store("$x", "b.ts"), _store("$only", "c.ts")]
    )

    assert [s.id for s in analyzer.resolve_store("a.ts", "$x")] == ["store:a.ts#$x"]
    assert analyzer.resolve_store("other.ts", "$x") == ()
    assert [s.id for s in analyzer.resolve_store("other.ts", "$only")] == ["store:c.ts#$only"]
    assert analyzer.resolve_store("other.ts", "$missing") == ()


def test_find_container_walks_outward() -> None:
    code = (
        'import { useStore } from "@nanostores/react";\n'
        "function Named() { useStore($a); }\n"
        "const Arrow = () => useStore($a);\n"
        "const wrapped = memo(function () { return useStore($a); });\n"
        "class Shop { render() { useStore($a); } }\n"
        "useStore($a);\n"
    )
    source = SourceParser().parse("file.jsx", code, "jsx")
    imports = collect_hook_imports(source, ModuleRegistry.with_defaults())
    calls = [
        call for call in iter_nodes(source.root, "call_expression") if is_hook_call(call, imports, source)
    ]

    containers = [find_container(call, source) for call in calls]

    assert [(c.name, c.start_line) for c in containers] == [
        ("Named", 2),
        ("Arrow", 3),
        ("wrapped", 4),
        ("Shop.render", 5),
        (None, 6),
    ]


def test_analyzer_skips_files_without_hook_imports() -> None:
    relations = RelationSet()
    entries = [_store("$a", "stores.ts")]
    analyzer = SubscriberAnalyzer(
        ModuleRegistry.with_defaults(), IdentityResolver({}), StoreTable(entries), relations
    )

    source = SourceParser().parse("plain.ts", "useStore($a);\n", "ts")
    analyzer.analyze(source)

    assert analyzer.subscribers == []
    assert len(relations) == 0
