"""Tests for store extraction and derived-relation resolution."""

from __future__ import annotations

from storegraph.analyzers.bindings import IdentityResolver, collect_file_bindings
from storegraph.analyzers.relations import RelationSet, resolve_derived_relations
from storegraph.analyzers.stores import StoreAnalyzer, StoreTable
from storegraph.analyzers.tree_sitter import SourceParser
from storegraph.config import ModuleRegistry
from storegraph.models import DerivedStub, IdentityKey, Relation, Store


def _run_store_pass(files: dict[str, str]) -> tuple[StoreAnalyzer, RelationSet]:
    parser = SourceParser()
    sources = [parser.parse(path, code, "ts") for path, code in files.items()]
    resolver = IdentityResolver({s.rel_path: collect_file_bindings(s) for s in sources})
    relations = RelationSet()
    analyzer = StoreAnalyzer(ModuleRegistry.with_defaults(), resolver, relations)
    for source in sources:
        analyzer.analyze(source)
    return analyzer, relations


def test_store_pass_records_stores_and_stubs() -> None:
    analyzer, relations = _run_store_pass(
        {
            "stores.ts": (
                'import { atom, computed, computedTemplate } from "nanostores";\n'
                "export const $a = atom(1);\n"
                "export const $b = computed([$a, $external, $a], (a) => a);\n"
                "export const $c = computed();\n"
                "export const $d = computedTemplate($b, (b) => b);\n"
                "export const $e = computed(/* deps */ $a, (a) => a);\n"
            )
        }
    )

    assert [store.name for store in analyzer.freeze().stores] == ["$a", "$b", "$c", "$d", "$e"]
    assert len(relations) == 5
    assert [(s.derived_name, s.depends_on_name) for s in analyzer.derived_stubs] == [
        ("$b", "$a"),
        ("$b", "$external"),
        ("$d", "$b"),
        ("$e", "$a"),
    ]
    stub = analyzer.derived_stubs[0]
    assert stub.derived_key == IdentityKey("$b", "stores.ts", 3)
    assert stub.depends_on_key == IdentityKey("$a", "stores.ts", 2)
    assert analyzer.derived_stubs[1].depends_on_key is None


def test_files_without_store_imports_are_ignored() -> None:
    analyzer, relations = _run_store_pass(
        {"other.ts": 'import { atom } from "jotai";\nexport const $a = atom(1);\n'}
    )

    assert analyzer.freeze().stores == ()
    assert len(relations) == 0


def test_freeze_builds_name_and_identity_lookups() -> None:
    analyzer, _ = _run_store_pass(
        {
            "a.ts": 'import { atom } from "nanostores";\nexport const $x = atom(1);\n',
            "b.ts": 'import { atom } from "nanostores";\n\nexport const $x = atom(2);\n',
        }
    )
    table = analyzer.freeze()

    assert [s.file for s in table.by_name("$x")] == ["a.ts", "b.ts"]
    assert [s.file for s in table.by_identity(IdentityKey("$x", "b.ts", 3))] == ["b.ts"]
    assert table.by_identity(None) == ()
    assert table.by_name("$nope") == ()


def test_relation_set_deduplicates_by_composite_key() -> None:
    relations = RelationSet()
    edge = Relation(type="derives_from", from_id="store:a#x", to_id="store:a#y", file="a", line=1)

    assert relations.add(edge) is True
    assert relations.add(Relation("derives_from", "store:a#x", "store:a#y", "a", 1)) is False
    assert relations.add(Relation("derives_from", "store:a#x", "store:a#y", "a", 2)) is True
    assert len(relations) == 2


def test_resolve_derived_relations_prefers_identity_and_skips_self_loops() -> None:
    x_a = Store(id="store:a.ts#$x", file="a.ts", line=1, kind="atom", name="$x")
    x_b = Store(id="store:b.ts#$x", file="b.ts", line=1, kind="atom", name="$x")
    total = Store(id="store:c.ts#$total", file="c.ts", line=2, kind="computed", name="$total")
    table = StoreTable(
        [
            (IdentityKey("$x", "a.ts", 1), x_a),
            (IdentityKey("$x", "b.ts", 1), x_b),
            (IdentityKey("$total", "c.ts", 2), total),
        ]
    )
    relations = RelationSet()
    stubs = [
        DerivedStub("$total", "$x", "c.ts", 2, IdentityKey("$total", "c.ts", 2), IdentityKey("$x", "b.ts", 1)),
        DerivedStub("$total", "$x", "c.ts", 2, IdentityKey("$total", "c.ts", 2), None),
        DerivedStub("$total", "$total", "c.ts", 2),
    ]

    added = resolve_derived_relations(stubs, table, relations)

    assert added == 2
    assert {(r.from_id, r.to_id) for r in relations} == {
        (total.id, x_b.id),
        (total.id, x_a.id),
    }
