"""Tests for storegraph.summary."""

from __future__ import annotations

import math

from storegraph.models import ProjectIndex
from storegraph.summary import (
    build_graph_outline,
    build_id_dictionary,
    build_store_subgraph,
    normalize_radius,
)
from tests._fixtures.sample_index import CART, COUNT, TOTAL, declares_only, sample_index


def _copy(index: ProjectIndex) -> ProjectIndex:
    return ProjectIndex(
        root_dir=index.root_dir,
        files_scanned=index.files_scanned,
        stores=list(index.stores),
        subscribers=list(index.subscribers),
        relations=list(index.relations),
    )


def test_outline_counts_kinds_dirs_and_hubs() -> None:
    outline = build_graph_outline(sample_index())

    assert outline.totals.stores == 4
    assert outline.totals.files_with_stores == 3
    assert outline.store_kinds == {"atom": 2, "computed": 1, "map": 1}
    assert [(d.dir, d.stores, d.files) for d in outline.top_dirs] == [
        ("src", 2, 1),
        ("lib", 1, 1),
        ("src/cart", 1, 1),
    ]
    assert [(hub.store_id, hub.score) for hub in outline.hubs] == [
        (COUNT, 3),
        (TOTAL, 2),
        (CART, 1),
    ]


def test_outline_hubs_empty_with_only_declares() -> None:
    outline = build_graph_outline(declares_only(sample_index()))

    assert outline.hubs == []
    assert outline.totals.stores == 4


def test_outline_places_root_files_in_dot_dir() -> None:
    index = sample_index()
    index.stores[3].file = "unused.ts"

    outline = build_graph_outline(index)

    assert (".", 1) in [(d.dir, d.stores) for d in outline.top_dirs]


def test_outline_is_memoized_per_index_object() -> None:
    index = sample_index()

    first = build_graph_outline(index)

    assert build_graph_outline(index) is first
    assert build_graph_outline(_copy(index)) is not first


def test_id_dictionary_assigns_sequential_ids() -> None:
    index = sample_index()

    dictionary = build_id_dictionary(index)

    assert dictionary.version == 1
    assert dictionary.generated_at.endswith("Z")
    assert [(entry.sid, entry.full_id) for entry in dictionary.stores] == [
        (1, "store:lib/unused.ts#$unused"),
        (2, CART),
        (3, COUNT),
        (4, TOTAL),
    ]
    assert [(entry.fid, entry.path) for entry in dictionary.files] == [
        (1, "lib/unused.ts"),
        (2, "src/Counter.tsx"),
        (3, "src/cart/Cart.tsx"),
        (4, "src/cart/cart.ts"),
        (5, "src/stores.ts"),
    ]
    assert dictionary.files[0].full_id == "file:lib/unused.ts"
    assert build_id_dictionary(index) is dictionary
    assert build_id_dictionary(_copy(index)) is not dictionary


def test_subgraph_radius_zero_is_center_and_its_file() -> None:
    index = sample_index()

    subgraph = build_store_subgraph(index, index.stores[0], 0)

    assert subgraph.radius == 0
    assert [node.id for node in subgraph.nodes] == ["file:src/stores.ts", COUNT]
    assert [(e.from_id, e.to_id, e.type) for e in subgraph.edges] == [
        ("file:src/stores.ts", COUNT, "declares")
    ]
    assert subgraph.summary.nodes == 2
    assert subgraph.summary.edges == 1


def test_subgraph_collapses_subscribers_to_files() -> None:
    index = sample_index()

    subgraph = build_store_subgraph(index, index.stores[0], 1)

    assert {node.id for node in subgraph.nodes} == {
        COUNT,
        TOTAL,
        "file:src/stores.ts",
        "file:src/Counter.tsx",
        "file:src/cart/Cart.tsx",
    }
    assert subgraph.summary.edges == 6
    assert subgraph.summary.subscribers == 3
    assert subgraph.summary.dependencies == 1
    assert not any(node.id.startswith("subscriber:") for node in subgraph.nodes)


def test_subgraph_default_radius_reaches_two_hops() -> None:
    index = sample_index()

    subgraph = build_store_subgraph(index, index.stores[0])

    assert subgraph.radius == 2
    ids = {node.id for node in subgraph.nodes}
    assert CART in ids
    assert "file:src/cart/cart.ts" not in ids
    assert subgraph.summary.edges == 7


def test_normalize_radius() -> None:
    assert normalize_radius(-3) == 0
    assert normalize_radius(1.7) == 1
    assert normalize_radius(math.inf) == 2
    assert normalize_radius(math.nan) == 2
    assert normalize_radius(None) == 2
