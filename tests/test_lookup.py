"""Tests for storegraph.lookup."""

from __future__ import annotations

from storegraph.lookup import collect_store_neighbors, resolve_store, store_names
from storegraph.models import Store
from tests._fixtures.sample_index import CART, CART_VIEW, COUNT, COUNTER, TOTAL, sample_index


def test_resolve_by_full_id() -> None:
    resolution = resolve_store(sample_index(), COUNT)

    assert resolution is not None
    assert resolution.by == "id"
    assert resolution.store.id == COUNT


def test_malformed_id_falls_back_to_tail() -> None:
    resolution = resolve_store(sample_index(), "store:moved/elsewhere.ts#$cart")

    assert resolution is not None
    assert resolution.by == "id_tail"
    assert resolution.store.id == CART
    assert resolution.requested == "store:moved/elsewhere.ts#$cart"


def test_resolve_by_name_with_or_without_dollar() -> None:
    index = sample_index()

    assert resolve_store(index, "count").store.id == COUNT  # type: ignore[union-attr]
    assert resolve_store(index, "$total").store.id == TOTAL  # type: ignore[union-attr]
    assert resolve_store(index, "$missing") is None
    assert resolve_store(index, "store:nowhere.ts#$missing") is None


def test_duplicate_names_pick_first_file_and_explain() -> None:
    index = sample_index()
    index.stores.append(
        Store(id="store:a/dup.ts#$count", file="a/dup.ts", line=1, kind="atom", name="$count")
    )

    resolution = resolve_store(index, "$count")
    assert resolution is not None
    assert resolution.store.file == "a/dup.ts"
    assert resolution.note is not None
    assert "Other matches in: src/stores.ts" in resolution.note

    narrowed = resolve_store(index, "$count", file="src/stores.ts")
    assert narrowed is not None and narrowed.store.id == COUNT


def test_name_less_store_resolves_by_id_tail() -> None:
    index = sample_index()
    index.stores.append(Store(id="store:x.ts#$anon", file="x.ts", line=1, kind="atom"))

    resolution = resolve_store(index, "anon")

    assert resolution is not None
    assert resolution.by == "id_tail"


def test_collect_store_neighbors() -> None:
    index = sample_index()
    count = index.stores[0]

    neighbors = collect_store_neighbors(index, count)

    assert [sub.id for sub in neighbors.subscribers] == [COUNTER, CART_VIEW]
    assert neighbors.derives_from_stores == []
    assert [store.id for store in neighbors.dependents_stores] == [TOTAL]
    assert len(neighbors.dependents_edges) == 1

    total_neighbors = collect_store_neighbors(index, index.stores[1])
    assert [store.id for store in total_neighbors.derives_from_stores] == [COUNT]


def test_store_names_sorted_unique() -> None:
    assert store_names(sample_index()) == ["$cart", "$count", "$total", "$unused"]
