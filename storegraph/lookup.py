"""Store lookup by id, name or id tail, plus neighbour collection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .models import ProjectIndex, Relation, Store, Subscriber


@dataclass
class StoreResolution:
    store: Store
    by: str
    requested: str
    note: Optional[str] = None


@dataclass
class StoreNeighbors:
    subscribers: List[Subscriber] = field(default_factory=list)
    derives_from_stores: List[Store] = field(default_factory=list)
    derives_from_edges: List[Relation] = field(default_factory=list)
    dependents_stores: List[Store] = field(default_factory=list)
    dependents_edges: List[Relation] = field(default_factory=list)


def resolve_store(
    index: ProjectIndex, key: str, file: Optional[str] = None
) -> Optional[StoreResolution]:
    """Find a store by full id, by name (``$x`` or ``x``), or by id tail.

    Full ids (``store:...``) match exactly and fall back to their tail. Names
    may be narrowed with ``file``; when several stores still match, the one
    in the alphabetically first file wins and the note lists the others.
    """
    if key.startswith("store:"):
        for store in index.stores:
            if store.id == key:
                return StoreResolution(store=store, by="id", requested=key, note=f"Resolved by id: {key}")
        tail = key.rsplit("#", 1)[-1]
        if not tail:
            return None
        return _resolve_by_id_tail(index, tail, key)

    resolution = _resolve_by_name(index, key, file)
    if resolution is not None:
        return resolution
    return _resolve_by_id_tail(index, key, key)


def collect_store_neighbors(index: ProjectIndex, store: Store) -> StoreNeighbors:
    derives_from_edges = [
        relation
        for relation in index.relations
        if relation.type == "derives_from" and relation.from_id == store.id
    ]
    dependents_edges = [
        relation
        for relation in index.relations
        if relation.type == "derives_from" and relation.to_id == store.id
    ]
    upstream = {relation.to_id for relation in derives_from_edges}
    downstream = {relation.from_id for relation in dependents_edges}
    return StoreNeighbors(
        subscribers=[sub for sub in index.subscribers if store.id in sub.store_ids],
        derives_from_stores=[candidate for candidate in index.stores if candidate.id in upstream],
        derives_from_edges=derives_from_edges,
        dependents_stores=[candidate for candidate in index.stores if candidate.id in downstream],
        dependents_edges=dependents_edges,
    )


def store_names(index: ProjectIndex) -> List[str]:
    return sorted({store.name for store in index.stores if store.name})


def _name_variants(raw: str) -> set:
    if raw.startswith("$"):
        return {raw, raw[1:]}
    return {raw, f"${raw}"}


def _resolve_by_name(
    index: ProjectIndex, raw: str, file: Optional[str]
) -> Optional[StoreResolution]:
    variants = _name_variants(raw)
    matches = [store for store in index.stores if store.name and store.name in variants]
    if file:
        matches = [store for store in matches if store.file == file]
    return _pick(matches, by="name", label="name", raw=raw, requested=raw)


def _resolve_by_id_tail(index: ProjectIndex, raw: str, requested: str) -> Optional[StoreResolution]:
    variants = _name_variants(raw)
    matches = [store for store in index.stores if store.id.rsplit("#", 1)[-1] in variants]
    return _pick(matches, by="id_tail", label="id tail", raw=raw, requested=requested)


def _pick(
    matches: Sequence[Store], *, by: str, label: str, raw: str, requested: str
) -> Optional[StoreResolution]:
    if not matches:
        return None
    if len(matches) == 1:
        return StoreResolution(
            store=matches[0], by=by, requested=requested, note=f"Resolved by {label}: {raw}"
        )
    ordered = sorted(matches, key=lambda store: store.file)
    chosen = ordered[0]
    others = ", ".join(store.file for store in ordered[1:])
    return StoreResolution(
        store=chosen,
        by=by,
        requested=requested,
        note=(
            f"Resolved by {label}: {raw} (multiple matches, using first from {chosen.file}). "
            f"Other matches in: {others}"
        ),
    )


__all__ = [
    "StoreNeighbors",
    "StoreResolution",
    "collect_store_neighbors",
    "resolve_store",
    "store_names",
]
