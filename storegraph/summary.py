"""Compact views of a project index: outline, id dictionary and store subgraphs."""

from __future__ import annotations

import math
import posixpath
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Deque, Dict, List, Optional, Set, Tuple
from weakref import WeakKeyDictionary

from .models import ProjectIndex, Store, file_id

TOP_DIRS_LIMIT = 10
HUBS_LIMIT = 10
DEFAULT_SUBGRAPH_RADIUS = 2
ID_DICTIONARY_VERSION = 1

_HUB_EDGE_TYPES = {"subscribes_to", "derives_from"}


@dataclass
class OutlineTotals:
    stores: int
    files_with_stores: int


@dataclass
class DirectorySummary:
    dir: str
    stores: int
    files: int


@dataclass
class Hub:
    store_id: str
    name: str
    kind: str
    file: str
    score: int


@dataclass
class GraphOutline:
    root_dir: str
    totals: OutlineTotals
    store_kinds: Dict[str, int] = field(default_factory=dict)
    top_dirs: List[DirectorySummary] = field(default_factory=list)
    hubs: List[Hub] = field(default_factory=list)


@dataclass
class StoreEntry:
    sid: int
    full_id: str
    name: str
    file: str
    kind: str


@dataclass
class FileEntry:
    fid: int
    path: str
    full_id: str


@dataclass
class IdDictionary:
    version: int
    generated_at: str
    stores: List[StoreEntry] = field(default_factory=list)
    files: List[FileEntry] = field(default_factory=list)


@dataclass
class SubgraphNode:
    id: str
    type: str
    name: Optional[str] = None
    kind: Optional[str] = None
    file: Optional[str] = None
    path: Optional[str] = None


@dataclass
class SubgraphEdge:
    from_id: str
    to_id: str
    type: str


@dataclass
class SubgraphSummary:
    nodes: int
    edges: int
    subscribers: int
    dependencies: int


@dataclass
class StoreSubgraph:
    center_store_id: str
    radius: int
    nodes: List[SubgraphNode]
    edges: List[SubgraphEdge]
    summary: SubgraphSummary


_outline_cache: "WeakKeyDictionary[ProjectIndex, GraphOutline]" = WeakKeyDictionary()
_dictionary_cache: "WeakKeyDictionary[ProjectIndex, IdDictionary]" = WeakKeyDictionary()


def build_graph_outline(index: ProjectIndex) -> GraphOutline:
    """Summarise store kinds, busiest directories and hub stores.

    The result is cached per index object, so repeated calls with the same
    snapshot return the same outline and a fresh scan recomputes it.
    """
    cached = _outline_cache.get(index)
    if cached is not None:
        return cached

    store_kinds: Dict[str, int] = {}
    files_with_stores: Set[str] = set()
    dir_stores: Counter[str] = Counter()
    dir_files: Dict[str, Set[str]] = {}

    for store in index.stores:
        store_kinds[store.kind] = store_kinds.get(store.kind, 0) + 1
        files_with_stores.add(store.file)
        directory = posixpath.dirname(store.file) or "."
        dir_stores[directory] += 1
        dir_files.setdefault(directory, set()).add(store.file)

    top_dirs = [
        DirectorySummary(dir=directory, stores=count, files=len(dir_files[directory]))
        for directory, count in dir_stores.items()
    ]
    top_dirs.sort(key=lambda entry: (-entry.stores, -entry.files, entry.dir))

    outline = GraphOutline(
        root_dir=index.root_dir,
        totals=OutlineTotals(stores=len(index.stores), files_with_stores=len(files_with_stores)),
        store_kinds=store_kinds,
        top_dirs=top_dirs[:TOP_DIRS_LIMIT],
        hubs=_rank_hubs(index),
    )
    _outline_cache[index] = outline
    return outline


def _rank_hubs(index: ProjectIndex) -> List[Hub]:
    if not any(relation.type != "declares" for relation in index.relations):
        return []

    store_ids = {store.id for store in index.stores}
    degree: Counter[str] = Counter()
    for relation in index.relations:
        if relation.type not in _HUB_EDGE_TYPES:
            continue
        if relation.from_id in store_ids:
            degree[relation.from_id] += 1
        if relation.to_id in store_ids:
            degree[relation.to_id] += 1

    hubs = [
        Hub(
            store_id=store.id,
            name=store.name or store.id,
            kind=store.kind,
            file=store.file,
            score=degree[store.id],
        )
        for store in index.stores
        if degree[store.id] > 0
    ]
    hubs.sort(key=lambda hub: (-hub.score, hub.name))
    return hubs[:HUBS_LIMIT]


def build_id_dictionary(index: ProjectIndex) -> IdDictionary:
    """Assign short 1-based ids to stores (by full id) and files (by path)."""
    cached = _dictionary_cache.get(index)
    if cached is not None:
        return cached

    stores = [
        StoreEntry(
            sid=position,
            full_id=store.id,
            name=store.name or store.id,
            file=store.file,
            kind=store.kind,
        )
        for position, store in enumerate(sorted(index.stores, key=lambda s: s.id), start=1)
    ]

    paths = {store.file for store in index.stores}
    paths.update(subscriber.file for subscriber in index.subscribers)
    files = [
        FileEntry(fid=position, path=path, full_id=file_id(path))
        for position, path in enumerate(sorted(paths), start=1)
    ]

    dictionary = IdDictionary(
        version=ID_DICTIONARY_VERSION,
        generated_at=datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        stores=stores,
        files=files,
    )
    _dictionary_cache[index] = dictionary
    return dictionary


def normalize_radius(radius: Optional[float]) -> int:
    if radius is None or not math.isfinite(radius):
        return DEFAULT_SUBGRAPH_RADIUS
    return max(0, math.floor(radius))


def build_store_subgraph(
    index: ProjectIndex, center: Store, radius: Optional[float] = DEFAULT_SUBGRAPH_RADIUS
) -> StoreSubgraph:
    """Return the neighbourhood of ``center`` within ``radius`` undirected hops.

    Subscribers are folded into their files here: a file that subscribes to
    a store is linked to it directly. The center's own file is always part
    of the result.
    """
    hops = normalize_radius(radius)
    stores_by_id = {store.id: store for store in index.stores}

    edges: List[SubgraphEdge] = []
    edge_keys: Set[Tuple[str, str, str]] = set()

    def add_edge(from_id: str, to_id: str, edge_type: str) -> None:
        key = (edge_type, from_id, to_id)
        if key in edge_keys:
            return
        edge_keys.add(key)
        edges.append(SubgraphEdge(from_id=from_id, to_id=to_id, type=edge_type))

    for store in index.stores:
        add_edge(file_id(store.file), store.id, "declares")
    for relation in index.relations:
        if relation.type != "derives_from":
            continue
        if relation.from_id in stores_by_id and relation.to_id in stores_by_id:
            add_edge(relation.from_id, relation.to_id, "derives_from")
    for subscriber in index.subscribers:
        for target in subscriber.store_ids:
            if target in stores_by_id:
                add_edge(file_id(subscriber.file), target, "subscribes_to")

    adjacency: Dict[str, Set[str]] = {}
    for edge in edges:
        adjacency.setdefault(edge.from_id, set()).add(edge.to_id)
        adjacency.setdefault(edge.to_id, set()).add(edge.from_id)

    distances: Dict[str, int] = {center.id: 0}
    queue: Deque[str] = deque([center.id])
    while queue:
        current = queue.popleft()
        distance = distances[current]
        if distance >= hops:
            continue
        for neighbour in sorted(adjacency.get(current, ())):
            if neighbour not in distances:
                distances[neighbour] = distance + 1
                queue.append(neighbour)

    center_file = file_id(center.file)
    kept = [edge for edge in edges if edge.from_id in distances and edge.to_id in distances]
    if center_file not in distances:
        kept.append(SubgraphEdge(from_id=center_file, to_id=center.id, type="declares"))
    kept.sort(key=lambda edge: (edge.from_id, edge.to_id, edge.type))
    included = set(distances)
    included.add(center_file)

    nodes: List[SubgraphNode] = []
    for node_id in sorted(included):
        if node_id.startswith("store:"):
            store = stores_by_id.get(node_id)
            if store is None:
                continue
            nodes.append(
                SubgraphNode(
                    id=store.id, type="store", name=store.name, kind=store.kind, file=store.file
                )
            )
        elif node_id.startswith("file:"):
            nodes.append(SubgraphNode(id=node_id, type="file", path=node_id[len("file:"):]))

    return StoreSubgraph(
        center_store_id=center.id,
        radius=hops,
        nodes=nodes,
        edges=kept,
        summary=SubgraphSummary(
            nodes=len(nodes),
            edges=len(kept),
            subscribers=sum(1 for edge in kept if edge.type == "subscribes_to"),
            dependencies=sum(1 for edge in kept if edge.type == "derives_from"),
        ),
    )


__all__ = [
    "DirectorySummary",
    "FileEntry",
    "GraphOutline",
    "Hub",
    "IdDictionary",
    "OutlineTotals",
    "StoreEntry",
    "StoreSubgraph",
    "SubgraphEdge",
    "SubgraphNode",
    "SubgraphSummary",
    "build_graph_outline",
    "build_id_dictionary",
    "build_store_subgraph",
    "normalize_radius",
]
