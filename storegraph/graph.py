"""Full store graph: nodes, edges, per-type counts and hot stores."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .models import RELATION_TYPES, ProjectIndex, file_id

HOT_STORES_LIMIT = 10


@dataclass
class GraphNode:
    id: str
    type: str
    label: str
    file: Optional[str] = None
    kind: Optional[str] = None
    name: Optional[str] = None
    path: Optional[str] = None


@dataclass
class GraphEdge:
    from_id: str
    to_id: str
    type: str
    file: Optional[str] = None
    line: Optional[int] = None


@dataclass
class HotStore:
    store_id: str
    name: str
    file: str
    subscribers: int
    derived_dependents: int
    total_degree: int


@dataclass
class GraphStats:
    files_with_stores: int
    total_stores: int
    subscribers: int
    edges_by_type: Dict[str, int] = field(default_factory=dict)


@dataclass
class StoreGraph:
    root_dir: str
    nodes: List[GraphNode]
    edges: List[GraphEdge]
    stats: GraphStats
    hot_stores: List[HotStore]


def build_store_graph(index: ProjectIndex) -> StoreGraph:
    """Convert an index into a graph of file, store and subscriber nodes.

    Edges are the index relations copied as-is. A store's hot score is the
    number of ``subscribes_to`` plus ``derives_from`` edges pointing at it;
    only stores scoring above zero are kept, best first, ties by name.
    """
    nodes: Dict[str, GraphNode] = {}
    files_with_stores: Dict[str, None] = {}

    for store in index.stores:
        files_with_stores[store.file] = None
        nodes[store.id] = GraphNode(
            id=store.id,
            type="store",
            label=store.name or store.id,
            file=store.file,
            kind=store.kind,
            name=store.name,
        )

    for subscriber in index.subscribers:
        files_with_stores[subscriber.file] = None
        nodes[subscriber.id] = GraphNode(
            id=subscriber.id,
            type="subscriber",
            label=subscriber.name or subscriber.id,
            file=subscriber.file,
            kind=subscriber.kind,
            name=subscriber.name,
        )

    for path in files_with_stores:
        node_id = file_id(path)
        if node_id not in nodes:
            nodes[node_id] = GraphNode(id=node_id, type="file", label=path, path=path)

    edges = [
        GraphEdge(
            from_id=relation.from_id,
            to_id=relation.to_id,
            type=relation.type,
            file=relation.file,
            line=relation.line,
        )
        for relation in index.relations
    ]
    edges_by_type = {relation_type: 0 for relation_type in RELATION_TYPES}
    for edge in edges:
        edges_by_type[edge.type] = edges_by_type.get(edge.type, 0) + 1

    store_ids = {store.id for store in index.stores}
    subscriber_counts: Counter[str] = Counter()
    derived_counts: Counter[str] = Counter()
    for edge in edges:
        if edge.to_id not in store_ids:
            continue
        if edge.type == "subscribes_to":
            subscriber_counts[edge.to_id] += 1
        elif edge.type == "derives_from":
            derived_counts[edge.to_id] += 1

    hot_stores: List[HotStore] = []
    for store in index.stores:
        subscribers = subscriber_counts[store.id]
        dependents = derived_counts[store.id]
        if subscribers + dependents == 0:
            continue
        hot_stores.append(
            HotStore(
                store_id=store.id,
                name=store.name or store.id,
                file=store.file,
                subscribers=subscribers,
                derived_dependents=dependents,
                total_degree=subscribers + dependents,
            )
        )
    hot_stores.sort(key=lambda hot: (-hot.total_degree, hot.name))

    return StoreGraph(
        root_dir=index.root_dir,
        nodes=list(nodes.values()),
        edges=edges,
        stats=GraphStats(
            files_with_stores=len(files_with_stores),
            total_stores=len(index.stores),
            subscribers=len(index.subscribers),
            edges_by_type=edges_by_type,
        ),
        hot_stores=hot_stores[:HOT_STORES_LIMIT],
    )


__all__ = [
    "GraphEdge",
    "GraphNode",
    "GraphStats",
    "HotStore",
    "StoreGraph",
    "build_store_graph",
]
