"""Store extraction: top-level declarations initialised by a store factory."""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from tree_sitter import Node

from ..config import ModuleRegistry
from ..models import (
    DerivedStub,
    IdentityKey,
    Relation,
    Store,
    file_id,
    is_derived_kind,
    normalize_store_kind,
    store_id,
)
from .base import Analyzer
from .bindings import IdentityResolver, iter_top_level_declarators
from .imports import StoreImports, collect_store_imports
from .relations import RelationSet
from .tree_sitter import ParsedSource, line_of


class StoreTable:
    """Read-only lookups over every store found by a completed store pass."""

    def __init__(self, entries: Sequence[Tuple[IdentityKey, Store]]) -> None:
        by_name: Dict[str, List[Store]] = {}
        by_identity: Dict[IdentityKey, List[Store]] = {}
        for key, store in entries:
            if store.name is not None:
                by_name.setdefault(store.name, []).append(store)
            by_identity.setdefault(key, []).append(store)
        self._stores = tuple(store for _, store in entries)
        self._by_name: Mapping[str, Tuple[Store, ...]] = MappingProxyType(
            {name: tuple(items) for name, items in by_name.items()}
        )
        self._by_identity: Mapping[IdentityKey, Tuple[Store, ...]] = MappingProxyType(
            {key: tuple(items) for key, items in by_identity.items()}
        )

    @property
    def stores(self) -> Tuple[Store, ...]:
        return self._stores

    def by_name(self, name: str) -> Tuple[Store, ...]:
        return self._by_name.get(name, ())

    def by_identity(self, key: Optional[IdentityKey]) -> Tuple[Store, ...]:
        if key is None:
            return ()
        return self._by_identity.get(key, ())


def store_kind_for_call(call: Node, imports: StoreImports, source: ParsedSource) -> Optional[str]:
    """Return the store kind created by ``call`` or None when it is not a factory.

    Handles aliased factories (``import { atom as createAtom }``) and calls
    through a namespace import of a base module (``ns.atom(...)``).
    """
    callee = call.child_by_field_name("function")
    if callee is None:
        return None
    if callee.type == "identifier":
        return imports.store_factories.get(source.text(callee))
    if callee.type == "member_expression":
        owner = callee.child_by_field_name("object")
        prop = callee.child_by_field_name("property")
        if owner is None or prop is None or owner.type != "identifier":
            return None
        if source.text(owner) in imports.namespaces:
            return normalize_store_kind(source.text(prop))
    return None


def first_argument(call: Node) -> Optional[Node]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return None
    for child in arguments.named_children:
        if child.type != "comment":
            return child
    return None


class StoreAnalyzer(Analyzer):
    """First pass: records stores, their ``declares`` edges and derived stubs."""

    def __init__(
        self,
        registry: ModuleRegistry,
        resolver: IdentityResolver,
        relations: RelationSet,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._relations = relations
        self._entries: List[Tuple[IdentityKey, Store]] = []
        self._seen_ids: Set[str] = set()
        self.derived_stubs: List[DerivedStub] = []

    def analyze(self, source: ParsedSource) -> None:
        imports = collect_store_imports(source, self._registry)
        if not imports.store_factories and not imports.namespaces:
            return

        for declarator in iter_top_level_declarators(source):
            name_node = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if name_node is None or name_node.type != "identifier":
                continue
            if value is None or value.type != "call_expression":
                continue
            kind = store_kind_for_call(value, imports, source)
            if kind is None:
                continue

            name = source.text(name_node)
            line = line_of(declarator)
            store = Store(
                id=store_id(source.rel_path, name),
                file=source.rel_path,
                line=line,
                kind=kind,
                name=name,
            )
            if store.id in self._seen_ids:
                continue
            self._seen_ids.add(store.id)

            key = IdentityKey(name=name, file=source.rel_path, line=line)
            self._entries.append((key, store))
            self._relations.add(
                Relation(
                    type="declares",
                    from_id=file_id(source.rel_path),
                    to_id=store.id,
                    file=source.rel_path,
                    line=line,
                )
            )

            if is_derived_kind(kind):
                self._record_dependencies(value, store, key, source)

    def freeze(self) -> StoreTable:
        return StoreTable(self._entries)

    def _record_dependencies(
        self, call: Node, store: Store, key: IdentityKey, source: ParsedSource
    ) -> None:
        deps = first_argument(call)
        if deps is None:
            # computed() without dependencies declares nothing to link.
            return

        if deps.type == "identifier":
            candidates = [deps]
        elif deps.type == "array":
            candidates = [item for item in deps.named_children if item.type == "identifier"]
        else:
            return

        unique: Dict[str, Optional[IdentityKey]] = {}
        for node in candidates:
            name = source.text(node)
            if name not in unique:
                unique[name] = self._resolver.resolve(source.rel_path, name)

        for dep_name, dep_key in unique.items():
            if dep_name == store.name:
                continue
            self.derived_stubs.append(
                DerivedStub(
                    derived_name=store.name or "",
                    depends_on_name=dep_name,
                    file=store.file,
                    line=store.line,
                    derived_key=key,
                    depends_on_key=dep_key,
                )
            )


__all__ = ["StoreAnalyzer", "StoreTable", "first_argument", "store_kind_for_call"]
