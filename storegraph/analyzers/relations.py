"""Relation bookkeeping and ``derives_from`` resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator, List, Set, Tuple

from ..models import DerivedStub, Relation

if TYPE_CHECKING:
    from .stores import StoreTable

RelationKey = Tuple[str, str, str, str, str]


class RelationSet:
    """Insertion-ordered relations, deduplicated by (type, from, to, file, line)."""

    def __init__(self) -> None:
        self._relations: List[Relation] = []
        self._keys: Set[RelationKey] = set()

    def add(self, relation: Relation) -> bool:
        key = relation.key()
        if key in self._keys:
            return False
        self._keys.add(key)
        self._relations.append(relation)
        return True

    def __iter__(self) -> Iterator[Relation]:
        return iter(self._relations)

    def __len__(self) -> int:
        return len(self._relations)

    def to_list(self) -> List[Relation]:
        return list(self._relations)


def resolve_derived_relations(
    stubs: Iterable[DerivedStub], table: StoreTable, relations: RelationSet
) -> int:
    """Turn derived stubs into ``derives_from`` edges; return how many were added.

    Each side resolves by identity key first and falls back to every store with
    the same name, so an ambiguous name fans out instead of being dropped.
    """
    added = 0
    for stub in stubs:
        derived = table.by_identity(stub.derived_key) or table.by_name(stub.derived_name)
        bases = table.by_identity(stub.depends_on_key) or table.by_name(stub.depends_on_name)
        for derived_store in derived:
            for base_store in bases:
                if derived_store.id == base_store.id:
                    continue
                relation = Relation(
                    type="derives_from",
                    from_id=derived_store.id,
                    to_id=base_store.id,
                    file=stub.file,
                    line=stub.line,
                )
                if relations.add(relation):
                    added += 1
    return added


__all__ = ["RelationKey", "RelationSet", "resolve_derived_relations"]
