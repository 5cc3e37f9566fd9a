"""Subscriber extraction: hook calls grouped by their enclosing container."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from tree_sitter import Node

from ..config import ModuleRegistry
from ..models import Relation, Store, Subscriber, file_id
from .base import Analyzer
from .bindings import IdentityResolver
from .imports import HOOK_EXPORT, HookImports, collect_hook_imports
from .relations import RelationSet
from .stores import StoreTable, first_argument
from .tree_sitter import ParsedSource, iter_nodes, line_of

_FUNCTION_DECLARATIONS = {"function_declaration", "generator_function_declaration"}
_FUNCTION_EXPRESSIONS = {"arrow_function", "function_expression", "function", "generator_function"}
_CLASS_NODES = {"class_declaration", "abstract_class_declaration", "class"}

_COMPONENT_SUFFIXES = {".tsx", ".jsx", ".js", ".ts", ".vue", ".svelte"}
_MARKUP_SUFFIXES = {".tsx", ".jsx", ".vue", ".svelte"}

_HOOK_NAME = re.compile(r"^use(?:[A-Z0-9_$]|$)")
_EFFECT_NAME = re.compile(r"effect", re.IGNORECASE)


@dataclass
class ContainerInfo:
    """Lexical container of a hook call; ``name`` is None when anonymous."""

    name: Optional[str]
    start_line: int


@dataclass
class _Accumulator:
    kind: str
    name: Optional[str]
    start_line: int
    first_use_line: int
    store_ids: Dict[str, None] = field(default_factory=dict)


def is_hook_call(call: Node, imports: HookImports, source: ParsedSource) -> bool:
    """True for ``useStore(...)``, an aliased import of it, or ``ns.useStore(...)``."""
    callee = call.child_by_field_name("function")
    if callee is None:
        return False
    if callee.type == "identifier":
        return source.text(callee) in imports.hook_functions
    if callee.type == "member_expression":
        owner = callee.child_by_field_name("object")
        prop = callee.child_by_field_name("property")
        if owner is None or prop is None or owner.type != "identifier":
            return False
        return source.text(owner) in imports.namespaces and source.text(prop) == HOOK_EXPORT
    return False


def find_container(call: Node, source: ParsedSource) -> ContainerInfo:
    node: Optional[Node] = call
    while node is not None and node.type != "program":
        if node.type in _FUNCTION_DECLARATIONS:
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                return ContainerInfo(source.text(name_node), line_of(name_node))
            return ContainerInfo(None, line_of(node))

        if node.type in _FUNCTION_EXPRESSIONS:
            declarator = _ancestor(node, {"variable_declarator"})
            if declarator is not None:
                name_node = declarator.child_by_field_name("name")
                if name_node is not None and name_node.type == "identifier":
                    return ContainerInfo(source.text(name_node), line_of(declarator))
            return ContainerInfo(None, line_of(node))

        if node.type == "method_definition":
            name_node = node.child_by_field_name("name")
            method = source.text(name_node) if name_node is not None else None
            class_node = _ancestor(node, _CLASS_NODES)
            class_name = _class_name(class_node, source) if class_node is not None else None
            if class_name and method:
                return ContainerInfo(f"{class_name}.{method}", line_of(node))
            return ContainerInfo(method or class_name, line_of(node))

        if node.type in _CLASS_NODES:
            class_name = _class_name(node, source)
            if class_name:
                return ContainerInfo(class_name, line_of(node))

        node = node.parent

    return ContainerInfo(None, line_of(call))


def infer_subscriber_kind(rel_path: str, container_name: Optional[str] = None) -> str:
    base, suffix = posixpath.splitext(posixpath.basename(rel_path))
    suffix = suffix.lower()
    candidate = container_name if container_name is not None else base

    if _HOOK_NAME.match(candidate):
        return "hook"
    if _EFFECT_NAME.search(candidate):
        return "effect"
    if candidate[:1].isupper() and suffix in _COMPONENT_SUFFIXES:
        return "component"
    if suffix in _MARKUP_SUFFIXES:
        return "component"
    return "unknown"


class SubscriberAnalyzer(Analyzer):
    """Second pass: resolves hook arguments against the frozen store table."""

    def __init__(
        self,
        registry: ModuleRegistry,
        resolver: IdentityResolver,
        table: StoreTable,
        relations: RelationSet,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._table = table
        self._relations = relations
        self.subscribers: List[Subscriber] = []

    def analyze(self, source: ParsedSource) -> None:
        imports = collect_hook_imports(source, self._registry)
        if not imports.hook_functions and not imports.namespaces:
            return

        accumulators: Dict[str, _Accumulator] = {}
        for call in iter_nodes(source.root, "call_expression"):
            if not is_hook_call(call, imports, source):
                continue
            argument = first_argument(call)
            if argument is None or argument.type != "identifier":
                continue
            matches = self.resolve_store(source.rel_path, source.text(argument))
            if not matches:
                continue

            container = find_container(call, source)
            key = container.name if container.name is not None else f"__anon_{container.start_line}"
            call_line = line_of(call)
            accumulator = accumulators.get(key)
            if accumulator is None:
                accumulator = _Accumulator(
                    kind=infer_subscriber_kind(source.rel_path, container.name),
                    name=container.name,
                    start_line=container.start_line,
                    first_use_line=call_line,
                )
                accumulators[key] = accumulator
            for store in matches:
                accumulator.store_ids[store.id] = None
            accumulator.first_use_line = min(accumulator.first_use_line, call_line)

        for accumulator in accumulators.values():
            self._emit(source.rel_path, accumulator)

    def resolve_store(self, rel_path: str, name: str) -> Tuple[Store, ...]:
        """Resolve a hook argument, discarding anything ambiguous.

        Identity wins when it resolves. Otherwise a name shared by exactly one
        store, or by exactly one store in the calling file, is accepted.
        """
        matches = self._table.by_identity(self._resolver.resolve(rel_path, name))
        if matches:
            return matches

        by_name = self._table.by_name(name)
        if len(by_name) == 1:
            return by_name
        same_file = tuple(store for store in by_name if store.file == rel_path)
        if len(same_file) == 1:
            return same_file
        return ()

    def _emit(self, rel_path: str, accumulator: _Accumulator) -> None:
        store_ids = list(accumulator.store_ids)
        if not store_ids:
            return

        if accumulator.name:
            subscriber_id = f"subscriber:{rel_path}#{accumulator.name}"
            name = accumulator.name
        else:
            subscriber_id = f"subscriber:{rel_path}@{accumulator.start_line}"
            name = posixpath.splitext(posixpath.basename(rel_path))[0]

        line = accumulator.first_use_line
        self.subscribers.append(
            Subscriber(
                id=subscriber_id,
                file=rel_path,
                line=line,
                kind=accumulator.kind,
                name=name,
                store_ids=store_ids,
            )
        )
        self._relations.add(
            Relation(
                type="declares",
                from_id=file_id(rel_path),
                to_id=subscriber_id,
                file=rel_path,
                line=line,
            )
        )
        for target in store_ids:
            self._relations.add(
                Relation(
                    type="subscribes_to",
                    from_id=subscriber_id,
                    to_id=target,
                    file=rel_path,
                    line=line,
                )
            )


def _ancestor(node: Node, types: set) -> Optional[Node]:
    current = node.parent
    while current is not None:
        if current.type in types:
            return current
        current = current.parent
    return None


def _class_name(node: Node, source: ParsedSource) -> Optional[str]:
    name_node = node.child_by_field_name("name")
    return source.text(name_node) if name_node is not None else None


__all__ = [
    "ContainerInfo",
    "SubscriberAnalyzer",
    "find_container",
    "infer_subscriber_kind",
    "is_hook_call",
]
