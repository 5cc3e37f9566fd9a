"""Import classification: which local names are store factories or hooks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..config import ModuleRegistry
from ..models import normalize_store_kind
from .tree_sitter import ParsedSource, line_of, string_value

HOOK_EXPORT = "useStore"


@dataclass
class ImportDeclaration:
    """A top-level ``import`` statement reduced to its bindings."""

    specifier: str
    line: int
    named: List[Tuple[str, str]] = field(default_factory=list)
    namespace: Optional[str] = None
    default: Optional[str] = None


@dataclass
class StoreImports:
    """Local names bound to store factories in one file."""

    store_factories: Dict[str, str] = field(default_factory=dict)
    namespaces: Set[str] = field(default_factory=set)


@dataclass
class HookImports:
    """Local names bound to the subscription hook in one file."""

    hook_functions: Set[str] = field(default_factory=set)
    namespaces: Set[str] = field(default_factory=set)


def iter_import_declarations(source: ParsedSource) -> List[ImportDeclaration]:
    declarations: List[ImportDeclaration] = []
    for statement in source.root.named_children:
        if statement.type != "import_statement":
            continue
        specifier = string_value(statement.child_by_field_name("source"), source)
        if specifier is None:
            continue
        declaration = ImportDeclaration(specifier=specifier, line=line_of(statement))
        for clause in statement.named_children:
            if clause.type != "import_clause":
                continue
            for part in clause.named_children:
                if part.type == "identifier":
                    declaration.default = source.text(part)
                elif part.type == "namespace_import":
                    names = [c for c in part.named_children if c.type == "identifier"]
                    if names:
                        declaration.namespace = source.text(names[0])
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        name_node = spec.child_by_field_name("name")
                        if name_node is None:
                            continue
                        alias_node = spec.child_by_field_name("alias")
                        imported = (
                            string_value(name_node, source)
                            if name_node.type == "string"
                            else source.text(name_node)
                        )
                        if imported is None:
                            continue
                        local = source.text(alias_node) if alias_node is not None else imported
                        declaration.named.append((imported, local))
        declarations.append(declaration)
    return declarations


def collect_store_imports(source: ParsedSource, registry: ModuleRegistry) -> StoreImports:
    """Map aliased factory imports to kinds and remember base-module namespaces.

    Only imports from the base or persistent module sets count. A named import
    classifies when its imported name is a known factory; namespace imports are
    tracked for the base set only so ``ns.atom(...)`` can be recognised.
    """
    base_modules = registry.base_modules
    persistent_modules = registry.persistent_modules
    imports = StoreImports()

    for declaration in iter_import_declarations(source):
        is_base = declaration.specifier in base_modules
        if not is_base and declaration.specifier not in persistent_modules:
            continue
        for imported, local in declaration.named:
            kind = normalize_store_kind(imported)
            if kind != "unknown":
                imports.store_factories[local] = kind
        if is_base and declaration.namespace:
            imports.namespaces.add(declaration.namespace)
    return imports


def collect_hook_imports(source: ParsedSource, registry: ModuleRegistry) -> HookImports:
    """Collect local names of ``useStore`` and namespaces of hook modules."""
    hook_modules = registry.hook_modules
    imports = HookImports()

    for declaration in iter_import_declarations(source):
        if declaration.specifier not in hook_modules:
            continue
        for imported, local in declaration.named:
            if imported == HOOK_EXPORT:
                imports.hook_functions.add(local)
        if declaration.namespace:
            imports.namespaces.add(declaration.namespace)
    return imports


__all__ = [
    "HOOK_EXPORT",
    "HookImports",
    "ImportDeclaration",
    "StoreImports",
    "collect_hook_imports",
    "collect_store_imports",
    "iter_import_declarations",
]
