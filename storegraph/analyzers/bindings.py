"""Declaration-site identity for identifiers, without a type checker."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from tree_sitter import Node

from ..models import IdentityKey
from ..repo_scanner import SOURCE_SUFFIXES
from .imports import iter_import_declarations
from .tree_sitter import ParsedSource, line_of

_DECLARATION_STATEMENTS = {"lexical_declaration", "variable_declaration"}
_NAMED_DECLARATIONS = {
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
}
_TS_ESM_ALIASES = {".js": (".ts", ".tsx"), ".jsx": (".tsx",)}


@dataclass
class FileBindings:
    """Top-level names a file declares or imports."""

    rel_path: str
    declarations: Dict[str, int] = field(default_factory=dict)
    imports: Dict[str, Tuple[str, str]] = field(default_factory=dict)


def iter_top_level_declarators(source: ParsedSource) -> Iterator[Node]:
    """Yield ``variable_declarator`` nodes of top-level (possibly exported) statements."""
    for statement in source.root.named_children:
        target = statement
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
            if declaration is None:
                continue
            target = declaration
        if target.type not in _DECLARATION_STATEMENTS:
            continue
        for declarator in target.named_children:
            if declarator.type == "variable_declarator":
                yield declarator


def collect_file_bindings(source: ParsedSource) -> FileBindings:
    bindings = FileBindings(rel_path=source.rel_path)

    for declarator in iter_top_level_declarators(source):
        name_node = declarator.child_by_field_name("name")
        if name_node is not None and name_node.type == "identifier":
            bindings.declarations.setdefault(source.text(name_node), line_of(declarator))

    for statement in source.root.named_children:
        target = statement
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
            if declaration is not None:
                target = declaration
        if target.type in _NAMED_DECLARATIONS:
            name_node = target.child_by_field_name("name")
            if name_node is not None:
                bindings.declarations.setdefault(source.text(name_node), line_of(target))

    for declaration in iter_import_declarations(source):
        for imported, local in declaration.named:
            bindings.imports[local] = (declaration.specifier, imported)
        if declaration.default:
            bindings.imports[declaration.default] = (declaration.specifier, "default")
    return bindings


class IdentityResolver:
    """Resolves an identifier in a file to the site that declares it.

    Local top-level declarations resolve directly. Named imports from relative
    specifiers follow one hop into the imported file; anything beyond that
    (package specifiers, re-export chains) stays unresolved.
    """

    def __init__(self, bindings: Mapping[str, FileBindings]) -> None:
        self._bindings = dict(bindings)

    def resolve(self, rel_path: str, name: str) -> Optional[IdentityKey]:
        file_bindings = self._bindings.get(rel_path)
        if file_bindings is None:
            return None

        line = file_bindings.declarations.get(name)
        if line is not None:
            return IdentityKey(name=name, file=rel_path, line=line)

        imported = file_bindings.imports.get(name)
        if imported is None:
            return None
        specifier, imported_name = imported
        target = self.resolve_module(rel_path, specifier)
        if target is None:
            return None
        target_line = self._bindings[target].declarations.get(imported_name)
        if target_line is None:
            return None
        return IdentityKey(name=imported_name, file=target, line=target_line)

    def resolve_module(self, rel_path: str, specifier: str) -> Optional[str]:
        if not specifier.startswith(("./", "../")) and specifier not in {".", ".."}:
            return None
        base = posixpath.normpath(posixpath.join(posixpath.dirname(rel_path), specifier))
        if base == ".." or base.startswith("../"):
            return None
        for candidate in _module_candidates(base):
            if candidate in self._bindings:
                return candidate
        return None


def _module_candidates(base: str) -> List[str]:
    candidates = [base]
    candidates.extend(f"{base}{suffix}" for suffix in SOURCE_SUFFIXES)
    stem, ext = posixpath.splitext(base)
    candidates.extend(f"{stem}{alias}" for alias in _TS_ESM_ALIASES.get(ext, ()))
    prefix = "" if base == "." else f"{base}/"
    candidates.extend(f"{prefix}index{suffix}" for suffix in SOURCE_SUFFIXES)
    return candidates


__all__ = [
    "FileBindings",
    "IdentityResolver",
    "collect_file_bindings",
    "iter_top_level_declarators",
]
