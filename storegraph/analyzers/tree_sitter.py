"""Tree-sitter parsing for JavaScript/TypeScript logic code."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

# JSX is part of the JavaScript grammar, so "js" and "jsx" share a language.
_LANGUAGE_FACTORIES = {
    "js": tree_sitter_javascript.language,
    "jsx": tree_sitter_javascript.language,
    "ts": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}

# Most capable dialect wins when SFC blocks disagree.
DIALECT_RANK = {"js": 0, "jsx": 1, "ts": 2, "tsx": 3}


class SourceParseError(ValueError):
    """Raised when logic code cannot be parsed without syntax errors."""


def promote_dialect(current: str, candidate: Optional[str]) -> str:
    if candidate is None:
        return current
    return candidate if DIALECT_RANK[candidate] > DIALECT_RANK[current] else current


@dataclass
class ParsedSource:
    """A successfully parsed file, addressed by its root-relative path."""

    rel_path: str
    dialect: str
    tree: Tree
    source_bytes: bytes

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        return self.source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def line_of(node: Node) -> int:
    """1-based line on which ``node`` starts."""
    return node.start_point[0] + 1


def iter_nodes(node: Node, node_type: str) -> Iterator[Node]:
    """Yield descendants of ``node`` with type ``node_type`` in source order."""
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == node_type:
            yield current
        stack.extend(reversed(current.children))


def string_value(node: Optional[Node], source: ParsedSource) -> Optional[str]:
    """Return the literal value of a ``string`` node, without quotes."""
    if node is None or node.type != "string":
        return None
    fragments = [source.text(child) for child in node.named_children if child.type == "string_fragment"]
    if fragments:
        return "".join(fragments)
    raw = source.text(node)
    return raw[1:-1] if len(raw) >= 2 else ""


class SourceParser:
    """Caches one tree-sitter parser per dialect for the lifetime of a scan."""

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}

    def parse(self, rel_path: str, code: str, dialect: str) -> ParsedSource:
        source_bytes = code.encode("utf-8")
        tree = self._get_parser(dialect).parse(source_bytes)
        if tree.root_node.has_error:
            raise SourceParseError(f"Syntax errors in {rel_path}")
        return ParsedSource(rel_path=rel_path, dialect=dialect, tree=tree, source_bytes=source_bytes)

    def _get_parser(self, dialect: str) -> Parser:
        parser = self._parsers.get(dialect)
        if parser is None:
            parser = Parser(Language(_LANGUAGE_FACTORIES[dialect]()))
            self._parsers[dialect] = parser
        return parser


__all__ = [
    "DIALECT_RANK",
    "ParsedSource",
    "SourceParseError",
    "SourceParser",
    "iter_nodes",
    "line_of",
    "promote_dialect",
    "string_value",
]
