"""Logic-block extraction for Vue and Svelte single-file components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import tree_sitter_html
from tree_sitter import Language, Node, Parser

from .tree_sitter import promote_dialect

_HTML_LANGUAGE = Language(tree_sitter_html.language())

_LANG_TO_DIALECT = {
    "ts": "ts",
    "typescript": "ts",
    "tsx": "tsx",
    "jsx": "jsx",
}


@dataclass
class ScriptBlock:
    """One ``<script>`` element found at the top level of an SFC."""

    start_byte: int
    start_row: int
    start_column: int
    code: str
    attributes: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def lang(self) -> Optional[str]:
        return self.attributes.get("lang")


@dataclass
class SfcScript:
    """Logic code of an SFC laid out at its original line positions."""

    code: str
    dialect: str
    has_script: bool


def infer_dialect(lang: Optional[str]) -> str:
    if not lang:
        return "js"
    return _LANG_TO_DIALECT.get(lang.strip().lower(), "js")


def extract_vue_script(contents: str) -> SfcScript:
    """Combine the classic ``<script>`` and ``<script setup>`` blocks of a Vue file."""
    classic: Optional[ScriptBlock] = None
    setup: Optional[ScriptBlock] = None
    for block in _top_level_scripts(contents):
        if "setup" in block.attributes:
            setup = setup or block
        else:
            classic = classic or block
    return _combine([block for block in (classic, setup) if block is not None])


def extract_svelte_script(contents: str) -> SfcScript:
    """Combine the module and instance ``<script>`` blocks of a Svelte file."""
    module: Optional[ScriptBlock] = None
    instance: Optional[ScriptBlock] = None
    for block in _top_level_scripts(contents):
        if block.attributes.get("context") == "module" or "module" in block.attributes:
            module = module or block
        else:
            instance = instance or block
    return _combine([block for block in (module, instance) if block is not None])


def extract_sfc_script(contents: str, suffix: str) -> SfcScript:
    if suffix == ".vue":
        return extract_vue_script(contents)
    if suffix == ".svelte":
        return extract_svelte_script(contents)
    raise ValueError(f"Unsupported single-file component type: {suffix}")


def _combine(blocks: List[ScriptBlock]) -> SfcScript:
    dialect = "js"
    for block in blocks:
        dialect = promote_dialect(dialect, infer_dialect(block.lang))
    if not blocks:
        return SfcScript(code="", dialect=dialect, has_script=False)

    # Pad with blank lines so line numbers in the combined code match the SFC.
    parts: List[str] = []
    row = 0
    for block in sorted(blocks, key=lambda item: item.start_byte):
        if not block.code.strip():
            continue
        parts.append("\n" * max(block.start_row - row, 0))
        parts.append(" " * block.start_column)
        parts.append(block.code)
        row = max(block.start_row, row) + block.code.count("\n")
    return SfcScript(code="".join(parts), dialect=dialect, has_script=True)


def _top_level_scripts(contents: str) -> List[ScriptBlock]:
    source_bytes = contents.encode("utf-8")
    tree = Parser(_HTML_LANGUAGE).parse(source_bytes)

    blocks: List[ScriptBlock] = []
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == "script_element":
            blocks.append(_script_block(node, source_bytes))
            continue
        if node.type == "element" and _tag_name(node, source_bytes) == "template":
            continue
        stack.extend(reversed(node.children))
    return blocks


def _script_block(node: Node, source_bytes: bytes) -> ScriptBlock:
    attributes: Dict[str, Optional[str]] = {}
    raw: Optional[Node] = None
    for child in node.children:
        if child.type == "start_tag":
            attributes = _attributes(child, source_bytes)
        elif child.type == "raw_text":
            raw = child

    if raw is None:
        end = node.children[-1] if node.children else node
        return ScriptBlock(
            start_byte=end.start_byte,
            start_row=end.start_point[0],
            start_column=end.start_point[1],
            code="",
            attributes=attributes,
        )
    return ScriptBlock(
        start_byte=raw.start_byte,
        start_row=raw.start_point[0],
        start_column=raw.start_point[1],
        code=_text(raw, source_bytes),
        attributes=attributes,
    )


def _attributes(start_tag: Node, source_bytes: bytes) -> Dict[str, Optional[str]]:
    attributes: Dict[str, Optional[str]] = {}
    for attribute in start_tag.named_children:
        if attribute.type != "attribute":
            continue
        name: Optional[str] = None
        value: Optional[str] = None
        for part in attribute.named_children:
            if part.type == "attribute_name":
                name = _text(part, source_bytes).lower()
            elif part.type == "attribute_value":
                value = _text(part, source_bytes)
            elif part.type == "quoted_attribute_value":
                inner = [c for c in part.named_children if c.type == "attribute_value"]
                value = _text(inner[0], source_bytes) if inner else ""
        if name:
            attributes[name] = value
    return attributes


def _tag_name(element: Node, source_bytes: bytes) -> Optional[str]:
    for child in element.children:
        if child.type in {"start_tag", "self_closing_tag"}:
            for part in child.named_children:
                if part.type == "tag_name":
                    return _text(part, source_bytes).lower()
    return None


def _text(node: Node, source_bytes: bytes) -> str:
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


__all__ = [
    "ScriptBlock",
    "SfcScript",
    "extract_sfc_script",
    "extract_svelte_script",
    "extract_vue_script",
    "infer_dialect",
]
