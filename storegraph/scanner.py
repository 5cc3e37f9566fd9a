"""Scan a project root and build its store index.

The scan is pure: it reads the tree, never writes to it, and caches nothing.
Caching and coalescing live in :mod:`storegraph.stores.index_cache`.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .analyzers.bindings import FileBindings, IdentityResolver, collect_file_bindings
from .analyzers.relations import RelationSet, resolve_derived_relations
from .analyzers.sfc import extract_sfc_script
from .analyzers.stores import StoreAnalyzer
from .analyzers.subscribers import SubscriberAnalyzer
from .analyzers.tree_sitter import ParsedSource, SourceParseError, SourceParser
from .config import (
    ConfigError,
    ModuleRegistry,
    StoreGraphConfig,
    default_registry,
    load_config,
)
from .logging import get_logger, progress_logger
from .models import ProjectIndex, ScanDiagnostics
from .repo_scanner import DIALECT_BY_SUFFIX, SFC_SUFFIXES, CollectedFiles, collect_source_files

ProgressCallback = Callable[[int, int, str], None]

PROGRESS_TOTAL = 6
MAX_SKIPPED_EXAMPLES = 5

_logger = get_logger("scanner")
_log_progress = progress_logger(_logger)


def resolve_root(root: str | os.PathLike[str]) -> Path:
    """Return the canonical absolute root, raising when it is missing or not a directory."""
    root_path = Path(os.path.realpath(Path(root).expanduser().absolute()))
    if not root_path.exists():
        raise FileNotFoundError(f"Workspace root does not exist: {root_path}")
    if not root_path.is_dir():
        raise NotADirectoryError(f"Provided root is not a directory: {root_path}")
    return root_path


def load_root_config(root: Path) -> StoreGraphConfig:
    """Load ``.storegraph.yml`` for ``root``, falling back to defaults when it is invalid."""
    try:
        return load_config(root)
    except ConfigError as exc:
        _logger.warning("Ignoring invalid configuration in %s: %s", root, exc)
        return StoreGraphConfig(root=root)


async def scan_project(
    root: str | os.PathLike[str],
    *,
    registry: Optional[ModuleRegistry] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> ProjectIndex:
    """Scan ``root`` and return a fresh :class:`ProjectIndex`.

    Stores are extracted from every file before any subscriber is resolved,
    and ``derives_from`` edges are resolved only after both passes finish.
    Files that cannot be read or parsed are skipped and counted in the
    index diagnostics.
    """

    def report(completed: int, message: str) -> None:
        _log_progress(completed, PROGRESS_TOTAL, message)
        if on_progress is not None:
            on_progress(completed, PROGRESS_TOTAL, message)

    loop = asyncio.get_running_loop()
    root_path = await loop.run_in_executor(None, resolve_root, root)
    report(1, f"Validated workspace root: {root_path}")

    config = await loop.run_in_executor(None, load_root_config, root_path)
    active_registry = registry or default_registry()
    if not config.modules.is_empty():
        active_registry = active_registry.extended(config.modules)

    collected: CollectedFiles = await loop.run_in_executor(
        None, collect_source_files, root_path, config.exclude_paths
    )
    report(2, f"Found {len(collected.files)} candidate source files")

    diagnostics = ScanDiagnostics()
    for rel_dir in collected.unreadable_dirs:
        _record_skip(diagnostics, rel_dir)

    parser = SourceParser()
    sources: List[ParsedSource] = []
    for path in collected.files:
        rel_path = path.relative_to(root_path).as_posix()
        try:
            contents = await loop.run_in_executor(None, _read_text, path)
            sources.append(_parse_file(parser, rel_path, contents))
        except (OSError, UnicodeDecodeError, SourceParseError) as exc:
            _logger.debug("Skipping %s: %s", rel_path, exc)
            _record_skip(diagnostics, rel_path)

    if diagnostics.skipped_files:
        _logger.warning(
            "Skipped %d files that could not be read or parsed (examples: %s)",
            diagnostics.skipped_files,
            ", ".join(diagnostics.examples),
        )
    report(3, f"Loaded {len(sources)} source files, skipped {diagnostics.skipped_files}")

    bindings: Dict[str, FileBindings] = {
        source.rel_path: collect_file_bindings(source) for source in sources
    }
    resolver = IdentityResolver(bindings)
    relations = RelationSet()

    store_analyzer = StoreAnalyzer(active_registry, resolver, relations)
    for source in sources:
        store_analyzer.analyze(source)
    table = store_analyzer.freeze()
    report(4, f"Store pass complete: found {len(table.stores)} stores")

    subscriber_analyzer = SubscriberAnalyzer(active_registry, resolver, table, relations)
    for source in sources:
        subscriber_analyzer.analyze(source)
    report(5, f"Subscriber pass complete: found {len(subscriber_analyzer.subscribers)} subscribers")

    derived = resolve_derived_relations(store_analyzer.derived_stubs, table, relations)
    index = ProjectIndex(
        root_dir=str(root_path),
        files_scanned=len(sources),
        stores=list(table.stores),
        subscribers=subscriber_analyzer.subscribers,
        relations=relations.to_list(),
        diagnostics=diagnostics,
    )
    report(
        6,
        f"Scan complete: files={index.files_scanned}/{len(collected.files)}, "
        f"stores={len(index.stores)}, subscribers={len(index.subscribers)}, "
        f"relations={len(index.relations)} (derived={derived})",
    )
    _logger.info(
        "Scanned %s: %d stores, %d subscribers",
        root_path,
        len(index.stores),
        len(index.subscribers),
    )
    return index


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _parse_file(parser: SourceParser, rel_path: str, contents: str) -> ParsedSource:
    suffix = Path(rel_path).suffix.lower()
    if suffix in SFC_SUFFIXES:
        script = extract_sfc_script(contents, suffix)
        if not script.has_script:
            return parser.parse(rel_path, "", "js")
        return parser.parse(rel_path, script.code, script.dialect)
    return parser.parse(rel_path, contents, DIALECT_BY_SUFFIX[suffix])


def _record_skip(diagnostics: ScanDiagnostics, rel_path: str) -> None:
    diagnostics.skipped_files += 1
    if len(diagnostics.examples) < MAX_SKIPPED_EXAMPLES:
        diagnostics.examples.append(rel_path)


__all__ = [
    "MAX_SKIPPED_EXAMPLES",
    "PROGRESS_TOTAL",
    "ProgressCallback",
    "load_root_config",
    "resolve_root",
    "scan_project",
]
