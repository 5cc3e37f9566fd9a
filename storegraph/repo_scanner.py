"""Source file discovery with ignore rules for store scans."""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, Iterator, List, Sequence

from .logging import get_logger

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "dist",
    "build",
    ".next",
    ".turbo",
    ".cache",
    "coverage",
}

SCRIPT_SUFFIXES = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
SFC_SUFFIXES = (".vue", ".svelte")
SOURCE_SUFFIXES = SCRIPT_SUFFIXES + SFC_SUFFIXES

# Grammar used for each plain script suffix; SFCs pick theirs from <script lang>.
DIALECT_BY_SUFFIX = {
    ".ts": "ts",
    ".tsx": "tsx",
    ".js": "js",
    ".jsx": "jsx",
    ".mjs": "js",
    ".cjs": "js",
}

_logger = get_logger("repo_scanner")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .storegraph.yml.

    ``base`` is the root-relative directory of the ``.gitignore`` the rule
    came from; the rule only sees paths below it, relative to it.
    """

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool
    base: str = ""

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False
        if self.base:
            if not rel_path.startswith(f"{self.base}/"):
                return False
            rel_path = rel_path[len(self.base) + 1 :]

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False, base: str = "") -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
        base=base,
    )


def parse_gitignore(path: Path, base: str = "") -> List[IgnoreRule]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError) as exc:
        _logger.warning("Ignoring unreadable %s: %s", path.name, exc)
        return []

    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate, base=base)
        if rule is not None:
            rules.append(rule)
    return rules


def should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


@dataclass
class CollectedFiles:
    """Candidate source files plus directories that could not be listed."""

    files: List[Path] = field(default_factory=list)
    unreadable_dirs: List[str] = field(default_factory=list)


def collect_source_files(root: Path, exclude_paths: Sequence[str] = ()) -> CollectedFiles:
    """Enumerate candidate source files under ``root`` in a stable order.

    Every ``.gitignore`` in the tree applies to its own directory and below,
    with deeper files taking precedence. ``exclude_paths`` are matched against
    root-relative paths and always win.
    """
    excludes: List[IgnoreRule] = []
    for pattern in exclude_paths:
        rule = build_ignore_rule(pattern)
        if rule is not None:
            excludes.append(rule)

    collected = CollectedFiles()

    def _on_error(exc: OSError) -> None:
        target = Path(exc.filename) if exc.filename else root
        try:
            rel_path = target.relative_to(root).as_posix()
        except ValueError:
            rel_path = str(target)
        _logger.debug("Cannot list directory %s: %s", rel_path, exc)
        collected.unreadable_dirs.append(rel_path)

    for path in _iter_files(root, excludes, _on_error):
        if path.suffix.lower() in SOURCE_SUFFIXES:
            collected.files.append(path)
    return collected


def _iter_files(root: Path, excludes: Sequence[IgnoreRule], on_error) -> Iterator[Path]:  # type: ignore[no-untyped-def]
    gitignore_by_dir: Dict[str, List[IgnoreRule]] = {}

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        inherited = gitignore_by_dir.get(posixpath.dirname(rel_dir), []) if rel_dir else []
        rules = inherited
        if ".gitignore" in filenames:
            rules = inherited + parse_gitignore(current_dir / ".gitignore", base=rel_dir)
        gitignore_by_dir[rel_dir] = rules

        filtered_dirs = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if should_ignore(rel_path, True, rules) or should_ignore(rel_path, True, excludes):
                continue
            filtered_dirs.append(name)
        dirnames[:] = filtered_dirs

        for filename in sorted(filenames):
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if should_ignore(rel_path, False, rules) or should_ignore(rel_path, False, excludes):
                continue
            yield current_dir / filename


__all__ = [
    "CollectedFiles",
    "DIALECT_BY_SUFFIX",
    "IgnoreRule",
    "SCRIPT_SUFFIXES",
    "SFC_SUFFIXES",
    "SOURCE_SUFFIXES",
    "build_ignore_rule",
    "collect_source_files",
    "parse_gitignore",
    "should_ignore",
]
