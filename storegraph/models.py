"""Core data models shared across storegraph components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

STORE_KINDS = (
    "atom",
    "map",
    "computed",
    "persistentAtom",
    "persistentMap",
    "atomFamily",
    "mapTemplate",
    "computedTemplate",
)

# atomFamily/mapTemplate stay out until their dependency semantics are verified.
DERIVED_KINDS = frozenset({"computed", "computedTemplate"})

SUBSCRIBER_KINDS = ("component", "hook", "effect", "unknown")

RELATION_TYPES = ("declares", "subscribes_to", "derives_from")


def normalize_store_kind(raw: str) -> str:
    """Map a factory export name onto a store kind, or ``"unknown"``."""
    return raw if raw in STORE_KINDS else "unknown"


def is_derived_kind(kind: str) -> bool:
    return kind in DERIVED_KINDS


@dataclass(frozen=True)
class IdentityKey:
    """Declaration site of an identifier: its name, declaring file and line."""

    name: str
    file: str
    line: int

    def __str__(self) -> str:
        return f"{self.name}@{self.file}:{self.line}"


@dataclass
class Store:
    """A top-level declaration initialised by a recognised store factory."""

    id: str
    file: str
    line: int
    kind: str
    name: Optional[str] = None


@dataclass
class Subscriber:
    """A function, method or class that reads stores through a hook call."""

    id: str
    file: str
    line: int
    kind: str
    name: Optional[str] = None
    store_ids: List[str] = field(default_factory=list)


@dataclass
class Relation:
    """Typed directed edge between files, stores and subscribers."""

    type: str
    from_id: str
    to_id: str
    file: Optional[str] = None
    line: Optional[int] = None

    def key(self) -> tuple[str, str, str, str, str]:
        return (
            self.type,
            self.from_id,
            self.to_id,
            self.file or "",
            "" if self.line is None else str(self.line),
        )


@dataclass
class DerivedStub:
    """Pending ``derives_from`` edge recorded during the store pass."""

    derived_name: str
    depends_on_name: str
    file: str
    line: int
    derived_key: Optional[IdentityKey] = None
    depends_on_key: Optional[IdentityKey] = None


@dataclass
class ScanDiagnostics:
    """Files skipped during a scan with a bounded sample of their paths."""

    skipped_files: int = 0
    examples: List[str] = field(default_factory=list)


# eq=False keeps identity hashing so summaries can be memoized per snapshot.
@dataclass(eq=False)
class ProjectIndex:
    """Completed snapshot of a scanned root."""

    root_dir: str
    files_scanned: int
    stores: List[Store] = field(default_factory=list)
    subscribers: List[Subscriber] = field(default_factory=list)
    relations: List[Relation] = field(default_factory=list)
    diagnostics: ScanDiagnostics = field(default_factory=ScanDiagnostics)


def store_id(file: str, name: str) -> str:
    return f"store:{file}#{name}"


def file_id(file: str) -> str:
    return f"file:{file}"


__all__ = [
    "DERIVED_KINDS",
    "DerivedStub",
    "IdentityKey",
    "ProjectIndex",
    "RELATION_TYPES",
    "Relation",
    "STORE_KINDS",
    "SUBSCRIBER_KINDS",
    "ScanDiagnostics",
    "Store",
    "Subscriber",
    "file_id",
    "is_derived_kind",
    "normalize_store_kind",
    "store_id",
]
