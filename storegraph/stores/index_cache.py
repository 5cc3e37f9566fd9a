"""In-memory cache of project indexes keyed by canonical root."""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Set

from ..config import DEFAULT_CACHE_TTL_MS, ModuleRegistry
from ..logging import get_logger
from ..models import ProjectIndex
from ..scanner import ProgressCallback, scan_project

ScanFunction = Callable[..., Awaitable[ProjectIndex]]
Clock = Callable[[], float]

_logger = get_logger("cache")


@dataclass
class CacheEntry:
    """A completed index and the clock reading (ms) taken when it finished."""

    index: ProjectIndex
    timestamp: float


def canonical_root(root: str | os.PathLike[str]) -> str:
    return os.path.realpath(os.path.abspath(os.path.expanduser(os.fspath(root))))


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ProjectIndexRepository:
    """Caches one :class:`ProjectIndex` per root with TTL expiry.

    Concurrent non-forced requests for a root without a fresh entry share a
    single pending scan. Forced requests always run their own scan. Entries
    are replaced wholesale when a scan succeeds and are left alone when it
    fails, and a scan never replaces an entry stored by a scan that started
    after it.
    """

    def __init__(
        self,
        cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        *,
        scan: ScanFunction = scan_project,
        clock: Optional[Clock] = None,
        registry: Optional[ModuleRegistry] = None,
    ) -> None:
        self._ttl_ms = cache_ttl_ms
        self._scan = scan
        self._clock = clock or _monotonic_ms
        self._registry = registry
        self._entries: Dict[str, CacheEntry] = {}
        self._pending: Dict[str, asyncio.Task[ProjectIndex]] = {}
        self._running: Set[asyncio.Task[ProjectIndex]] = set()
        self._sequence = 0
        self._stored_sequence: Dict[str, int] = {}

    async def get_index(
        self,
        root: str | os.PathLike[str],
        *,
        force: bool = False,
        ttl_ms: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProjectIndex:
        key = canonical_root(root)
        ttl = self._ttl_ms if ttl_ms is None else ttl_ms

        if force:
            _logger.debug("Forced rescan of %s", key)
            return await asyncio.shield(self._start_scan(key, on_progress))

        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry.timestamp < ttl:
            _logger.debug("Cache hit for %s", key)
            return entry.index

        pending = self._pending.get(key)
        if pending is None:
            pending = self._start_scan(key, on_progress)
            self._pending[key] = pending
        else:
            _logger.debug("Joining pending scan of %s", key)
        return await asyncio.shield(pending)

    def get_cached(self, root: str | os.PathLike[str]) -> Optional[CacheEntry]:
        return self._entries.get(canonical_root(root))

    def clear_cache(self, root: str | os.PathLike[str] | None = None) -> None:
        """Drop one entry, or every entry when ``root`` is None.

        Scans already in flight are not cancelled; they still store their
        result when they finish.
        """
        if root is None:
            self._entries.clear()
            self._stored_sequence.clear()
            return
        key = canonical_root(root)
        self._entries.pop(key, None)
        self._stored_sequence.pop(key, None)

    def _start_scan(
        self, key: str, on_progress: Optional[ProgressCallback]
    ) -> asyncio.Task[ProjectIndex]:
        self._sequence += 1
        task = asyncio.ensure_future(self._scan_and_store(key, self._sequence, on_progress))
        self._running.add(task)
        task.add_done_callback(lambda done: self._finish(key, done))
        return task

    async def _scan_and_store(
        self, key: str, sequence: int, on_progress: Optional[ProgressCallback]
    ) -> ProjectIndex:
        kwargs: Dict[str, object] = {"on_progress": on_progress}
        if self._registry is not None:
            kwargs["registry"] = self._registry
        index = await self._scan(key, **kwargs)
        # A scan started later may already have stored fresher data.
        if self._stored_sequence.get(key, 0) > sequence:
            _logger.debug("Discarding stale scan #%d of %s", sequence, key)
            return index
        self._entries[key] = CacheEntry(index=index, timestamp=self._clock())
        self._stored_sequence[key] = sequence
        _logger.debug("Cached index for %s", key)
        return index

    def _finish(self, key: str, task: asyncio.Task[ProjectIndex]) -> None:
        self._running.discard(task)
        if self._pending.get(key) is task:
            del self._pending[key]
        if not task.cancelled() and task.exception() is not None:
            _logger.debug("Scan of %s failed: %s", key, task.exception())


__all__ = ["CacheEntry", "Clock", "ProjectIndexRepository", "ScanFunction", "canonical_root"]
