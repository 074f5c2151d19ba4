"""The Index: in-memory entry list mirrored into the LMDB store.

Concurrency model: one exclusive lock covers the whole structure. Queries,
single-path updates and rebuilds never overlap, so a query always sees a
fully applied update or none of it.

Ordering: entries keep walk order from the last rebuild; incremental
inserts are appended. After a restart the order is the store's key order.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog

from les.core.errors import StorageError
from les.core.excludes import DEFAULT_SKIP_PREFIXES, should_skip
from les.index.models import Entry, Query, QueryResult
from les.index.query import run_query as _run_query
from les.index.store import DEFAULT_MAP_SIZE, EntryStore
from les.index.walker import lossy_path, stat_entry, walk_root

logger = structlog.get_logger()


class UpdateOutcome(Enum):
    """What update_path did with the path."""

    INDEXED = "indexed"
    REMOVED = "removed"
    SKIPPED = "skipped"
    PERSIST_FAILED = "persist_failed"


@dataclass
class RebuildStats:
    """Result of a full rebuild."""

    entries: int
    dirs: int
    files: int
    duration_seconds: float


class Index:
    """Shared, lock-guarded filename/metadata index.

    Use :meth:`open` to construct; it loads every persisted entry.
    """

    def __init__(
        self,
        store: EntryStore,
        entries: list[Entry],
        skip_prefixes: Sequence[str] = DEFAULT_SKIP_PREFIXES,
    ) -> None:
        self._store = store
        self._entries = entries
        self._skip_prefixes = tuple(skip_prefixes)
        self._lock = threading.Lock()

    @classmethod
    def open(
        cls,
        db_path: Path,
        *,
        skip_prefixes: Sequence[str] = DEFAULT_SKIP_PREFIXES,
        map_size: int = DEFAULT_MAP_SIZE,
    ) -> Index:
        """Open or create the store at db_path and load it into memory.

        Raises:
            StorageError: If the store cannot be opened or holds a corrupt record.
        """
        store = EntryStore(db_path, map_size=map_size)
        try:
            entries = store.load()
        except StorageError:
            store.close()
            raise
        logger.info("index_loaded", db_path=str(db_path), entries=len(entries))
        return cls(store, entries, skip_prefixes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def entry_count(self) -> int:
        return len(self)

    def entries(self) -> list[Entry]:
        """Snapshot copy of the in-memory entries."""
        with self._lock:
            return list(self._entries)

    def rebuild(self, roots: Iterable[str], excludes: Iterable[str] = ()) -> RebuildStats:
        """Clear everything and re-walk each root.

        The new entry set is committed to the store and synced to disk
        before this returns.

        Raises:
            StorageError: If the store cannot be written.
        """
        roots = list(roots)
        excludes = tuple(excludes)
        start = time.monotonic()

        with self._lock:
            self._entries.clear()
            self._store.replace_all(())

            collected: list[Entry] = []
            for root in roots:
                collected.extend(walk_root(root, excludes, self._skip_prefixes))

            self._store.replace_all(collected)
            self._entries.extend(collected)

        dirs = sum(1 for e in collected if e.is_dir)
        stats = RebuildStats(
            entries=len(collected),
            dirs=dirs,
            files=len(collected) - dirs,
            duration_seconds=time.monotonic() - start,
        )
        logger.info(
            "index_rebuilt",
            roots=roots,
            entries=stats.entries,
            dirs=stats.dirs,
            files=stats.files,
            duration=f"{stats.duration_seconds:.2f}s",
        )
        return stats

    def update_path(self, path: str, excludes: Iterable[str] = ()) -> UpdateOutcome:
        """Reconcile one path with the filesystem.

        Only the exact path is touched: removing or renaming a directory does
        not reconcile entries below it.
        """
        key = lossy_path(path)
        with self._lock:
            self._entries[:] = [e for e in self._entries if e.path != key]

            try:
                if should_skip(path, excludes, self._skip_prefixes):
                    self._store.delete(key)
                    outcome = UpdateOutcome.SKIPPED
                else:
                    entry = stat_entry(path)
                    if entry is None:
                        self._store.delete(key)
                        outcome = UpdateOutcome.REMOVED
                    else:
                        # Persist first so memory never holds an entry the store lacks
                        self._store.put(entry)
                        self._entries.append(entry)
                        outcome = UpdateOutcome.INDEXED
            except StorageError as e:
                logger.error("persist_failed", path=key, error=e.message)
                return UpdateOutcome.PERSIST_FAILED

        logger.debug("path_updated", path=key, outcome=outcome.value)
        return outcome

    def run_query(self, query: Query) -> QueryResult:
        """Return all entries matching query.

        Raises:
            PatternError: If the query pattern does not compile.
        """
        with self._lock:
            return _run_query(self._entries, query)

    def close(self) -> None:
        with self._lock:
            self._store.close()
