"""Change watcher: feeds filesystem notifications into the Index.

Design:
- One dedicated daemon thread runs watchfiles' blocking ``watch`` over all
  roots (recursive native watches). Only the index store's own directory is
  filtered out, since every store write would otherwise notify again
- Every (change, path) pair in a batch becomes exactly one
  ``Index.update_path`` call, processed sequentially
- Added, modified and deleted all map to the same reconcile call, so the
  order of pairs inside a batch does not affect the final state
- A notification-source error is logged and the watch restarts after a
  backoff; the thread only exits on stop()
"""

from __future__ import annotations

import os
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from watchfiles import Change, DefaultFilter, watch

from les.config.models import WatcherConfig
from les.index.ops import Index

logger = structlog.get_logger()


class StoreFilter(DefaultFilter):
    """Pass every change except those under the given paths.

    The default directory and name ignores are cleared: hidden directories,
    editor swap files and the like are all indexed.
    """

    def __init__(self, ignore_paths: Sequence[str | Path] = ()) -> None:
        super().__init__(
            ignore_dirs=(),
            ignore_entity_patterns=(),
            ignore_paths=[str(p) for p in ignore_paths],
        )


def watchable_roots(roots: list[str]) -> list[str]:
    """Keep the roots that exist as directories, logging the rest."""
    usable: list[str] = []
    for root in roots:
        if os.path.isdir(root):
            usable.append(root)
        else:
            logger.warning("watch_root_missing", root=root)
    return usable


@dataclass
class ChangeWatcher:
    """Background consumer of filesystem change notifications."""

    index: Index
    roots: list[str]
    excludes: list[str] = field(default_factory=list)
    config: WatcherConfig = field(default_factory=WatcherConfig)
    ignore_paths: list[str] = field(default_factory=list)

    events_processed: int = field(default=0, init=False)
    _stop_event: threading.Event = field(default_factory=threading.Event, init=False)
    _thread: threading.Thread | None = field(default=None, init=False)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start the watch thread. Returns False if no root can be watched."""
        if self._thread is not None:
            return True

        roots = watchable_roots(self.roots)
        if not roots:
            logger.warning("watcher_not_started", reason="no_watchable_roots")
            return False

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(roots,),
            name="les-watcher",
            daemon=True,
        )
        self._thread.start()
        logger.info("watcher_started", roots=roots, debounce_ms=self.config.debounce_ms)
        return True

    def stop(self, timeout: float = 2.0) -> None:
        """Signal the watch loop to exit and wait briefly for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("watcher_stopped", events_processed=self.events_processed)

    def _run(self, roots: list[str]) -> None:
        while not self._stop_event.is_set():
            try:
                for changes in watch(
                    *roots,
                    watch_filter=StoreFilter(self.ignore_paths),
                    debounce=self.config.debounce_ms,
                    step=self.config.step_ms,
                    stop_event=self._stop_event,
                    recursive=True,
                    ignore_permission_denied=True,
                ):
                    self.handle_changes(changes)
            except Exception as e:
                if self._stop_event.is_set():
                    return
                logger.error("watcher_error", error=str(e))
                # Brief backoff before retry
                self._stop_event.wait(self.config.retry_backoff_sec)

    def handle_changes(self, changes: set[tuple[Change, str]]) -> int:
        """Reconcile each notified path with the index. Returns paths handled."""
        handled = 0
        for change, path in sorted(changes, key=lambda c: c[1]):
            try:
                outcome = self.index.update_path(path, self.excludes)
            except Exception as e:
                logger.error("update_failed", path=path, change=change.name, error=str(e))
                continue
            handled += 1
            logger.debug("change_applied", path=path, change=change.name, outcome=outcome.value)
        self.events_processed += handled
        return handled
