"""Daemon lifecycle management."""

from __future__ import annotations

import os
import signal
import threading
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from les.config.models import LesConfig
from les.daemon.server import ConnectionServer
from les.daemon.watcher import ChangeWatcher
from les.index.ops import Index

logger = structlog.get_logger()


@dataclass
class DaemonController:
    """
    Orchestrates daemon components.

    Components:
    - Index: in-memory entries + persistent store, the single lock holder
    - ChangeWatcher: background thread applying filesystem notifications
    - ConnectionServer: accept thread + one handler thread per connection
    """

    config: LesConfig
    force_rebuild: bool = False

    index: Index | None = field(default=None, init=False)
    watcher: ChangeWatcher | None = field(default=None, init=False)
    server: ConnectionServer | None = field(default=None, init=False)
    _shutdown_event: threading.Event = field(default_factory=threading.Event, init=False)

    @property
    def store_path(self) -> str:
        """Absolute store directory. Never indexed or watched."""
        return os.path.abspath(os.path.expanduser(self.config.index.db_path))

    def open_index(self) -> Index:
        """Load the index, rebuilding it when forced or empty.

        Raises:
            StorageError: If the store cannot be opened or written.
        """
        index_cfg = self.config.index
        index = Index.open(
            Path(index_cfg.db_path),
            skip_prefixes=[*index_cfg.skip_prefixes, self.store_path],
            map_size=index_cfg.map_size_mb * 1024 * 1024,
        )
        if self.force_rebuild or index.entry_count == 0:
            logger.info(
                "index_build_started",
                reason="forced" if self.force_rebuild else "empty",
                roots=index_cfg.roots,
            )
            index.rebuild(index_cfg.roots, index_cfg.exclude)
        self.index = index
        return index

    def start(self) -> None:
        """Open the index and start watcher and server."""
        index = self.index if self.index is not None else self.open_index()

        if self.config.watcher.enabled:
            self.watcher = ChangeWatcher(
                index=index,
                roots=list(self.config.index.roots),
                excludes=list(self.config.index.exclude),
                config=self.config.watcher,
                ignore_paths=[self.store_path],
            )
            self.watcher.start()

        self.server = ConnectionServer(
            self.config.server.socket_path,
            index,
            read_timeout_sec=self.config.server.read_timeout_sec,
        )
        self.server.serve_in_background()
        logger.info(
            "daemon_started",
            entries=index.entry_count,
            socket=self.config.server.socket_path,
        )

    def stop(self) -> None:
        """Stop accepting connections, remove the socket, stop the watcher.

        In-flight handler threads are not awaited.
        """
        logger.info("daemon_stopping")
        if self.server is not None:
            self.server.close()
            self.server = None
        if self.watcher is not None:
            self.watcher.stop()
            self.watcher = None
        self._shutdown_event.set()
        logger.info("daemon_stopped")

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    def wait_for_shutdown(self, timeout: float | None = None) -> bool:
        return self._shutdown_event.wait(timeout)


def run_daemon(config: LesConfig, *, force_rebuild: bool = False) -> None:
    """Run the daemon until SIGINT or SIGTERM.

    Raises:
        StorageError: If the index cannot be opened or built.
    """
    controller = DaemonController(config=config, force_rebuild=force_rebuild)
    controller.open_index()

    def signal_handler(signum: int, _frame: object) -> None:
        logger.info("shutdown_signal_received", signal=signal.Signals(signum).name)
        controller.request_shutdown()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, signal_handler)

    try:
        controller.start()
        # Poll so signal handlers get a chance to run on the main thread
        while not controller.wait_for_shutdown(timeout=0.5):
            pass
    finally:
        controller.stop()
        if controller.index is not None:
            controller.index.close()
