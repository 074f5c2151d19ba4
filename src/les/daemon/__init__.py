"""les daemon - Unix socket server with live filesystem watching."""

from les.daemon.lifecycle import DaemonController, run_daemon
from les.daemon.server import ConnectionServer
from les.daemon.watcher import ChangeWatcher

__all__ = [
    "ChangeWatcher",
    "ConnectionServer",
    "DaemonController",
    "run_daemon",
]
