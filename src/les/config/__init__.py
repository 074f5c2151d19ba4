"""Config module exports."""

from les.config.loader import load_config
from les.config.models import (
    ClientConfig,
    IndexConfig,
    LesConfig,
    LoggingConfig,
    LogOutputConfig,
    ServerConfig,
    WatcherConfig,
)

__all__ = [
    "load_config",
    "LesConfig",
    "ClientConfig",
    "IndexConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "ServerConfig",
    "WatcherConfig",
]
