"""Core module exports."""

from les.core.errors import (
    ConfigError,
    ErrorCode,
    InternalError,
    LesError,
    PatternError,
    ProtocolError,
    StorageError,
)
from les.core.logging import (
    clear_request_id,
    configure_logging,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Errors
    "LesError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "PatternError",
    "ProtocolError",
    "StorageError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_request_id",
    "set_request_id",
]
