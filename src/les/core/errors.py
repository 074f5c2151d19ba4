"""les error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Storage
- 4xxx: Query
- 5xxx: Protocol
- 9xxx: Internal

Unreadable files and directories met during a walk or a single-path update
are not represented here: the OSError is caught at the stat site and the
path is dropped.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Storage (3xxx)
    STORAGE_OPEN_FAILED = 3001
    STORAGE_WRITE_FAILED = 3002
    STORAGE_CORRUPT_RECORD = 3003

    # Query (4xxx)
    PATTERN_INVALID_GLOB = 4001
    PATTERN_INVALID_REGEX = 4002

    # Protocol (5xxx)
    PROTOCOL_MALFORMED_REQUEST = 5001
    PROTOCOL_MALFORMED_RESPONSE = 5002
    PROTOCOL_TRANSPORT_FAILED = 5003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class LesError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'STORAGE_OPEN_FAILED')."""
        return self.code.name

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(LesError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class StorageError(LesError):
    """Persistent store could not be opened, read, or written."""

    @classmethod
    def open_failed(cls, path: str, reason: str) -> "StorageError":
        return cls(
            code=ErrorCode.STORAGE_OPEN_FAILED,
            message=f"Cannot open index store at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def write_failed(cls, key: str, reason: str) -> "StorageError":
        return cls(
            code=ErrorCode.STORAGE_WRITE_FAILED,
            message=f"Failed to persist {key}: {reason}",
            details={"key": key, "reason": reason},
        )

    @classmethod
    def corrupt_record(cls, key: str, reason: str) -> "StorageError":
        return cls(
            code=ErrorCode.STORAGE_CORRUPT_RECORD,
            message=f"Corrupt index record for {key}: {reason}",
            details={"key": key, "reason": reason},
        )


class PatternError(LesError):
    """Query pattern failed to compile."""

    @classmethod
    def invalid_glob(cls, pattern: str, reason: str) -> "PatternError":
        return cls(
            code=ErrorCode.PATTERN_INVALID_GLOB,
            message=f"Invalid glob pattern {pattern!r}: {reason}",
            details={"pattern": pattern, "reason": reason},
        )

    @classmethod
    def invalid_regex(cls, pattern: str, reason: str) -> "PatternError":
        return cls(
            code=ErrorCode.PATTERN_INVALID_REGEX,
            message=f"Invalid regex pattern {pattern!r}: {reason}",
            details={"pattern": pattern, "reason": reason},
        )


class ProtocolError(LesError):
    """Malformed wire message or broken client/daemon transport."""

    @classmethod
    def malformed_request(cls, reason: str) -> "ProtocolError":
        return cls(
            code=ErrorCode.PROTOCOL_MALFORMED_REQUEST,
            message=f"Invalid request: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def malformed_response(cls, reason: str) -> "ProtocolError":
        return cls(
            code=ErrorCode.PROTOCOL_MALFORMED_RESPONSE,
            message=f"Invalid response: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def transport_failed(cls, socket_path: str, reason: str) -> "ProtocolError":
        return cls(
            code=ErrorCode.PROTOCOL_TRANSPORT_FAILED,
            message=f"Cannot talk to daemon at {socket_path}: {reason}",
            details={"socket_path": socket_path, "reason": reason},
        )


class InternalError(LesError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
