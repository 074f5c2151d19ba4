"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config() (CLI flags land here)
2. Environment variables (LES__SECTION__KEY)
3. YAML config (--config PATH, else ~/.config/les/config.yaml)
4. Built-in defaults (this file)

Environment Variable Format:
    LES__<SECTION>__<KEY>=<VALUE>

Examples:
    LES__LOGGING__LEVEL=DEBUG
    LES__SERVER__SOCKET_PATH=/tmp/lesd.sock
    LES__INDEX__DB_PATH=/var/lib/les/index.db
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from les.core.excludes import DEFAULT_SKIP_PREFIXES

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_SOCKET_PATH = "/run/lesd.sock"
DEFAULT_DB_PATH = "/var/lib/les/index.db"


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        LES__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every watcher event.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Index configuration.

    Env vars:
        LES__INDEX__DB_PATH: Store directory
        LES__INDEX__ROOTS: JSON list of roots to index
        LES__INDEX__EXCLUDE: JSON list of exclude substrings
    """

    db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="Directory holding the on-disk store. Created if missing.",
    )
    roots: list[str] = Field(
        default_factory=lambda: ["/"],
        description="Directory trees to index and watch.",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Paths containing any of these substrings are never indexed.",
    )
    skip_prefixes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SKIP_PREFIXES),
        description="Virtual/ephemeral filesystem prefixes that are never walked.",
    )
    map_size_mb: int = Field(
        default=4096,
        description="Upper bound of the store's memory map. "
        "RISK: Too low makes writes fail once the index outgrows it.",
    )

    @field_validator("map_size_mb")
    @classmethod
    def validate_map_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"map_size_mb must be positive, got {v}")
        return v


class ServerConfig(BaseModel):
    """Connection server configuration.

    Env vars:
        LES__SERVER__SOCKET_PATH: Unix socket path
        LES__SERVER__READ_TIMEOUT_SEC: Per-connection request read timeout
    """

    socket_path: str = Field(default=DEFAULT_SOCKET_PATH)
    read_timeout_sec: float | None = Field(
        default=None,
        description="Timeout for reading a request. None waits forever. "
        "RISK: Unbounded reads let a silent client hold a handler thread.",
    )

    @field_validator("read_timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError(f"read_timeout_sec must be positive, got {v}")
        return v


class WatcherConfig(BaseModel):
    """Change watcher configuration.

    Env vars:
        LES__WATCHER__ENABLED: Disable live updates with false
        LES__WATCHER__DEBOUNCE_MS: Notification batching window
    """

    enabled: bool = True
    debounce_ms: int = Field(
        default=50,
        description="Window for grouping raw notifications into one batch.",
    )
    step_ms: int = Field(
        default=50,
        description="How often the notification source is polled for new batches.",
    )
    retry_backoff_sec: float = Field(
        default=1.0,
        description="Delay before restarting the watch after a source error.",
    )


class ClientConfig(BaseModel):
    """Client configuration.

    Env vars:
        LES__CLIENT__SOCKET_PATH: Daemon socket to connect to
        LES__CLIENT__TIMEOUT_SEC: Socket timeout for one exchange
    """

    socket_path: str = Field(default=DEFAULT_SOCKET_PATH)
    timeout_sec: float | None = None


class LesConfig(BaseModel):
    """Root configuration for les.

    All settings can be configured via:
    1. Environment variables: LES__SECTION__KEY
    2. A YAML config file
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
