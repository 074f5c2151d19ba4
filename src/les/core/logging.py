"""structlog setup for lesd.

Events go through stdlib logging so every output (stderr, stdout or a file)
gets its own handler, level and renderer. Each accepted client connection
binds a short request id into structlog's context; every event logged while
that connection is served carries it.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from les.config.models import LoggingConfig, LogOutputConfig

_REQUEST_ID_KEY = "request_id"

# Third-party loggers that are chatty at DEBUG
_QUIET_LOGGERS = ("watchfiles.main",)


def set_request_id(request_id: str | None = None) -> str:
    """Bind a correlation id for the current connection, generating one if needed."""
    rid = request_id or uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(**{_REQUEST_ID_KEY: rid})
    return rid


def get_request_id() -> str | None:
    return structlog.contextvars.get_contextvars().get(_REQUEST_ID_KEY)


def clear_request_id() -> None:
    structlog.contextvars.unbind_contextvars(_REQUEST_ID_KEY)


def _level(name: str | None, fallback: int = logging.INFO) -> int:
    if name is None:
        return fallback
    return logging.getLevelNamesMapping().get(name.upper(), fallback)


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]


def _formatter(
    output: LogOutputConfig, pre_chain: list[structlog.types.Processor]
) -> logging.Formatter:
    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        stream = sys.stdout if output.destination == "stdout" else sys.stderr
        renderer = structlog.dev.ConsoleRenderer(
            colors=output.destination in ("stderr", "stdout") and stream.isatty(),
            pad_event_to=0,
            pad_level=False,
        )
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)


def _handler(destination: str) -> logging.Handler:
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    if destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a")


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Install handlers for every configured output, replacing earlier ones.

    Args:
        config: Full logging config. When omitted, a single stderr output is
            built from ``json_format`` and ``level``.
        json_format: Render the default output as JSON lines.
        level: Level of the default output.
    """
    from les.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    root_level = _level(config.level)
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers created at import time
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for old in root.handlers:
        old.close()
    root.handlers.clear()
    root.setLevel(root_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for output in config.outputs:
        handler = _handler(output.destination)
        handler.setLevel(_level(output.level, root_level))
        handler.setFormatter(_formatter(output, pre_chain))
        root.addHandler(handler)
