"""Terminal rendering of daemon responses."""

from __future__ import annotations

from datetime import datetime

import click

from les.daemon.protocol import ErrorResponse, PongResponse, QueryResultResponse, Response
from les.index.models import Entry

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_mtime(mtime: int) -> str:
    """Local-time rendering; out-of-range timestamps fall back to the epoch."""
    try:
        dt = datetime.fromtimestamp(mtime)
    except (OverflowError, OSError, ValueError):
        dt = datetime.fromtimestamp(0)
    return dt.strftime(TIME_FORMAT)


def format_entry(entry: Entry) -> str:
    """One tab-separated line: kind, size, mtime, path."""
    kind = "d" if entry.is_dir else "-"
    return f"{kind}\t{entry.size}\t{format_mtime(entry.mtime)}\t{entry.path}"


def render_response(response: Response) -> bool:
    """Print a response. Returns False if it was an error response."""
    if isinstance(response, PongResponse):
        click.echo("OK (pong)")
    elif isinstance(response, ErrorResponse):
        click.echo(f"Error: {response.message}", err=True)
        return False
    elif isinstance(response, QueryResultResponse):
        for entry in response.entries:
            click.echo(format_entry(entry))
    return True
