"""les command - query a running lesd."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import click

from les import __version__
from les.cli.render import render_response
from les.client.transport import send_request
from les.config.loader import load_config
from les.core.errors import ConfigError, ProtocolError
from les.daemon.protocol import PingRequest, QueryRequest, Request
from les.index.models import PatternMode, Query

PROMPT = "les> "


def build_query(pattern: str, options: dict[str, Any]) -> Query:
    """Combine a pattern with the fixed filter flags."""
    return Query(
        pattern=pattern,
        mode=PatternMode(options["mode"]),
        files_only=options["files_only"],
        dirs_only=options["dirs_only"],
        roots=list(options["roots"]),
        exclude=list(options["excludes"]),
        min_size=options["min_size"],
        max_size=options["max_size"],
        min_mtime=options["min_mtime"],
        max_mtime=options["max_mtime"],
        content=options["content"],
    )


def _exchange(socket_path: str, request: Request, timeout: float | None) -> bool:
    """Send one request and print the answer. Returns False on any error."""
    try:
        response = send_request(socket_path, request, timeout=timeout)
    except ProtocolError as e:
        click.echo(f"Error: {e.message}", err=True)
        return False
    return render_response(response)


def _interactive_loop(socket_path: str, timeout: float | None, options: dict[str, Any]) -> None:
    """Prompt for patterns until an empty line or end of input."""
    while True:
        click.echo(PROMPT, nl=False)
        line = sys.stdin.readline()
        pattern = line.strip()
        if not pattern:
            break
        _exchange(socket_path, QueryRequest(query=build_query(pattern, options)), timeout)


@click.command()
@click.version_option(version=__version__, prog_name="les")
@click.argument("pattern", required=False)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in PatternMode]),
    default=PatternMode.SUBSTR.value,
    show_default=True,
    help="How PATTERN is matched",
)
@click.option("--files-only", is_flag=True, help="Only files")
@click.option("--dirs-only", is_flag=True, help="Only directories")
@click.option(
    "--root",
    "--roots",
    "roots",
    multiple=True,
    help="Only paths under this prefix (repeatable)",
)
@click.option(
    "--exclude",
    "excludes",
    multiple=True,
    help="Drop paths containing this substring (repeatable)",
)
@click.option("--min-size", type=click.IntRange(min=0), help="Minimum size in bytes")
@click.option("--max-size", type=click.IntRange(min=0), help="Maximum size in bytes")
@click.option("--min-mtime", type=int, help="Minimum modification time (UNIX epoch seconds)")
@click.option("--max-mtime", type=int, help="Maximum modification time (UNIX epoch seconds)")
@click.option("--content", help="Only files containing this string (slow)")
@click.option("--socket", "socket_path", help="Unix socket path (must match lesd)")
@click.option("-i", "--interactive", is_flag=True, help="Repeatedly prompt for a pattern")
@click.option("--ping", is_flag=True, help="Check that the daemon is answering")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML config file",
)
def les(
    pattern: str | None,
    socket_path: str | None,
    interactive: bool,
    ping: bool,
    config_path: Path | None,
    **options: Any,
) -> None:
    """Linux Everything-style search client.

    Sends PATTERN with the given filters to lesd and prints one line per
    match: kind, size, modification time, path.
    """
    if options["files_only"] and options["dirs_only"]:
        raise click.UsageError("--files-only and --dirs-only cannot both be set")

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(e.message) from e
    socket_path = socket_path or config.client.socket_path
    timeout = config.client.timeout_sec

    if ping:
        if not _exchange(socket_path, PingRequest(), timeout):
            sys.exit(1)
        return

    if interactive:
        _interactive_loop(socket_path, timeout, options)
        return

    if pattern is None:
        raise click.UsageError("Pattern is required in non-interactive mode")

    if not _exchange(socket_path, QueryRequest(query=build_query(pattern, options)), timeout):
        sys.exit(1)


if __name__ == "__main__":
    les()
