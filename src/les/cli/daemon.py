"""lesd command - run the index daemon in the foreground."""

from pathlib import Path
from typing import Any

import click

from les import __version__
from les.config.loader import load_config
from les.core.errors import ConfigError, StorageError
from les.core.logging import configure_logging


def _overrides(
    roots: tuple[str, ...],
    db_path: str | None,
    socket_path: str | None,
    excludes: tuple[str, ...],
) -> dict[str, Any]:
    """Map CLI flags onto config sections. Unset flags leave config alone."""
    index: dict[str, Any] = {}
    server: dict[str, Any] = {}
    if roots:
        index["roots"] = list(roots)
    if db_path:
        index["db_path"] = db_path
    if excludes:
        index["exclude"] = list(excludes)
    if socket_path:
        server["socket_path"] = socket_path

    overrides: dict[str, Any] = {}
    if index:
        overrides["index"] = index
    if server:
        overrides["server"] = server
    return overrides


@click.command()
@click.version_option(version=__version__, prog_name="lesd")
@click.option(
    "--root",
    "--roots",
    "roots",
    multiple=True,
    help="Directory tree to index and watch (repeatable, default: /)",
)
@click.option("--db-path", help="Directory of the index store")
@click.option("--socket", "socket_path", help="Unix socket path for client connections")
@click.option("--rebuild", is_flag=True, help="Rebuild the index from scratch on start")
@click.option(
    "--exclude",
    "excludes",
    multiple=True,
    help="Never index paths containing this substring (repeatable)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML config file",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def lesd(
    roots: tuple[str, ...],
    db_path: str | None,
    socket_path: str | None,
    rebuild: bool,
    excludes: tuple[str, ...],
    config_path: Path | None,
    verbose: bool,
) -> None:
    """Linux Everything-style search daemon.

    Loads the persisted index (building it when empty or --rebuild is
    given), keeps it current from filesystem notifications, and answers
    queries on a Unix socket until SIGINT/SIGTERM.
    """
    from les.daemon.lifecycle import run_daemon

    try:
        config = load_config(
            config_path, **_overrides(roots, db_path, socket_path, excludes)
        )
    except ConfigError as e:
        raise click.ClickException(e.message) from e

    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=logging_config)

    try:
        run_daemon(config, force_rebuild=rebuild)
    except StorageError as e:
        raise click.ClickException(e.message) from e
    except OSError as e:
        raise click.ClickException(f"Cannot start daemon: {e}") from e


if __name__ == "__main__":
    lesd()
