"""Filesystem walk and metadata capture.

Best-effort: any path whose metadata cannot be read, and any directory that
cannot be listed, is dropped silently. One unreadable file never aborts a
walk.

Order follows top-down ``os.walk``: a directory is yielded before anything
below it, and all of its children are yielded before the walk descends into
any of them. Sibling order is whatever the directory listing returns.
"""

from __future__ import annotations

import os
import stat
from collections.abc import Iterable, Iterator

from les.core.excludes import DEFAULT_SKIP_PREFIXES, should_skip
from les.index.models import Entry


def lossy_path(path: str) -> str:
    """Replace undecodable filename bytes with U+FFFD."""
    return path.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def stat_entry(path: str) -> Entry | None:
    """Build an Entry from the path's current metadata, or None if unreadable.

    Symbolic links are followed for metadata, so a link to a directory is
    recorded as a directory and a dangling link is dropped.
    """
    try:
        st = os.stat(path)
    except (OSError, ValueError):
        return None
    is_dir = stat.S_ISDIR(st.st_mode)
    return Entry(
        path=lossy_path(path),
        is_dir=is_dir,
        size=0 if is_dir else st.st_size,
        mtime=st.st_mtime_ns // 1_000_000_000,
    )


def walk_root(
    root: str,
    excludes: Iterable[str] = (),
    skip_prefixes: Iterable[str] = DEFAULT_SKIP_PREFIXES,
) -> Iterator[Entry]:
    """Yield entries for root and everything below it, without following links.

    Skipped directories prune their subtree. The root itself is subject to the
    same skip rules.
    """
    excludes = tuple(excludes)
    skip_prefixes = tuple(skip_prefixes)

    if should_skip(root, excludes, skip_prefixes):
        return
    entry = stat_entry(root)
    if entry is not None:
        yield entry

    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        kept: list[str] = []
        for name in dirnames:
            child = os.path.join(dirpath, name)
            if should_skip(child, excludes, skip_prefixes):
                continue
            kept.append(name)
            entry = stat_entry(child)
            if entry is not None:
                yield entry
        # Prune in-place so os.walk never descends into skipped directories
        dirnames[:] = kept

        for name in filenames:
            child = os.path.join(dirpath, name)
            if should_skip(child, excludes, skip_prefixes):
                continue
            entry = stat_entry(child)
            if entry is not None:
                yield entry
