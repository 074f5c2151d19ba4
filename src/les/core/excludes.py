"""Skip rules shared by the full walk and single-path updates.

Two tiers:

Tier 0 (DEFAULT_SKIP_PREFIXES): virtual and ephemeral filesystem roots.
    - Matched as plain string prefixes of the absolute path
    - A skipped directory prunes its whole subtree during a walk

Tier 1 (caller excludes): substrings supplied by the daemon operator.
    - Matched anywhere in the path
"""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_SKIP_PREFIXES: tuple[str, ...] = (
    # Kernel/virtual filesystems
    "/proc",
    "/sys",
    "/dev",
    # Runtime and scratch space
    "/run",
    "/tmp",
    "/var/run",
    "/var/tmp",
    "/var/cache",
    # Snap package store
    "/var/lib/snapd",
)


def should_skip(
    path: str,
    excludes: Iterable[str] = (),
    skip_prefixes: Iterable[str] = DEFAULT_SKIP_PREFIXES,
) -> bool:
    """Return True if path falls under a skip prefix or contains an exclude.

    Prefix matching is textual: "/tmp" also skips "/tmpfiles".
    """
    if any(path.startswith(prefix) for prefix in skip_prefixes):
        return True
    return any(ex in path for ex in excludes)
