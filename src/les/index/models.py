"""Index data models.

Entry is a plain frozen dataclass: the in-memory index can hold millions of
them, so it carries no validation overhead. Query is a pydantic model
because it arrives over the wire and must be validated there.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True, slots=True)
class Entry:
    """One indexed filesystem path and its cached metadata."""

    path: str
    is_dir: bool
    size: int
    mtime: int  # epoch seconds


QueryResult: TypeAlias = list[Entry]


class PatternMode(str, Enum):
    """Strategy for matching a query pattern against a path."""

    GLOB = "glob"
    REGEX = "regex"
    SUBSTR = "substr"


class Query(BaseModel):
    """Client-supplied filter specification.

    Bounds are inclusive. ``roots`` restricts results to path prefixes
    ("/" admits everything); ``exclude`` rejects any path containing one of
    the substrings. ``content`` turns on a full-file read per candidate.
    """

    model_config = ConfigDict(frozen=True)

    pattern: str
    mode: PatternMode = PatternMode.SUBSTR
    files_only: bool = False
    dirs_only: bool = False
    roots: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    min_size: int | None = Field(default=None, ge=0)
    max_size: int | None = Field(default=None, ge=0)
    min_mtime: int | None = None
    max_mtime: int | None = None
    content: str | None = None
