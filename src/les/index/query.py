"""Query engine: matcher compilation and the filter pipeline.

A matcher is compiled once per query and applied to every candidate entry.
The pipeline is a single linear scan; each stage short-circuits:

1. kind (files_only / dirs_only)
2. size bounds (inclusive)
3. mtime bounds (inclusive)
4. root prefixes ("/" admits everything)
5. exclude substrings
6. pattern match
7. content containment (files only; unreadable files never match)
"""

from __future__ import annotations

import fnmatch
import itertools
import os
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol

from les.core.errors import PatternError
from les.index.models import Entry, PatternMode, Query, QueryResult


class Matcher(Protocol):
    def matches(self, path: str) -> bool: ...


@dataclass(frozen=True, slots=True)
class GlobMatcher:
    """Shell-style glob against the final path component only.

    A backslash outside a character class escapes the next character, so
    ``\\*`` matches a literal ``*`` and ``\\{`` a literal brace. Inside a class
    the backslash is an ordinary member.
    """

    regex: re.Pattern[str]

    def matches(self, path: str) -> bool:
        name = os.path.basename(path)
        if not name:
            return False
        return self.regex.match(name) is not None


@dataclass(frozen=True, slots=True)
class RegexMatcher:
    """Unanchored regular expression search over the full path."""

    regex: re.Pattern[str]

    def matches(self, path: str) -> bool:
        return self.regex.search(path) is not None


@dataclass(frozen=True, slots=True)
class SubstrMatcher:
    """Case-insensitive containment over the full path."""

    needle: str

    def matches(self, path: str) -> bool:
        return self.needle in path.lower()


def _class_end(pattern: str, start: int) -> int:
    """Index of the ']' closing the character class opened at ``start``."""
    j = start + 1
    if j < len(pattern) and pattern[j] == "!":
        j += 1
    # A leading ']' is a literal member, not the terminator
    if j < len(pattern) and pattern[j] == "]":
        j += 1
    end = pattern.find("]", j)
    if end == -1:
        raise ValueError("unclosed character class")
    return end


def _escape(pattern: str, i: int) -> str:
    """fnmatch form of the character escaped by the backslash at ``i``."""
    if i + 1 >= len(pattern):
        raise ValueError("dangling escape")
    c = pattern[i + 1]
    return f"[{c}]" if c in "*?[" else c


def expand_alternates(pattern: str) -> list[str]:
    """Expand ``{a,b}`` groups into plain fnmatch patterns.

    Groups may not nest. Braces inside a character class are literal, as is
    any character escaped with a backslash.
    """
    segments: list[list[str]] = []
    literal: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "\\":
            literal.append(_escape(pattern, i))
            i += 2
        elif c == "[":
            end = _class_end(pattern, i)
            literal.append(pattern[i : end + 1])
            i = end + 1
        elif c == "{":
            options: list[str] = []
            current: list[str] = []
            i += 1
            while True:
                if i >= n:
                    raise ValueError("unclosed alternate group")
                c = pattern[i]
                if c == "\\":
                    current.append(_escape(pattern, i))
                    i += 2
                    continue
                if c == "{":
                    raise ValueError("nested alternate groups are not allowed")
                if c == "[":
                    end = _class_end(pattern, i)
                    current.append(pattern[i : end + 1])
                    i = end + 1
                    continue
                i += 1
                if c == ",":
                    options.append("".join(current))
                    current = []
                elif c == "}":
                    options.append("".join(current))
                    break
                else:
                    current.append(c)
            segments.append(["".join(literal)])
            segments.append(options)
            literal = []
        elif c == "}":
            raise ValueError("unopened alternate group")
        else:
            literal.append(c)
            i += 1
    segments.append(["".join(literal)])
    return ["".join(combo) for combo in itertools.product(*segments)]


def _compile_glob(pattern: str) -> Matcher:
    try:
        alternatives = expand_alternates(pattern)
        regex = re.compile("|".join(fnmatch.translate(alt) for alt in alternatives))
    except (ValueError, re.error) as e:
        raise PatternError.invalid_glob(pattern, str(e)) from e
    return GlobMatcher(regex)


def _compile_regex(pattern: str) -> Matcher:
    try:
        return RegexMatcher(re.compile(pattern))
    except re.error as e:
        raise PatternError.invalid_regex(pattern, str(e)) from e


def _compile_substr(pattern: str) -> Matcher:
    return SubstrMatcher(pattern.lower())


_COMPILERS: dict[PatternMode, Callable[[str], Matcher]] = {
    PatternMode.GLOB: _compile_glob,
    PatternMode.REGEX: _compile_regex,
    PatternMode.SUBSTR: _compile_substr,
}


def compile_matcher(query: Query) -> Matcher:
    """Build the matcher for the query's mode.

    Raises:
        PatternError: If the glob or regex does not compile.
    """
    return _COMPILERS[query.mode](query.pattern)


def file_contains(path: str, needle: str) -> bool:
    """Read the whole file as UTF-8 text and test for needle."""
    try:
        # Line endings stay byte-exact
        with open(path, encoding="utf-8", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError, ValueError):
        return False
    return needle in text


def entry_matches(entry: Entry, query: Query, matcher: Matcher) -> bool:
    """Apply every pipeline stage to one entry."""
    if query.files_only and entry.is_dir:
        return False
    if query.dirs_only and not entry.is_dir:
        return False

    if query.min_size is not None and entry.size < query.min_size:
        return False
    if query.max_size is not None and entry.size > query.max_size:
        return False
    if query.min_mtime is not None and entry.mtime < query.min_mtime:
        return False
    if query.max_mtime is not None and entry.mtime > query.max_mtime:
        return False

    path = entry.path
    if query.roots and not any(path.startswith(r) or r == "/" for r in query.roots):
        return False
    if any(ex in path for ex in query.exclude):
        return False

    if not matcher.matches(path):
        return False

    if query.content is not None:
        if entry.is_dir:
            return False
        if not file_contains(path, query.content):
            return False

    return True


def run_query(entries: Iterable[Entry], query: Query) -> QueryResult:
    """Return the entries that pass every stage, in iteration order."""
    matcher = compile_matcher(query)
    return [entry for entry in entries if entry_matches(entry, query, matcher)]
