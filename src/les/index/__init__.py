"""Index module exports."""

from les.index.models import Entry, PatternMode, Query, QueryResult
from les.index.ops import Index, RebuildStats, UpdateOutcome
from les.index.query import compile_matcher, run_query

__all__ = [
    "Entry",
    "Index",
    "PatternMode",
    "Query",
    "QueryResult",
    "RebuildStats",
    "UpdateOutcome",
    "compile_matcher",
    "run_query",
]
