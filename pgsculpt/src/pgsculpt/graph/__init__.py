"""Relationship graph over the IR: join paths, lookups and FK inference."""

from .inference import ForeignKeySuggestion, suggest_foreign_keys
from .join_graph import (
    FilterableIndex,
    JoinEdge,
    JoinGraph,
    JoinPath,
    LookupCandidate,
    format_edge,
    format_edge_detail,
    suggested_alias,
)

__all__ = [
    "ForeignKeySuggestion",
    "suggest_foreign_keys",
    "FilterableIndex",
    "JoinEdge",
    "JoinGraph",
    "JoinPath",
    "LookupCandidate",
    "format_edge",
    "format_edge_detail",
    "suggested_alias",
]
