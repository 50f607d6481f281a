"""Multi-level full-text index over project IRs."""

from .engine import IndexEngine
from .query import QueryBuilder
from .results import SearchResult
from .schema import IndexLevel, relation_term

__all__ = [
    "IndexEngine",
    "IndexLevel",
    "QueryBuilder",
    "SearchResult",
    "relation_term",
]
