"""Product search.

Criteria building, statement construction and the search engine that
executes results, facets and suggestions.
"""

from app.domain.exceptions import CatalogUnavailableError, SearchAbandonedError, SearchError
from app.search.criteria import SearchCriteria, SortKey
from app.search.engine import (
    FilterFacets,
    RequestDeadline,
    SearchEngine,
    SearchResult,
    Suggestion,
    get_search_engine,
)

__all__ = [
    # Criteria
    "SearchCriteria",
    "SortKey",
    # Engine
    "FilterFacets",
    "RequestDeadline",
    "SearchEngine",
    "SearchResult",
    "Suggestion",
    "get_search_engine",
    # Errors
    "CatalogUnavailableError",
    "SearchAbandonedError",
    "SearchError",
]
