"""Domain layer - errors shared by the catalog and search layers."""

from app.domain.exceptions import (
    CatalogUnavailableError,
    SearchAbandonedError,
    SearchError,
)

__all__ = [
    "CatalogUnavailableError",
    "SearchAbandonedError",
    "SearchError",
]
