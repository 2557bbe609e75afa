"""Product catalog.

Catalog tables, the cached category tree and the read-only repository
used by search.
"""

from app.catalog.models import Category, Product, ProductTag
from app.catalog.repository import CatalogRepository
from app.catalog.taxonomy import CategoryTree, CategoryTreeCache

__all__ = [
    # Models
    "Category",
    "Product",
    "ProductTag",
    # Repository
    "CatalogRepository",
    # Category tree
    "CategoryTree",
    "CategoryTreeCache",
]
