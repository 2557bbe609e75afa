"""Category tree.

Categories nest through ``parent_id``. A category filter must match
products of the category and of every category below it, so search
expands a requested id into its subtree using an in-memory tree that is
loaded once and cached.

Tree example:
    locks
    locks > smart-locks
    locks > smart-locks > fingerprint-locks
    cameras
"""

import asyncio
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from app.catalog.repository import CatalogRepository

logger = structlog.get_logger()


@dataclass
class Category:
    """A node in the category tree.

    Attributes:
        id: Category ID.
        name: Category name.
        slug: URL slug.
        parent_id: ID of parent category (None for root).
        is_active: Whether the category is published.
    """

    id: str
    name: str
    slug: str
    parent_id: str | None = None
    is_active: bool = True
    children: list["Category"] = field(default_factory=list, repr=False)


class CategoryTree:
    """Immutable-after-build index of the category hierarchy.

    Example usage:
        tree = CategoryTree.from_rows(await repo.load_categories())
        ids = tree.subtree_ids(locks_id)
    """

    def __init__(self, categories: Iterable[Category] = ()) -> None:
        """Build the tree from category nodes.

        Args:
            categories: Nodes with ``parent_id`` set; children are linked here.
        """
        self._categories: dict[str, Category] = {}
        self._root_categories: list[Category] = []

        for category in categories:
            category.children = []
            self._categories[category.id] = category

        for category in self._categories.values():
            parent = self._categories.get(category.parent_id) if category.parent_id else None
            if parent is None:
                # Dangling parents are treated as roots
                self._root_categories.append(category)
            else:
                parent.children.append(category)

    @classmethod
    def from_rows(cls, rows: Iterable[Any]) -> "CategoryTree":
        """Build from rows exposing id, parent_id, name, slug and is_active."""
        return cls(
            Category(
                id=row.id,
                name=row.name,
                slug=row.slug,
                parent_id=row.parent_id,
                is_active=row.is_active,
            )
            for row in rows
        )

    def __len__(self) -> int:
        return len(self._categories)

    def get_by_id(self, category_id: str) -> Category | None:
        """Get category by ID.

        Returns:
            Category if found, None otherwise.
        """
        return self._categories.get(category_id)

    def get_root_categories(self) -> list[Category]:
        """Get top-level categories."""
        return self._root_categories

    def get_all(self) -> list[Category]:
        """Get all categories."""
        return list(self._categories.values())

    def subtree_ids(self, category_id: str) -> frozenset[str]:
        """Collect a category and all of its transitive descendants.

        Args:
            category_id: Root of the subtree.

        Returns:
            IDs in the subtree; empty if the category is unknown.
        """
        root = self._categories.get(category_id)
        if root is None:
            return frozenset()

        seen: set[str] = set()
        stack = [root]
        while stack:
            node = stack.pop()
            if node.id in seen:
                continue
            seen.add(node.id)
            stack.extend(node.children)
        return frozenset(seen)

    def path(self, category_id: str) -> list[Category]:
        """Breadcrumb from the root down to the category.

        Returns:
            Categories root-first; empty if the category is unknown.
        """
        trail: list[Category] = []
        seen: set[str] = set()
        node = self._categories.get(category_id)
        while node is not None and node.id not in seen:
            seen.add(node.id)
            trail.append(node)
            node = self._categories.get(node.parent_id) if node.parent_id else None
        trail.reverse()
        return trail


class CategoryTreeCache:
    """Lazily loaded, time-limited cache of the category tree.

    Concurrent callers that find the cache stale wait on one reload.
    """

    def __init__(self, repository: CatalogRepository, ttl_seconds: float) -> None:
        """Initialize cache.

        Args:
            repository: Catalog repository used to load categories.
            ttl_seconds: How long a loaded tree stays fresh.
        """
        self.repository = repository
        self.ttl_seconds = ttl_seconds
        self._tree: CategoryTree | None = None
        self._loaded_at = 0.0
        self._lock = asyncio.Lock()

    def _is_fresh(self) -> bool:
        return (
            self._tree is not None
            and time.monotonic() - self._loaded_at < self.ttl_seconds
        )

    async def get_tree(self) -> CategoryTree:
        """Return the cached tree, reloading it when stale.

        Raises:
            CatalogUnavailableError: If categories cannot be loaded.
        """
        if self._is_fresh():
            return self._tree  # type: ignore[return-value]

        async with self._lock:
            if self._is_fresh():
                return self._tree  # type: ignore[return-value]

            rows = await self.repository.load_categories()
            self._tree = CategoryTree.from_rows(rows)
            self._loaded_at = time.monotonic()
            logger.info("Category tree loaded", category_count=len(self._tree))
            return self._tree

    async def subtree_ids(self, category_id: str) -> frozenset[str]:
        """Resolve a category to its subtree using the cached tree."""
        tree = await self.get_tree()
        return tree.subtree_ids(category_id)

    def invalidate(self) -> None:
        """Drop the cached tree so the next lookup reloads it."""
        self._tree = None
        self._loaded_at = 0.0
