"""Tests for the category tree and its cache."""

from unittest.mock import patch

import pytest

from app.catalog.repository import CatalogRepository
from app.catalog.taxonomy import Category, CategoryTree, CategoryTreeCache


@pytest.fixture
def tree() -> CategoryTree:
    """Tree: locks > smart-locks > fingerprint, locks > padlocks, cameras."""
    return CategoryTree(
        [
            Category(id="locks", name="Locks", slug="locks"),
            Category(id="smart", name="Smart Locks", slug="smart-locks", parent_id="locks"),
            Category(id="finger", name="Fingerprint", slug="fingerprint", parent_id="smart"),
            Category(id="pad", name="Padlocks", slug="padlocks", parent_id="locks"),
            Category(id="cameras", name="Cameras", slug="cameras"),
        ]
    )


class TestCategoryTree:
    """Tests for CategoryTree."""

    def test_roots(self, tree: CategoryTree) -> None:
        """Categories without a parent are roots."""
        assert {c.id for c in tree.get_root_categories()} == {"locks", "cameras"}

    def test_get_by_id(self, tree: CategoryTree) -> None:
        """Categories can be found by ID."""
        category = tree.get_by_id("smart")
        assert category is not None
        assert category.name == "Smart Locks"
        assert [c.id for c in category.children] == ["finger"]

    def test_get_by_id_not_found(self, tree: CategoryTree) -> None:
        """Non-existent ID returns None."""
        assert tree.get_by_id("missing") is None

    def test_subtree_includes_all_descendants(self, tree: CategoryTree) -> None:
        """Subtree is the category plus transitive children."""
        assert tree.subtree_ids("locks") == {"locks", "smart", "finger", "pad"}

    def test_leaf_subtree_is_itself(self, tree: CategoryTree) -> None:
        """A leaf expands to itself only."""
        assert tree.subtree_ids("finger") == {"finger"}

    def test_unknown_subtree_is_empty(self, tree: CategoryTree) -> None:
        """Unknown categories resolve to nothing."""
        assert tree.subtree_ids("missing") == frozenset()

    def test_path(self, tree: CategoryTree) -> None:
        """Breadcrumb runs root-first."""
        assert [c.slug for c in tree.path("finger")] == ["locks", "smart-locks", "fingerprint"]
        assert tree.path("missing") == []

    def test_dangling_parent_becomes_root(self) -> None:
        """A category whose parent is missing is treated as a root."""
        tree = CategoryTree([Category(id="orphan", name="Orphan", slug="orphan", parent_id="gone")])
        assert [c.id for c in tree.get_root_categories()] == ["orphan"]

    def test_cycle_does_not_loop(self) -> None:
        """Corrupt parent cycles terminate."""
        tree = CategoryTree(
            [
                Category(id="a", name="A", slug="a", parent_id="b"),
                Category(id="b", name="B", slug="b", parent_id="a"),
            ]
        )
        assert tree.subtree_ids("a") == {"a", "b"}
        assert {c.id for c in tree.path("a")} == {"a", "b"}


class TestCategoryTreeCache:
    """Tests for CategoryTreeCache."""

    @pytest.mark.asyncio
    async def test_loads_from_catalog(self, catalog) -> None:
        """The cached tree reflects the categories table."""
        cache = CategoryTreeCache(CatalogRepository(catalog), ttl_seconds=60)

        assert await cache.subtree_ids("electronics") == {
            "electronics",
            "phones",
            "smartphones",
            "laptops",
        }
        tree = await cache.get_tree()
        assert len(tree) == 5

    @pytest.mark.asyncio
    async def test_tree_is_loaded_once_while_fresh(self, catalog) -> None:
        """Repeated lookups reuse the cached tree."""
        repository = CatalogRepository(catalog)
        cache = CategoryTreeCache(repository, ttl_seconds=60)

        with patch.object(
            repository, "load_categories", wraps=repository.load_categories
        ) as load:
            await cache.subtree_ids("phones")
            await cache.subtree_ids("home")
            assert load.call_count == 1

            cache.invalidate()
            await cache.subtree_ids("phones")
            assert load.call_count == 2

    @pytest.mark.asyncio
    async def test_stale_tree_reloads(self, catalog) -> None:
        """A zero TTL reloads on every lookup."""
        repository = CatalogRepository(catalog)
        cache = CategoryTreeCache(repository, ttl_seconds=0)

        with patch.object(
            repository, "load_categories", wraps=repository.load_categories
        ) as load:
            await cache.get_tree()
            await cache.get_tree()
            assert load.call_count == 2
