"""Product search engine.

Runs a ``SearchCriteria`` against the catalog: a page of results with the
total count, the facet metadata for the current partial filter state, and
autocomplete suggestions.

Each read is independent and goes through its own session, so the count,
the page fetch and every facet query run concurrently. Before a read
starts the caller's abandonment signal is checked; reads already running
are cancelled with the calling task.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog

from app.catalog.models import Product
from app.catalog.repository import CatalogRepository
from app.catalog.taxonomy import CategoryTreeCache
from app.domain.exceptions import SearchAbandonedError
from app.infrastructure.config import Settings, settings as default_settings
from app.search import queries
from app.search.criteria import SearchCriteria
from app.search.queries import Dimension

logger = structlog.get_logger()

T = TypeVar("T")

AbandonSignal = Callable[[], bool]


# ============================================================================
# Results
# ============================================================================


@dataclass
class SearchResult:
    """One page of search results.

    Attributes:
        items: Products on this page, in sort order.
        total_count: Matching products across all pages.
        page: Current page.
        page_size: Items per page.
    """

    items: list[Product]
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        """Calculate total pages."""
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        """Check if there's a next page."""
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        """Check if there's a previous page."""
        return self.page > 1


@dataclass
class FacetValue:
    """A facet value and the number of matching products."""

    value: str
    count: int


@dataclass
class PriceBucket:
    """Products priced in [min, max); max None means unbounded."""

    min: int
    max: int | None
    count: int


@dataclass
class RatingBucket:
    """Products rated at least ``min_rating``."""

    min_rating: int
    count: int


@dataclass
class CategoryFacet:
    """A category and the number of matching products in it."""

    id: str
    name: str
    slug: str
    count: int


@dataclass
class FilterFacets:
    """Available filter values for the current partial filter state.

    Every dimension is counted under all filters except its own.
    """

    brands: list[FacetValue] = field(default_factory=list)
    price_buckets: list[PriceBucket] = field(default_factory=list)
    min_price: int | None = None
    max_price: int | None = None
    ratings: list[RatingBucket] = field(default_factory=list)
    discounted: int = 0
    in_stock: int = 0
    featured: int = 0
    tags: list[FacetValue] = field(default_factory=list)
    categories: list[CategoryFacet] = field(default_factory=list)


@dataclass
class Suggestion:
    """Lightweight product match for autocomplete."""

    id: str
    name: str
    slug: str
    brand: str | None
    price: int
    image_url: str


class RequestDeadline:
    """Abandonment signal that fires once a time budget is spent.

    Example usage:
        deadline = RequestDeadline(15.0)
        result = await engine.execute(criteria, abandoned=deadline)
    """

    def __init__(self, seconds: float) -> None:
        """Start the clock.

        Args:
            seconds: Time budget for the whole request.
        """
        self.expires_at = time.monotonic() + seconds

    def __call__(self) -> bool:
        return time.monotonic() >= self.expires_at


# ============================================================================
# Engine
# ============================================================================


class SearchEngine:
    """Executes product searches, facet counts and suggestions.

    Example usage:
        engine = SearchEngine(repository, category_cache)
        criteria = SearchCriteria.from_query(keyword="lock", brands="Acme")
        result = await engine.execute(criteria)
        facets = await engine.get_available_filters(criteria)
    """

    def __init__(
        self,
        repository: CatalogRepository,
        category_cache: CategoryTreeCache,
        settings: Settings | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            repository: Catalog repository executing statements.
            category_cache: Cached category tree for subtree expansion.
            settings: Search settings (defaults to application settings).
        """
        self.repository = repository
        self.category_cache = category_cache
        self.settings = settings or default_settings
        self._read_slots = asyncio.Semaphore(self.settings.search_max_concurrent_reads)

    async def _read(
        self,
        operation: str,
        read: Callable[[], Awaitable[T]],
        abandoned: AbandonSignal | None,
    ) -> T:
        """Run one read once a slot is free, unless the caller gave up.

        Raises:
            SearchAbandonedError: If ``abandoned()`` is true when the slot
                becomes available.
        """
        async with self._read_slots:
            if abandoned is not None and abandoned():
                raise SearchAbandonedError(operation)
            return await read()

    async def resolve_categories(
        self,
        criteria: SearchCriteria,
        abandoned: AbandonSignal | None = None,
    ) -> SearchCriteria:
        """Expand a requested category into itself plus all descendants.

        Args:
            criteria: Criteria possibly carrying an unresolved category.
            abandoned: Optional abandonment signal.

        Returns:
            Criteria with ``category_ids`` set (empty for unknown categories).
        """
        category_id = criteria.category_id
        if category_id is None or not criteria.needs_category_resolution:
            return criteria

        ids = await self._read(
            "resolve_categories",
            lambda: self.category_cache.subtree_ids(category_id),
            abandoned,
        )
        if not ids:
            logger.info("Unknown category in search filter", category_id=category_id)
        return criteria.with_category_ids(ids)

    async def execute(
        self,
        criteria: SearchCriteria,
        abandoned: AbandonSignal | None = None,
    ) -> SearchResult:
        """Run the search and return one page of results.

        Args:
            criteria: Search criteria; empty criteria list all active products.
            abandoned: Optional abandonment signal.

        Returns:
            Page of products with the total count.

        Raises:
            CatalogUnavailableError: If the catalog cannot be read.
            SearchAbandonedError: If the caller gave up mid-search.
        """
        start_time = time.perf_counter()
        criteria = await self.resolve_categories(criteria, abandoned)
        predicates = queries.build_predicates(criteria)

        total, items = await asyncio.gather(
            self._read(
                "count",
                lambda: self.repository.scalar(
                    queries.count_statement(predicates), operation="count"
                ),
                abandoned,
            ),
            self._read(
                "fetch_page",
                lambda: self.repository.scalars(
                    queries.page_statement(predicates, criteria), operation="fetch_page"
                ),
                abandoned,
            ),
        )

        result = SearchResult(
            items=items,
            total_count=int(total or 0),
            page=criteria.page,
            page_size=criteria.page_size,
        )

        logger.info(
            "Search executed",
            criteria=criteria.summary(),
            total=result.total_count,
            returned=len(result.items),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return result

    async def get_available_filters(
        self,
        criteria: SearchCriteria,
        abandoned: AbandonSignal | None = None,
    ) -> FilterFacets:
        """Compute facet values and counts for the current filters.

        Each facet comes from its own statement that drops exactly that
        facet's predicate; the keyword applies everywhere.

        Args:
            criteria: Search criteria (sort and pagination are ignored).
            abandoned: Optional abandonment signal.

        Returns:
            Facet metadata.

        Raises:
            CatalogUnavailableError: If the catalog cannot be read.
            SearchAbandonedError: If the caller gave up mid-computation.
        """
        start_time = time.perf_counter()
        criteria = await self.resolve_categories(criteria, abandoned)
        predicates = queries.build_predicates(criteria)
        buckets = queries.price_buckets(self.settings.search_price_bucket_edges)
        thresholds = list(self.settings.search_rating_thresholds)
        repo = self.repository

        def rows(statement: Any, operation: str) -> Awaitable[Any]:
            return self._read(operation, lambda: repo.rows(statement, operation), abandoned)

        def one(statement: Any, operation: str) -> Awaitable[Any]:
            return self._read(operation, lambda: repo.one(statement, operation), abandoned)

        def scalar(statement: Any, operation: str) -> Awaitable[Any]:
            return self._read(operation, lambda: repo.scalar(statement, operation), abandoned)

        (
            brand_rows,
            price_row,
            rating_row,
            discounted,
            in_stock,
            featured,
            tag_rows,
            category_rows,
        ) = await asyncio.gather(
            rows(queries.brand_facet_statement(predicates), "facet_brands"),
            one(queries.price_facet_statement(predicates, buckets), "facet_prices"),
            one(queries.rating_facet_statement(predicates, thresholds), "facet_ratings"),
            scalar(
                queries.flag_count_statement(predicates, Dimension.DISCOUNT),
                "facet_discount",
            ),
            scalar(
                queries.flag_count_statement(predicates, Dimension.IN_STOCK),
                "facet_in_stock",
            ),
            scalar(
                queries.flag_count_statement(predicates, Dimension.FEATURED),
                "facet_featured",
            ),
            rows(
                queries.tag_facet_statement(predicates, self.settings.search_top_tags),
                "facet_tags",
            ),
            rows(queries.category_facet_statement(predicates), "facet_categories"),
        )

        facets = FilterFacets(
            brands=[FacetValue(value=row.brand, count=int(row.count)) for row in brand_rows],
            price_buckets=[
                PriceBucket(min=low, max=high, count=int(price_row._mapping[f"bucket_{i}"] or 0))
                for i, (low, high) in enumerate(buckets)
            ],
            min_price=price_row.min_price,
            max_price=price_row.max_price,
            ratings=[
                RatingBucket(min_rating=t, count=int(rating_row._mapping[f"rating_{i}"] or 0))
                for i, t in enumerate(thresholds)
            ],
            discounted=int(discounted or 0),
            in_stock=int(in_stock or 0),
            featured=int(featured or 0),
            tags=[FacetValue(value=row.tag, count=int(row.count)) for row in tag_rows],
            categories=[
                CategoryFacet(id=row.id, name=row.name, slug=row.slug, count=int(row.count))
                for row in category_rows
            ],
        )

        logger.info(
            "Facets computed",
            criteria=criteria.summary(),
            brand_count=len(facets.brands),
            tag_count=len(facets.tags),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return facets

    async def suggest(
        self,
        query: str | None,
        abandoned: AbandonSignal | None = None,
    ) -> list[Suggestion]:
        """Autocomplete suggestions for a partial query.

        Args:
            query: Text typed so far.
            abandoned: Optional abandonment signal.

        Returns:
            Up to the configured number of active products matching name,
            brand or tag; empty for queries shorter than the minimum.
        """
        text = (query or "").strip()
        if len(text) < self.settings.search_suggestion_min_length:
            return []

        statement = queries.suggestion_statement(text, self.settings.search_suggestion_limit)
        rows = await self._read(
            "suggestions",
            lambda: self.repository.rows(statement, operation="suggestions"),
            abandoned,
        )
        return [
            Suggestion(
                id=row.id,
                name=row.name,
                slug=row.slug,
                brand=row.brand,
                price=row.price,
                image_url=row.image_url or self.settings.default_product_image,
            )
            for row in rows
        ]


# ============================================================================
# Singletons
# ============================================================================


_repository: CatalogRepository | None = None
_category_cache: CategoryTreeCache | None = None


def get_catalog_repository() -> CatalogRepository:
    """Get catalog repository singleton."""
    global _repository
    if _repository is None:
        from app.infrastructure.database import async_session_factory

        _repository = CatalogRepository(
            async_session_factory,
            read_timeout=default_settings.search_read_timeout_seconds,
        )
    return _repository


def get_category_cache() -> CategoryTreeCache:
    """Get category tree cache singleton."""
    global _category_cache
    if _category_cache is None:
        _category_cache = CategoryTreeCache(
            get_catalog_repository(),
            ttl_seconds=default_settings.category_cache_ttl_seconds,
        )
    return _category_cache


def get_search_engine() -> SearchEngine:
    """Get a search engine for one request.

    Returns:
        SearchEngine sharing the repository and category cache singletons.
    """
    return SearchEngine(get_catalog_repository(), get_category_cache())
