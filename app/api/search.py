"""Search API endpoints.

Provides product search, available-filter facets and autocomplete
suggestions for the storefront. Filter parameters are accepted as raw
strings and normalised by ``SearchCriteria``; a bad value never fails
the request.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.schemas import (
    CategoryFacetSchema,
    CategoryRefSchema,
    Envelope,
    ErrorResponse,
    FacetValueSchema,
    FilterFacetsSchema,
    PriceBucketSchema,
    PriceRangeSchema,
    ProductSummarySchema,
    RatingBucketSchema,
    SearchResultSchema,
    SuggestionSchema,
)
from app.catalog.models import Product
from app.domain.exceptions import CatalogUnavailableError, SearchAbandonedError
from app.infrastructure.config import settings
from app.search.criteria import SearchCriteria
from app.search.engine import (
    FilterFacets,
    RequestDeadline,
    SearchEngine,
    SearchResult,
    get_search_engine,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/search", tags=["Search"])

ERROR_RESPONSES = {
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


# ============================================================================
# Dependencies
# ============================================================================


def get_engine() -> SearchEngine:
    """Get search engine for this request."""
    return get_search_engine()


def get_deadline() -> RequestDeadline:
    """Start the request's search time budget."""
    return RequestDeadline(settings.search_request_timeout_seconds)


def search_criteria(
    keyword: Annotated[str | None, Query(description="Free-text keyword")] = None,
    category: Annotated[str | None, Query(description="Category ID (includes subcategories)")] = None,
    min_price: Annotated[str | None, Query(alias="minPrice")] = None,
    max_price: Annotated[str | None, Query(alias="maxPrice")] = None,
    brands: Annotated[list[str] | None, Query(description="Brands, repeated or comma-separated")] = None,
    rating: Annotated[str | None, Query(description="Minimum rating (0-5)")] = None,
    discount: Annotated[str | None, Query(description="Minimum discount percentage")] = None,
    in_stock: Annotated[str | None, Query(alias="inStock")] = None,
    featured: Annotated[str | None, Query()] = None,
    tags: Annotated[list[str] | None, Query(description="Tags, repeated or comma-separated")] = None,
    sort: Annotated[str | None, Query(description="Sort key")] = None,
    page: Annotated[str | None, Query(description="Page number (1-based)")] = None,
    limit: Annotated[str | None, Query(description="Items per page")] = None,
) -> SearchCriteria:
    """Build normalised search criteria from query parameters."""
    return SearchCriteria.from_query(
        keyword=keyword,
        category=category,
        min_price=min_price,
        max_price=max_price,
        brands=brands,
        rating=rating,
        discount=discount,
        in_stock=in_stock,
        featured=featured,
        tags=tags,
        sort=sort,
        page=page,
        limit=limit,
    )


# ============================================================================
# Converters
# ============================================================================


def product_to_summary(product: Product) -> ProductSummarySchema:
    """Convert Product model to response schema."""
    category = product.category
    return ProductSummarySchema(
        id=product.id,
        name=product.name,
        slug=product.slug,
        brand=product.brand,
        image_url=product.primary_image,
        category=(
            CategoryRefSchema(id=category.id, name=category.name, slug=category.slug)
            if category
            else None
        ),
        tags=product.tags,
        price=product.price,
        discount_percentage=product.discount_percentage,
        final_price=product.final_price,
        rating=float(product.rating),
        num_reviews=product.num_reviews,
        stock_quantity=product.stock_quantity,
        in_stock=product.in_stock,
        is_featured=product.is_featured,
        created_at=product.created_at,
    )


def result_to_response(result: SearchResult) -> SearchResultSchema:
    """Convert SearchResult to response schema."""
    return SearchResultSchema(
        items=[product_to_summary(p) for p in result.items],
        total_count=result.total_count,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
        has_next=result.has_next,
        has_prev=result.has_prev,
    )


def facets_to_response(facets: FilterFacets) -> FilterFacetsSchema:
    """Convert FilterFacets to response schema."""
    return FilterFacetsSchema(
        brands=[FacetValueSchema(value=f.value, count=f.count) for f in facets.brands],
        price_buckets=[
            PriceBucketSchema(min=b.min, max=b.max, count=b.count) for b in facets.price_buckets
        ],
        price_range=PriceRangeSchema(min_price=facets.min_price, max_price=facets.max_price),
        ratings=[RatingBucketSchema(min_rating=r.min_rating, count=r.count) for r in facets.ratings],
        discounted=facets.discounted,
        in_stock=facets.in_stock,
        featured=facets.featured,
        tags=[FacetValueSchema(value=f.value, count=f.count) for f in facets.tags],
        categories=[
            CategoryFacetSchema(id=c.id, name=c.name, slug=c.slug, count=c.count)
            for c in facets.categories
        ],
    )


def search_error_to_http(error: CatalogUnavailableError | SearchAbandonedError) -> HTTPException:
    """Translate a search failure into an HTTP error.

    Returns:
        503 when the catalog is down, 504 when the search was abandoned.
    """
    if isinstance(error, SearchAbandonedError):
        return HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail={"error_code": "SEARCH_TIMEOUT", "message": error.message},
        )
    logger.warning("Search failed, catalog unavailable", **error.details)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"error_code": "CATALOG_UNAVAILABLE", "message": "Catalog is temporarily unavailable"},
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=Envelope[SearchResultSchema],
    responses=ERROR_RESPONSES,
    summary="Search products",
    description="Filter, sort and paginate active products.",
)
async def search_products(
    criteria: Annotated[SearchCriteria, Depends(search_criteria)],
    engine: Annotated[SearchEngine, Depends(get_engine)],
    deadline: Annotated[RequestDeadline, Depends(get_deadline)],
) -> Envelope[SearchResultSchema]:
    """Search products.

    Args:
        criteria: Normalised criteria built from the query string.
        engine: Search engine.
        deadline: Request time budget.

    Returns:
        One page of matching products.

    Raises:
        HTTPException: If the catalog is unavailable or the search timed out.
    """
    try:
        result = await engine.execute(criteria, abandoned=deadline)
    except (CatalogUnavailableError, SearchAbandonedError) as e:
        raise search_error_to_http(e) from e

    return Envelope[SearchResultSchema](data=result_to_response(result))


@router.get(
    "/filters",
    response_model=Envelope[FilterFacetsSchema],
    responses=ERROR_RESPONSES,
    summary="Get available filters",
    description="Facet values and counts for the current keyword, category and filters.",
)
async def get_filters(
    criteria: Annotated[SearchCriteria, Depends(search_criteria)],
    engine: Annotated[SearchEngine, Depends(get_engine)],
    deadline: Annotated[RequestDeadline, Depends(get_deadline)],
) -> Envelope[FilterFacetsSchema]:
    """Get available filters.

    Args:
        criteria: Normalised criteria built from the query string.
        engine: Search engine.
        deadline: Request time budget.

    Returns:
        Facets for brands, prices, ratings, flags, tags and categories.

    Raises:
        HTTPException: If the catalog is unavailable or the request timed out.
    """
    try:
        facets = await engine.get_available_filters(criteria, abandoned=deadline)
    except (CatalogUnavailableError, SearchAbandonedError) as e:
        raise search_error_to_http(e) from e

    return Envelope[FilterFacetsSchema](data=facets_to_response(facets))


@router.get(
    "/suggestions",
    response_model=Envelope[list[SuggestionSchema]],
    responses=ERROR_RESPONSES,
    summary="Search suggestions",
    description="Autocomplete matches on name, brand or tag (at least 2 characters).",
)
async def get_suggestions(
    engine: Annotated[SearchEngine, Depends(get_engine)],
    deadline: Annotated[RequestDeadline, Depends(get_deadline)],
    q: Annotated[str | None, Query(description="Text typed so far")] = None,
) -> Envelope[list[SuggestionSchema]]:
    """Get autocomplete suggestions.

    Args:
        engine: Search engine.
        deadline: Request time budget.
        q: Partial query.

    Returns:
        Up to 10 lightweight product matches.
    """
    try:
        suggestions = await engine.suggest(q, abandoned=deadline)
    except (CatalogUnavailableError, SearchAbandonedError) as e:
        raise search_error_to_http(e) from e

    return Envelope[list[SuggestionSchema]](
        data=[
            SuggestionSchema(
                id=s.id,
                name=s.name,
                slug=s.slug,
                brand=s.brand,
                price=s.price,
                image_url=s.image_url,
            )
            for s in suggestions
        ]
    )
