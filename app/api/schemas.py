"""API schemas for the storefront search API.

Pydantic models for response validation and serialization. Every
successful response is wrapped in the storefront envelope
``{success, message, data, timestamp}``.
"""

from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    success: bool = Field(default=False, description="Always false for errors")
    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class Envelope(BaseModel, Generic[T]):
    """Successful response wrapper."""

    success: bool = Field(default=True, description="Always true for successes")
    message: str = Field(default="Success", description="Human-readable status")
    data: T = Field(..., description="Response payload")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the response was produced",
    )


# ============================================================================
# Product Schemas
# ============================================================================


class CategoryRefSchema(BaseModel):
    """Category reference embedded in a product."""

    id: str = Field(..., description="Category identifier")
    name: str = Field(..., description="Category name")
    slug: str = Field(..., description="Category slug")


class ProductSummarySchema(BaseModel):
    """Product as listed in search results."""

    id: str = Field(..., description="Product identifier")
    name: str = Field(..., description="Product name")
    slug: str = Field(..., description="URL slug")
    brand: str | None = Field(default=None, description="Brand name")
    image_url: str = Field(..., description="Product image, or the placeholder")
    category: CategoryRefSchema | None = Field(default=None, description="Owning category")
    tags: list[str] = Field(default_factory=list, description="Product tags")
    price: int = Field(..., description="Price in whole currency units")
    discount_percentage: int | None = Field(
        default=None, ge=0, le=100, description="Discount percentage"
    )
    final_price: int = Field(..., description="Price after discount")
    rating: float = Field(..., ge=0, le=5, description="Average rating")
    num_reviews: int = Field(..., description="Number of reviews")
    stock_quantity: int = Field(..., description="Available stock")
    in_stock: bool = Field(..., description="Whether any stock is available")
    is_featured: bool = Field(..., description="Whether the product is featured")
    created_at: datetime = Field(..., description="When the product was created")


class SearchResultSchema(BaseModel):
    """One page of search results."""

    items: list[ProductSummarySchema] = Field(..., description="Products on this page")
    total_count: int = Field(..., description="Matching products across all pages")
    page: int = Field(..., description="Current page number (1-based)")
    page_size: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Number of pages")
    has_next: bool = Field(..., description="Whether a next page exists")
    has_prev: bool = Field(..., description="Whether a previous page exists")


# ============================================================================
# Facet Schemas
# ============================================================================


class FacetValueSchema(BaseModel):
    """A facet value with its product count."""

    value: str
    count: int


class PriceBucketSchema(BaseModel):
    """Products priced in [min, max)."""

    min: int
    max: int | None = Field(default=None, description="Upper bound (None = unbounded)")
    count: int


class PriceRangeSchema(BaseModel):
    """Lowest and highest price among matching products."""

    min_price: int | None = None
    max_price: int | None = None


class RatingBucketSchema(BaseModel):
    """Products rated at least ``min_rating``."""

    min_rating: int
    count: int


class CategoryFacetSchema(BaseModel):
    """A category with its product count."""

    id: str
    name: str
    slug: str
    count: int


class FilterFacetsSchema(BaseModel):
    """Available filters for the current search.

    Each dimension is counted under every other active filter, but not
    its own.
    """

    brands: list[FacetValueSchema] = Field(default_factory=list)
    price_buckets: list[PriceBucketSchema] = Field(default_factory=list)
    price_range: PriceRangeSchema = Field(default_factory=PriceRangeSchema)
    ratings: list[RatingBucketSchema] = Field(default_factory=list)
    discounted: int = Field(default=0, description="Products with any discount")
    in_stock: int = Field(default=0, description="Products with stock")
    featured: int = Field(default=0, description="Featured products")
    tags: list[FacetValueSchema] = Field(default_factory=list, description="Top tags")
    categories: list[CategoryFacetSchema] = Field(default_factory=list)


# ============================================================================
# Suggestion Schemas
# ============================================================================


class SuggestionSchema(BaseModel):
    """Autocomplete suggestion."""

    id: str
    name: str
    slug: str
    brand: str | None = None
    price: int
    image_url: str = Field(..., description="Product image, or the placeholder")
