"""Statement construction for product search.

Pure functions from ``SearchCriteria`` to SQLAlchemy statements; nothing
here touches the database.

Every filter becomes one predicate keyed by its dimension. A result query
ANDs all of them. A facet query for dimension D ANDs all of them except
D's own, so a facet keeps offering the values a shopper could still switch
to instead of collapsing onto the value already selected. The keyword is
context rather than a facet and applies to every facet query.
"""

import math
from collections.abc import Sequence
from enum import Enum
from typing import Any

from sqlalchemy import (
    ColumnElement,
    Select,
    and_,
    case,
    distinct,
    false,
    func,
    or_,
    select,
    true,
)
from sqlalchemy.orm import selectinload

from app.catalog.models import Category, Product, ProductTag
from app.search.criteria import SearchCriteria, SortKey


class Dimension(str, Enum):
    """Independent filter dimensions."""

    KEYWORD = "keyword"
    CATEGORY = "category"
    PRICE = "price"
    BRAND = "brand"
    RATING = "rating"
    DISCOUNT = "discount"
    IN_STOCK = "in_stock"
    FEATURED = "featured"
    TAGS = "tags"


Predicates = dict[Dimension, ColumnElement[bool]]


# ============================================================================
# Predicates
# ============================================================================


def _contains(column: Any, needle: str) -> ColumnElement[bool]:
    """Case-insensitive literal substring match."""
    return func.lower(column).contains(needle.lower(), autoescape=True)


def keyword_condition(keyword: str) -> ColumnElement[bool]:
    """Match keyword in name, brand or any tag."""
    return or_(
        _contains(Product.name, keyword),
        _contains(Product.brand, keyword),
        Product.tag_rows.any(_contains(ProductTag.tag, keyword)),
    )


def build_predicates(criteria: SearchCriteria) -> Predicates:
    """Translate criteria into one predicate per active dimension.

    Args:
        criteria: Search criteria. A requested category must already be
            resolved to its subtree.

    Returns:
        Mapping of dimension to condition.
    """
    predicates: Predicates = {}

    if criteria.keyword:
        predicates[Dimension.KEYWORD] = keyword_condition(criteria.keyword)

    if criteria.category_id is not None:
        ids = criteria.category_ids or frozenset()
        # Unknown category matches nothing
        predicates[Dimension.CATEGORY] = (
            Product.category_id.in_(sorted(ids)) if ids else false()
        )

    # Prices and discounts are whole numbers, so bounds are rounded inward
    price_bounds = []
    if criteria.price_min is not None:
        price_bounds.append(Product.price >= math.ceil(criteria.price_min))
    if criteria.price_max is not None:
        price_bounds.append(Product.price <= math.floor(criteria.price_max))
    if price_bounds:
        predicates[Dimension.PRICE] = and_(*price_bounds)

    if criteria.brands:
        predicates[Dimension.BRAND] = Product.brand.in_(criteria.brands)

    if criteria.min_rating is not None:
        predicates[Dimension.RATING] = Product.rating >= criteria.min_rating

    if criteria.min_discount is not None:
        predicates[Dimension.DISCOUNT] = Product.discount_percentage >= math.ceil(
            criteria.min_discount
        )

    if criteria.in_stock_only:
        predicates[Dimension.IN_STOCK] = Product.stock_quantity > 0

    if criteria.featured_only:
        predicates[Dimension.FEATURED] = Product.is_featured.is_(True)

    if criteria.tags:
        predicates[Dimension.TAGS] = Product.tag_rows.any(ProductTag.tag.in_(criteria.tags))

    return predicates


def where_clause(
    predicates: Predicates,
    exclude: Dimension | None = None,
) -> ColumnElement[bool]:
    """AND the active-product guard with every predicate except ``exclude``."""
    conditions = [
        condition for dimension, condition in predicates.items() if dimension != exclude
    ]
    return and_(Product.is_active.is_(True), *conditions)


def _others(predicates: Predicates, exclude: Dimension) -> ColumnElement[bool]:
    """AND of all predicates except ``exclude`` (without the active guard)."""
    conditions = [
        condition for dimension, condition in predicates.items() if dimension != exclude
    ]
    return and_(true(), *conditions)


# ============================================================================
# Ordering
# ============================================================================


def order_by(sort_key: SortKey) -> list[Any]:
    """Order specification for a sort key, tie-broken by id ascending."""
    orders: dict[SortKey, list[Any]] = {
        SortKey.NEWEST: [Product.created_at.desc()],
        SortKey.OLDEST: [Product.created_at.asc()],
        SortKey.PRICE_ASC: [Product.price.asc()],
        SortKey.PRICE_DESC: [Product.price.desc()],
        SortKey.RATING_DESC: [Product.rating.desc(), Product.num_reviews.desc()],
        SortKey.POPULARITY: [Product.num_reviews.desc()],
        SortKey.DISCOUNT_DESC: [func.coalesce(Product.discount_percentage, 0).desc()],
        SortKey.NAME_ASC: [Product.name.asc()],
        SortKey.NAME_DESC: [Product.name.desc()],
    }
    return [*orders.get(sort_key, orders[SortKey.NEWEST]), Product.id.asc()]


# ============================================================================
# Result statements
# ============================================================================


def count_statement(predicates: Predicates) -> Select[Any]:
    """Count active products matching every predicate."""
    return select(func.count(Product.id)).where(where_clause(predicates))


def page_statement(predicates: Predicates, criteria: SearchCriteria) -> Select[Any]:
    """Fetch one ordered page of matching products with tags and category."""
    return (
        select(Product)
        .where(where_clause(predicates))
        .order_by(*order_by(criteria.sort_key))
        .limit(criteria.page_size)
        .offset(criteria.offset)
        .options(selectinload(Product.tag_rows), selectinload(Product.category))
    )


# ============================================================================
# Facet statements
# ============================================================================


def brand_facet_statement(predicates: Predicates) -> Select[Any]:
    """Brands of keyword-matching products with counts under the other filters.

    Brands whose count drops to zero are still listed, so a shopper sees
    which brands the other filters rule out.
    """
    counted = func.coalesce(
        func.sum(case((_others(predicates, Dimension.BRAND), 1), else_=0)), 0
    )
    context = [Product.is_active.is_(True), Product.brand.is_not(None), Product.brand != ""]
    if Dimension.KEYWORD in predicates:
        context.append(predicates[Dimension.KEYWORD])
    return (
        select(Product.brand, counted.label("count"))
        .where(*context)
        .group_by(Product.brand)
        .order_by(Product.brand)
    )


def price_buckets(edges: Sequence[int]) -> list[tuple[int, int | None]]:
    """Turn ascending lower edges into (min, max) buckets; last is open."""
    ordered = sorted(set(edges))
    return [
        (low, ordered[i + 1] if i + 1 < len(ordered) else None)
        for i, low in enumerate(ordered)
    ]


def price_facet_statement(
    predicates: Predicates,
    buckets: Sequence[tuple[int, int | None]],
) -> Select[Any]:
    """Price range plus one count per bucket ([min, max) intervals)."""
    columns: list[Any] = [
        func.min(Product.price).label("min_price"),
        func.max(Product.price).label("max_price"),
    ]
    for i, (low, high) in enumerate(buckets):
        in_bucket = Product.price >= low if high is None else and_(
            Product.price >= low, Product.price < high
        )
        columns.append(
            func.coalesce(func.sum(case((in_bucket, 1), else_=0)), 0).label(f"bucket_{i}")
        )
    return select(*columns).where(where_clause(predicates, exclude=Dimension.PRICE))


def rating_facet_statement(
    predicates: Predicates,
    thresholds: Sequence[int],
) -> Select[Any]:
    """One count per "rating at least t" threshold."""
    columns = [
        func.coalesce(func.sum(case((Product.rating >= t, 1), else_=0)), 0).label(
            f"rating_{i}"
        )
        for i, t in enumerate(thresholds)
    ]
    return select(*columns).where(where_clause(predicates, exclude=Dimension.RATING))


def flag_condition(dimension: Dimension) -> ColumnElement[bool]:
    """Condition a product must meet to count toward a flag facet."""
    if dimension == Dimension.DISCOUNT:
        return Product.discount_percentage > 0
    if dimension == Dimension.IN_STOCK:
        return Product.stock_quantity > 0
    if dimension == Dimension.FEATURED:
        return Product.is_featured.is_(True)
    raise ValueError(f"Not a flag dimension: {dimension}")


def flag_count_statement(predicates: Predicates, dimension: Dimension) -> Select[Any]:
    """Count products having a flag (discounted, in stock, featured).

    Args:
        predicates: Active predicates.
        dimension: One of DISCOUNT, IN_STOCK or FEATURED.
    """
    condition = flag_condition(dimension)
    return select(func.count(Product.id)).where(
        where_clause(predicates, exclude=dimension), condition
    )


def tag_facet_statement(predicates: Predicates, limit: int) -> Select[Any]:
    """Top tags by number of matching products."""
    counted = func.count(distinct(Product.id))
    return (
        select(ProductTag.tag, counted.label("count"))
        .join(Product, Product.id == ProductTag.product_id)
        .where(where_clause(predicates, exclude=Dimension.TAGS))
        .group_by(ProductTag.tag)
        .order_by(counted.desc(), ProductTag.tag.asc())
        .limit(limit)
    )


def category_facet_statement(predicates: Predicates) -> Select[Any]:
    """Categories of matching products with counts."""
    counted = func.count(Product.id)
    return (
        select(Category.id, Category.name, Category.slug, counted.label("count"))
        .join(Product, Product.category_id == Category.id)
        .where(where_clause(predicates, exclude=Dimension.CATEGORY))
        .group_by(Category.id, Category.name, Category.slug)
        .order_by(counted.desc(), Category.name.asc())
    )


# ============================================================================
# Suggestions
# ============================================================================


def suggestion_statement(query: str, limit: int) -> Select[Any]:
    """Lightweight active products whose name, brand or tag contains query."""
    return (
        select(
            Product.id,
            Product.name,
            Product.slug,
            Product.brand,
            Product.price,
            Product.image_url,
        )
        .where(Product.is_active.is_(True), keyword_condition(query))
        .order_by(Product.name.asc(), Product.id.asc())
        .limit(limit)
    )
