"""Search criteria.

``SearchCriteria`` is an immutable value describing one product search.
Each configuration method returns a new criteria value, so a request
handler can chain them in any order without sharing mutable state:

    criteria = (
        SearchCriteria()
        .search("lock")
        .price_filter("100", "10")
        .brand_filter("Acme, Globex")
        .sort("price_asc")
        .paginate(2, 24)
    )

Normalisation never raises. Values that cannot be parsed are dropped,
out-of-range values are clamped and reversed price ranges are swapped.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable

from app.infrastructure.config import settings

TRUTHY_STRINGS = {"true", "1", "yes", "on"}

# Prices are stored in a 32-bit INTEGER column
MAX_PRICE = 2**31 - 1

# LIMIT/OFFSET are bound as signed 64-bit integers
MAX_OFFSET = 2**63 - 1


class SortKey(str, Enum):
    """Supported result orderings."""

    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    RATING_DESC = "rating_desc"
    POPULARITY = "popularity"
    DISCOUNT_DESC = "discount_desc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"


# Keys used by older storefront builds
SORT_ALIASES: dict[str, SortKey] = {
    "price-asc": SortKey.PRICE_ASC,
    "price-desc": SortKey.PRICE_DESC,
    "popular": SortKey.POPULARITY,
    "rating": SortKey.RATING_DESC,
    "discount": SortKey.DISCOUNT_DESC,
    "name-asc": SortKey.NAME_ASC,
    "name-desc": SortKey.NAME_DESC,
}


# ============================================================================
# Input coercion
# ============================================================================


def parse_number(value: Any) -> float | None:
    """Parse a finite number from a query value.

    Args:
        value: Raw value (string, number or None).

    Returns:
        The number, or None if it cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_positive_int(value: Any) -> int | None:
    """Parse a positive integer, truncating fractions.

    Returns:
        The integer, or None if the value is missing, invalid or < 1.
    """
    number = parse_number(value)
    if number is None:
        return None
    result = int(number)
    return result if result >= 1 else None


def parse_flag(value: Any) -> bool:
    """Coerce common truthy forms ("true", "1", "yes", "on") to True."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_STRINGS


def parse_list(value: Any, lower: bool = False) -> tuple[str, ...]:
    """Normalise a single value, delimited string or list to a value tuple.

    Strings are split on commas, items trimmed, blanks dropped and
    duplicates removed while keeping first-seen order.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        raw: Iterable[Any] = [value]
    else:
        raw = value

    items: list[str] = []
    for entry in raw:
        if entry is None:
            continue
        for part in str(entry).split(","):
            part = part.strip()
            if not part:
                continue
            items.append(part.lower() if lower else part)

    return tuple(dict.fromkeys(items))


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


# ============================================================================
# Criteria
# ============================================================================


@dataclass(frozen=True)
class SearchCriteria:
    """Filter, sort and pagination intent for one product search.

    Attributes:
        keyword: Free-text condition over name, brand and tags.
        price_min: Lower price bound (inclusive).
        price_max: Upper price bound (inclusive).
        brands: Accepted brands; empty means unconstrained.
        min_rating: Minimum average rating.
        min_discount: Minimum discount percentage.
        in_stock_only: Only products with stock.
        featured_only: Only featured products.
        tags: Requested tags (a product needs at least one).
        category_id: Requested category.
        category_ids: Resolved category subtree, None until resolved.
        sort: Result ordering.
        page: 1-based page number.
        page_size: Items per page.
    """

    keyword: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    brands: tuple[str, ...] = ()
    min_rating: float | None = None
    min_discount: float | None = None
    in_stock_only: bool = False
    featured_only: bool = False
    tags: tuple[str, ...] = ()
    category_id: str | None = None
    category_ids: frozenset[str] | None = None
    sort_key: SortKey = SortKey.NEWEST
    page: int = 1
    page_size: int = settings.search_default_page_size

    @classmethod
    def from_query(
        cls,
        keyword: Any = None,
        category: Any = None,
        min_price: Any = None,
        max_price: Any = None,
        brands: Any = None,
        rating: Any = None,
        discount: Any = None,
        in_stock: Any = None,
        featured: Any = None,
        tags: Any = None,
        sort: Any = None,
        page: Any = None,
        limit: Any = None,
    ) -> "SearchCriteria":
        """Build criteria from raw query-string values.

        Returns:
            Normalised criteria.
        """
        return (
            cls()
            .search(keyword)
            .category_filter(category)
            .price_filter(min_price, max_price)
            .brand_filter(brands)
            .rating_filter(rating)
            .discount_filter(discount)
            .in_stock(in_stock)
            .featured_filter(featured)
            .tag_filter(tags)
            .sort(sort)
            .paginate(page, limit)
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def search(self, keyword: Any) -> "SearchCriteria":
        """Match keyword case-insensitively against name, brand and tags."""
        if keyword is None:
            return self
        text = str(keyword).strip()
        if not text:
            return self
        return replace(self, keyword=text)

    def price_filter(self, min_price: Any, max_price: Any) -> "SearchCriteria":
        """Restrict price to [min, max].

        Negative or unparseable bounds are ignored; a reversed range is
        swapped rather than rejected. An upper bound beyond the largest
        storable price is unconstrained and a lower bound beyond it is
        capped there.
        """
        low = parse_number(min_price)
        high = parse_number(max_price)
        if low is not None and low < 0:
            low = None
        if high is not None and high < 0:
            high = None
        if low is not None and high is not None and low > high:
            low, high = high, low
        if high is not None and high > MAX_PRICE:
            high = None
        if low is not None and low > MAX_PRICE:
            low = MAX_PRICE
        return replace(self, price_min=low, price_max=high)

    def brand_filter(self, brands: Any) -> "SearchCriteria":
        """Accept any of the given brands."""
        return replace(self, brands=parse_list(brands))

    def rating_filter(self, min_rating: Any) -> "SearchCriteria":
        """Require an average rating of at least ``min_rating`` (0-5)."""
        value = parse_number(min_rating)
        if value is None:
            return replace(self, min_rating=None)
        value = clamp(value, 0, 5)
        return replace(self, min_rating=value if value > 0 else None)

    def discount_filter(self, min_discount: Any) -> "SearchCriteria":
        """Require a discount of at least ``min_discount`` percent.

        Zero means unconstrained, not "discount >= 0". The boolean form
        ``true`` asks for any discount.
        """
        if min_discount is True or (
            isinstance(min_discount, str) and min_discount.strip().lower() == "true"
        ):
            return replace(self, min_discount=1)
        value = parse_number(min_discount)
        if value is None:
            return replace(self, min_discount=None)
        value = clamp(value, 0, 100)
        return replace(self, min_discount=value if value > 0 else None)

    def in_stock(self, flag: Any) -> "SearchCriteria":
        """Only return products with stock when ``flag`` is truthy."""
        return replace(self, in_stock_only=parse_flag(flag))

    def featured_filter(self, flag: Any) -> "SearchCriteria":
        """Only return featured products when ``flag`` is truthy."""
        return replace(self, featured_only=parse_flag(flag))

    def tag_filter(self, tags: Any) -> "SearchCriteria":
        """Accept products carrying at least one of the given tags."""
        return replace(self, tags=parse_list(tags, lower=True))

    def category_filter(self, category_id: Any) -> "SearchCriteria":
        """Restrict to a category and all of its descendants.

        The subtree is resolved by ``SearchEngine.resolve_categories``.
        """
        if category_id is None or not str(category_id).strip():
            return replace(self, category_id=None, category_ids=None)
        return replace(self, category_id=str(category_id).strip(), category_ids=None)

    def with_category_ids(self, category_ids: frozenset[str]) -> "SearchCriteria":
        """Return a copy carrying the resolved category subtree."""
        return replace(self, category_ids=category_ids)

    def sort(self, key: Any) -> "SearchCriteria":
        """Select result ordering; unknown keys fall back to newest."""
        return replace(self, sort_key=resolve_sort_key(key))

    def paginate(
        self,
        page: Any = None,
        limit: Any = None,
        max_page_size: int | None = None,
    ) -> "SearchCriteria":
        """Select a page.

        Page defaults to 1; limit defaults to the configured page size and
        is capped at the configured maximum. The page is capped so its
        offset still fits a 64-bit integer.
        """
        cap = max_page_size or settings.search_max_page_size
        page_size = min(parse_positive_int(limit) or settings.search_default_page_size, cap)
        page_number = parse_positive_int(page) or 1
        page_number = min(page_number, MAX_OFFSET // page_size + 1)
        return replace(self, page=page_number, page_size=page_size)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def offset(self) -> int:
        """Row offset of the selected page."""
        return (self.page - 1) * self.page_size

    @property
    def needs_category_resolution(self) -> bool:
        """Whether a category was requested but not yet expanded."""
        return self.category_id is not None and self.category_ids is None

    def summary(self) -> dict[str, Any]:
        """Compact description of the active filters for logging."""
        fields = {
            "keyword": self.keyword,
            "category_id": self.category_id,
            "price_min": self.price_min,
            "price_max": self.price_max,
            "brands": list(self.brands) or None,
            "min_rating": self.min_rating,
            "min_discount": self.min_discount,
            "in_stock_only": self.in_stock_only or None,
            "featured_only": self.featured_only or None,
            "tags": list(self.tags) or None,
        }
        active = {name: value for name, value in fields.items() if value is not None}
        active.update(sort=self.sort_key.value, page=self.page, page_size=self.page_size)
        return active


def resolve_sort_key(key: Any) -> SortKey:
    """Map a raw sort parameter to a SortKey.

    Args:
        key: Raw sort value.

    Returns:
        Matching key, or NEWEST when unrecognised.
    """
    if isinstance(key, SortKey):
        return key
    if key is None:
        return SortKey.NEWEST
    text = str(key).strip().lower()
    try:
        return SortKey(text)
    except ValueError:
        return SORT_ALIASES.get(text, SortKey.NEWEST)
