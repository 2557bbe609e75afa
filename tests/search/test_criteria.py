"""Tests for search criteria normalisation."""

import dataclasses

import pytest

from app.search.criteria import (
    MAX_OFFSET,
    MAX_PRICE,
    SearchCriteria,
    SortKey,
    parse_flag,
    parse_list,
    parse_number,
    resolve_sort_key,
)


class TestParsing:
    """Tests for raw value coercion."""

    @pytest.mark.parametrize(
        "value,expected",
        [("12", 12.0), (" 4.5 ", 4.5), (7, 7.0), ("abc", None), ("", None), (None, None), ("nan", None), ("inf", None)],
    )
    def test_parse_number(self, value, expected) -> None:
        """Only finite numbers survive parsing."""
        assert parse_number(value) == expected

    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "yes", "on", True])
    def test_truthy_flags(self, value) -> None:
        """Common truthy forms are accepted."""
        assert parse_flag(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "", None, "maybe", False])
    def test_falsy_flags(self, value) -> None:
        """Everything else is false."""
        assert parse_flag(value) is False

    def test_parse_list_splits_trims_and_dedupes(self) -> None:
        """Comma lists are split, trimmed and deduplicated in order."""
        assert parse_list(" Acme, Globex ,,Acme") == ("Acme", "Globex")

    def test_parse_list_accepts_repeated_values(self) -> None:
        """Repeated query params and embedded commas are combined."""
        assert parse_list(["Acme", "Globex,Initech"]) == ("Acme", "Globex", "Initech")

    def test_parse_list_lowercases(self) -> None:
        """Tags are compared lower-cased."""
        assert parse_list("Smart, WIFI", lower=True) == ("smart", "wifi")


class TestBuilder:
    """Tests for the immutable builder."""

    def test_methods_return_new_values(self) -> None:
        """Configuring criteria never mutates the original."""
        base = SearchCriteria()
        filtered = base.brand_filter("Acme")
        assert base.brands == ()
        assert filtered.brands == ("Acme",)

    def test_criteria_is_frozen(self) -> None:
        """Fields cannot be assigned after construction."""
        criteria = SearchCriteria()
        with pytest.raises(dataclasses.FrozenInstanceError):
            criteria.keyword = "lock"  # type: ignore[misc]

    def test_order_of_configuration_does_not_matter(self) -> None:
        """Chaining in any order yields equal criteria."""
        first = SearchCriteria().category_filter("locks").search("smart").paginate(2, 5)
        second = SearchCriteria().paginate(2, 5).search("smart").category_filter("locks")
        assert first == second

    def test_blank_keyword_is_ignored(self) -> None:
        """Whitespace-only keywords are no filter."""
        assert SearchCriteria().search("   ").keyword is None

    def test_keyword_is_trimmed(self) -> None:
        """Keyword is stored trimmed."""
        assert SearchCriteria().search("  lock ").keyword == "lock"


class TestPriceFilter:
    """Tests for price normalisation."""

    def test_reversed_range_is_swapped(self) -> None:
        """min > max is swapped rather than rejected."""
        criteria = SearchCriteria().price_filter("100", "10")
        assert (criteria.price_min, criteria.price_max) == (10, 100)

    def test_negative_bounds_dropped(self) -> None:
        """Negative bounds are ignored."""
        criteria = SearchCriteria().price_filter("-5", "50")
        assert criteria.price_min is None
        assert criteria.price_max == 50

    def test_unparseable_bounds_dropped(self) -> None:
        """Garbage never fails the request."""
        criteria = SearchCriteria().price_filter("cheap", None)
        assert criteria.price_min is None
        assert criteria.price_max is None

    def test_huge_upper_bound_is_unconstrained(self) -> None:
        """An upper bound no price can reach is dropped."""
        criteria = SearchCriteria().price_filter("10", "1e30")
        assert (criteria.price_min, criteria.price_max) == (10, None)

    def test_huge_lower_bound_is_capped(self) -> None:
        """A lower bound beyond the largest price is capped there."""
        criteria = SearchCriteria().price_filter("99999999999999999999", None)
        assert criteria.price_min == MAX_PRICE

    def test_huge_reversed_range(self) -> None:
        """Swapping happens before capping."""
        criteria = SearchCriteria().price_filter("1e30", "5")
        assert (criteria.price_min, criteria.price_max) == (5, None)


class TestRatingAndDiscount:
    """Tests for rating and discount normalisation."""

    def test_rating_clamped_to_five(self) -> None:
        """Ratings above 5 are clamped."""
        assert SearchCriteria().rating_filter("7").min_rating == 5

    def test_zero_rating_is_unconstrained(self) -> None:
        """A zero minimum rating filters nothing."""
        assert SearchCriteria().rating_filter("0").min_rating is None

    def test_discount_zero_is_unconstrained(self) -> None:
        """discount=0 means no discount filter, not 'discount >= 0'."""
        assert SearchCriteria().discount_filter("0").min_discount is None

    def test_discount_true_means_any_discount(self) -> None:
        """The boolean form asks for any discount at all."""
        assert SearchCriteria().discount_filter("true").min_discount == 1

    def test_discount_clamped_to_hundred(self) -> None:
        """Discounts above 100 are clamped."""
        assert SearchCriteria().discount_filter("150").min_discount == 100


class TestSortAndPagination:
    """Tests for sort keys and paging."""

    def test_unknown_sort_falls_back_to_newest(self) -> None:
        """Unknown sort keys are not an error."""
        assert resolve_sort_key("cheapest-first") == SortKey.NEWEST

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("price_asc", SortKey.PRICE_ASC),
            ("price-desc", SortKey.PRICE_DESC),
            ("popular", SortKey.POPULARITY),
            ("rating", SortKey.RATING_DESC),
            ("Name-Asc", SortKey.NAME_ASC),
        ],
    )
    def test_sort_keys_and_aliases(self, raw, expected) -> None:
        """Canonical keys and legacy aliases resolve."""
        assert SearchCriteria().sort(raw).sort_key == expected

    def test_pagination_defaults(self) -> None:
        """Missing or invalid paging falls back to page 1 of 12."""
        criteria = SearchCriteria().paginate("zero", "-3")
        assert (criteria.page, criteria.page_size) == (1, 12)

    def test_page_size_capped(self) -> None:
        """Page size never exceeds the configured maximum."""
        assert SearchCriteria().paginate(1, 5000).page_size == 100

    def test_custom_cap(self) -> None:
        """An explicit cap overrides the configured maximum."""
        assert SearchCriteria().paginate(1, 50, max_page_size=20).page_size == 20

    def test_offset(self) -> None:
        """Offset follows page and size."""
        assert SearchCriteria().paginate(3, 10).offset == 20

    @pytest.mark.parametrize("page", ["1e300", "99999999999999999999", 10**40])
    def test_huge_page_keeps_offset_in_range(self, page) -> None:
        """Absurd page numbers are capped so the offset stays a 64-bit value."""
        criteria = SearchCriteria().paginate(page, 12)
        assert criteria.page > 1
        assert criteria.offset <= MAX_OFFSET
        assert criteria.offset + criteria.page_size > MAX_OFFSET


class TestFromQuery:
    """Tests for building criteria from query strings."""

    def test_from_query_normalises_everything(self) -> None:
        """All raw parameters are parsed in one call."""
        criteria = SearchCriteria.from_query(
            keyword=" smart ",
            category="locks",
            min_price="900",
            max_price="100",
            brands=["Acme,Globex"],
            rating="4",
            discount="0",
            in_stock="yes",
            featured="no",
            tags="WiFi",
            sort="price-asc",
            page="2",
            limit="24",
        )
        assert criteria.keyword == "smart"
        assert criteria.category_id == "locks"
        assert criteria.needs_category_resolution
        assert (criteria.price_min, criteria.price_max) == (100, 900)
        assert criteria.brands == ("Acme", "Globex")
        assert criteria.min_rating == 4
        assert criteria.min_discount is None
        assert criteria.in_stock_only is True
        assert criteria.featured_only is False
        assert criteria.tags == ("wifi",)
        assert criteria.sort_key == SortKey.PRICE_ASC
        assert (criteria.page, criteria.page_size) == (2, 24)

    def test_summary_lists_only_active_filters(self) -> None:
        """Log summary omits unset filters."""
        summary = SearchCriteria.from_query(brands="Acme").summary()
        assert summary["brands"] == ["Acme"]
        assert "keyword" not in summary
        assert summary["sort"] == "newest"
