"""
Unit tests for text, stock and pagination helpers.

Run: pytest tests/unit/test_text_utils.py -v
"""

import pytest

from utils.text_utils import (
    collapse_whitespace,
    distinct_sorted,
    fold_accents,
    includes_text,
    is_invalid_location_name,
    join_warnings,
    natural_sort_key,
    normalize_sku_key,
    normalize_store_domain,
    parse_number,
    parse_positive_int,
    strip_leading_c,
    to_gid_numeric_id,
)
from utils.stock_utils import aggregate_location_stock, sum_known_quantities, within_range
from utils.pagination_utils import paginate, resolve_page_size


class TestIdentifierNormalization:
    """Tests for SKU / domain / GID normalization."""

    def test_sku_key_drops_whitespace_and_case(self):
        assert normalize_sku_key(" C 123 45 ") == "c12345"

    def test_sku_key_of_none_is_empty(self):
        assert normalize_sku_key(None) == ""

    def test_strip_leading_c_removes_one_c_only(self):
        assert strip_leading_c("cc123") == "c123"
        assert strip_leading_c("12345") == "12345"

    def test_store_domain_accepts_myshopify(self):
        assert normalize_store_domain(" Demo-Shop.MyShopify.com ") == "demo-shop.myshopify.com"

    def test_store_domain_rejects_custom_domain(self):
        assert normalize_store_domain("shop.example.com") is None
        assert normalize_store_domain("") is None

    def test_gid_numeric_id(self):
        assert to_gid_numeric_id("gid://shopify/ProductVariant/4455") == "4455"
        assert to_gid_numeric_id("no-digits") == ""


class TestNumbers:
    """Tests for parse_number / parse_positive_int."""

    @pytest.mark.parametrize("raw,expected", [
        ("12.5", 12.5),
        (" 3 ", 3.0),
        (7, 7.0),
        ("", None),
        ("abc", None),
        (None, None),
        (True, None),
        ("nan", None),
        ("inf", None),
    ])
    def test_parse_number(self, raw, expected):
        assert parse_number(raw) == expected

    def test_positive_int_falls_back_for_zero_and_negative(self):
        assert parse_positive_int("0", 1) == 1
        assert parse_positive_int(-4, 1) == 1
        assert parse_positive_int("7.9", 1) == 7


class TestTextHelpers:
    """Tests for sorting, matching and joining helpers."""

    def test_natural_sort_orders_digit_runs_numerically(self):
        values = ["SKU10", "sku2", "SKU1"]
        assert sorted(values, key=natural_sort_key) == ["SKU1", "sku2", "SKU10"]

    def test_natural_sort_ignores_accents(self):
        assert natural_sort_key("Écru") == natural_sort_key("ecru")

    def test_fold_accents(self):
        assert fold_accents("Décoration") == "decoration"

    def test_includes_text_empty_needle_matches(self):
        assert includes_text("anything", "")
        assert includes_text("Tony Pants", "pants")
        assert not includes_text(None, "x")

    def test_invalid_location_names(self):
        for name in ["", "0", "Shop #0", "shop 0", "ShopId=12"]:
            assert is_invalid_location_name(name), name
        assert not is_invalid_location_name("Store A")

    def test_collapse_whitespace(self):
        assert collapse_whitespace("  TONY   PANTS \t L ") == "TONY PANTS L"

    def test_join_warnings_skips_blanks_and_duplicates(self):
        assert join_warnings("a.", "", None, "b.", "a.") == "a. b."

    def test_distinct_sorted(self):
        assert distinct_sorted(["Shoes", "", " Shoes ", "Apparel", None, "Bags 10", "Bags 2"]) == [
            "Apparel", "Bags 2", "Bags 10", "Shoes"
        ]


class TestStockAggregation:
    """Tests for multi-location stock."""

    def test_unknown_quantities_are_skipped_not_zeroed(self):
        # Arrange
        known = {"a", "b"}

        # Act
        first = aggregate_location_stock({"A": 3, "B": None}, known)
        second = aggregate_location_stock({"A": 2}, known)

        # Assert
        assert first.total == 3
        assert sum_known_quantities([first.total, second.total]) == 5

    def test_empty_locations_total_is_none(self):
        assert aggregate_location_stock({}, {"a"}).total is None
        assert sum_known_quantities([None, None]) is None

    def test_unknown_location_filtered_by_allow_list(self):
        result = aggregate_location_stock({"Store A": 2, "Warehouse Z": 9}, {"store a"})
        assert [row.location for row in result.rows] == ["Store A"]
        assert result.total == 2

    def test_empty_allow_list_accepts_all(self):
        result = aggregate_location_stock({"Store A": 2, "Warehouse Z": 9}, set())
        assert result.total == 11

    def test_placeholder_locations_dropped(self):
        result = aggregate_location_stock({"Shop #0": 5, "ShopId=3": 4, "Store B": 1})
        assert [row.location for row in result.rows] == ["Store B"]

    def test_total_rounded_to_two_decimals(self):
        assert sum_known_quantities([0.1, 0.2]) == 0.3

    def test_within_range_excludes_unknown(self):
        assert within_range(5, 1, 10)
        assert not within_range(None, 1, None)
        assert within_range(None, None, None)
        assert not within_range(11, None, 10)


class TestPagination:
    """Tests for paginate / resolve_page_size."""

    def test_page_clamped_to_last_page(self):
        # Arrange
        items = list(range(47))

        # Act
        page = paginate(items, 10, 20)

        # Assert
        assert page.total_pages == 3
        assert page.page == 3
        assert page.rows == list(range(40, 47))

    def test_empty_list_has_one_page(self):
        page = paginate([], 1, 20)
        assert page.total_pages == 1
        assert page.page == 1
        assert page.rows == []

    def test_invalid_page_becomes_first(self):
        assert paginate(list(range(5)), "abc", 2).page == 1
        assert paginate(list(range(5)), 0, 2).page == 1

    def test_page_size_allow_list(self):
        allowed = (50, 100, 200)
        assert resolve_page_size(200, allowed, 100) == 200
        assert resolve_page_size(75, allowed, 100) == 100
        assert resolve_page_size(None, allowed, 100) == 100
