"""Unit tests for license validation, number parsing and category matching.

Test Strategy:
1. Test license cleaning (separators, length bounds, idempotence)
2. Test leading-integer parsing of free-text answers
3. Test product name -> category matching and rank ordering
"""
import pytest

from tournoi.utils.categories import (
    CATEGORIES,
    match_category,
    sort_category_ids,
    sorted_categories,
)
from tournoi.utils.validators import clean_license_number, parse_leading_int, validate_license_number


class TestLicenseNumbers:
    """License cleaning and validation."""

    # Cleaning Tests
    # ─────────────────────────────────────────────────────────────

    def test_strips_hyphens_and_whitespace(self):
        """Should remove hyphens and any whitespace."""
        assert clean_license_number("12-3456") == "123456"
        assert clean_license_number(" 1 234 567 ") == "1234567"
        assert clean_license_number("12\t34-56") == "123456"

    @pytest.mark.parametrize("value", ["12345", "12345678", "12a456", "", None, "------"])
    def test_rejects_invalid(self, value):
        """Should return None unless 6 or 7 digits remain."""
        assert clean_license_number(value) is None
        assert validate_license_number(value) is False

    @pytest.mark.parametrize("value", ["12-3456", " 1 234 567", "7654321", "98 76 54"])
    def test_cleaning_is_idempotent(self, value):
        """Cleaning a cleaned license should not change it."""
        once = clean_license_number(value)
        assert once is not None
        assert clean_license_number(once) == once

    def test_rejects_non_ascii_digits(self):
        """Should only accept ASCII digits."""
        assert clean_license_number("١٢٣٤٥٦") is None


class TestParseLeadingInt:
    """parseInt-style parsing of custom field answers."""

    def test_parses_integer_prefix(self):
        assert parse_leading_int("812") == 812
        assert parse_leading_int(" 812.5") == 812
        assert parse_leading_int("1234 pts") == 1234
        assert parse_leading_int("-5") == -5

    def test_returns_none_when_no_prefix(self):
        assert parse_leading_int("environ 900") is None
        assert parse_leading_int("") is None
        assert parse_leading_int(None) is None

    def test_passes_integers_through(self):
        assert parse_leading_int(640) == 640


class TestCategories:
    """Product name matching."""

    # Matching Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.parametrize("name, expected", [
        ("Tableau 1", "500-799"),
        ("tableau2", "500-999"),
        ("Tableau 500-1199 samedi", "500-1199"),
        ("500 1399", "500-1399"),
        ("TABLEAU 5", "500-1799"),
        ("TC Féminin", "tc-feminin"),
        ("Tableau feminin", "tc-feminin"),
        ("Women only", "tc-feminin"),
    ])
    def test_matches_known_products(self, name, expected):
        assert match_category(name) == expected

    def test_info_item_has_no_category(self):
        """The information item is not a table."""
        assert match_category("Obligatoire - Informations complémentaires") is None
        assert match_category("") is None
        assert match_category(None) is None

    def test_first_match_in_rank_order_wins(self):
        """A name matching two patterns gets the better-ranked category."""
        assert match_category("Tableau 1 + TC féminin") == "500-799"

    # Ordering Tests
    # ─────────────────────────────────────────────────────────────

    def test_sorted_categories_follow_rank(self):
        ranks = [c.sort_order for c in sorted_categories()]
        assert ranks == sorted(ranks)
        assert len(sorted_categories()) == len(CATEGORIES) == 6

    def test_sort_category_ids_dedupes_and_orders(self):
        assert sort_category_ids(["tc-feminin", "500-999", "500-799", "500-999"]) == [
            "500-799", "500-999", "tc-feminin",
        ]

    def test_sort_category_ids_drops_unknown(self):
        assert sort_category_ids(["unknown", "500-1399"]) == ["500-1399"]
