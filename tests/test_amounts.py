"""Tests for tolerant amount parsing."""

from decimal import Decimal
from unittest import TestCase

from balance_log_analyzer.amounts import is_likely_amount_cell, is_likely_number, parse_amount


class TestParseAmount(TestCase):
    """Test accepted amount notations and rejected cells."""

    def test_parenthesized_value_is_negative(self) -> None:
        """Test accounting-style negatives."""
        self.assertEqual(parse_amount("(123.45)"), Decimal("-123.45"))

    def test_european_grouped_decimal_comma(self) -> None:
        """Test dot thousands with a decimal comma."""
        self.assertEqual(parse_amount("1.234,56"), Decimal("1234.56"))

    def test_plain_decimal_comma(self) -> None:
        """Test a decimal comma without grouping."""
        self.assertEqual(parse_amount("1234,56"), Decimal("1234.56"))

    def test_ambiguous_three_digit_group_reads_as_thousands(self) -> None:
        """Test that 1,234 is one thousand two hundred thirty-four."""
        self.assertEqual(parse_amount("1,234"), Decimal("1234"))
        self.assertEqual(parse_amount("1,234,567.5"), Decimal("1234567.5"))

    def test_leading_zero_group_is_decimal_comma(self) -> None:
        """Test that a zero integer part can never be a thousands group."""
        self.assertEqual(parse_amount("0,123"), Decimal("0.123"))
        self.assertEqual(parse_amount("-0,005"), Decimal("-0.005"))
        self.assertEqual(parse_amount("+0,250 USDT"), Decimal("0.250"))

    def test_trailing_unit_is_dropped(self) -> None:
        """Test unit-suffixed cells."""
        self.assertEqual(parse_amount("0.12 BTC"), Decimal("0.12"))

    def test_unicode_minus(self) -> None:
        """Test the typographic minus sign."""
        self.assertEqual(parse_amount("\u22129"), Decimal("-9"))

    def test_spaces_and_apostrophes_are_removed(self) -> None:
        """Test grouping by spaces, no-break spaces and apostrophes."""
        self.assertEqual(parse_amount("1 234.5"), Decimal("1234.5"))
        self.assertEqual(parse_amount("1\u00a0234.5"), Decimal("1234.5"))
        self.assertEqual(parse_amount("1'234.5"), Decimal("1234.5"))

    def test_full_precision_is_kept(self) -> None:
        """Test that no digits are rounded away."""
        self.assertEqual(parse_amount("300.0074505"), Decimal("300.0074505"))

    def test_unusable_cells_return_none(self) -> None:
        """Test that parsing never raises."""
        for raw in ["", "   ", None, "abc", "NaN", "Infinity", "-inf", "12abc34"]:
            with self.subTest(raw=raw):
                self.assertIsNone(parse_amount(raw))


class TestAmountHeuristics(TestCase):
    """Test the cell classifiers used by schema scoring."""

    def test_is_likely_number(self) -> None:
        """Test number-shaped text detection."""
        self.assertTrue(is_likely_number("-1,234.56"))
        self.assertTrue(is_likely_number("(12)"))
        self.assertFalse(is_likely_number("USDT"))
        self.assertFalse(is_likely_number(",."))

    def test_amount_cell_accepts_units_and_rejects_identifiers(self) -> None:
        """Test that long digit runs are treated as ids."""
        self.assertTrue(is_likely_amount_cell("0.5 BTC"))
        self.assertTrue(is_likely_amount_cell("-10"))
        self.assertFalse(is_likely_amount_cell("123456789012"))
        self.assertFalse(is_likely_amount_cell("2025-03-01 8:15:00"))
        self.assertFalse(is_likely_amount_cell(""))
