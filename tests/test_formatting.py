"""Tests for amount and label display helpers."""

from decimal import Decimal
from unittest import TestCase

from balance_log_analyzer import taxonomy
from balance_log_analyzer.formatting import (
    balances_to_text,
    fmt_abs,
    fmt_amount,
    fmt_signed,
    friendly_type_name,
    is_nonzero,
    pairs_to_text,
)


class TestAmountFormatting(TestCase):
    """Test magnitude and sign rendering."""

    def test_fmt_abs_keeps_every_ledger_digit(self) -> None:
        """Test natural precision without rounding or grouping."""
        self.assertEqual(fmt_abs(Decimal("1234567.1234567")), "1234567.1234567")
        self.assertEqual(fmt_abs(Decimal("8.97164406")), "8.97164406")
        self.assertEqual(fmt_abs(Decimal("300.0074505")), "300.0074505")
        self.assertEqual(fmt_abs(Decimal("-2.50")), "2.5")

    def test_fmt_abs_has_no_exponent(self) -> None:
        """Test that tiny and round values print as plain decimals."""
        self.assertEqual(fmt_abs(Decimal("1000")), "1000")
        self.assertEqual(fmt_abs(Decimal("1E+3")), "1000")
        self.assertEqual(fmt_abs(Decimal("0.000000041234567891")), "0.000000041234567891")

    def test_fmt_abs_zero(self) -> None:
        """Test zero without exponent noise."""
        self.assertEqual(fmt_abs(Decimal("0E-8")), "0")

    def test_signs(self) -> None:
        """Test explicit and negative-only signs."""
        self.assertEqual(fmt_signed(Decimal("0")), "+0")
        self.assertEqual(fmt_signed(Decimal("-10")), "-10")
        self.assertEqual(fmt_amount(Decimal("10")), "10")
        self.assertEqual(fmt_amount(Decimal("-1.5")), "-1.5")

    def test_is_nonzero_uses_tolerance(self) -> None:
        """Test the EPS threshold."""
        self.assertFalse(is_nonzero(Decimal("1e-13")))
        self.assertTrue(is_nonzero(Decimal("-1e-11")))


class TestTextHelpers(TestCase):
    """Test asset lists and type labels."""

    def test_pairs_to_text(self) -> None:
        """Test sorted signed pairs."""
        self.assertEqual(
            pairs_to_text({"USDT": Decimal("-10"), "BNB": Decimal("2")}), "+2 BNB, -10 USDT"
        )
        self.assertEqual(pairs_to_text({}), "0")

    def test_balances_to_text(self) -> None:
        """Test sorted balances and the empty placeholder."""
        self.assertEqual(
            balances_to_text({"USDT": Decimal("6"), "BNB": Decimal("-0.5")}), "-0.5 BNB, 6 USDT"
        )
        self.assertEqual(balances_to_text({}), "none")
        self.assertEqual(balances_to_text({}, empty="-"), "-")

    def test_friendly_type_name(self) -> None:
        """Test known display names and title-cased fallbacks."""
        self.assertEqual(friendly_type_name("CASH_COUPON"), "Cash Coupon")
        self.assertEqual(friendly_type_name(taxonomy.GRIDBOT_TRANSFER), "Futures GridBot Transfer")
        self.assertEqual(friendly_type_name("SOME_NEW_THING"), "Some New Thing")
