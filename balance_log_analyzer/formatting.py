"""Display helpers for amounts, asset lists and type labels."""

from collections.abc import Mapping
from decimal import Decimal

from balance_log_analyzer.models import EPS
from balance_log_analyzer.taxonomy import FRIENDLY_TYPE_NAMES


def is_nonzero(value: Decimal) -> bool:
    """Return whether a value is farther than EPS from zero."""
    return abs(value) > EPS


def fmt_abs(value: Decimal) -> str:
    """Format the magnitude of a value at its natural precision.

    Every ledger digit is kept so printed figures reconcile with the export.
    Trailing zeros are dropped and no exponent or grouping is used.
    """
    magnitude = abs(value)
    if magnitude == 0:
        return "0"
    return format(magnitude.normalize(), "f")


def fmt_signed(value: Decimal) -> str:
    """Format a value with an explicit ``+`` or ``-`` sign."""
    return ("+" if value >= 0 else "-") + fmt_abs(value)


def fmt_amount(value: Decimal) -> str:
    """Format a value with a sign only when negative."""
    return ("-" if value < 0 else "") + fmt_abs(value)


def pairs_to_text(amounts: Mapping[str, Decimal]) -> str:
    """Render signed per-asset amounts as ``-10 USDT, +2 BNB``; ``0`` when empty."""
    parts = [f"{fmt_signed(amounts[asset])} {asset}" for asset in sorted(amounts)]
    return ", ".join(parts) if parts else "0"


def balances_to_text(balances: Mapping[str, Decimal], empty: str = "none") -> str:
    """Render per-asset balances sorted by asset."""
    parts = [f"{fmt_amount(balances[asset])} {asset}" for asset in sorted(balances)]
    return ", ".join(parts) if parts else empty


def title_case_words(label: str) -> str:
    """Turn ``SOME_TYPE_LABEL`` into ``Some Type Label``."""
    return " ".join(word.capitalize() for word in label.replace("_", " ").split())


def friendly_type_name(type_: str) -> str:
    """Return the display name of a type label."""
    return FRIENDLY_TYPE_NAMES.get(type_) or title_case_words(type_)
