"""Tolerant amount parsing for pasted ledger cells.

Amounts are returned as :class:`decimal.Decimal` so that every digit of the
exported value survives summation. Parsing never raises: an unusable cell
yields ``None`` and the caller decides whether to skip the row.
"""

import re
from decimal import Decimal, InvalidOperation

_NUMBER_LIKE_RE = re.compile(r"^[-+()\u2212]?[\d\s,.'\u2019\u00a0\u2009\u202f]+(?:[.,]\d+)?\)?$")
_AMOUNT_CELL_RE = re.compile(r"^[-+()\u2212]?[\d\s,.'\u2019]+(?:[.,]\d+)?\)?(?:\s[A-Z]{3,6})?$")
_IDENTIFIER_RE = re.compile(r"^\d{8,}$")
_UNIT_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]{1,9}$")
_PARENS_RE = re.compile(r"^\(\s*([^)]+?)\s*\)$")
_EUROPEAN_GROUPED_RE = re.compile(r"^[-+]?\d{1,3}(?:\.\d{3})+,\d+$")
_EUROPEAN_PLAIN_RE = re.compile(r"^[-+]?\d+,\d+$")
_AMBIGUOUS_THOUSANDS_RE = re.compile(r"^[-+]?[1-9]\d{0,2},\d{3}$")
_SEPARATORS_RE = re.compile(r"[\s'\u2019\u00a0\u2009\u202f]")


def is_likely_number(text: str) -> bool:
    """Return whether text is made only of digits, signs and separators."""
    return bool(_NUMBER_LIKE_RE.match(text.strip())) and any(ch.isdigit() for ch in text)


def is_likely_amount_cell(text: str) -> bool:
    """Return whether a cell looks like an amount, optionally unit-suffixed.

    Long unsigned digit runs without a decimal point are treated as
    identifiers, so order/user ids do not outscore the real amount column.
    """
    if not (cell := text.strip()):
        return False
    if _IDENTIFIER_RE.match(cell):
        return False
    return bool(_AMOUNT_CELL_RE.match(cell))


def _strip_unit(text: str) -> str:
    tokens = text.split()
    if len(tokens) >= 2 and _UNIT_RE.match(tokens[-1]):
        head = " ".join(tokens[:-1])
        if is_likely_number(head):
            return head
    return text


def _normalize_decimal_comma(text: str) -> str:
    if _EUROPEAN_GROUPED_RE.match(text):
        return text.replace(".", "").replace(",", ".")
    if _EUROPEAN_PLAIN_RE.match(text) and not _AMBIGUOUS_THOUSANDS_RE.match(text):
        return text.replace(",", ".")
    return text.replace(",", "")


def parse_amount(raw: str | None) -> Decimal | None:
    """Parse a raw amount cell into a finite Decimal, or ``None`` on failure."""
    if raw is None or not (text := raw.strip()):
        return None
    text = _strip_unit(text)
    if match := _PARENS_RE.match(text):
        text = "-" + match.group(1).lstrip("+-\u2212")
    text = text.replace("\u2212", "-")
    text = _SEPARATORS_RE.sub("", text)
    text = _normalize_decimal_comma(text)
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None
