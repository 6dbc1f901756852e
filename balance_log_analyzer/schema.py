"""Delimiter and column-schema detection for pasted balance logs.

Detection is a pure function of sample lines:

- the delimiter is the candidate splitting the sample into the most cells,
  with tab winning ties;
- a header row is recognized by field-name vocabulary and mapped by synonyms;
- headerless input is mapped by per-column content scores;
- the common 7+ column export layout is checked positionally and, when it
  matches, overrides every heuristic so identifier columns are never summed.
"""

import csv
import re
from dataclasses import fields

from balance_log_analyzer.amounts import is_likely_amount_cell
from balance_log_analyzer.logging_setup import get_logger
from balance_log_analyzer.models import (
    FIXED_MAPPING,
    POSITIONAL_FALLBACK,
    ColumnMapping,
    Schema,
)
from balance_log_analyzer.normalizer import looks_like_type_word
from balance_log_analyzer.taxonomy import DATE_RE, SYMBOL_RE

logger = get_logger(__name__)

DELIMITERS = ("\t", ",", ";", "|")
MIN_GUESS_COLUMNS = 5

HEADER_WORDS = frozenset(
    {"time", "timestamp", "date", "type", "asset", "amount", "symbol", "pair", "id", "uid", "extra"}
)
HEADER_SYNONYMS: dict[str, tuple[str, ...]] = {
    "time": ("time", "timestamp", "date", "datetime", "time(utc)", "date(utc)"),
    "type": ("type", "txntype", "event", "category", "operation"),
    "asset": ("asset", "currency", "coin"),
    "amount": ("amount", "qty", "quantity", "change", "delta"),
    "symbol": ("symbol", "pair", "instrument"),
    "id": ("id", "orderid", "txid", "tradeid"),
    "uid": ("uid", "user", "account", "userid"),
    "extra": ("extra", "note", "memo", "data", "comment", "remark"),
}
_SYNONYM_KEYS = frozenset(key for synonyms in HEADER_SYNONYMS.values() for key in synonyms)

_ASSET_RE = re.compile(r"^[A-Z]{3,6}$")

SCORE_WEIGHTS = {"time": 3, "amount": 4, "type": 3, "asset": 2, "symbol": 2}


def split_cells(line: str, delimiter: str) -> list[str]:
    """Split one line on the delimiter, honoring CSV double-quote rules."""
    if '"' not in line:
        return [cell.strip() for cell in line.split(delimiter)]
    return [cell.strip() for cell in next(csv.reader([line], delimiter=delimiter))]


def _header_key(cell: str) -> str:
    return re.sub(r"\s+", "", cell.lower())


def is_likely_time(cell: str) -> bool:
    """Return whether a cell holds a date-time value."""
    return bool(DATE_RE.search(cell))


def looks_like_asset(cell: str) -> bool:
    """Return whether a cell looks like an asset ticker."""
    return bool(_ASSET_RE.match(cell.strip()))


def looks_like_symbol(cell: str) -> bool:
    """Return whether a cell looks like a trading pair with a known quote asset."""
    return bool(SYMBOL_RE.match(cell.strip()))


def detect_delimiter(lines: list[str], sample_size: int = 40) -> str:
    """Pick the delimiter producing the most extra cells over the sample."""
    sample = lines[:sample_size]
    scores = {
        delimiter: sum(len(split_cells(line, delimiter)) - 1 for line in sample)
        for delimiter in DELIMITERS
    }
    best = max(DELIMITERS, key=lambda delimiter: scores[delimiter])
    logger.debug("Delimiter scores: %s", {repr(k): v for k, v in scores.items()})
    return best if scores[best] > 0 else "\t"


def looks_like_header(cells: list[str]) -> bool:
    """Return whether the row names fields: one core field word or two synonyms."""
    keys = [_header_key(cell) for cell in cells]
    if any(key in HEADER_WORDS for key in keys):
        return True
    return sum(key in _SYNONYM_KEYS for key in keys) >= 2


def header_mapping(cells: list[str]) -> ColumnMapping:
    """Map header cells onto fields by synonym, the first matching column winning."""
    found: dict[str, int] = {}
    for index, cell in enumerate(cells):
        key = _header_key(cell)
        for name, synonyms in HEADER_SYNONYMS.items():
            if key in synonyms and name not in found:
                found[name] = index
                break
    return ColumnMapping(**found)


_PLAIN_INTEGER_RE = re.compile(r"^\d+$")


def _amount_points(cell: str) -> int:
    if not is_likely_amount_cell(cell):
        return 0
    # Unsigned integers are as likely to be short ids as amounts.
    if _PLAIN_INTEGER_RE.match(cell.strip()):
        return SCORE_WEIGHTS["amount"] // 2
    return SCORE_WEIGHTS["amount"]


def _score_cell(cell: str) -> dict[str, int]:
    return {
        "time": SCORE_WEIGHTS["time"] if is_likely_time(cell) else 0,
        "amount": _amount_points(cell),
        "type": SCORE_WEIGHTS["type"] if looks_like_type_word(cell) else 0,
        "asset": SCORE_WEIGHTS["asset"] if looks_like_asset(cell) else 0,
        "symbol": SCORE_WEIGHTS["symbol"] if looks_like_symbol(cell) else 0,
    }


def guess_mapping(lines: list[str], delimiter: str, sample_size: int = 300) -> ColumnMapping:
    """Score every column for each field and keep the best-scoring one."""
    split_lines = [split_cells(line, delimiter) for line in lines]
    data = [cells for cells in split_lines if len(cells) >= MIN_GUESS_COLUMNS][:sample_size]
    if not data:
        return ColumnMapping()
    width = max(len(cells) for cells in data)
    scores = [dict.fromkeys(SCORE_WEIGHTS, 0) for _ in range(width)]
    for cells in data:
        for index, cell in enumerate(cells):
            for name, points in _score_cell(cell).items():
                scores[index][name] += points

    picked: dict[str, int] = {}
    for name in SCORE_WEIGHTS:
        best = max(range(width), key=lambda index: (scores[index][name], -index))
        if scores[best][name] > 0:
            picked[name] = best
    logger.debug("Column scores: %s", scores)
    return ColumnMapping(**picked)


def forced_mapping(lines: list[str], delimiter: str) -> ColumnMapping | None:
    """Return the known export layout when the first wide line matches it."""
    for line in lines:
        cells = split_cells(line, delimiter)
        if len(cells) < 7:
            continue
        if (
            is_likely_time(cells[5])
            and looks_like_type_word(cells[3])
            and looks_like_asset(cells[2])
            and is_likely_amount_cell(cells[4])
        ):
            return FIXED_MAPPING
        return None
    return None


def detect_schema(
    lines: list[str],
    delimiter_sample_size: int = 40,
    schema_sample_size: int = 300,
) -> Schema:
    """Detect delimiter, header presence and column mapping from sample lines."""
    if not lines:
        return Schema(delimiter="\t", has_header=False, mapping=FIXED_MAPPING, source="fixed")
    delimiter = detect_delimiter(lines, delimiter_sample_size)
    header_cells = split_cells(lines[0], delimiter)
    has_header = looks_like_header(header_cells)
    data_lines = lines[1:] if has_header else lines

    if (forced := forced_mapping(data_lines, delimiter)) is not None:
        mapping, source = forced, "forced"
    elif has_header and not (header := header_mapping(header_cells)).is_empty():
        mapping, source = header.merged(POSITIONAL_FALLBACK), "header"
    elif not (guessed := guess_mapping(data_lines, delimiter, schema_sample_size)).is_empty():
        mapping, source = guessed.merged(POSITIONAL_FALLBACK), "guessed"
    else:
        mapping, source = FIXED_MAPPING, "fixed"

    schema = Schema(delimiter=delimiter, has_header=has_header, mapping=mapping, source=source)
    logger.debug(
        "Detected schema source=%s delimiter=%r header=%s mapping=%s",
        source,
        delimiter,
        has_header,
        {f.name: getattr(mapping, f.name) for f in fields(ColumnMapping)},
    )
    return schema
