"""Turn pasted balance-log text into typed rows plus per-line diagnostics."""

import re

from balance_log_analyzer.amounts import parse_amount
from balance_log_analyzer.config import Settings
from balance_log_analyzer.logging_setup import get_logger
from balance_log_analyzer.models import ColumnMapping, ParseResult, Row, Schema
from balance_log_analyzer.normalizer import DEFAULT_NORMALIZER, TypeNormalizer
from balance_log_analyzer.schema import detect_schema, split_cells
from balance_log_analyzer.taxonomy import DATE_RE, SYMBOL_RE
from balance_log_analyzer.timeutils import first_date_in, normalize_time_string, parse_utc_ms

logger = get_logger(__name__)

DELIMITER_NAMES = {"\t": "tab", ",": "comma", ";": "semicolon", "|": "pipe"}

_ODD_SPACES_RE = re.compile(r"[\u00a0\u2000-\u200b\u202f\u205f\u3000]")


def prepare_lines(text: str) -> list[str]:
    """Strip BOM, unify newlines and odd spaces, and drop blank lines.

    Lines are not trimmed: a leading tab marks an empty first column.
    """
    text = text.removeprefix("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
    text = _ODD_SPACES_RE.sub(" ", text)
    return [line for line in text.split("\n") if line.strip()]


def excerpt(line: str, length: int = 160) -> str:
    """Shorten a line for diagnostics."""
    return line if len(line) <= length else line[:length] + "…"


def _cell(cells: list[str], index: int | None) -> str:
    if index is None or index >= len(cells):
        return ""
    return cells[index].strip()


def parse_line(
    line: str,
    line_number: int,
    schema: Schema,
    settings: Settings,
    normalizer: TypeNormalizer = DEFAULT_NORMALIZER,
) -> Row | str:
    """Parse one data line into a row, or return the diagnostic explaining the skip."""
    short = excerpt(line, settings.excerpt_length)
    cells = split_cells(line, schema.delimiter)
    mapping: ColumnMapping = schema.mapping

    time_cell = _cell(cells, mapping.time)
    time_text = match.group(1) if (match := DATE_RE.search(time_cell)) else first_date_in(line)
    time_text = normalize_time_string(time_text) if time_text else ""
    if not time_text or (ts := parse_utc_ms(time_text)) is None:
        return f"Line {line_number}: skipped (no time): {short}"

    if len(cells) < settings.min_columns:
        return f"Line {line_number}: skipped (too few columns: {len(cells)}): {short}"

    amount_cell = _cell(cells, mapping.amount)
    if (amount := parse_amount(amount_cell)) is None:
        return f'Line {line_number}: skipped (amount not numeric "{amount_cell}"): {short}'

    if mapping.extra is not None:
        extra = _cell(cells, mapping.extra)
    else:
        extra = " ".join(cell for cell in cells[7:] if cell)
    symbol = _cell(cells, mapping.symbol)
    raw_type = _cell(cells, mapping.type)
    type_ = normalizer.normalize(raw_type, extra)

    return Row(
        id=_cell(cells, mapping.id),
        uid=_cell(cells, mapping.uid),
        asset=_cell(cells, mapping.asset) or "-",
        type=type_.strip() or "-",
        amount=amount,
        time=time_text,
        ts=ts,
        symbol=symbol if SYMBOL_RE.match(symbol) else "",
        extra=extra,
        raw=line,
    )


def parse_balance_log(
    text: str,
    settings: Settings | None = None,
    normalizer: TypeNormalizer = DEFAULT_NORMALIZER,
) -> ParseResult:
    """Parse a whole pasted balance log.

    The schema is detected once from the sample lines, then every data line
    either becomes a :class:`Row` or contributes one diagnostic. Row order
    follows input order.
    """
    settings = settings or Settings()
    if not text or not text.strip():
        return ParseResult(rows=[], diagnostics=["No input."])
    lines = prepare_lines(text)
    schema = detect_schema(lines, settings.delimiter_sample_size, settings.schema_sample_size)

    rows: list[Row] = []
    diagnostics: list[str] = []
    start = 1 if schema.has_header else 0
    for index in range(start, len(lines)):
        parsed = parse_line(lines[index], index + 1, schema, settings, normalizer)
        if isinstance(parsed, Row):
            rows.append(parsed)
        else:
            diagnostics.append(parsed)

    if not rows:
        delimiter_name = DELIMITER_NAMES.get(schema.delimiter, schema.delimiter)
        diagnostics.extend(
            [
                "Parsed 0 rows.",
                f'• Detected delimiter: "{delimiter_name}". '
                "If wrong, try a different export/paste.",
                "• Ensure you pasted the plain table/CSV (not formatted HTML).",
            ]
        )
    logger.info("Parsed %d rows, skipped %d lines", len(rows), len(diagnostics))
    return ParseResult(rows=rows, diagnostics=diagnostics, schema=schema)
