"""UTC time normalization for balance-log timestamps."""

import calendar
import re
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from balance_log_analyzer.taxonomy import DATE_RE

if TYPE_CHECKING:
    from balance_log_analyzer.models import Row

_TIME_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2}) (\d{1,2}):(\d{2}):(\d{2})$")


def normalize_time_string(text: str) -> str:
    """Zero-pad the hour of a ``YYYY-MM-DD H:MM:SS`` string; pass others through."""
    if not (match := _TIME_RE.match(text.strip())):
        return text
    year, month, day, hour, minute, second = match.groups()
    return f"{year}-{month}-{day} {hour.zfill(2)}:{minute}:{second}"


def parse_utc_ms(text: str) -> int | None:
    """Return epoch milliseconds for a UTC time string, or ``None`` when invalid."""
    if not (match := _TIME_RE.match(text.strip())):
        return None
    year, month, day, hour, minute, second = (int(x) for x in match.groups())
    try:
        # Validates the calendar values; timegm alone would roll them over.
        datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None
    return calendar.timegm((year, month, day, hour, minute, second)) * 1000


def ts_to_utc_string(millis: int) -> str:
    """Render epoch milliseconds as ``YYYY-MM-DD HH:MM:SS`` in UTC."""
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def first_date_in(line: str) -> str:
    """Return the first date-time substring found in a line, or an empty string."""
    match = DATE_RE.search(line)
    return match.group(1) if match else ""


def filter_rows_in_range(
    rows: Iterable["Row"],
    start_ts: int | None = None,
    end_ts: int | None = None,
    exclusive_start: bool = False,
) -> list["Row"]:
    """Keep rows whose timestamp falls inside the optional UTC bounds."""
    out = []
    for row in rows:
        if start_ts is not None:
            if exclusive_start and not row.ts > start_ts:
                continue
            if not exclusive_start and not row.ts >= start_ts:
                continue
        if end_ts is not None and not row.ts <= end_ts:
            continue
        out.append(row)
    return out
