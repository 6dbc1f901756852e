"""Tabular export of parsed rows and category summaries."""

from pathlib import Path

import pandas as pd

from balance_log_analyzer.models import Row, TypeTotals
from balance_log_analyzer.story import build_summary_rows

ROW_COLUMNS = ["time", "type", "asset", "amount", "symbol", "id", "uid", "extra"]
SUMMARY_COLUMNS = ["category", "asset", "in", "out", "net"]


def rows_to_dataframe(rows: list[Row]) -> pd.DataFrame:
    """Convert rows to a dataframe; amounts stay exact decimal strings."""
    df = pd.DataFrame([row.to_dict() for row in rows], columns=[*ROW_COLUMNS, "ts", "raw"])
    df["amount"] = df["amount"].map(str)
    return df[ROW_COLUMNS]


def summary_to_dataframe(type_totals: TypeTotals) -> pd.DataFrame:
    """Convert category totals to one row per category and asset."""
    df = pd.DataFrame(build_summary_rows(type_totals), columns=SUMMARY_COLUMNS)
    for column in SUMMARY_COLUMNS[2:]:
        df[column] = df[column].map(str)
    return df


def write_rows_csv(rows: list[Row], path: Path | str) -> Path:
    """Write parsed rows to CSV and return the resolved path."""
    target = Path(path).expanduser().resolve()
    rows_to_dataframe(rows).to_csv(target, index=False)
    return target


def write_summary_csv(type_totals: TypeTotals, path: Path | str) -> Path:
    """Write category totals to CSV and return the resolved path."""
    target = Path(path).expanduser().resolve()
    summary_to_dataframe(type_totals).to_csv(target, index=False)
    return target
