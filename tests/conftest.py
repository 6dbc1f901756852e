"""Shared pytest fixtures for settings isolation and balance-log samples."""

from decimal import Decimal
from pathlib import Path

import pytest

from balance_log_analyzer.models import Row
from balance_log_analyzer.selftest import SELF_TEST_TEXT
from balance_log_analyzer.timeutils import parse_utc_ms


@pytest.fixture(autouse=True)
def isolate_config_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point settings lookup at a per-test path that does not exist yet."""
    monkeypatch.setenv("BALANCE_LOG_ANALYZER_CONFIG", str(tmp_path / "config" / "config.yaml"))
    monkeypatch.delenv("BALANCE_LOG_ANALYZER_LOG_LEVEL", raising=False)


@pytest.fixture
def self_test_text() -> str:
    """Return the shipped eleven-line tab-separated fixture."""
    return SELF_TEST_TEXT


def build_row(
    type_: str,
    amount: str,
    asset: str = "USDT",
    time: str = "2025-03-03 12:30:45",
    symbol: str = "",
    extra: str = "",
) -> Row:
    """Build one row with a consistent timestamp."""
    return Row(
        id="1",
        uid="1001",
        asset=asset,
        type=type_,
        amount=Decimal(amount),
        time=time,
        ts=parse_utc_ms(time) or 0,
        symbol=symbol,
        extra=extra,
    )
