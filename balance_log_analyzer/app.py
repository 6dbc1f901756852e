"""Interactive console application for analyzing pasted balance logs."""

import sys
from collections import Counter
from collections.abc import Callable
from pathlib import Path
from typing import cast

from balance_log_analyzer import ui
from balance_log_analyzer.aggregation import (
    by_symbol_summary,
    group_swaps,
    only_non_events,
    sum_by_type_and_asset,
    symbol_kpis,
)
from balance_log_analyzer.config import Settings
from balance_log_analyzer.export import write_rows_csv, write_summary_csv
from balance_log_analyzer.logging_setup import configure_logging, get_logger
from balance_log_analyzer.models import ParseResult, Row, SwapKind
from balance_log_analyzer.parser import parse_balance_log
from balance_log_analyzer.selftest import run_self_test
from balance_log_analyzer.story import (
    build_audit,
    build_narrative,
    parse_baseline,
    parse_transfer,
)
from balance_log_analyzer.timeutils import (
    filter_rows_in_range,
    normalize_time_string,
    parse_utc_ms,
)

logger = get_logger(__name__)

StoryBuilder = Callable[..., str]

_REPORT_PREPARE_EXCEPTIONS = (
    ArithmeticError,
    AssertionError,
    AttributeError,
    LookupError,
    OSError,
    RuntimeError,
    TypeError,
    UnicodeError,
    ValueError,
)


class App:
    """Stateful interactive console app holding the last parsed balance log."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize settings and the in-session parse result."""
        self.settings = settings or Settings()
        self.result: ParseResult | None = None

    @property
    def rows(self) -> list[Row]:
        """Return rows of the last parse, or an empty list."""
        return self.result.rows if self.result is not None else []

    def run(self) -> None:
        """Run interactive command loop."""
        while True:
            ui.clear_terminal_viewport()
            main_menu_action = ui.prompt_for_main_menu_action(
                bool(self.rows), self.result is not None
            )
            getattr(self, main_menu_action)()

    def load_file(self) -> None:
        """CLI command: parse a balance log read from a file."""
        path = ui.prompt_for_input_file()
        if path == "__back__":
            return
        try:
            text = Path(path).expanduser().read_text(encoding="utf-8")
        except _REPORT_PREPARE_EXCEPTIONS as error:
            self._show_error(error, "Could not read the log")
            return
        self._load(text)

    def paste(self) -> None:
        """CLI command: parse pasted balance-log text."""
        text = ui.prompt_for_pasted_text()
        if text == "__back__":
            return
        self._load(text)

    def summary(self) -> None:
        """CLI command: show per-category totals and headline figures."""
        ui.print_summary(sum_by_type_and_asset(self.rows), symbol_kpis(self.rows))
        ui.wait_for_back_navigation()

    def by_symbol(self) -> None:
        """CLI command: show trading totals per symbol."""
        ui.print_by_symbol(by_symbol_summary(only_non_events(self.rows)))
        ui.wait_for_back_navigation()

    def swaps(self) -> None:
        """CLI command: show paired coin swaps and auto-exchanges."""
        ui.print_swaps(
            group_swaps(self.rows, SwapKind.COIN_SWAP),
            group_swaps(self.rows, SwapKind.AUTO_EXCHANGE),
        )
        ui.wait_for_back_navigation()

    def narrative(self) -> None:
        """CLI command: build the plain-language balance story."""
        self._story(build_narrative)

    def audit(self) -> None:
        """CLI command: build the itemized audit from an anchor time."""
        self._story(build_audit)

    def browse_rows(self) -> None:
        """CLI command: list parsed rows filtered by type and time window."""
        type_counts = Counter(row.type for row in self.rows)
        filters = ui.prompt_for_row_filter(dict(type_counts))
        if filters is None:
            return
        rows = filter_rows_in_range(
            self.rows, _time_to_ms(filters["start"]), _time_to_ms(filters["end"])
        )
        if filters["type"]:
            rows = [row for row in rows if row.type == filters["type"]]
        ui.print_rows(rows)
        ui.wait_for_back_navigation()

    def diagnostics(self) -> None:
        """CLI command: list lines skipped by the last parse."""
        ui.print_diagnostics(cast(ParseResult, self.result).diagnostics)
        ui.wait_for_back_navigation()

    def export_csv(self) -> None:
        """CLI command: write parsed rows and category totals to CSV."""
        path = ui.prompt_for_export_path(str(Path.cwd() / "balance_log.csv"))
        if path == "__back__" or not path:
            return
        rows_path = Path(path).expanduser()
        summary_path = rows_path.with_name(f"{rows_path.stem}_summary.csv")
        try:
            written = [
                write_rows_csv(self.rows, rows_path),
                write_summary_csv(sum_by_type_and_asset(self.rows), summary_path),
            ]
        except _REPORT_PREPARE_EXCEPTIONS as error:
            self._show_error(error, "Could not export the rows")
            return
        ui.print_exported(written)
        ui.wait_for_back_navigation()

    def self_test(self) -> None:
        """CLI command: run the built-in parser self-test."""
        ui.print_self_test(run_self_test(self.settings))
        ui.wait_for_back_navigation()

    def reset(self) -> None:
        """CLI command: forget the parsed balance log."""
        self._reset()

    def exit_app(self) -> None:
        """Exit interactive run loop."""
        self._reset()
        sys.exit(0)

    def _load(self, text: str) -> None:
        """Parse text into the session result and report the outcome."""
        self.result = parse_balance_log(text, self.settings)
        logger.info("Loaded %d rows", len(self.result.rows))
        ui.print_load_result(self.result)
        ui.wait_for_back_navigation()

    def _story(self, builder: StoryBuilder) -> None:
        """Collect story inputs, then build and print narrative or audit text."""
        inputs = ui.prompt_for_story_inputs()
        if inputs is None:
            return
        try:
            text = builder(
                self.rows,
                _time_to_ms(inputs["anchor"]),
                _time_to_ms(inputs["end"]),
                parse_baseline(inputs["baseline"]) if inputs["baseline"] else None,
                parse_transfer(inputs["transfer_amount"], inputs["transfer_asset"]),
                self.settings,
                balances_after_transfer=inputs["balances_at"] == "after",
            )
        except _REPORT_PREPARE_EXCEPTIONS as error:
            self._show_error(error)
            return
        ui.print_text(text)
        ui.wait_for_back_navigation()

    def _reset(self) -> None:
        """Reset in-session parse result."""
        self.result = None

    def _show_error(self, error: Exception, title: str = "Could not prepare the report") -> None:
        """Display a framed error and wait for back navigation."""
        ui.print_error(error, title)
        ui.wait_for_back_navigation()


def _time_to_ms(text: str) -> int | None:
    """Convert an optional prompt time to epoch milliseconds."""
    return parse_utc_ms(normalize_time_string(text)) if text else None


def main() -> None:
    """CLI entrypoint with clean Ctrl-C exit code."""
    settings = Settings.load()
    configure_logging(settings=settings)
    app = App(settings)
    try:
        app.run()
    except KeyboardInterrupt:
        app.exit_app()


if __name__ == "__main__":
    main()
