"""UI helpers for questionary prompts and terminal rendering."""

import sys
import traceback
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Literal, cast

import questionary
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.key_binding.key_bindings import merge_key_bindings
from prompt_toolkit.key_binding.key_processor import KeyPressEvent
from prompt_toolkit.shortcuts import clear as prompt_toolkit_clear
from questionary.question import Question
from tabulate import tabulate

from balance_log_analyzer.formatting import fmt_abs, fmt_signed, pairs_to_text
from balance_log_analyzer.models import (
    ParseResult,
    Row,
    SwapLine,
    SymbolKpis,
    SymbolSummary,
    TotalsMap,
    TypeTotals,
)
from balance_log_analyzer.selftest import SelfTestReport
from balance_log_analyzer.story import BaselineError, build_summary_rows
from balance_log_analyzer.taxonomy import KNOWN_ASSETS
from balance_log_analyzer.validators import (
    PromptValidator,
    validate_amount,
    validate_baseline,
    validate_input_file,
    validate_optional_time,
)

MainMenuAction = Literal[
    "load_file",
    "paste",
    "summary",
    "by_symbol",
    "swaps",
    "narrative",
    "audit",
    "diagnostics",
    "browse_rows",
    "export_csv",
    "self_test",
    "reset",
    "exit_app",
]
BackAction = Literal["__back__"]
INPUT_ERRORS = (BaselineError, OSError)

STORY_PROMPTS: dict[str, tuple[str, PromptValidator]] = {
    "anchor": ("Anchor time, UTC+0 (blank: first row)", validate_optional_time),
    "end": ("End time, UTC+0 (blank: last row)", validate_optional_time),
    "baseline": ("Baseline balances, e.g. USDT 100 | BNB 0.5 (blank: none)", validate_baseline),
    "transfer_amount": ("Anchor transfer amount (blank: none)", validate_amount),
}
ROW_FILTER_PROMPTS = {
    "start": "From, UTC+0 (blank: first row)",
    "end": "To, UTC+0 (blank: last row)",
}


def _back_on_escape() -> KeyBindings:
    bindings = KeyBindings()

    @bindings.add("escape", eager=True)
    def _(event: KeyPressEvent) -> None:
        event.app.exit(result="__back__")

    return bindings


def _swallow_typing() -> KeyBindings:
    bindings = KeyBindings()
    for key in ["enter", *map(chr, range(32, 127))]:
        bindings.add(key, eager=True)(lambda _event: None)
    return bindings


def _ask(
    question: Question,
    disable_escape_back: bool = False,
    block_typed_input: bool = False,
) -> Any:
    """Run a Questionary prompt; ESC answers ``"__back__"`` unless disabled."""
    extra_bindings = []
    if block_typed_input:
        extra_bindings.append(_swallow_typing())
    if not disable_escape_back:
        extra_bindings.append(_back_on_escape())
    application = question.application
    application.key_bindings = merge_key_bindings([*extra_bindings, application.key_bindings])
    application.ttimeoutlen = application.timeoutlen = 0
    return question.unsafe_ask()


def clear_terminal_viewport() -> None:
    """Clear terminal viewport and scrollback, then reset cursor to top-left."""
    prompt_toolkit_clear()
    sys.stdout.write("\x1b[3J\x1b[2J\x1b[H")
    sys.stdout.flush()


def prompt_for_main_menu_action(has_rows: bool, has_result: bool) -> MainMenuAction:
    """Prompt for one main-menu action and return selected command key."""
    disabled_rows = None if has_rows else "No parsed rows in this session"
    disabled_result = None if has_result else "Nothing loaded in this session"
    question = questionary.select(
        "Balance Log Analyzer",
        choices=[
            questionary.Choice("Load balance log file", "load_file"),
            questionary.Choice("Paste balance log", "paste"),
            questionary.Choice("Show summary", "summary", disabled=disabled_rows),
            questionary.Choice("Show by symbol", "by_symbol", disabled=disabled_rows),
            questionary.Choice("Show swaps", "swaps", disabled=disabled_rows),
            questionary.Choice("Build narrative", "narrative", disabled=disabled_rows),
            questionary.Choice("Build audit", "audit", disabled=disabled_rows),
            questionary.Choice("Show rows", "browse_rows", disabled=disabled_rows),
            questionary.Choice("Show diagnostics", "diagnostics", disabled=disabled_result),
            questionary.Choice("Export CSV", "export_csv", disabled=disabled_rows),
            questionary.Choice("Run self-test", "self_test"),
            questionary.Choice("Reset", "reset", disabled=disabled_result),
            questionary.Choice("Exit", "exit_app"),
        ],
        erase_when_done=True,
    )
    return cast(MainMenuAction, _ask(question, disable_escape_back=True))


def prompt_for_input_file() -> str | BackAction:
    """Prompt for a balance-log file path."""
    question = questionary.path(
        "Balance log file [esc to back]:",
        validate=validate_input_file,
        erase_when_done=True,
    )
    answer = _ask(question)
    return answer if answer == "__back__" else str(answer).strip()


def prompt_for_pasted_text() -> str | BackAction:
    """Prompt for pasted balance-log text; an empty paste counts as back."""
    question = questionary.text(
        "Paste balance log, then press Esc and Enter (empty to back):",
        multiline=True,
        erase_when_done=True,
    )
    answer = str(_ask(question, disable_escape_back=True))
    return answer if answer.strip() else "__back__"


def prompt_for_story_inputs() -> dict[str, str] | None:
    """Collect anchor, window end, baseline and anchor transfer for a story."""
    payload: dict[str, str] = {}
    for key, (label, validate) in STORY_PROMPTS.items():
        question = questionary.text(
            f"{label} [esc to back]:", validate=validate, erase_when_done=True
        )
        answer = _ask(question)
        if answer == "__back__":
            return None
        payload[key] = str(answer).strip()
    payload["transfer_asset"] = ""
    if payload["transfer_amount"]:
        question = questionary.select(
            "Anchor transfer asset [esc to back]:",
            choices=list(KNOWN_ASSETS),
            erase_when_done=True,
        )
        answer = _ask(question)
        if answer == "__back__":
            return None
        payload["transfer_asset"] = str(answer)
    payload["balances_at"] = "before"
    if payload["transfer_asset"] and payload["baseline"]:
        question = questionary.select(
            "Baseline balances were taken [esc to back]:",
            choices=[
                questionary.Choice("Before the transfer", "before"),
                questionary.Choice("After the transfer", "after"),
            ],
            erase_when_done=True,
        )
        answer = _ask(question)
        if answer == "__back__":
            return None
        payload["balances_at"] = str(answer)
    return payload


def prompt_for_row_filter(type_counts: dict[str, int]) -> dict[str, str] | None:
    """Collect a type and an optional UTC window for the row listing."""
    question = questionary.select(
        "Row type [esc to back]:",
        choices=[
            questionary.Choice("All types", ""),
            *(
                questionary.Choice(f"{type_} ({count})", type_)
                for type_, count in sorted(type_counts.items())
            ),
        ],
        erase_when_done=True,
    )
    answer = _ask(question)
    if answer == "__back__":
        return None
    payload = {"type": str(answer)}
    for key, label in ROW_FILTER_PROMPTS.items():
        question = questionary.text(
            f"{label} [esc to back]:", validate=validate_optional_time, erase_when_done=True
        )
        answer = _ask(question)
        if answer == "__back__":
            return None
        payload[key] = str(answer).strip()
    return payload


def prompt_for_export_path(default: str) -> str | BackAction:
    """Prompt for the rows CSV destination."""
    question = questionary.path(
        "Export rows to [esc to back]:", default=default, erase_when_done=True
    )
    answer = _ask(question)
    return answer if answer == "__back__" else str(answer).strip()


def wait_for_back_navigation() -> None:
    """Display read-only back prompt and wait until user dismisses it."""
    question = questionary.text("[esc to back]", erase_when_done=True)
    _ask(question, block_typed_input=True)


def _table(rows: Iterable[Iterable[Any]], headers: list[str], numeric_from: int = 0) -> str:
    """Render rows with the shared table style, right-aligning numeric columns."""
    colalign = None
    if numeric_from:
        colalign = tuple(
            "right" if index >= numeric_from else "left" for index in range(len(headers))
        )
    return tabulate(
        rows,
        headers=headers,
        tablefmt="simple_outline",
        disable_numparse=True,
        colalign=colalign,
    )


def print_load_result(result: ParseResult) -> None:
    """Print the parse outcome with the detected layout."""
    lines = [f"Parsed {len(result.rows)} rows, skipped {len(result.diagnostics)} lines."]
    if result.schema is not None:
        lines.append(f"Detected layout: {result.schema.source}.")
    if not result.rows:
        lines.extend(result.diagnostics)
    print("\n".join(lines), flush=True)


def print_summary(type_totals: TypeTotals, kpis: SymbolKpis) -> None:
    """Print headline figures and the per-category totals table."""
    headline = (
        f"Rows: {kpis.rows_parsed} | Active symbols: {kpis.active_symbols}"
        f" | Top winner: {kpis.top_winner or '-'} | Top loser: {kpis.top_loser or '-'}"
    )
    rows = [
        [label, asset, fmt_abs(pos), fmt_abs(neg), fmt_signed(net)]
        for label, asset, pos, neg, net in build_summary_rows(type_totals)
    ]
    table = _table(rows, ["Category", "Asset", "In", "Out", "Net"], numeric_from=2)
    print("\n".join([headline, table]), flush=True)


def _net_text(totals: TotalsMap) -> str:
    return pairs_to_text({asset: value.net for asset, value in totals.items()})


def print_by_symbol(summaries: list[SymbolSummary]) -> None:
    """Print one row per active symbol with net totals per kind."""
    rows = [
        [
            summary.symbol,
            _net_text(summary.realized),
            _net_text(summary.funding),
            _net_text(summary.commission),
            _net_text(summary.insurance),
        ]
        for summary in summaries
    ]
    headers = ["Symbol", "Realized PnL", "Funding", "Commission", "Insurance"]
    print(_table(rows, headers), flush=True)


def print_rows(rows: list[Row]) -> None:
    """Print parsed rows in input order with their raw columns."""
    if not rows:
        print("No rows match.", flush=True)
        return
    cells = [
        [
            row.time,
            row.type,
            row.asset,
            fmt_signed(row.amount),
            row.symbol,
            row.id,
            row.uid,
            row.extra,
        ]
        for row in rows
    ]
    table = _table(cells, ["Time", "Type", "Asset", "Amount", "Symbol", "Id", "Uid", "Extra"])
    print(f"{table}\nShowing {len(rows)} rows.", flush=True)


def print_swaps(coin_swaps: list[SwapLine], auto_exchanges: list[SwapLine]) -> None:
    """Print reconstructed coin swaps and auto-exchanges."""
    lines = ["Coin Swaps:", *(f"  {line.text}" for line in coin_swaps)]
    if not coin_swaps:
        lines.append("  none")
    lines.append("Auto-Exchange:")
    lines.extend(f"  {line.text}" for line in auto_exchanges)
    if not auto_exchanges:
        lines.append("  none")
    print("\n".join(lines), flush=True)


def print_text(text: str) -> None:
    """Print narrative or audit text."""
    print(text, flush=True)


def print_diagnostics(diagnostics: list[str]) -> None:
    """Print one diagnostic per line."""
    print("\n".join(diagnostics) if diagnostics else "No lines were skipped.", flush=True)


def print_exported(paths: list[Path]) -> None:
    """Print written CSV paths."""
    print("\n".join(f"Wrote {path}" for path in paths), flush=True)


def print_self_test(report: SelfTestReport) -> None:
    """Print self-test checks and the overall verdict."""
    verdict = "Self-test passed." if report.passed else "Self-test FAILED."
    print("\n".join([*report.lines(), verdict]), flush=True)


def _error_lines(error: Exception) -> list[str]:
    if isinstance(error, INPUT_ERRORS):
        return [f"{type(error).__name__}: {error}"]
    traceback_text = "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    ).rstrip("\n")
    return traceback_text.splitlines()


def print_error(error: Exception, title: str = "Could not prepare the report") -> None:
    """Print a framed red panel; input errors show their message, others a traceback."""
    error_lines = [f"{title}:", *_error_lines(error)]
    width = max(len(line) for line in error_lines)
    framed_error = "\n".join(
        [
            f"┌{'─' * (width + 2)}┐",
            *[f"│ {line.ljust(width)} │" for line in error_lines],
            f"└{'─' * (width + 2)}┘",
        ]
    )
    print(f"\x1b[31m{framed_error}\x1b[0m", flush=True)

