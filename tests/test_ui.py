"""Focused unit tests for balance_log_analyzer.ui helpers."""

import io
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock, patch

from conftest import build_row
from prompt_toolkit.key_binding import KeyBindings

from balance_log_analyzer import taxonomy, ui
from balance_log_analyzer.aggregation import (
    by_symbol_summary,
    group_swaps,
    sum_by_type_and_asset,
    symbol_kpis,
)
from balance_log_analyzer.models import ParseResult, SwapKind
from balance_log_analyzer.parser import parse_balance_log
from balance_log_analyzer.selftest import SELF_TEST_TEXT, run_self_test
from balance_log_analyzer.story import BaselineError


def _build_question(result: object = "ok") -> SimpleNamespace:
    question = SimpleNamespace()
    question.application = SimpleNamespace(
        ttimeoutlen=11,
        timeoutlen=22,
        key_bindings=KeyBindings(),
    )
    question.unsafe_ask = Mock(return_value=result)
    return question


def _first_key(binding: object) -> str:
    keys = getattr(binding, "keys")
    return str(getattr(keys[0], "value", keys[0]))


def test_ask_returns_prompt_result_and_sets_timeouts_to_zero() -> None:
    """ask should return unsafe_ask value and override timeout settings."""
    question = _build_question("value")
    ask = getattr(ui, "_ask")
    assert ask(question) == "value"
    assert question.application.ttimeoutlen == 0
    assert question.application.timeoutlen == 0


def test_ask_registers_escape_key_handler_with_back_sentinel() -> None:
    """Escape binding added by ask should exit prompt with '__back__'."""
    question = _build_question()
    ask = getattr(ui, "_ask")
    ask(question)
    escape_binding = next(
        binding
        for binding in question.application.key_bindings.bindings
        if _first_key(binding) == "escape"
    )
    event = SimpleNamespace(app=SimpleNamespace(exit=Mock()))
    escape_binding.handler(event)
    event.app.exit.assert_called_once_with(result="__back__")


def test_ask_can_disable_escape_back_binding() -> None:
    """ask should skip ESC->'__back__' binding when explicitly disabled."""
    question = _build_question()
    ask = getattr(ui, "_ask")
    ask(question, disable_escape_back=True)
    assert not any(
        _first_key(binding) == "escape" for binding in question.application.key_bindings.bindings
    )


def test_ask_can_block_typed_input_through_parameter() -> None:
    """ask should add readonly key bindings when block_typed_input=True."""
    question = _build_question()
    ask = getattr(ui, "_ask")
    ask(question, block_typed_input=True)
    keys = {_first_key(binding): binding for binding in question.application.key_bindings.bindings}
    assert {"c-m", "a", "escape"} <= keys.keys()
    assert keys["a"].handler(SimpleNamespace()) is None


def test_clear_terminal_viewport_writes_reset_sequence() -> None:
    """Viewport clear should wipe scrollback and home the cursor."""
    with patch.object(ui, "prompt_toolkit_clear") as clear:
        with patch.object(ui.sys, "stdout", new=io.StringIO()) as stdout:
            ui.clear_terminal_viewport()
    clear.assert_called_once_with()
    assert stdout.getvalue() == "\x1b[3J\x1b[2J\x1b[H"


def test_main_menu_disables_row_actions_without_rows() -> None:
    """Row-dependent choices should be disabled until a log is parsed."""
    with patch.object(ui.questionary, "select", return_value=_build_question()) as select:
        with patch.object(ui, "_ask", return_value="paste") as ask:
            action = ui.prompt_for_main_menu_action(has_rows=False, has_result=False)
    assert action == "paste"
    assert ask.call_args.kwargs == {"disable_escape_back": True}
    choices = {choice.value: choice.disabled for choice in select.call_args.kwargs["choices"]}
    assert choices["load_file"] is None
    assert choices["summary"] == "No parsed rows in this session"
    assert choices["browse_rows"] == "No parsed rows in this session"
    assert choices["diagnostics"] == "Nothing loaded in this session"
    assert choices["self_test"] is None


def test_prompt_for_pasted_text_treats_empty_as_back() -> None:
    """Empty paste should return the back sentinel."""
    with patch.object(ui.questionary, "text", return_value=_build_question()) as text:
        with patch.object(ui, "_ask", return_value="  \n"):
            assert ui.prompt_for_pasted_text() == "__back__"
    assert text.call_args.kwargs["multiline"] is True
    with patch.object(ui.questionary, "text", return_value=_build_question()):
        with patch.object(ui, "_ask", return_value="a\tb"):
            assert ui.prompt_for_pasted_text() == "a\tb"


def test_prompt_for_input_file_trims_answer() -> None:
    """File path answers should be stripped."""
    with patch.object(ui.questionary, "path", return_value=_build_question()):
        with patch.object(ui, "_ask", return_value=" /tmp/log.txt "):
            assert ui.prompt_for_input_file() == "/tmp/log.txt"


def test_prompt_for_story_inputs_collects_fields_and_transfer_asset() -> None:
    """Story prompts should trim answers and ask for the asset of a transfer."""
    with patch.object(ui.questionary, "text", return_value=_build_question()) as text:
        with patch.object(ui.questionary, "select", return_value=_build_question()) as select:
            with patch.object(
                ui,
                "_ask",
                side_effect=[" 2025-03-01 00:00:00 ", "", "USDT 150", "50", "USDT", "after"],
            ):
                payload = ui.prompt_for_story_inputs()
    assert payload == {
        "anchor": "2025-03-01 00:00:00",
        "end": "",
        "baseline": "USDT 150",
        "transfer_amount": "50",
        "transfer_asset": "USDT",
        "balances_at": "after",
    }
    assert text.call_count == 4
    asset_call, timing_call = select.call_args_list
    assert asset_call.kwargs["choices"] == list(taxonomy.KNOWN_ASSETS)
    assert [choice.value for choice in timing_call.kwargs["choices"]] == ["before", "after"]


def test_prompt_for_story_inputs_skips_timing_without_baseline() -> None:
    """A transfer with no baseline needs no before/after question."""
    with patch.object(ui.questionary, "text", return_value=_build_question()):
        with patch.object(ui.questionary, "select", return_value=_build_question()) as select:
            with patch.object(ui, "_ask", side_effect=["", "", "", "50", "USDT"]):
                payload = ui.prompt_for_story_inputs()
    assert payload is not None
    assert payload["balances_at"] == "before"
    assert select.call_count == 1


def test_prompt_for_story_inputs_skips_asset_without_transfer() -> None:
    """No transfer amount should mean no asset prompt."""
    with patch.object(ui.questionary, "text", return_value=_build_question()):
        with patch.object(ui.questionary, "select") as select:
            with patch.object(ui, "_ask", side_effect=["", "", "", ""]):
                payload = ui.prompt_for_story_inputs()
    assert payload is not None
    assert payload["transfer_asset"] == ""
    select.assert_not_called()


def test_prompt_for_story_inputs_returns_none_on_back() -> None:
    """Back on any story prompt should abort collection."""
    with patch.object(ui.questionary, "text", return_value=_build_question()):
        with patch.object(ui, "_ask", side_effect=["", "__back__"]):
            assert ui.prompt_for_story_inputs() is None


def test_prompt_for_row_filter_lists_types_with_counts() -> None:
    """Type choices should carry row counts after an all-types entry."""
    with patch.object(ui.questionary, "select", return_value=_build_question()) as select:
        with patch.object(ui.questionary, "text", return_value=_build_question()) as text:
            with patch.object(
                ui, "_ask", side_effect=["COMMISSION", " 2025-03-01 0:00:00 ", ""]
            ):
                payload = ui.prompt_for_row_filter({"TRANSFER": 1, "COMMISSION": 3})
    assert payload == {"type": "COMMISSION", "start": "2025-03-01 0:00:00", "end": ""}
    choices = select.call_args.kwargs["choices"]
    assert [(choice.title, choice.value) for choice in choices] == [
        ("All types", ""),
        ("COMMISSION (3)", "COMMISSION"),
        ("TRANSFER (1)", "TRANSFER"),
    ]
    assert text.call_count == 2


def test_prompt_for_row_filter_returns_none_on_back() -> None:
    """Back on the type or a time prompt should abort."""
    with patch.object(ui.questionary, "select", return_value=_build_question()):
        with patch.object(ui, "_ask", return_value="__back__"):
            assert ui.prompt_for_row_filter({}) is None
        with patch.object(ui.questionary, "text", return_value=_build_question()):
            with patch.object(ui, "_ask", side_effect=["", "__back__"]):
                assert ui.prompt_for_row_filter({}) is None


def test_print_load_result_lists_diagnostics_only_when_nothing_parsed() -> None:
    """Zero-row parses should show the diagnostics inline."""
    with patch.object(ui.sys, "stdout", new=io.StringIO()) as stdout:
        ui.print_load_result(parse_balance_log(SELF_TEST_TEXT))
        ui.print_load_result(ParseResult(rows=[], diagnostics=["No input."]))
    assert stdout.getvalue() == (
        "Parsed 11 rows, skipped 0 lines.\nDetected layout: forced.\n"
        "Parsed 0 rows, skipped 1 lines.\nNo input.\n"
    )


def test_print_summary_shows_headline_and_table() -> None:
    """Summary should include KPIs and formatted category rows."""
    rows = parse_balance_log(SELF_TEST_TEXT).rows
    with patch.object(ui.sys, "stdout", new=io.StringIO()) as stdout:
        ui.print_summary(sum_by_type_and_asset(rows), symbol_kpis(rows))
    output = stdout.getvalue()
    assert output.startswith(
        "Rows: 11 | Active symbols: 2 | Top winner: - | Top loser: API3USDT\n"
    )
    assert "Trading (Realized PnL)" in output
    assert "300.0074505" in output
    assert "-1.03766" in output


def test_print_by_symbol_and_swaps() -> None:
    """Symbol table and swap lines should render their texts."""
    rows = parse_balance_log(SELF_TEST_TEXT).rows
    with patch.object(ui.sys, "stdout", new=io.StringIO()) as stdout:
        ui.print_by_symbol(by_symbol_summary(rows))
        ui.print_swaps(group_swaps(rows, SwapKind.COIN_SWAP), [])
    output = stdout.getvalue()
    assert "ETHUSDT" in output
    assert "+0.0033099 USDT" in output
    assert "Coin Swaps:\n  2025-03-01 08:15:00 (UTC+0) | Out: -10 USDT" in output
    assert output.endswith("Auto-Exchange:\n  none\n")


def test_print_rows_shows_full_precision_amounts() -> None:
    """Row listing should print every column and a count."""
    rows = parse_balance_log(SELF_TEST_TEXT).rows[2:4]
    with patch.object(ui.sys, "stdout", new=io.StringIO()) as stdout:
        ui.print_rows(rows)
        ui.print_rows([])
    output = stdout.getvalue()
    assert "+8.97164406" in output
    assert "8802@autoexchange" in output
    assert "Showing 2 rows.\nNo rows match.\n" in output


def test_print_diagnostics_and_self_test() -> None:
    """Diagnostics and self-test verdicts should print one entry per line."""
    with patch.object(ui.sys, "stdout", new=io.StringIO()) as stdout:
        ui.print_diagnostics([])
        ui.print_diagnostics(["Line 1: skipped (no time): x"])
        ui.print_self_test(run_self_test())
    lines = stdout.getvalue().splitlines()
    assert lines[0] == "No lines were skipped."
    assert lines[1] == "Line 1: skipped (no time): x"
    assert lines[-1] == "Self-test passed."


def test_print_exported_lists_paths() -> None:
    """Each written file should be reported."""
    with patch.object(ui.sys, "stdout", new=io.StringIO()) as stdout:
        ui.print_exported([Path("/tmp/a.csv"), Path("/tmp/a_summary.csv")])
    assert stdout.getvalue() == "Wrote /tmp/a.csv\nWrote /tmp/a_summary.csv\n"


def test_print_error_frames_traceback_in_red() -> None:
    """Errors should be framed and colored."""
    try:
        raise ValueError("Baseline line 1: bad")
    except ValueError as error:
        caught = error
    with patch.object(ui.sys, "stdout", new=io.StringIO()) as stdout:
        ui.print_error(caught)
    output = stdout.getvalue()
    assert output.startswith("\x1b[31m┌")
    assert "Could not prepare the report:" in output
    assert "Traceback (most recent call last):" in output
    assert "ValueError: Baseline line 1: bad" in output
    assert output.rstrip("\n").endswith("┘\x1b[0m")


def test_print_error_shows_only_message_for_input_errors() -> None:
    """Bad baselines and unreadable files should not dump a traceback."""
    with patch.object(ui.sys, "stdout", new=io.StringIO()) as stdout:
        ui.print_error(BaselineError("Baseline line 2: amount 'x' is not a number."))
        ui.print_error(FileNotFoundError("missing.csv"), title="Could not read the log")
    lines = [line.strip("│ ") for line in stdout.getvalue().splitlines()]
    assert "Could not prepare the report:" in lines
    assert "BaselineError: Baseline line 2: amount 'x' is not a number." in lines
    assert "Could not read the log:" in lines
    assert "FileNotFoundError: missing.csv" in lines
    assert "Traceback (most recent call last):" not in stdout.getvalue()


def test_net_text_uses_signed_pairs() -> None:
    """Per-symbol cells should show signed net amounts."""
    totals = sum_by_type_and_asset([build_row(taxonomy.COMMISSION, "-0.5")]).commission
    assert getattr(ui, "_net_text")(totals) == "-0.5 USDT"
    assert getattr(ui, "_net_text")({}) == "0"
