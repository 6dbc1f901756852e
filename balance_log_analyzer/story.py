"""Balance roll-forward: structured story computation and text renderers.

``compute_story`` is a pure transform from rows plus an optional baseline
and anchor transfer to a :class:`StoryResult`. ``render_narrative`` and
``render_audit`` turn one result into the user-facing and the agent-facing
text; ``build_narrative`` and ``build_audit`` chain both steps.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, NamedTuple

from balance_log_analyzer.aggregation import net_by_asset, sum_by_type_and_asset
from balance_log_analyzer.amounts import parse_amount
from balance_log_analyzer.config import Settings
from balance_log_analyzer.formatting import (
    balances_to_text,
    fmt_abs,
    fmt_amount,
    fmt_signed,
    friendly_type_name,
    is_nonzero,
)
from balance_log_analyzer.logging_setup import get_logger
from balance_log_analyzer.models import AnchorTransfer, Row, Totals, TotalsMap, TypeTotals
from balance_log_analyzer.timeutils import filter_rows_in_range, ts_to_utc_string

logger = get_logger(__name__)

MISSING_ANCHOR_MESSAGE = "Set an anchor time (UTC+0) to run the audit."
NO_ROWS_MESSAGE = "No rows parsed. Paste a balance log first."

_ASSET_TOKEN_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]{1,9}$")
_BASELINE_SPLIT_RE = re.compile(r"[\s:=;]+")
_BASELINE_ENTRY_RE = re.compile(r"[\n|]")


class BaselineError(ValueError):
    """Raised when baseline or anchor-transfer input cannot be read."""


class Section(NamedTuple):
    """One canonical-kind block of the narrative and audit."""

    attr: str
    title: str
    explanation: str
    credit: str | None = None
    debit: str | None = None


SECTIONS: tuple[Section, ...] = (
    Section(
        "realized",
        "Trading (Realized PnL)",
        "profits and losses from closed positions",
        "earned",
        "lost",
    ),
    Section("commission", "Trading fees", "charged when orders are executed"),
    Section(
        "funding",
        "Funding fees",
        "periodic payments between long and short positions",
        "received",
        "paid",
    ),
    Section(
        "insurance",
        "Insurance / Liquidation Clearance Fee",
        "liquidation-related adjustments",
        "received",
        "paid",
    ),
    Section(
        "referral",
        "Referral kickbacks",
        "rebates paid for referred trading",
        "received",
        "reversed",
    ),
    Section("transfer", "Transfers", "money moved into and out of the Futures wallet", "in", "out"),
    Section("gridbot", "GridBot transfers", "transfers with the GridBot wallet", "in", "out"),
    Section("coin_swap", "Coin Swaps", "conversions between assets"),
    Section("auto_exchange", "Auto-Exchange", "automatic conversions to clear negative balances"),
    Section("event_payouts", "Event Contracts payouts", "credited payouts", credit="paid out"),
    Section(
        "event_orders", "Event Contracts orders", "amounts used to enter contracts", debit="staked"
    ),
)


def parse_baseline(text: str) -> dict[str, Decimal]:
    """Read one ``ASSET amount`` or ``amount ASSET`` balance per line; repeats add up.

    A ``|`` also separates entries, so a one-line prompt can carry several.
    """
    balances: dict[str, Decimal] = {}
    for number, line in enumerate(_BASELINE_ENTRY_RE.split(text.replace("\r\n", "\n")), start=1):
        if not (stripped := line.strip()):
            continue
        tokens = [token for token in _BASELINE_SPLIT_RE.split(stripped) if token]
        if len(tokens) == 2 and _ASSET_TOKEN_RE.match(tokens[0]):
            asset, raw_amount = tokens
        elif len(tokens) == 2 and _ASSET_TOKEN_RE.match(tokens[1]):
            raw_amount, asset = tokens
        else:
            raise BaselineError(
                f"Baseline line {number}: expected 'ASSET amount', got {stripped!r}."
            )
        if (amount := parse_amount(raw_amount)) is None:
            raise BaselineError(f"Baseline line {number}: amount {raw_amount!r} is not a number.")
        asset = asset.upper()
        balances[asset] = balances.get(asset, Decimal(0)) + amount
    return balances


def parse_transfer(amount: str | Decimal | None, asset: str) -> AnchorTransfer | None:
    """Build the anchor transfer; a blank or zero amount means no transfer."""
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        return None
    value = amount if isinstance(amount, Decimal) else parse_amount(amount)
    if value is None:
        raise BaselineError(f"Transfer amount {amount!r} is not a number.")
    if not (ticker := asset.strip().upper()):
        raise BaselineError("Transfer asset is required.")
    return AnchorTransfer(amount=value, asset=ticker) if value != 0 else None


@dataclass(frozen=True)
class StoryResult:
    """Structured roll-forward over one time window.

    ``before_balances`` hold the wallet just before the anchor transfer and
    ``start_balances`` just after it; both equal the baseline without one.
    """

    start_time: str
    end_time: str
    rows: list[Row]
    totals: TypeTotals
    deltas: dict[str, Decimal]
    baseline: dict[str, Decimal] | None = None
    transfer: AnchorTransfer | None = None
    before_balances: dict[str, Decimal] = field(default_factory=dict)
    start_balances: dict[str, Decimal] = field(default_factory=dict)
    final_balances: dict[str, Decimal] = field(default_factory=dict)
    balances_after_transfer: bool = False

    @property
    def has_balances(self) -> bool:
        """Return whether starting balances were supplied."""
        return self.baseline is not None or self.transfer is not None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready view with amounts as decimal strings."""

        def amounts(mapping: Mapping[str, Decimal]) -> dict[str, str]:
            return {asset: str(mapping[asset]) for asset in sorted(mapping)}

        def totals(mapping: TotalsMap) -> dict[str, dict[str, str]]:
            return {
                asset: {"pos": str(v.pos), "neg": str(v.neg), "net": str(v.net)}
                for asset, v in sorted(mapping.items())
            }

        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "row_count": len(self.rows),
            "totals": {
                **{s.attr: totals(getattr(self.totals, s.attr)) for s in SECTIONS},
                "other": {label: totals(m) for label, m in sorted(self.totals.other.items())},
            },
            "deltas": amounts(self.deltas),
            "baseline": amounts(self.baseline) if self.baseline is not None else None,
            "transfer": (
                {"amount": str(self.transfer.amount), "asset": self.transfer.asset}
                if self.transfer
                else None
            ),
            "balances_after_transfer": self.balances_after_transfer,
            "before_balances": amounts(self.before_balances),
            "start_balances": amounts(self.start_balances),
            "final_balances": amounts(self.final_balances),
        }


def compute_story(
    rows: Iterable[Row],
    anchor_ts: int | None = None,
    end_ts: int | None = None,
    baseline: Mapping[str, Decimal] | None = None,
    anchor_transfer: AnchorTransfer | None = None,
    settings: Settings | None = None,
    balances_after_transfer: bool = False,
) -> StoryResult:
    """Roll balances forward from the anchor through the window rows.

    Given balances are read as the wallet before the anchor transfer, or
    after it when ``balances_after_transfer`` is set. Either way they
    describe the wallet at the anchor, so a ledger row stamped exactly at
    the anchor is already reflected and the window starts after it.
    """
    settings = settings or Settings()
    all_rows = list(rows)
    exclusive_start = (
        settings.exclusive_start or baseline is not None or anchor_transfer is not None
    )
    window = filter_rows_in_range(all_rows, anchor_ts, end_ts, exclusive_start)

    before_balances = dict(baseline or {})
    start_balances = dict(before_balances)
    if anchor_transfer is not None:
        asset, amount = anchor_transfer.asset, anchor_transfer.amount
        if balances_after_transfer:
            before_balances[asset] = before_balances.get(asset, Decimal(0)) - amount
        else:
            start_balances[asset] = start_balances.get(asset, Decimal(0)) + amount

    totals = sum_by_type_and_asset(window)
    deltas = net_by_asset(totals, settings.include_events, settings.include_gridbot)
    final_balances = {
        asset: start_balances.get(asset, Decimal(0)) + deltas.get(asset, Decimal(0))
        for asset in sorted(set(start_balances) | set(deltas))
    }

    timestamps = [row.ts for row in window]
    if anchor_ts is not None:
        start_time = ts_to_utc_string(anchor_ts)
    else:
        start_time = ts_to_utc_string(min(timestamps)) if timestamps else ""
    if end_ts is not None:
        end_time = ts_to_utc_string(end_ts)
    else:
        end_time = ts_to_utc_string(max(timestamps)) if timestamps else start_time

    logger.debug(
        "Story window %s..%s covers %d of %d rows", start_time, end_time, len(window), len(all_rows)
    )
    return StoryResult(
        start_time=start_time,
        end_time=end_time,
        rows=window,
        totals=totals,
        deltas=deltas,
        baseline=dict(baseline) if baseline is not None else None,
        transfer=anchor_transfer,
        before_balances=before_balances,
        start_balances=start_balances,
        final_balances=final_balances,
        balances_after_transfer=balances_after_transfer and anchor_transfer is not None,
    )


def prune_dust(balances: Mapping[str, Decimal], settings: Settings) -> dict[str, Decimal]:
    """Hide near-zero balances of the configured wrapped assets."""
    return {
        asset: value
        for asset, value in balances.items()
        if asset not in settings.dust_assets or abs(value) > settings.dust_threshold
    }


def _part(value: Decimal, sign: str) -> str:
    return f"{sign}{fmt_abs(value)}" if is_nonzero(value) else "0"


def _narrative_line(section: Section, asset: str, value: Totals) -> str:
    if section.credit and section.debit:
        return (
            f"{section.credit} {_part(value.pos, '+')}, {section.debit} {_part(value.neg, '-')}"
            f" → net {fmt_signed(value.net)} {asset}"
        )
    if section.credit:
        return f"{section.credit} {_part(value.pos, '+')} {asset}"
    if section.debit:
        return f"{section.debit} {_part(value.neg, '-')} {asset}"
    return f"net {fmt_signed(value.net)} {asset}"


def _active(totals: TotalsMap) -> list[str]:
    return sorted(asset for asset, value in totals.items() if not value.is_zero())


def _excluded_note(attr: str, settings: Settings) -> str:
    if attr.startswith("event_") and not settings.include_events:
        return " (not counted in totals)"
    if attr == "gridbot" and not settings.include_gridbot:
        return " (not counted in totals)"
    return ""


def _opening(result: StoryResult) -> str:
    start = balances_to_text(result.start_balances)
    if result.transfer is not None:
        before = balances_to_text(result.before_balances)
        transfer = f"{fmt_signed(result.transfer.amount)} {result.transfer.asset}"
        return (
            f"On {result.start_time} (UTC+0), you made a transfer of {transfer}. "
            f"At that time, your balance moved from {before} to {start}."
        )
    if result.baseline is not None:
        return f"At {result.start_time} (UTC+0), this was your Futures wallet snapshot: {start}."
    return (
        f"Between {result.start_time} and {result.end_time} (UTC+0), "
        "here is what changed in your Futures wallet."
    )


def render_narrative(result: StoryResult, settings: Settings | None = None) -> str:
    """Render the plain-language story of one window."""
    settings = settings or Settings()
    out = [_opening(result)]
    for section in SECTIONS:
        totals = getattr(result.totals, section.attr)
        if not (assets := _active(totals)):
            continue
        note = _excluded_note(section.attr, settings)
        out.extend(["", f"{section.title}: {section.explanation}{note}."])
        out.extend(f"• {_narrative_line(section, asset, totals[asset])}." for asset in assets)
    for label in sorted(result.totals.other):
        totals = result.totals.other[label]
        if assets := _active(totals):
            out.extend(["", f"{friendly_type_name(label)}:"])
            out.extend(f"• net {fmt_signed(totals[asset].net)} {asset}." for asset in assets)

    out.extend(["", "Overall effect:"])
    if changes := [asset for asset in sorted(result.deltas) if is_nonzero(result.deltas[asset])]:
        out.extend(f"• {asset}: {fmt_signed(result.deltas[asset])}" for asset in changes)
    else:
        out.append("• No net change.")

    if result.has_balances:
        final = balances_to_text(prune_dust(result.final_balances, settings))
        out.extend(["", f"Final balances: {final}"])
    return "\n".join(out)


def _audit_line(asset: str, value: Totals) -> str:
    parts = []
    if is_nonzero(value.pos):
        parts.append(f"+{fmt_abs(value.pos)}")
    if is_nonzero(value.neg):
        parts.append(f"-{fmt_abs(value.neg)}")
    if is_nonzero(value.net):
        parts.append(f"net {fmt_signed(value.net)}")
    return f"• {asset}: {' / '.join(parts)}"


def render_audit(result: StoryResult, settings: Settings | None = None) -> str:
    """Render the itemized audit view with the per-asset roll-forward."""
    settings = settings or Settings()
    if result.transfer is not None:
        transfer = f"{fmt_signed(result.transfer.amount)} {result.transfer.asset}"
        out = [
            f"At {result.start_time} (UTC+0) a transfer of {transfer} was made. "
            f"Balance moved from {balances_to_text(result.before_balances)} "
            f"to {balances_to_text(result.start_balances)}."
        ]
    elif result.baseline is not None:
        snapshot = balances_to_text(result.start_balances)
        out = [f"Snapshot at {result.start_time} (UTC+0): {snapshot}."]
    else:
        out = [f"Window: {result.start_time} → {result.end_time} (UTC+0)."]
    out.append(f"Rows in window: {len(result.rows)}.")

    for section in SECTIONS:
        totals = getattr(result.totals, section.attr)
        if assets := _active(totals):
            note = _excluded_note(section.attr, settings)
            out.extend(["", f"{section.title} | {section.explanation}{note}"])
            out.extend(_audit_line(asset, totals[asset]) for asset in assets)
    for label in sorted(result.totals.other):
        totals = result.totals.other[label]
        if assets := _active(totals):
            title = friendly_type_name(label)
            out.extend(["", f"{title} | credited/charged outside core categories"])
            out.extend(_audit_line(asset, totals[asset]) for asset in assets)

    out.extend(["", "How this adds up (per asset):"])
    for asset, expected in result.final_balances.items():
        start = result.start_balances.get(asset, Decimal(0))
        change = result.deltas.get(asset, Decimal(0))
        out.append(
            f"• {asset}: start {fmt_amount(start)} → change {fmt_signed(change)}"
            f" → expected {fmt_amount(expected)} {asset}"
        )
    final = balances_to_text(result.final_balances)
    out.extend(["", f"Final balance expected based on activity: {final}"])
    return "\n".join(out)


def build_narrative(
    rows: list[Row],
    anchor_ts: int | None = None,
    end_ts: int | None = None,
    baseline: Mapping[str, Decimal] | None = None,
    anchor_transfer: AnchorTransfer | None = None,
    settings: Settings | None = None,
    balances_after_transfer: bool = False,
) -> str:
    """Compute and render the narrative."""
    if not rows:
        return NO_ROWS_MESSAGE
    result = compute_story(
        rows, anchor_ts, end_ts, baseline, anchor_transfer, settings, balances_after_transfer
    )
    return render_narrative(result, settings)


def build_audit(
    rows: list[Row],
    anchor_ts: int | None,
    end_ts: int | None = None,
    baseline: Mapping[str, Decimal] | None = None,
    anchor_transfer: AnchorTransfer | None = None,
    settings: Settings | None = None,
    balances_after_transfer: bool = False,
) -> str:
    """Compute and render the audit; without an anchor return the explanatory message."""
    if anchor_ts is None:
        return MISSING_ANCHOR_MESSAGE
    result = compute_story(
        rows, anchor_ts, end_ts, baseline, anchor_transfer, settings, balances_after_transfer
    )
    return render_audit(result, settings)


def build_summary_rows(type_totals: TypeTotals) -> list[tuple[str, str, Decimal, Decimal, Decimal]]:
    """Flatten totals into ``(label, asset, in, out, net)`` rows in section order."""
    out = []
    for section in SECTIONS:
        totals = getattr(type_totals, section.attr)
        out.extend(
            (section.title, asset, totals[asset].pos, totals[asset].neg, totals[asset].net)
            for asset in _active(totals)
        )
    for label in sorted(type_totals.other):
        totals = type_totals.other[label]
        title = friendly_type_name(label)
        out.extend(
            (title, asset, totals[asset].pos, totals[asset].neg, totals[asset].net)
            for asset in _active(totals)
        )
    return out
