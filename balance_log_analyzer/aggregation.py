"""Categorized summation of parsed rows."""

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from balance_log_analyzer import taxonomy
from balance_log_analyzer.formatting import pairs_to_text
from balance_log_analyzer.models import (
    EPS,
    Row,
    SwapKind,
    SwapLine,
    SymbolKpis,
    SymbolSummary,
    Totals,
    TotalsMap,
    TypeTotals,
)

_BUCKET_BY_TYPE = {
    taxonomy.REALIZED_PNL: "realized",
    taxonomy.FUNDING_FEE: "funding",
    taxonomy.COMMISSION: "commission",
    taxonomy.INSURANCE_CLEAR: "insurance",
    taxonomy.LIQUIDATION_FEE: "insurance",
    taxonomy.REFERRAL_KICKBACK: "referral",
    taxonomy.TRANSFER: "transfer",
    taxonomy.GRIDBOT_TRANSFER: "gridbot",
    taxonomy.COIN_SWAP_DEPOSIT: "coin_swap",
    taxonomy.COIN_SWAP_WITHDRAW: "coin_swap",
    taxonomy.AUTO_EXCHANGE: "auto_exchange",
    taxonomy.EVENT_ORDER: "event_orders",
    taxonomy.EVENT_PAYOUT: "event_payouts",
}

_SWAP_TYPES = {
    SwapKind.COIN_SWAP: frozenset({taxonomy.COIN_SWAP_DEPOSIT, taxonomy.COIN_SWAP_WITHDRAW}),
    SwapKind.AUTO_EXCHANGE: frozenset({taxonomy.AUTO_EXCHANGE}),
}


def _add(totals: TotalsMap, asset: str, amount: Decimal) -> None:
    totals[asset] = totals.get(asset, Totals()) + Totals.of(amount)


def sum_by_asset(rows: Iterable[Row]) -> TotalsMap:
    """Sum row amounts per asset into credit, debit and net totals."""
    totals: TotalsMap = {}
    for row in rows:
        _add(totals, row.asset, row.amount)
    return totals


def only_events(rows: Iterable[Row]) -> list[Row]:
    """Keep event-contract rows."""
    return [row for row in rows if taxonomy.is_event_type(row.type)]


def only_non_events(rows: Iterable[Row]) -> list[Row]:
    """Drop event-contract rows."""
    return [row for row in rows if not taxonomy.is_event_type(row.type)]


def sum_by_type_and_asset(rows: Iterable[Row]) -> TypeTotals:
    """Partition rows into the per-kind buckets and sum each per asset.

    Unrecognized labels go to ``other`` keyed by the literal label, except
    unrecognized event-contract labels, which are left out.
    """
    result = TypeTotals()
    for row in rows:
        if bucket := _BUCKET_BY_TYPE.get(row.type):
            _add(getattr(result, bucket), row.asset, row.amount)
        elif not taxonomy.is_event_type(row.type):
            _add(result.other.setdefault(row.type, {}), row.asset, row.amount)
    return result


def group_by_symbol(rows: Iterable[Row]) -> dict[str, list[Row]]:
    """Group symbol-tagged rows by symbol, keeping input order within groups."""
    groups: dict[str, list[Row]] = defaultdict(list)
    for row in rows:
        if row.symbol:
            groups[row.symbol].append(row)
    return dict(groups)


def _magnitude(totals: TotalsMap) -> Decimal:
    return sum((value.magnitude for value in totals.values()), Decimal(0))


def by_symbol_summary(non_event_rows: Iterable[Row]) -> list[SymbolSummary]:
    """Summarize trading kinds per symbol, dropping symbols without trading activity."""
    summaries = []
    for symbol, rows in group_by_symbol(non_event_rows).items():
        totals = sum_by_type_and_asset(rows)
        core = sum(
            (_magnitude(m) for m in (totals.realized, totals.funding, totals.commission)),
            Decimal(0),
        )
        if core <= EPS:
            continue
        summaries.append(
            SymbolSummary(
                symbol=symbol,
                realized=totals.realized,
                funding=totals.funding,
                commission=totals.commission,
                insurance=totals.insurance,
            )
        )
    return sorted(summaries, key=lambda summary: summary.symbol)


def _swap_key(row: Row) -> tuple[str, str]:
    return row.time, row.extra.split("@", 1)[0]


def group_swaps(rows: Iterable[Row], kind: SwapKind) -> list[SwapLine]:
    """Pair swap legs recorded at the same instant into one line per conversion."""
    types = _SWAP_TYPES[SwapKind(kind)]
    groups: dict[tuple[str, str], list[Row]] = defaultdict(list)
    for row in rows:
        if row.type in types:
            groups[_swap_key(row)].append(row)

    lines = []
    for (time, _), legs in groups.items():
        net: dict[str, Decimal] = defaultdict(Decimal)
        for leg in legs:
            net[leg.asset] += leg.amount
        outs = {asset: amount for asset, amount in net.items() if amount < 0}
        ins = {asset: amount for asset, amount in net.items() if amount > 0}
        text = f"{time} (UTC+0) | Out: {pairs_to_text(outs)} → In: {pairs_to_text(ins)}"
        lines.append(SwapLine(time=time, ts=legs[0].ts, outs=outs, ins=ins, text=text))
    return sorted(lines, key=lambda line: line.ts)


def net_by_asset(
    type_totals: TypeTotals,
    include_events: bool = True,
    include_gridbot: bool = True,
) -> dict[str, Decimal]:
    """Sum net change per asset across every bucket."""
    maps = [
        type_totals.realized,
        type_totals.funding,
        type_totals.commission,
        type_totals.insurance,
        type_totals.referral,
        type_totals.transfer,
        type_totals.coin_swap,
        type_totals.auto_exchange,
        *type_totals.other.values(),
    ]
    if include_gridbot:
        maps.append(type_totals.gridbot)
    if include_events:
        maps.extend([type_totals.event_orders, type_totals.event_payouts])

    deltas: dict[str, Decimal] = defaultdict(Decimal)
    for totals in maps:
        for asset, value in totals.items():
            deltas[asset] += value.net
    return dict(deltas)


def symbol_kpis(rows: list[Row]) -> SymbolKpis:
    """Headline figures: row count, active symbols, best and worst realized symbol."""
    non_events = only_non_events(rows)
    realized: dict[str, Decimal] = defaultdict(Decimal)
    for row in non_events:
        if row.type == taxonomy.REALIZED_PNL and row.symbol:
            realized[row.symbol] += row.amount
    ranked = sorted(realized.items(), key=lambda item: (item[1], item[0]))
    winner = ranked[-1] if ranked and ranked[-1][1] > EPS else None
    loser = ranked[0] if ranked and ranked[0][1] < -EPS else None
    return SymbolKpis(
        rows_parsed=len(rows),
        active_symbols=len(by_symbol_summary(non_events)),
        top_winner=winner[0] if winner else None,
        top_loser=loser[0] if loser else None,
    )
