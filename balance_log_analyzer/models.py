"""Core data models shared by the parser, aggregation and story builders."""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Any

EPS = Decimal("1e-12")


@dataclass(frozen=True, slots=True)
class Row:
    """One parsed balance-log entry."""

    id: str
    uid: str
    asset: str
    type: str
    amount: Decimal
    time: str
    ts: int
    symbol: str = ""
    extra: str = ""
    raw: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize row fields in declaration order."""
        return {field_info.name: getattr(self, field_info.name) for field_info in fields(Row)}


@dataclass(frozen=True, slots=True)
class Totals:
    """Credit, debit and net sums for one asset."""

    pos: Decimal = Decimal(0)
    neg: Decimal = Decimal(0)
    net: Decimal = Decimal(0)

    @classmethod
    def of(cls, amount: Decimal) -> "Totals":
        """Build totals contributed by one signed amount."""
        if amount >= 0:
            return cls(pos=amount, net=amount)
        return cls(neg=-amount, net=amount)

    def __add__(self, other: "Totals") -> "Totals":
        """Add two totals field by field."""
        return Totals(
            pos=self.pos + other.pos,
            neg=self.neg + other.neg,
            net=self.net + other.net,
        )

    @property
    def magnitude(self) -> Decimal:
        """Return combined absolute credit and debit volume."""
        return abs(self.pos) + abs(self.neg)

    def is_zero(self) -> bool:
        """Return whether every component is within EPS of zero."""
        return abs(self.pos) <= EPS and abs(self.neg) <= EPS and abs(self.net) <= EPS


TotalsMap = dict[str, Totals]


@dataclass(frozen=True)
class TypeTotals:
    """Per-asset totals for every canonical kind plus an open "other" bucket."""

    realized: TotalsMap = field(default_factory=dict)
    funding: TotalsMap = field(default_factory=dict)
    commission: TotalsMap = field(default_factory=dict)
    insurance: TotalsMap = field(default_factory=dict)
    referral: TotalsMap = field(default_factory=dict)
    transfer: TotalsMap = field(default_factory=dict)
    gridbot: TotalsMap = field(default_factory=dict)
    coin_swap: TotalsMap = field(default_factory=dict)
    auto_exchange: TotalsMap = field(default_factory=dict)
    event_orders: TotalsMap = field(default_factory=dict)
    event_payouts: TotalsMap = field(default_factory=dict)
    other: dict[str, TotalsMap] = field(default_factory=dict)

    def assets(self) -> list[str]:
        """Return sorted assets present in any bucket."""
        found: set[str] = set()
        for field_info in fields(TypeTotals):
            if field_info.name == "other":
                continue
            found.update(getattr(self, field_info.name))
        for per_asset in self.other.values():
            found.update(per_asset)
        return sorted(found)


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Column positions of semantic fields; ``None`` means unresolved."""

    id: int | None = None
    uid: int | None = None
    asset: int | None = None
    type: int | None = None
    amount: int | None = None
    time: int | None = None
    symbol: int | None = None
    extra: int | None = None

    def merged(self, *fallbacks: "ColumnMapping") -> "ColumnMapping":
        """Fill unresolved fields from fallbacks, first match winning.

        A fallback position already held by a resolved field is skipped, so
        one column never feeds two fields.
        """
        taken = {getattr(self, f.name) for f in fields(ColumnMapping)} - {None}
        kwargs = {}
        for field_info in fields(ColumnMapping):
            value = getattr(self, field_info.name)
            for fallback in fallbacks:
                if value is not None:
                    break
                candidate = getattr(fallback, field_info.name)
                if candidate not in taken:
                    value = candidate
            kwargs[field_info.name] = value
        return ColumnMapping(**kwargs)

    def is_empty(self) -> bool:
        """Return whether no field is resolved."""
        return all(getattr(self, field_info.name) is None for field_info in fields(ColumnMapping))


FIXED_MAPPING = ColumnMapping(id=0, uid=1, asset=2, type=3, amount=4, time=5, symbol=6)
# Header and guessed layouts never name identifiers by position.
POSITIONAL_FALLBACK = ColumnMapping(asset=2, type=3, amount=4, time=5, symbol=6)


@dataclass(frozen=True, slots=True)
class Schema:
    """Detected layout of a pasted balance log."""

    delimiter: str
    has_header: bool
    mapping: ColumnMapping
    source: str


@dataclass(frozen=True)
class ParseResult:
    """Parsed rows with one diagnostic per rejected line."""

    rows: list[Row]
    diagnostics: list[str]
    schema: Schema | None = None


@dataclass(frozen=True)
class SymbolSummary:
    """Per-symbol totals for the trading-related kinds."""

    symbol: str
    realized: TotalsMap
    funding: TotalsMap
    commission: TotalsMap
    insurance: TotalsMap


class SwapKind(str, Enum):
    """Kinds of paired conversions reconstructed from ledger legs."""

    COIN_SWAP = "COIN_SWAP"
    AUTO_EXCHANGE = "AUTO_EXCHANGE"


@dataclass(frozen=True)
class SwapLine:
    """One reconstructed swap with its outgoing and incoming legs."""

    time: str
    ts: int
    outs: dict[str, Decimal]
    ins: dict[str, Decimal]
    text: str


@dataclass(frozen=True, slots=True)
class SymbolKpis:
    """Headline figures for a parsed balance log."""

    rows_parsed: int
    active_symbols: int
    top_winner: str | None
    top_loser: str | None


@dataclass(frozen=True, slots=True)
class AnchorTransfer:
    """Deposit or withdrawal applied to the baseline at the anchor instant."""

    amount: Decimal
    asset: str
