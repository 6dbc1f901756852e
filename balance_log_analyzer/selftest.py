"""Built-in parser self-test over a fixed eleven-line balance log."""

from dataclasses import dataclass, field

from balance_log_analyzer import taxonomy
from balance_log_analyzer.aggregation import group_swaps
from balance_log_analyzer.config import Settings
from balance_log_analyzer.models import ParseResult, SwapKind
from balance_log_analyzer.parser import parse_balance_log

SELF_TEST_TEXT = "\n".join(
    [
        "9001\t1001\tUSDT\tCOIN_SWAP_WITHDRAW\t-10\t2025-03-01 8:15:00\t\t7701@coinswap",
        "9002\t1001\tBNB\tCOIN_SWAP_DEPOSIT\t0.01511633\t2025-03-01 8:15:00\t\t7701@coinswap",
        "9003\t1001\tUSDT\tAUTO_EXCHANGE\t-9\t2025-03-02 10:00:00\t\t8802@autoexchange",
        "9004\t1001\tUSDC\tAUTO_EXCHANGE\t8.97164406\t2025-03-02 10:00:00\t\t8802@autoexchange",
        "9005\t1001\tUSDT\tREALIZED_PNL\t-1.03766\t2025-03-03 12:30:45\tAPI3USDT\t",
        "9006\t1001\tUSDT\tCOMMISSION\t-0.01181965\t2025-03-03 12:30:45\tETHUSDT\t",
        "9007\t1001\tUSDT\tREFERRAL_KICKBACK\t0.005\t2025-03-03 12:30:45\t\t",
        "9008\t1001\tUSDT\tFUNDING_FEE\t0.0033099\t2025-03-03 16:00:00\tETHUSDT\t",
        "9009\t1001\tUSDT\tTRANSFER\t300.0074505\t2025-03-04 9:05:10\t\t",
        "9010\t1001\tUSDT\tEVENT_CONTRACTS_ORDER\t-50\t2025-03-05 18:00:00\t\t",
        "9011\t1001\tUSDT\tEVENT_CONTRACTS_PAYOUT\t70\t2025-03-06 18:00:00\t\t",
    ]
)
SELF_TEST_LINE_COUNT = 11


@dataclass(frozen=True)
class SelfTestReport:
    """Outcome of the self-test with one entry per named check."""

    result: ParseResult
    checks: list[tuple[str, bool]] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """Return whether every check passed."""
        return all(ok for _, ok in self.checks)

    def lines(self) -> list[str]:
        """Render one ``PASS``/``FAIL`` line per check."""
        return [f"{'PASS' if ok else 'FAIL'}  {name}" for name, ok in self.checks]


def run_self_test(settings: Settings | None = None) -> SelfTestReport:
    """Parse the fixture and verify rows, swap pairing and classification."""
    result = parse_balance_log(SELF_TEST_TEXT, settings)
    coin_swaps = group_swaps(result.rows, SwapKind.COIN_SWAP)
    auto_exchanges = group_swaps(result.rows, SwapKind.AUTO_EXCHANGE)
    types = {row.type for row in result.rows}
    checks = [
        ("all 11 lines parsed", len(result.rows) == SELF_TEST_LINE_COUNT),
        ("no diagnostics", not result.diagnostics),
        ("known export layout detected", getattr(result.schema, "source", None) == "forced"),
        ("2 swap groups", len(coin_swaps) + len(auto_exchanges) == 2),
        (
            "coin swap pairs USDT out with BNB in",
            bool(coin_swaps)
            and "Out: -10 USDT" in coin_swaps[0].text
            and "In: +0.01511633 BNB" in coin_swaps[0].text,
        ),
        ("referral kickback classified", taxonomy.REFERRAL_KICKBACK in types),
        ("event contracts kept", {taxonomy.EVENT_ORDER, taxonomy.EVENT_PAYOUT} <= types),
    ]
    return SelfTestReport(result=result, checks=checks)
