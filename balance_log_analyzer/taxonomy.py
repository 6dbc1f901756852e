"""Canonical transaction kinds, asset tickers and display names."""

import re
from types import MappingProxyType

REALIZED_PNL = "REALIZED_PNL"
FUNDING_FEE = "FUNDING_FEE"
COMMISSION = "COMMISSION"
INSURANCE_CLEAR = "INSURANCE_CLEAR"
LIQUIDATION_FEE = "LIQUIDATION_FEE"
REFERRAL_KICKBACK = "REFERRAL_KICKBACK"
TRANSFER = "TRANSFER"
GRIDBOT_TRANSFER = "STRATEGY_UMFUTURES_TRANSFER"
COIN_SWAP_DEPOSIT = "COIN_SWAP_DEPOSIT"
COIN_SWAP_WITHDRAW = "COIN_SWAP_WITHDRAW"
AUTO_EXCHANGE = "AUTO_EXCHANGE"
EVENT_ORDER = "EVENT_CONTRACTS_ORDER"
EVENT_PAYOUT = "EVENT_CONTRACTS_PAYOUT"

EVENT_PREFIX = "EVENT_CONTRACTS_"

KNOWN_TYPES = frozenset(
    {
        REALIZED_PNL,
        FUNDING_FEE,
        COMMISSION,
        INSURANCE_CLEAR,
        LIQUIDATION_FEE,
        REFERRAL_KICKBACK,
        TRANSFER,
        GRIDBOT_TRANSFER,
        COIN_SWAP_DEPOSIT,
        COIN_SWAP_WITHDRAW,
        AUTO_EXCHANGE,
        EVENT_ORDER,
        EVENT_PAYOUT,
    }
)

KNOWN_ASSETS = ("BTC", "LDUSDT", "BFUSD", "FDUSD", "BNB", "ETH", "USDT", "USDC", "BNFCR")
QUOTE_ASSETS = ("USDT", "USDC", "USD", "BTC", "ETH", "BNB", "BNFCR")

DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2} \d{1,2}:\d{2}:\d{2})")
SYMBOL_RE = re.compile(rf"^[A-Z0-9]{{2,}}({'|'.join(QUOTE_ASSETS)})$")

FRIENDLY_TYPE_NAMES = MappingProxyType(
    {
        "CASH_COUPON": "Cash Coupon",
        "WELCOME_BONUS": "Welcome Bonus",
        "BFUSD_REWARD": "BFUSD Reward",
        GRIDBOT_TRANSFER: "Futures GridBot Transfer",
    }
)


def is_event_type(type_: str) -> bool:
    """Return whether a row type belongs to the event-contract product."""
    return type_.startswith(EVENT_PREFIX)
