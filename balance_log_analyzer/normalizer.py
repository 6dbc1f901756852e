"""Map free-text exchange type labels onto canonical transaction kinds."""

import re
from dataclasses import dataclass

from balance_log_analyzer import taxonomy


@dataclass(frozen=True, slots=True)
class KeywordRule:
    """One keyword family and the canonical kind it maps to."""

    kind: str
    pattern: re.Pattern[str]
    unless: re.Pattern[str] | None = None

    def matches(self, text: str) -> bool:
        """Return whether text hits the pattern and not the exclusion."""
        if not self.pattern.search(text):
            return False
        return self.unless is None or not self.unless.search(text)


def _rule(kind: str, pattern: str, unless: str | None = None) -> KeywordRule:
    return KeywordRule(kind, re.compile(pattern), re.compile(unless) if unless else None)


# Order matters: funding must win over the generic fee family.
TYPE_RULES: tuple[KeywordRule, ...] = (
    _rule(taxonomy.REALIZED_PNL, r"^real|(?<![a-z])p&?l(?![a-z])|pnl|realiz"),
    _rule(taxonomy.FUNDING_FEE, r"fund"),
    _rule(taxonomy.COMMISSION, r"commission|fee", unless=r"fund"),
    _rule(taxonomy.REFERRAL_KICKBACK, r"referr|rebate|kickback|cashback"),
    _rule(taxonomy.INSURANCE_CLEAR, r"insurance|liq(?!uid)|liquidation"),
    _rule(taxonomy.AUTO_EXCHANGE, r"auto.?exchange|convert|conversion"),
    _rule(taxonomy.COIN_SWAP_DEPOSIT, r"coin.?swap.*deposit|swap.*in"),
    _rule(taxonomy.COIN_SWAP_WITHDRAW, r"coin.?swap.*withdraw|swap.*out"),
    _rule(taxonomy.GRIDBOT_TRANSFER, r"grid.*transfer"),
    _rule(taxonomy.TRANSFER, r"transfer"),
    _rule(taxonomy.EVENT_ORDER, r"event.*(order|stake|wager|bet)"),
    _rule(taxonomy.EVENT_PAYOUT, r"event.*(payout|settle|win|loss)"),
)

EXTRA_RULES: tuple[KeywordRule, ...] = (
    _rule(taxonomy.FUNDING_FEE, r"funding"),
    _rule(taxonomy.COMMISSION, r"commission|fee"),
    _rule(taxonomy.REFERRAL_KICKBACK, r"referr|rebate|kickback"),
    _rule(taxonomy.INSURANCE_CLEAR, r"insurance|liquidation"),
    _rule(taxonomy.AUTO_EXCHANGE, r"convert|auto.?exchange"),
    _rule(taxonomy.TRANSFER, r"transfer"),
)

_TYPE_WORD_RE = re.compile(
    r"p&?l|pnl|realiz|funding|commission|fee|rebate|referr|insurance|liquid"
    r"|event|payout|order|convert|swap|transfer|grid|kickback"
)


def looks_like_type_word(text: str) -> bool:
    """Return whether a cell contains any transaction-type keyword."""
    return bool(_TYPE_WORD_RE.search(text.lower()))


class TypeNormalizer:
    """Ordered keyword cascade with a contextual fallback on the extra column."""

    def __init__(
        self,
        type_rules: tuple[KeywordRule, ...] = TYPE_RULES,
        extra_rules: tuple[KeywordRule, ...] = EXTRA_RULES,
        known_types: frozenset[str] = taxonomy.KNOWN_TYPES,
    ) -> None:
        self.type_rules = type_rules
        self.extra_rules = extra_rules
        self.known_types = known_types

    def normalize(self, raw_type: str, extra: str = "") -> str:
        """Return the canonical kind for a raw label, or the label unchanged."""
        label = raw_type.strip()
        if label.upper() in self.known_types:
            return label.upper()
        text = label.lower()
        for rule in self.type_rules:
            if text and rule.matches(text):
                return rule.kind
        if not text:
            context = extra.lower()
            for rule in self.extra_rules:
                if rule.matches(context):
                    return rule.kind
        return raw_type


DEFAULT_NORMALIZER = TypeNormalizer()
