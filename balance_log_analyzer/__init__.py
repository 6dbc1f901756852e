"""Parse, classify and roll forward exchange balance logs."""

from balance_log_analyzer.config import Settings
from balance_log_analyzer.parser import parse_balance_log

__all__ = ["Settings", "parse_balance_log"]
