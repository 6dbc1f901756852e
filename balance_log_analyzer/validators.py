"""Input validators used by console prompts."""

from collections.abc import Callable
from pathlib import Path

from balance_log_analyzer.amounts import parse_amount
from balance_log_analyzer.story import BaselineError, parse_baseline
from balance_log_analyzer.timeutils import normalize_time_string, parse_utc_ms

PromptValidator = Callable[[str], bool | str]


def validate_time(raw: str) -> bool | str:
    """Validate a required ``YYYY-MM-DD HH:MM:SS`` UTC time."""
    if not (text := raw.strip()):
        return "Time is required."
    if parse_utc_ms(normalize_time_string(text)) is None:
        return "Time must look like YYYY-MM-DD HH:MM:SS (UTC+0)."
    return True


def validate_optional_time(raw: str) -> bool | str:
    """Validate an optional UTC time; blank means open-ended."""
    return True if not raw.strip() else validate_time(raw)


def validate_amount(raw: str) -> bool | str:
    """Validate an optional numeric amount input."""
    if not raw.strip():
        return True
    if parse_amount(raw) is None:
        return "Amount must be a number."
    return True


def validate_asset(raw: str) -> bool | str:
    """Validate non-empty asset ticker input."""
    if not (text := raw.strip()):
        return "Asset is required."
    if not text.isalnum():
        return "Asset must be letters and digits only."
    return True


def validate_baseline(raw: str) -> bool | str:
    """Validate baseline balances, one ``ASSET amount`` per line."""
    try:
        parse_baseline(raw)
    except BaselineError as error:
        return str(error)
    return True


def validate_input_file(raw: str) -> bool | str:
    """Validate non-empty path to an existing text file."""
    if not (text := raw.strip()):
        return "This field is required."
    if not Path(text).expanduser().resolve().is_file():
        return "Path must be a file."
    return True
