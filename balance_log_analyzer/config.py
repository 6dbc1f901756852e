"""Analyzer settings with optional YAML overrides."""

import os
from dataclasses import dataclass, fields, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from balance_log_analyzer.logging_setup import level_from


@dataclass(frozen=True, slots=True)
class Settings:
    """Tunable thresholds for parsing and story rendering."""

    min_columns: int = 5
    delimiter_sample_size: int = 40
    schema_sample_size: int = 300
    excerpt_length: int = 160
    dust_threshold: Decimal = Decimal("0.00000004")
    dust_assets: tuple[str, ...] = ("BFUSD", "BNFCR", "LDUSDT")
    include_events: bool = True
    include_gridbot: bool = True
    exclusive_start: bool = False
    log_level: str = "WARNING"
    log_file: str = ""

    _path_env_var_name = "BALANCE_LOG_ANALYZER_CONFIG"

    @classmethod
    def config_path(cls) -> Path:
        """Return path of the settings file used when none is given."""
        if path := os.environ.get(cls._path_env_var_name):
            return Path(path).expanduser()
        return Path.home() / ".config" / "balance-log-analyzer" / "config.yaml"

    @classmethod
    def load(cls, path: Path | str | None = None) -> "Settings":
        """Load settings from YAML, falling back to defaults when no file exists."""
        config_path = Path(path).expanduser() if path is not None else cls.config_path()
        if path is None and not config_path.is_file():
            return cls()
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {config_path} must contain a mapping.")
        return cls().updated(**data)

    def updated(self, **overrides: Any) -> "Settings":
        """Return a copy with validated field overrides applied."""
        known = {field_info.name: field_info for field_info in fields(Settings)}
        if unknown := sorted(set(overrides) - set(known)):
            raise ValueError(f"Unknown settings: {', '.join(unknown)}.")
        return replace(self, **{key: _coerce(key, value) for key, value in overrides.items()})


def _coerce(key: str, value: Any) -> Any:
    """Convert one raw YAML value to the type of the named setting."""
    if key == "dust_threshold":
        try:
            threshold = Decimal(str(value))
        except InvalidOperation as error:
            raise ValueError(f"Setting {key} must be a number.") from error
        if not threshold.is_finite() or threshold < 0:
            raise ValueError(f"Setting {key} must be a non-negative number.")
        return threshold
    if key == "dust_assets":
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"Setting {key} must be a list of asset tickers.")
        return tuple(str(asset).strip().upper() for asset in value)
    if key == "log_level":
        if level_from(value) is None:
            raise ValueError(f"Setting {key} must be a logging level name or number.")
        return str(value).strip().upper()
    if key == "log_file":
        if not isinstance(value, str):
            raise ValueError(f"Setting {key} must be a path.")
        return value.strip()
    if key in {"include_events", "include_gridbot", "exclusive_start"}:
        if not isinstance(value, bool):
            raise ValueError(f"Setting {key} must be true or false.")
        return value
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Setting {key} must be a positive integer.")
    return value
