"""Logging for the analyzer: silent as a library, configurable from the console.

Modules call ``get_logger(__name__)``. ``app.main`` calls ``configure_logging``
with the loaded settings; records then go to ``settings.log_file`` when one is
set and to stderr otherwise. The level comes from the explicit argument, then the
``BALANCE_LOG_ANALYZER_LOG_LEVEL`` environment variable, then
``settings.log_level``.
"""

import logging
import os
import sys
from pathlib import Path
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from balance_log_analyzer.config import Settings

PACKAGE_LOGGER_NAME = "balance_log_analyzer"
LEVEL_ENV_VAR_NAME = "BALANCE_LOG_ANALYZER_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_HANDLER_NAME = "balance_log_analyzer.output"


def level_from(value: int | str | None) -> int | None:
    """Convert a level name or number to an int, or ``None`` when unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = value.strip().upper()
    if text.isdigit():
        return int(text)
    named = logging.getLevelName(text)
    return named if isinstance(named, int) else None


def resolve_level(level: int | str | None = None, settings: "Settings | None" = None) -> int:
    """Return the first usable level of argument, environment and settings."""
    candidates = (
        level,
        os.getenv(LEVEL_ENV_VAR_NAME),
        settings.log_level if settings is not None else None,
    )
    for candidate in candidates:
        if (resolved := level_from(candidate)) is not None:
            return resolved
    return logging.WARNING


def _build_handler(settings: "Settings | None", stream: IO[str] | None) -> logging.Handler:
    log_file = settings.log_file if settings is not None else ""
    if stream is None and log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(path, encoding="utf-8")
    return logging.StreamHandler(stream if stream is not None else sys.stderr)


def configure_logging(
    level: int | str | None = None,
    *,
    settings: "Settings | None" = None,
    stream: IO[str] | None = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Handler:
    """Attach the package output handler once and return it.

    A second call returns the handler installed by the first one unchanged.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for existing in package_logger.handlers:
        if existing.get_name() == _HANDLER_NAME:
            return existing

    handler = _build_handler(settings, stream)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(fmt))
    for null_handler in [h for h in package_logger.handlers if isinstance(h, logging.NullHandler)]:
        package_logger.removeHandler(null_handler)
    package_logger.setLevel(resolve_level(level, settings))
    package_logger.addHandler(handler)
    package_logger.propagate = False
    return handler


def get_logger(name: str) -> logging.Logger:
    """Return a module logger, keeping the package silent until configured."""
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
