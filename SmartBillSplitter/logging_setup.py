"""Centralized logging configuration for the smart bill splitter.

- ``configure_logging(...)``: attach a single ``StreamHandler`` to the package
  root logger. Called once by entrypoints (the API and the dashboard).
- ``get_logger(name)``: acquire a child logger of the package root logger,
  attaching a ``NullHandler`` when nothing has been configured yet.

Library modules never attach their own handlers.
"""

import logging
import os
import sys
from typing import IO, Optional, Union

from config.settings import LOG_LEVEL_ENV

PKG_LOGGER_NAME = "smart_bill_splitter"
_CONFIGURED = False


def _level_from_name(value: str) -> Optional[int]:
    value = value.strip().upper()
    if value.isdigit():
        return int(value)
    numeric = getattr(logging, value, None)
    return numeric if isinstance(numeric, int) else None


def _parse_level(level: Union[int, str, None]) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        parsed = _level_from_name(level)
        if parsed is not None:
            return parsed
    env_val = os.getenv(LOG_LEVEL_ENV)
    if env_val:
        parsed = _level_from_name(env_val)
        if parsed is not None:
            return parsed
    return logging.INFO


def configure_logging(
    level: Union[int, str, None] = None,
    *,
    fmt: Optional[str] = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """
    Configure the package root logger exactly once.

    Args:
        level: Logging level as int or level name. Defaults to the
            SMART_BILL_SPLITTER_LOG_LEVEL environment variable, then INFO.
        fmt: Optional format string.
        stream: Output stream for the handler (stderr by default).
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(PKG_LOGGER_NAME)

    # Drop NullHandlers so records are not swallowed after configuration
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setLevel(_parse_level(level))
    handler.setFormatter(logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s"))

    logger.setLevel(_parse_level(level))
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return ``smart_bill_splitter.<name>``, silent until configured."""
    pkg_logger = logging.getLogger(PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(f"{PKG_LOGGER_NAME}.{name}")
