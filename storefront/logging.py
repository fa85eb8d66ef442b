"""
Logging setup for the storefront cart component.

Usage:
    from storefront.logging import get_logger
    logger = get_logger(__name__)

    logger.warning("Remote cart store unavailable, using device store")
"""

import logging
import os
import sys
from functools import cache
from typing import Mapping

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# Chatty transport loggers used by supabase / upstash clients
_NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest", "gotrue")


def _get_log_level() -> int:
    """Get log level from LOG_LEVEL or default to INFO."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _configure_root_logger() -> None:
    """Attach a stdout handler to the root logger unless one is already set."""
    root = logging.getLogger()
    if root.handlers:
        return

    level = _get_log_level()
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    # Vercel already timestamps every line
    is_production = os.environ.get("VERCEL") == "1"
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if is_production else LOG_FORMAT))
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_root_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    """Get a logger by name (typically __name__)."""
    return logging.getLogger(name)


def _escape_log_injection(value: str) -> str:
    """Escape characters that could forge log lines (CWE-117)."""
    return (
        value.replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )


def sanitize_id_for_logging(id_value: str | None) -> str:
    """
    Sanitize a user or product id for logging.

    Keeps the first 8 characters and escapes control characters, so raw
    identifiers never end up in log storage.

    Returns:
        Sanitized id or "N/A" if empty
    """
    if not id_value:
        return "N/A"
    safe_value = _escape_log_injection(str(id_value))
    return safe_value[:8]


def describe_cart_for_logging(items: Mapping[str, int] | None) -> str:
    """Short cart description for logs: line count and unit count, no ids."""
    if not items:
        return "empty"
    units = sum(q for q in items.values() if isinstance(q, int))
    return f"{len(items)} lines/{units} units"


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "get_logger",
    "sanitize_id_for_logging",
    "describe_cart_for_logging",
]
