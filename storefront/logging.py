"""
Logging setup for the storefront client.

Usage:
    from storefront.logging import get_logger, mask_session_id
    logger = get_logger(__name__)

    logger.info(f"Cart loaded for {mask_session_id(session_id)}")

Session tokens and bearer credentials grant access to a cart or an operator
account, so they only ever reach the log masked.
"""

import logging
import os
import sys
from functools import cache
from typing import Optional

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
COMPACT_FORMAT = "%(levelname)s - %(name)s - %(message)s"

# Every cart/product call goes through httpx; its per-request lines are noise
QUIET_LOGGERS = ("httpx", "httpcore")

MASK = "***"


def _level_from(name: Optional[str]) -> int:
    level = getattr(logging, (name or "INFO").upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[str] = None, production: Optional[bool] = None) -> bool:
    """
    Attach a stdout handler to the root logger.

    Does nothing when the root logger already has handlers (the host
    application or the test runner configured logging first).

    Args:
        level: Level name, defaults to LOG_LEVEL (INFO when unset or unknown)
        production: Compact format without timestamps, defaults to
            STOREFRONT_ENV == "production"

    Returns:
        True when a handler was attached
    """
    root = logging.getLogger()
    if root.handlers:
        return False

    if production is None:
        production = os.environ.get("STOREFRONT_ENV") == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(COMPACT_FORMAT if production else DETAILED_FORMAT))
    root.setLevel(_level_from(level or os.environ.get("LOG_LEVEL")))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return True


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for a module (pass __name__)."""
    return logging.getLogger(name)


def _escape_log_injection(value: str) -> str:
    """Neutralize line breaks and NULs so one value cannot forge log lines (CWE-117)."""
    return (
        value.replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )


def mask_session_id(session_id: Optional[str]) -> str:
    """
    Loggable form of a session token.

    "session_1718000000000_k3j9x2m1q0abc" -> "session_1718000000000_k3j9..."

    The creation timestamp stays readable for correlating log lines; only
    four characters of the random part are kept. Values that do not look
    like a session token are masked like credentials.
    """
    if not session_id:
        return "N/A"
    text = _escape_log_injection(str(session_id))
    prefix, sep, suffix = text.rpartition("_")
    if not sep or not prefix:
        return mask_credential(text)
    if len(suffix) <= 4:
        return f"{prefix}_{MASK}"
    return f"{prefix}_{suffix[:4]}..."


def mask_credential(value: Optional[str], keep: int = 6) -> str:
    """
    Loggable form of a bearer token: the first `keep` characters only.

    A value no longer than `keep` is replaced entirely.
    """
    if not value:
        return "N/A"
    text = _escape_log_injection(str(value))
    if len(text) <= keep:
        return MASK
    return f"{text[:keep]}..."


__all__ = [
    "COMPACT_FORMAT",
    "DETAILED_FORMAT",
    "configure_logging",
    "get_logger",
    "mask_credential",
    "mask_session_id",
]
