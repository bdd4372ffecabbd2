"""
Logging for GigPay.

The root logger gets one stdout handler the first time this module is
imported. Modules ask for their logger by name:

    from gigpay.logging import get_logger
    logger = get_logger(__name__)

Order and buyer ids come from callers, so they pass through
``sanitize_id_for_logging`` before they reach a log line.
"""

import logging
import os
import sys
from functools import cache
from typing import TextIO

# Local runs get timestamps; Vercel and Netlify stamp each line themselves
DETAILED_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
PLATFORM_FORMAT = "%(levelname)s [%(name)s] %(message)s"

# Client libraries that log every request line at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest")

TRUNCATION_MARKER = "..."


def running_on_platform() -> bool:
    """True on Vercel or Netlify."""
    return os.environ.get("VERCEL") == "1" or bool(os.environ.get("NETLIFY"))


def level_from_env(default: int = logging.INFO) -> int:
    name = os.environ.get("LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def configure_logging(
    stream: TextIO | None = None,
    level: int | None = None,
    root: logging.Logger | None = None,
) -> bool:
    """
    Attach the GigPay handler to the root logger (or the given one).

    Leaves a logger that already has handlers untouched, so a host
    (pytest, uvicorn --log-config) keeps its own setup.

    Returns:
        True if a handler was installed
    """
    root = root or logging.getLogger()
    if root.handlers:
        return False

    resolved_level = level if level is not None else level_from_env()
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        logging.Formatter(PLATFORM_FORMAT if running_on_platform() else DETAILED_FORMAT)
    )
    root.addHandler(handler)
    root.setLevel(resolved_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))
    return True


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# Control characters that would let a value start a forged log entry (CWE-117)
_LOG_ESCAPES = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})


def _clip(value: object, max_length: int) -> str:
    text = str(value).translate(_LOG_ESCAPES)
    if len(text) > max_length:
        return text[:max_length] + TRUNCATION_MARKER
    return text


def sanitize_id_for_logging(id_value: str | None, max_length: int = 32) -> str:
    """
    Make a caller-supplied id safe to log.

    Args:
        id_value: Order id, buyer id or product id; may be None
        max_length: Characters kept before truncation

    Returns:
        The escaped id, or "N/A" when empty
    """
    if not id_value:
        return "N/A"
    return _clip(id_value, max_length)


def sanitize_payload_for_logging(payload: object, max_length: int = 500) -> str:
    """Render a raw gateway payload for operator logs, control characters escaped."""
    if payload is None:
        return "N/A"
    return _clip(payload, max_length)


__all__ = [
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_payload_for_logging",
]
