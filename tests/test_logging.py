"""Tests for logging setup and log sanitizers"""
import io
import logging

import pytest

from gigpay.logging import (
    QUIET_LOGGERS,
    configure_logging,
    level_from_env,
    sanitize_id_for_logging,
    sanitize_payload_for_logging,
)


@pytest.fixture
def target_logger(monkeypatch):
    """A handler-less logger that does not propagate; quiet logger levels restored afterwards."""
    logger = logging.getLogger("gigpay.tests.configured")
    logger.propagate = False
    monkeypatch.setattr(logger, "handlers", [])
    for name in QUIET_LOGGERS:
        quiet = logging.getLogger(name)
        monkeypatch.setattr(quiet, "level", quiet.level)
    return logger


def test_configure_installs_one_handler(target_logger, monkeypatch):
    monkeypatch.delenv("VERCEL", raising=False)
    monkeypatch.delenv("NETLIFY", raising=False)
    stream = io.StringIO()

    assert configure_logging(stream=stream, level=logging.INFO, root=target_logger) is True
    assert configure_logging(stream=stream, level=logging.INFO, root=target_logger) is False

    assert len(target_logger.handlers) == 1
    target_logger.info("order created")
    assert "[gigpay.tests.configured] order created" in stream.getvalue()
    assert logging.getLogger("httpx").level == logging.WARNING


def test_platform_format_has_no_timestamp(target_logger, monkeypatch):
    monkeypatch.setenv("VERCEL", "1")
    stream = io.StringIO()

    configure_logging(stream=stream, level=logging.INFO, root=target_logger)
    target_logger.warning("slow gateway")

    assert stream.getvalue() == "WARNING [gigpay.tests.configured] slow gateway\n"


def test_configure_leaves_existing_handlers():
    logger = logging.getLogger("gigpay.tests.hosted")
    existing = logging.NullHandler()
    logger.handlers = [existing]

    assert configure_logging(root=logger) is False
    assert logger.handlers == [existing]


@pytest.mark.parametrize("value,expected", [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("LOUD", logging.INFO)])
def test_level_from_env(monkeypatch, value, expected):
    monkeypatch.setenv("LOG_LEVEL", value)
    assert level_from_env() == expected


def test_sanitize_id_escapes_and_truncates():
    assert sanitize_id_for_logging(None) == "N/A"
    assert sanitize_id_for_logging("order_1\nINFO forged") == "order_1\\nINFO forged"
    assert sanitize_id_for_logging("x" * 40) == "x" * 32 + "..."


def test_sanitize_payload():
    assert sanitize_payload_for_logging(None) == "N/A"
    assert sanitize_payload_for_logging("bad\r\x00") == "bad\\r"
    assert sanitize_payload_for_logging("y" * 600).endswith("...")
