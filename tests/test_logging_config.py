"""
test_logging_config.py — Tests for smartify/logging_config.py

Verifies Loguru setup and stdlib logging interception, JSON output with
email masking in production, and request context binding.

Called by: pytest
Depends on: smartify/logging_config.py
"""

import json
import logging
import os
from io import StringIO
from unittest.mock import patch

import pytest
from loguru import logger

from smartify.logging_config import setup_logging


@pytest.fixture(autouse=True)
def _clean_loguru():
    """Remove all handlers before/after each test for isolation."""
    logger.remove()
    yield
    logger.remove()


def test_setup_logging_adds_handler():
    assert len(logger._core.handlers) == 0
    setup_logging()
    assert len(logger._core.handlers) > 0


def test_stdlib_logging_intercepted():
    """Service loggers (stdlib getLogger) end up in Loguru."""
    setup_logging()
    messages = []
    logger.add(lambda m: messages.append(str(m)), format="{message}")

    logging.getLogger("smartify.applications").warning("intercepted message")

    assert any("intercepted message" in m for m in messages)


def test_log_level_from_env():
    with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}):
        setup_logging()

    messages = []
    logger.add(lambda m: messages.append(str(m)), level="WARNING", format="{message}")
    logger.debug("should be filtered")
    logger.warning("should appear")

    assert any("should appear" in m for m in messages)
    assert not any("should be filtered" in m for m in messages)


def test_production_writes_json():
    buf = StringIO()
    with patch.dict(os.environ, {"APP_ENV": "production"}), patch("sys.stdout", buf):
        setup_logging()
        logger.info("json line")

    lines = [json.loads(line) for line in buf.getvalue().splitlines() if line.strip()]
    assert any(rec["record"]["message"] == "json line" for rec in lines)


def test_context_binding():
    """logger.contextualize() adds the request id to log records."""
    records = []
    logger.add(lambda m: records.append(m.record), format="{message}")

    with logger.contextualize(request_id="abc123"):
        logger.info("request log")

    assert records[0]["extra"]["request_id"] == "abc123"


def test_mask_emails():
    from smartify.logging_config import mask_emails

    assert mask_emails("OTP sent to juan.cruz@gmail.com") == "OTP sent to j***@gmail.com"
    assert mask_emails("no address here") == "no address here"


def test_production_masks_emails():
    buf = StringIO()
    with patch.dict(os.environ, {"APP_ENV": "production"}), patch("sys.stdout", buf):
        setup_logging()
        logging.getLogger("smartify.otp").info("OTP sent to maria@gmail.com")

    out = buf.getvalue()
    assert "m***@gmail.com" in out
    assert "maria@gmail.com" not in out


def test_development_keeps_emails():
    with patch.dict(os.environ, {"APP_ENV": "development"}):
        setup_logging()
    messages = []
    logger.add(lambda m: messages.append(str(m)), format="{message}")
    logger.info("OTP sent to maria@gmail.com")
    assert any("maria@gmail.com" in m for m in messages)


def test_masking_dropped_when_switching_back_to_development():
    with patch.dict(os.environ, {"APP_ENV": "production"}), patch("sys.stdout", StringIO()):
        setup_logging()
    with patch.dict(os.environ, {"APP_ENV": "development"}):
        setup_logging()
    messages = []
    logger.add(lambda m: messages.append(str(m)), format="{message}")
    logger.info("OTP sent to maria@gmail.com")
    assert any("maria@gmail.com" in m for m in messages)
