"""
logging_config.py — Loguru setup for the Smartify API and scripts

Every log line, whether it comes from loguru directly or from a stdlib
logger (our services use logging.getLogger("smartify.*"), plus uvicorn and
sqlalchemy), ends up in one Loguru sink on stdout.

Business Rules:
- APP_ENV=production: JSON lines, and customer email addresses are masked
  (j***@gmail.com) before they reach the sink
- Otherwise: colored human-readable lines, emails left intact for debugging
- Every record carries extra["request_id"] ("-" outside a request); the
  request-id middleware fills it via logger.contextualize()
- LOG_LEVEL sets the minimum level (default INFO)

Called by: smartify/main.py (import time), scripts/*.py
Depends on: LOG_LEVEL, APP_ENV environment variables
"""

import logging
import os
import re
import sys

from loguru import logger

_EMAIL_RE = re.compile(r"([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})")

_DEV_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "req={extra[request_id]} | {message}"
)

# third-party loggers that are only useful when something is already wrong
_QUIET = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")


def mask_emails(text: str) -> str:
    return _EMAIL_RE.sub(r"\1***@\2", text)


def _mask_record(record) -> bool:
    record["message"] = mask_emails(record["message"])
    return True


def setup_logging() -> None:
    """Replace every Loguru sink and route stdlib logging into Loguru. Idempotent."""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    production = os.getenv("APP_ENV", "development").lower() == "production"

    logger.remove()
    logger.configure(extra={"request_id": "-"})
    if production:
        # masking rides on the sink so logger.remove() takes it away too
        logger.add(sys.stdout, level=level, format="{message}", serialize=True, filter=_mask_record)
    else:
        logger.add(sys.stdout, level=level, format=_DEV_FORMAT, colorize=True)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging configured (level={}, production={})", level, production)


class _InterceptHandler(logging.Handler):
    """Forward stdlib records to Loguru, keeping the original call site."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())
