"""
Logging setup for the e-bike CRM.

Everything logs under the 'ebikecrm' logger. Engine and db modules use
logging.getLogger(__name__), so their records propagate up to it and land
in the same file as the CLI trace lines.

    file      logs/ebikecrm.log, rotated at 5 MB, 3 backups kept
    level     LOG_LEVEL env var, INFO when unset or unknown

Customers hand over phone numbers and CPFs at the counter, and both travel
through command arguments and driver error messages. Any run of 8 or more
digits is masked down to its last 4 before a line reaches the file:

    2026-10-19 14:32:01 | DEBUG    | CALL sales_add | args=(phone='*******4321')
    2026-10-19 14:32:01 | INFO     | OK   sales_add | 42ms
    2026-10-19 14:32:01 | ERROR    | FAIL contacts_add | GatewayError: connection refused | 3ms
"""

import functools
import logging
import logging.handlers
import os
import re
import time
from pathlib import Path

_LOG_DIR = Path(__file__).parent.parent / "logs"
_LOG_FILE = _LOG_DIR / "ebikecrm.log"
_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_ROTATE_AT = 5 * 1024 * 1024
_KEEP = 3

_LONG_DIGITS_RE = re.compile(r"\d{8,}")


def mask_digits(text: str) -> str:
    """Replace all but the last 4 digits of long digit runs with '*'."""
    return _LONG_DIGITS_RE.sub(lambda m: "*" * (len(m.group()) - 4) + m.group()[-4:], text)


class _RedactingFormatter(logging.Formatter):
    """Formatter that masks long digit runs in the finished line, traceback included."""

    def format(self, record: logging.LogRecord) -> str:
        return mask_digits(super().format(record))


def _resolve_level() -> int:
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> logging.Logger:
    """
    Attach the rotating file handler to the 'ebikecrm' logger and return it.

    Called from the CLI group on every invocation; a logger that already has
    a handler is returned untouched.
    """
    logger = logging.getLogger("ebikecrm")
    if logger.handlers:
        return logger

    _LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger.setLevel(_resolve_level())

    handler = logging.handlers.RotatingFileHandler(
        _LOG_FILE, maxBytes=_ROTATE_AT, backupCount=_KEEP, encoding="utf-8"
    )
    handler.setFormatter(_RedactingFormatter(_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)
    return logger


def _describe_args(args, kwargs) -> str:
    parts = [repr(a) for a in args] + [f"{k}={v!r}" for k, v in kwargs.items()]
    return mask_digits(", ".join(parts)) if parts else "-"


def log_call(func):
    """
    Trace a CLI command in the log file.

    CALL at DEBUG with the (masked) arguments, OK at INFO with the elapsed
    milliseconds, FAIL at ERROR before the exception is re-raised.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger("ebikecrm")
        name = func.__name__
        logger.debug(f"CALL {name} | args=({_describe_args(args, kwargs)})")

        started = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            elapsed = int((time.perf_counter() - started) * 1000)
            logger.error(mask_digits(f"FAIL {name} | {type(exc).__name__}: {exc} | {elapsed}ms"))
            raise
        elapsed = int((time.perf_counter() - started) * 1000)
        logger.info(f"OK   {name} | {elapsed}ms")
        return result

    return wrapper
