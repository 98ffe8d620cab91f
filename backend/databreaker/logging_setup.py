"""
Logging setup - one stdout handler on the root logger.

Orchestration passes attach ``connector``, ``status`` and ``duration_ms``
through ``extra``. Records logged without them print "-" in those slots.
"""

import logging
import sys

from databreaker.config import get_settings

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "connector=%(connector)s status=%(status)s duration_ms=%(duration_ms)s"
)
PASS_FIELDS = ("connector", "status", "duration_ms")

_INITIALIZED = False


class SafeExtraFormatter(logging.Formatter):
    """Fills in pass fields a log call did not supply."""

    def format(self, record: logging.LogRecord) -> str:
        for key in PASS_FIELDS:
            if not hasattr(record, key):
                setattr(record, key, "-")
        return super().format(record)


def resolve_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def init_logging(level: str | None = None) -> None:
    """Configure the root logger. Only the first call in a process has any effect."""
    global _INITIALIZED
    if _INITIALIZED:
        return

    log_level = resolve_level(level or get_settings().log_level)
    root = logging.getLogger()
    root.setLevel(log_level)

    # Leave handlers installed by uvicorn or pytest alone
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(SafeExtraFormatter(LOG_FORMAT))
        root.addHandler(handler)

    _INITIALIZED = True
