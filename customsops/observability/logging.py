"""
Process-wide logging setup.

Upstream calls are made against URLs that carry their key in the query string
(``code=`` for the Function App, ``sig=`` for Logic App triggers). The root
handler redacts those values, and the HTTP client libraries are held at
WARNING so their per-request INFO lines never print full URLs.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Final

_HANDLER_ATTACHED: bool = False
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_KEY_PARAM = re.compile(r"([?&](?:code|sig)=)[^&\s\"']+")
_REDACTED: Final[str] = "***"

QUIET_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "urllib3")


class RedactKeysFilter(logging.Filter):
    """Replace upstream key values in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _KEY_PARAM.sub(rf"\g<1>{_REDACTED}", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _resolve_level() -> int:
    level_name = os.getenv("CUSTOMSOPS_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, level_name, logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; the first call configures the root handler."""
    global _HANDLER_ATTACHED

    level = _resolve_level()
    root = logging.getLogger()

    if not _HANDLER_ATTACHED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handler.addFilter(RedactKeysFilter())
        root.addHandler(handler)
        for noisy in QUIET_LOGGERS:
            logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
        _HANDLER_ATTACHED = True

    root.setLevel(level)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
