"""
Logging setup for the storefront cart.

One stdout handler on the root logger, level from LOG_LEVEL.
Modules do:

    from storefront.logging import get_logger
    logger = get_logger(__name__)
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _setup() -> None:
    root = logging.getLogger()
    if root.handlers:
        # Host application already configured logging
        return

    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.setLevel(level)
    root.addHandler(handler)

    # httpx logs every cart request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


_setup()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: str | None) -> str:
    """
    Shorten a user id or product ref for log lines.

    Control characters are escaped so a crafted ref cannot forge entries
    (CWE-117); at most 8 characters are kept.
    """
    if not id_value:
        return "N/A"
    safe = str(id_value).replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t").replace("\x00", "")
    return safe[:8]
