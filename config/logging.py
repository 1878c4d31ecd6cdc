"""
Logging setup for the API process.

Modules log through `logging.getLogger(__name__)`; this installs one stream
handler on the root logger and quiets chatty HTTP client loggers.
"""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    logging.basicConfig(format=_FORMAT, stream=sys.stdout, level=log_level, force=True)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
