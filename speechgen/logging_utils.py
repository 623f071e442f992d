from __future__ import annotations

import logging
import os
from typing import Optional

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_TRUTHY = ("1", "true", "yes", "y", "on")

# Third-party loggers that drown the pipeline trace at DEBUG.
_NOISY_LOGGERS = ("aiohttp", "asyncio")


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the speechgen CLI.

    LOG_LEVEL (default INFO) sets the root level unless *level* is given.
    SPEECHGEN_DEBUG=1 raises only the speechgen loggers to DEBUG, so the
    per-call state trace shows without the HTTP stack's chatter.
    """
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper().strip()
    root_level = getattr(logging, name, logging.INFO)
    logging.basicConfig(level=root_level, format=_LOG_FORMAT)

    if os.getenv("SPEECHGEN_DEBUG", "0").strip().lower() in _TRUTHY:
        logging.getLogger("speechgen").setLevel(logging.DEBUG)
        if root_level < logging.WARNING:
            for noisy in _NOISY_LOGGERS:
                logging.getLogger(noisy).setLevel(logging.WARNING)
