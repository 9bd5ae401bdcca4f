"""
Logging configuration.

Modules log through `logging.getLogger(__name__)`; the app and the scripts
call `setup_logging()` once at startup. The level comes from `LOG_LEVEL` or
`log_level` in config.yaml.
"""

import logging
from typing import Optional

from .llm import get_config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Third-party clients that are chatty at INFO.
QUIET_LOGGERS = ["httpx", "httpcore", "anthropic"]


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure the root logger with a single stream handler."""
    level_name = (level or get_config().log_level or "INFO").upper()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    root_logger.handlers = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
