# booking_engine/utils/my_logging.py
"""Logging configuration"""
import logging
import sys
from typing import Optional

from booking_engine.config.settings import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"

# Chatty third-party loggers, raised to ERROR outside verbose mode
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "alembic",
    "celery",
    "kombu",
    "uvicorn.access",
)


class RequestContextFilter(logging.Filter):
    """
    Fill in the request fields the format expects.

    Request middleware passes correlation_id and actor_id through ``extra``;
    records from workers and third-party code get a placeholder instead.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        if not hasattr(record, "actor_id"):
            record.actor_id = "-"
        return True


def setup_logging(verbose: bool = True, level: Optional[str] = None) -> None:
    """Configure application logging. Safe to call more than once."""
    settings = get_settings()

    if verbose:
        log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    else:
        log_level = logging.WARNING

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    logging.basicConfig(level=log_level, handlers=[handler], force=True)

    if not verbose:
        for name in NOISY_LOGGERS:
            logger = logging.getLogger(name)
            logger.setLevel(logging.ERROR)
            logger.propagate = False
