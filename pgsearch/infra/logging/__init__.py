"""Logging infrastructure.

Basic usage:
    from pgsearch.infra.logging import setup_logging
    import logging

    setup_logging()  # reads LOG_* settings once
    logger = logging.getLogger(__name__)
    logger.info("Refreshing search view")

Set LOG_SQL_LEVEL=DEBUG to see rendered search statements.
"""

from pgsearch.infra.logging.config import (
    SQL_LOGGERS,
    configure_logging,
    reset_logging_state,
    setup_logging,
)
from pgsearch.infra.logging.formatters import JSONFormatter

__all__ = [
    "SQL_LOGGERS",
    "JSONFormatter",
    "configure_logging",
    "reset_logging_state",
    "setup_logging",
]
