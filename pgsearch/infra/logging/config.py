"""Logging configuration setup.

Uses logging.config.dictConfig with all handlers on the root logger; the
pgsearch loggers propagate to it. Output is JSON Lines or plain text.
"""

from __future__ import annotations

import logging
import logging.config
from typing import TYPE_CHECKING, Any

logger = logging.getLogger(__name__)
_LOGGING_INITIALIZED = False

# Loggers that emit rendered SQL at DEBUG
SQL_LOGGERS = (
    "pgsearch.core.database.search",
    "pgsearch.infra.database",
)

if TYPE_CHECKING:
    from pgsearch.core.settings.logs import LoggingSettings


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from pgsearch.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    log_config = settings_obj.to_logging_kwargs()
    if configure_kwargs:
        log_config = {**log_config, **configure_kwargs}

    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    console_enabled: bool = True,
    sql_level: str | None = None,
) -> dict[str, Any]:
    """Configure the root logger with dictConfig.

    Args:
        log_level: Root logger level.
        json_logs: Use the JSONL formatter instead of plain text.
        console_enabled: Attach a stderr handler. When False, records are
            discarded unless the application adds its own handlers.
        sql_level: Level for the statement loggers (SQL_LOGGERS).

    Returns:
        The dictConfig dictionary that was applied.
    """
    formatter_name = "json" if json_logs else "text"
    handlers: dict[str, Any] = {}
    if console_enabled:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": formatter_name,
            "stream": "ext://sys.stderr",
        }
    else:
        handlers["null"] = {"class": "logging.NullHandler"}

    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": _build_formatters_config(json_logs),
        "handlers": handlers,
        "root": {
            "level": log_level,
            "handlers": list(handlers),
        },
    }
    if sql_level:
        logging_config["loggers"] = {
            name: {"level": sql_level} for name in SQL_LOGGERS
        }

    logging.config.dictConfig(logging_config)
    logger.debug(
        "Logging configured",
        extra={"log_level": log_level, "json_logs": json_logs},
    )
    return logging_config


def _build_formatters_config(json_logs: bool) -> dict[str, Any]:
    """Build formatters configuration for dictConfig."""
    if json_logs:
        return {
            "json": {
                "()": "pgsearch.infra.logging.formatters.JSONFormatter",
                "fmt_keys": {
                    "level": "levelname",
                    "logger": "name",
                    "message": "message",
                },
                "static": {"service": "pgsearch"},
            },
        }
    return {
        "text": {
            "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    }


def reset_logging_state() -> None:
    """Allow setup_logging() to run again (tests)."""
    global _LOGGING_INITIALIZED
    _LOGGING_INITIALIZED = False


__all__ = [
    "SQL_LOGGERS",
    "configure_logging",
    "reset_logging_state",
    "setup_logging",
]
