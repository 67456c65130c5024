"""Pydantic Settings v2 configuration.

Settings are split by domain and read from environment variables (or a
.env file):

- SearchSettings (SEARCH_): search compiler behavior
- PostgresSettings (DB_ / DATABASE_URL): connection and pool
- LoggingSettings (LOG_): logging setup

Import settings via cached loaders:
    from pgsearch.core.settings import get_search_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file
"""

from __future__ import annotations

from .loader import (
    clear_all_caches,
    get_db_settings,
    get_logging_settings,
    get_search_settings,
)
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .search import SearchSettings

__all__ = [
    "LoggingSettings",
    "PostgresSettings",
    "SearchSettings",
    "clear_all_caches",
    "get_db_settings",
    "get_logging_settings",
    "get_search_settings",
]
