"""Search compiler settings.

Loaded from environment variables with the SEARCH_ prefix.

Controls:
- Text search configuration passed to to_tsvector/to_tsquery
- Name of the materialized document column
- Separator used when aggregating hasMany values
- Scope name used for search projections
- Statement logging
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SearchSettings(BaseSettings):
    """Search configuration settings.

    Environment variables use SEARCH_ prefix.
    Example: SEARCH_TEXT_SEARCH_CONFIG=english, SEARCH_LOG_STATEMENTS=true
    """

    text_search_config: str | None = Field(
        default=None,
        min_length=1,
        description="Text search configuration (e.g. 'english'). None uses the database default.",
    )
    document_column: str = Field(
        default="document",
        min_length=1,
        max_length=63,
        description="Column holding the weighted tsvector in materialized views",
    )
    aggregate_separator: str = Field(
        default=", ",
        description="Separator for string_agg over hasMany associations",
    )
    search_scope: str = Field(
        default="search",
        min_length=1,
        description="Model scope consulted for the default search projection",
    )
    log_statements: bool = Field(
        default=False,
        description="Log rendered statements with bound values inlined (debug only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )


__all__ = ["SearchSettings"]
