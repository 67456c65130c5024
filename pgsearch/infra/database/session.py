"""Async statement execution with SQLAlchemy and the psycopg3 driver.

The search compiler hands over RenderedStatement values (SQL with
``:name`` placeholders plus a params dict). SqlAlchemyExecutor runs them
through ``sqlalchemy.text()`` on an AsyncEngine and returns rows as plain
dicts. Database errors propagate unchanged.
"""

from __future__ import annotations

from functools import lru_cache
import logging
import time
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from pgsearch.core.settings import get_db_settings

if TYPE_CHECKING:
    from pgsearch.core.database.search.statement import RenderedStatement
    from pgsearch.core.settings.postgres import PostgresSettings

logger = logging.getLogger(__name__)

# Statements slower than this are logged at WARNING
SLOW_STATEMENT_SECONDS = 1.0


def create_engine_from_settings(settings: PostgresSettings | None = None) -> AsyncEngine:
    """Create an AsyncEngine from PostgresSettings.

    Args:
        settings: Database settings; defaults to get_db_settings()
    """
    settings = settings or get_db_settings()
    logger.debug("Creating async engine for %s:%s/%s", settings.host, settings.port, settings.name)
    return create_async_engine(
        settings.get_sqlalchemy_url(),
        **settings.sqlalchemy_engine_kwargs(),
    )


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Process-wide engine built from the cached database settings."""
    return create_engine_from_settings()


class SqlAlchemyExecutor:
    """StatementExecutor backed by a SQLAlchemy AsyncEngine.

    Example:
        executor = SqlAlchemyExecutor(get_engine())
        films = SearchModel(film_view, executor)
        rows = await films.search("Chicago")
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    async def fetch_all(self, statement: RenderedStatement) -> list[dict[str, Any]]:
        """Run a query and return every row as a dict keyed by column label."""
        started = time.perf_counter()
        async with self.engine.connect() as conn:
            result = await conn.execute(text(statement.sql), statement.params)
            rows = [dict(row) for row in result.mappings().all()]
        self._log_duration(statement, started, len(rows))
        return rows

    async def execute(self, statement: RenderedStatement) -> None:
        """Run a statement (DDL, refresh) in its own transaction."""
        started = time.perf_counter()
        async with self.engine.begin() as conn:
            await conn.execute(text(statement.sql), statement.params)
        self._log_duration(statement, started)

    async def dispose(self) -> None:
        """Close pooled connections."""
        await self.engine.dispose()

    @staticmethod
    def _log_duration(statement: RenderedStatement, started: float, row_count: int | None = None) -> None:
        duration = time.perf_counter() - started
        if duration > SLOW_STATEMENT_SECONDS:
            logger.warning(
                "Slow search statement (%.3fs): %s",
                duration,
                statement.sql,
                extra={"duration_seconds": duration},
            )
        else:
            logger.debug(
                "Statement finished in %.3fs",
                duration,
                extra={"row_count": row_count},
            )


__all__ = [
    "SLOW_STATEMENT_SECONDS",
    "SqlAlchemyExecutor",
    "create_engine_from_settings",
    "get_engine",
]
