"""Database-backed schema inspection.

ReflectingSchemaInspector describes tables (and materialized views) by
reflecting them through SQLAlchemy's inspector, so search documents can be
built for tables that have no declared ModelSchema column types.

Example:
    from pgsearch.infra.database.schema import ReflectingSchemaInspector

    inspector = ReflectingSchemaInspector(engine)
    columns = await inspector.describe("film")
    # {"film_id": ColumnDescription("film_id", "INTEGER", False), ...}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import inspect
from sqlalchemy.exc import NoSuchTableError

from pgsearch.core.database.schema import ColumnDescription

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


class ReflectingSchemaInspector:
    """SchemaInspector that reads column metadata from the database.

    Descriptions are cached per table for the lifetime of the inspector;
    create a new inspector after schema changes.
    """

    def __init__(self, engine: AsyncEngine, *, schema: str | None = None) -> None:
        self.engine = engine
        self.schema = schema
        self._cache: dict[str, dict[str, ColumnDescription]] = {}

    async def describe(self, table_name: str) -> dict[str, ColumnDescription]:
        cached = self._cache.get(table_name)
        if cached is not None:
            return cached

        def _inspect(conn: Connection) -> dict[str, ColumnDescription]:
            try:
                reflected = inspect(conn).get_columns(table_name, schema=self.schema)
            except NoSuchTableError:
                return {}
            return {
                column["name"]: ColumnDescription(
                    name=column["name"],
                    type_name=str(column["type"]),
                    nullable=bool(column["nullable"]),
                )
                for column in reflected
            }

        async with self.engine.connect() as conn:
            columns = await conn.run_sync(_inspect)

        if not columns:
            logger.debug("Table %s not found during reflection", table_name)
        self._cache[table_name] = columns
        return columns

    def clear_cache(self) -> None:
        self._cache.clear()


__all__ = ["ReflectingSchemaInspector"]
