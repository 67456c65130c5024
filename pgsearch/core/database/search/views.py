"""Materialized search view lifecycle.

A search view stores one row per root entity: its primary key and a
weighted ``document`` tsvector built from the root table and any included
associations.

    CREATE MATERIALIZED VIEW "film_materialized_view" AS
    SELECT "film"."film_id", setweight(...) || ... AS "document"
    FROM "film" LEFT OUTER JOIN ... GROUP BY "film"."film_id", ...;

Views are rebuilt in full by refresh; there is no incremental maintenance.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pgsearch.core.database.search.document import DocumentBuilder
from pgsearch.core.database.search.statement import (
    RenderedStatement,
    SelectField,
    StatementBuilder,
    drop_materialized_view_sql,
    refresh_materialized_view_sql,
)
from pgsearch.core.settings import get_search_settings

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from pgsearch.core.database.schema import ModelSchema, SchemaInspector
    from pgsearch.core.database.search.model import StatementExecutor
    from pgsearch.core.database.search.types import AssociationSpec
    from pgsearch.core.settings.search import SearchSettings

logger = logging.getLogger(__name__)


async def build_materialized_view_statement(
    name: ModelSchema | str,
    model: ModelSchema,
    attribute_weights: Mapping[str, Any],
    *,
    inspector: SchemaInspector,
    table_name: str | None = None,
    primary_key: str | None = None,
    include: Sequence[AssociationSpec] | None = None,
    settings: SearchSettings | None = None,
) -> RenderedStatement:
    """Render the CREATE MATERIALIZED VIEW statement without running it.

    Raises:
        SearchConfigurationError: Invalid weights or association types
        IdentifierValidationError: The view name is not a valid identifier
    """
    settings = settings or get_search_settings()
    builder = DocumentBuilder(
        inspector,
        text_search_config=settings.text_search_config,
        separator=settings.aggregate_separator,
    )
    parts = await builder.build(
        model,
        attribute_weights,
        table_name=table_name,
        primary_key=primary_key,
        include=include,
    )

    statement = StatementBuilder().create_materialized_view(name)
    statement.select(
        SelectField(parts.root.primary_key_field, model=parts.root),
        SelectField(raw=parts.document, alias=settings.document_column),
    )
    statement.from_(parts.root)
    statement.join(*parts.joins)
    for entry in parts.group_by:
        statement.group_by(entry)
    return statement.build()


async def create_materialized_view(
    executor: StatementExecutor,
    name: ModelSchema | str,
    model: ModelSchema,
    attribute_weights: Mapping[str, Any],
    *,
    inspector: SchemaInspector,
    table_name: str | None = None,
    primary_key: str | None = None,
    include: Sequence[AssociationSpec] | None = None,
    settings: SearchSettings | None = None,
) -> RenderedStatement:
    """Create a materialized search view.

    Configuration is validated and the DDL rendered before anything is sent
    to the database.

    Args:
        executor: Statement executor
        name: View name (or the view's ModelSchema)
        model: Root model the view indexes
        attribute_weights: Root attribute -> weight code ("A".."D")
        inspector: Column metadata source
        table_name: Override for the root table name
        primary_key: Override for the root primary key attribute
        include: Associations folded into the document
        settings: Search settings; defaults to get_search_settings()

    Returns:
        The executed statement
    """
    statement = await build_materialized_view_statement(
        name,
        model,
        attribute_weights,
        inspector=inspector,
        table_name=table_name,
        primary_key=primary_key,
        include=include,
        settings=settings,
    )
    logger.info("Creating materialized view %s", _name_of(name))
    logger.debug("View DDL: %s", statement.sql)
    await executor.execute(statement)
    return statement


async def refresh_materialized_view(executor: StatementExecutor, name: ModelSchema | str) -> None:
    """Rebuild a materialized view from its source tables."""
    logger.info("Refreshing materialized view %s", _name_of(name))
    await executor.execute(refresh_materialized_view_sql(name))


async def drop_materialized_view(
    executor: StatementExecutor,
    name: ModelSchema | str,
    *,
    if_exists: bool = False,
) -> None:
    """Drop a materialized view."""
    logger.info("Dropping materialized view %s", _name_of(name))
    await executor.execute(drop_materialized_view_sql(name, if_exists=if_exists))


def _name_of(name: ModelSchema | str) -> str:
    return name if isinstance(name, str) else name.table_name


__all__ = [
    "build_materialized_view_statement",
    "create_materialized_view",
    "drop_materialized_view",
    "refresh_materialized_view",
]
