"""Search orchestration over a materialized search view.

SearchModel turns a free-text term and structured options into one ranked
SELECT against the view, joined back to the view's reference table so the
projected values come from the source rows:

    SELECT "film"."title" AS "title", "film"."release_date" AS "releaseDate"
    FROM "film_materialized_view"
    LEFT OUTER JOIN "film" ON "film"."film_id" = "film_materialized_view"."film_id"
    WHERE "film_materialized_view"."document" @@ to_tsquery(:p_0)
    ORDER BY ts_rank("film_materialized_view"."document", to_tsquery(:p_0)) DESC;

Usage:
    films = SearchModel(film_view, SqlAlchemyExecutor(engine))

    rows = await films.search("Chicago")
    rows = await films.search_by_text("Mind releaseDate:<2002-01-01")
    rows = await films.search(
        "Washington",
        SearchOptions(where={"rating": "PG-13"}, limit=2),
    )
    await films.refresh()
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pgsearch.core.database.search.options import SearchOptions
from pgsearch.core.database.search.parser import ParsedQuery, SearchQueryParser, SortDirection
from pgsearch.core.database.search.statement import (
    Fn,
    RenderedStatement,
    SelectField,
    StatementBuilder,
    WhereCondition,
    col,
    to_tsquery,
    ts_rank,
)
from pgsearch.core.database.search.views import (
    create_materialized_view,
    drop_materialized_view,
    refresh_materialized_view,
)
from pgsearch.core.settings import get_search_settings

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from pgsearch.core.database.schema import ModelSchema, SchemaInspector
    from pgsearch.core.database.search.types import AssociationSpec
    from pgsearch.core.settings.search import SearchSettings

logger = logging.getLogger(__name__)

PREFIX_MATCH_SUFFIX = ":*"
TSQUERY_AND = " & "

# tsquery operator and quoting characters
_TSQUERY_SPECIAL = re.compile(r"[&|!():'<>*\\]")


@runtime_checkable
class StatementExecutor(Protocol):
    """Runs rendered statements.

    See pgsearch.infra.database.session.SqlAlchemyExecutor.
    """

    async def fetch_all(self, statement: RenderedStatement) -> list[dict[str, Any]]:
        """Run a query and return its rows as mappings."""
        ...

    async def execute(self, statement: RenderedStatement) -> None:
        """Run a statement that returns no rows."""
        ...


def build_prefix_tsquery(text: str | None) -> str | None:
    """Compile free text into a prefix-matching tsquery string.

    Words are ANDed together and the last word matches as a prefix, so
    partially typed input still finds results. tsquery operator characters
    are dropped from each word; words left empty are skipped, and None is
    returned when nothing remains.

    Example:
        >>> build_prefix_tsquery("beautiful mi")
        'beautiful & mi:*'
    """
    words = [
        cleaned
        for cleaned in (_TSQUERY_SPECIAL.sub("", word) for word in (text or "").split())
        if cleaned
    ]
    if not words:
        return None
    words[-1] = f"{words[-1]}{PREFIX_MATCH_SUFFIX}"
    return TSQUERY_AND.join(words)


class SearchModel:
    """Ranked search over one materialized search view.

    Args:
        view: Schema of the materialized view
        executor: Runs the rendered statements
        reference: Source model rows are read from; defaults to
            ``view.reference``, then to the view itself
        settings: Search settings; defaults to get_search_settings()
    """

    def __init__(
        self,
        view: ModelSchema,
        executor: StatementExecutor,
        *,
        reference: ModelSchema | None = None,
        settings: SearchSettings | None = None,
    ) -> None:
        self.view = view
        self.reference = reference or view.reference or view
        self.executor = executor
        self.settings = settings or get_search_settings()
        self.parser = SearchQueryParser()

    async def search(
        self,
        query: str | ParsedQuery | None = None,
        options: SearchOptions | Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Search the view.

        Args:
            query: Free-text term, or a ParsedQuery whose filters, order and
                pagination are merged under ``options``
            options: Filters, projection, order, and pagination

        Returns:
            Rows keyed by projected attribute name, in result order
        """
        statement = self.build_search_statement(query, options)
        return await self.executor.fetch_all(statement)

    async def search_by_text(
        self,
        raw: str | None,
        options: SearchOptions | Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Parse a query-language string and search with the result."""
        return await self.search(self.parser.parse(raw), options)

    def build_search_statement(
        self,
        query: str | ParsedQuery | None = None,
        options: SearchOptions | Mapping[str, Any] | None = None,
    ) -> RenderedStatement:
        """Render the search SELECT without executing it."""
        free_text, resolved = self._resolve(query, options)
        view = self.view
        reference = self.reference
        document = self.settings.document_column

        builder = StatementBuilder().from_(view)
        builder.select(
            *(
                SelectField(reference.field_for(name), model=reference, alias=name)
                for name in self._projection(resolved)
            )
        )
        if reference is not view:
            builder.left_outer_join(reference, view)

        builder.where(
            *(
                WhereCondition(name, condition.operator, condition.value, model=reference)
                for name, condition in resolved.where.items()
            )
        )

        tsquery: Fn | None = None
        prefix_query = build_prefix_tsquery(free_text)
        if prefix_query is not None:
            tsquery = to_tsquery(prefix_query, self.settings.text_search_config)
            builder.where(WhereCondition(document, "@@", tsquery, model=view))

        if resolved.order:
            builder.order_by(
                (col(reference.field_for(expression), reference), direction)
                for expression, direction in resolved.order
            )
        elif tsquery is not None:
            builder.order_by([(ts_rank(col(document, view), tsquery), SortDirection.DESC)])

        builder.limit(resolved.limit).offset(resolved.offset)
        statement = builder.build()

        if self.settings.log_statements:
            logger.debug("Search statement: %s", statement.to_literal())
        else:
            logger.debug(
                "Search statement: %s",
                statement.sql,
                extra={"param_count": len(statement.params)},
            )
        return statement

    async def refresh(self) -> None:
        """Rebuild the materialized view (full refresh)."""
        await refresh_materialized_view(self.executor, self.view)

    async def create_view(
        self,
        attribute_weights: Mapping[str, Any],
        *,
        inspector: SchemaInspector,
        table_name: str | None = None,
        primary_key: str | None = None,
        include: Sequence[AssociationSpec] | None = None,
    ) -> RenderedStatement:
        """Create this model's materialized view from the reference model."""
        return await create_materialized_view(
            self.executor,
            self.view,
            self.reference,
            attribute_weights,
            inspector=inspector,
            table_name=table_name,
            primary_key=primary_key,
            include=include,
            settings=self.settings,
        )

    async def drop_view(self, *, if_exists: bool = False) -> None:
        """Drop this model's materialized view."""
        await drop_materialized_view(self.executor, self.view, if_exists=if_exists)

    def _resolve(
        self,
        query: str | ParsedQuery | None,
        options: SearchOptions | Mapping[str, Any] | None,
    ) -> tuple[str, SearchOptions]:
        if options is not None and not isinstance(options, SearchOptions):
            options = SearchOptions.model_validate(options)

        if isinstance(query, ParsedQuery):
            return query.free_text, query.to_options().merged_with(options)
        return query or "", options or SearchOptions()

    def _projection(self, options: SearchOptions) -> list[str]:
        view = self.view
        if options.attributes:
            names = options.attributes
        elif view.scopes.get(self.settings.search_scope):
            names = view.scopes[self.settings.search_scope]
        elif view.default_scope:
            names = view.default_scope
        else:
            names = list(view.attributes)
        projected = [
            name for name in names if view.field_for(name) != self.settings.document_column
        ]
        return projected or [self.reference.primary_key]


__all__ = [
    "SearchModel",
    "StatementExecutor",
    "build_prefix_tsquery",
]
