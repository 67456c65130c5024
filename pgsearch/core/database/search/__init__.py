"""PostgreSQL full-text search over materialized views.

Core Components:
- SearchQueryParser: Query language ("words key:value order:!key limit:N")
- DocumentBuilder: Weighted tsvector document across a table and its
  associations (belongsTo, hasOne, hasMany)
- StatementBuilder: Clause accumulator rendering SQL with bound parameters
- SearchModel: Ranked search, refresh, and view lifecycle for one view

Query language:
- words: Prefix-matched against the weighted document, ranked by ts_rank
- key:value: Case-insensitive substring filter on attribute ``key``
- key:=v, key:>v, key:<v, key:>=v, key:<=v: Comparison filters
- order:key / order:!key: Ascending / descending order (overrides ranking)
- limit:N, offset:N: Pagination

Usage:
    from pgsearch.core.database.search import AssociationSpec, SearchModel

    film = ModelSchema.from_model(Film)
    film_view = ModelSchema.from_model(FilmMaterializedView, reference=film)
    films = SearchModel(film_view, SqlAlchemyExecutor(engine))

    await films.create_view(
        {"title": "A", "description": "B"},
        inspector=StaticSchemaInspector(film, actor, film_actor),
        include=[
            AssociationSpec(
                model=film_actor,
                foreign_key="film_id",
                association_type="hasMany",
                include=[
                    AssociationSpec(
                        model=actor,
                        foreign_key="actor_id",
                        association_type="belongsTo",
                        attributes={"name": "C"},
                    ),
                ],
            ),
        ],
    )

    rows = await films.search_by_text("Mind order:releaseDate limit:10")
"""

from pgsearch.core.database.search.document import (
    AssociationNode,
    BuildContext,
    DocumentBuilder,
    DocumentParts,
    build_document,
)
from pgsearch.core.database.search.model import (
    SearchModel,
    StatementExecutor,
    build_prefix_tsquery,
)
from pgsearch.core.database.search.options import SearchOptions
from pgsearch.core.database.search.parser import (
    FilterCondition,
    FilterOperator,
    OrderClause,
    ParsedQuery,
    QueryToken,
    SearchQueryParser,
    SortDirection,
    TokenType,
    all_indices_of,
    parse_search_query,
)
from pgsearch.core.database.search.statement import (
    BindValue,
    Fn,
    RenderedStatement,
    SelectField,
    StatementBuilder,
    StatementPlan,
    WhereCondition,
    drop_materialized_view_sql,
    refresh_materialized_view_sql,
)
from pgsearch.core.database.search.types import (
    TSVECTOR,
    AssociationSpec,
    AssociationType,
    Weight,
    validate_association_type,
    validate_weight,
    validate_weights,
)
from pgsearch.core.database.search.views import (
    build_materialized_view_statement,
    create_materialized_view,
    drop_materialized_view,
    refresh_materialized_view,
)

__all__ = [
    # Types
    "TSVECTOR",
    "AssociationSpec",
    "AssociationType",
    "Weight",
    "validate_association_type",
    "validate_weight",
    "validate_weights",
    # Parser
    "FilterCondition",
    "FilterOperator",
    "OrderClause",
    "ParsedQuery",
    "QueryToken",
    "SearchQueryParser",
    "SortDirection",
    "TokenType",
    "all_indices_of",
    "parse_search_query",
    # Options
    "SearchOptions",
    # Statement assembly
    "BindValue",
    "Fn",
    "RenderedStatement",
    "SelectField",
    "StatementBuilder",
    "StatementPlan",
    "WhereCondition",
    "drop_materialized_view_sql",
    "refresh_materialized_view_sql",
    # Document
    "AssociationNode",
    "BuildContext",
    "DocumentBuilder",
    "DocumentParts",
    "build_document",
    # Views
    "build_materialized_view_statement",
    "create_materialized_view",
    "drop_materialized_view",
    "refresh_materialized_view",
    # Orchestration
    "SearchModel",
    "StatementExecutor",
    "build_prefix_tsquery",
]
