"""Unit tests for SearchModel orchestration and view lifecycle."""

from __future__ import annotations

import logging

import pytest

from pgsearch.core.database.exceptions import InvalidWeightError
from pgsearch.core.database.schema import AttributeInfo, ModelSchema
from pgsearch.core.database.search.model import SearchModel, StatementExecutor, build_prefix_tsquery
from pgsearch.core.database.search.options import SearchOptions
from pgsearch.core.database.search.parser import SearchQueryParser
from pgsearch.core.database.search.statement import RenderedStatement
from pgsearch.core.database.search.types import AssociationSpec
from pgsearch.core.database.search.views import build_materialized_view_statement
from pgsearch.core.settings import SearchSettings

SELECT_FILM = (
    'SELECT "film"."film_id" AS "id", "film"."title" AS "title", '
    '"film"."release_date" AS "releaseDate" '
    'FROM "film_materialized_view" '
    'LEFT OUTER JOIN "film" ON "film"."film_id" = "film_materialized_view"."film_id"'
)
MATCH = '"film_materialized_view"."document" @@ to_tsquery(:p_{n})'
RANK = 'ts_rank("film_materialized_view"."document", to_tsquery(:p_{n})) DESC'


@pytest.fixture
def films(film_view, executor, search_settings) -> SearchModel:
    return SearchModel(film_view, executor, settings=search_settings)


def executed(executor) -> RenderedStatement:
    return executor.fetch_all.await_args.args[0]


@pytest.mark.unit
class TestBuildPrefixTsquery:
    """Tests for free-text compilation."""

    def test_single_word(self):
        assert build_prefix_tsquery("Chicago") == "Chicago:*"

    def test_words_are_anded_and_last_is_prefix(self):
        assert build_prefix_tsquery("  a beautiful   mi ") == "a & beautiful & mi:*"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty(self, text):
        assert build_prefix_tsquery(text) is None

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("rock & roll", "rock & roll:*"),
            ("Mind (", "Mind:*"),
            ("(beautiful mind", "beautiful & mind:*"),
            ("it's !fun* a|b", "its & fun & ab:*"),
            ("back\\slash c:d", "backslash & cd:*"),
        ],
    )
    def test_operator_characters_are_dropped(self, text, expected):
        assert build_prefix_tsquery(text) == expected

    @pytest.mark.parametrize("text", ["&", "( ) |", "!! :* ''"])
    def test_operator_only_words(self, text):
        assert build_prefix_tsquery(text) is None


@pytest.mark.unit
class TestSearchModelSearch:
    """Tests for SearchModel.search statement building and execution."""

    @pytest.mark.asyncio
    async def test_free_text_orders_by_rank(self, films, executor):
        executor.fetch_all.return_value = [{"id": 1, "title": "Chicago", "releaseDate": None}]

        rows = await films.search("Chicago")

        assert rows == [{"id": 1, "title": "Chicago", "releaseDate": None}]
        statement = executed(executor)
        assert statement.sql == f"{SELECT_FILM} WHERE {MATCH.format(n=0)} ORDER BY {RANK.format(n=0)};"
        assert statement.params == {"p_0": "Chicago:*"}

    @pytest.mark.asyncio
    async def test_no_free_text_no_match_predicate(self, films, executor):
        await films.search()

        statement = executed(executor)
        assert statement.sql == f"{SELECT_FILM};"
        assert statement.params == {}

    @pytest.mark.asyncio
    async def test_unbalanced_parenthesis_in_free_text(self, films, executor):
        await films.search("Mind (")

        statement = executed(executor)
        assert statement.sql == f"{SELECT_FILM} WHERE {MATCH.format(n=0)} ORDER BY {RANK.format(n=0)};"
        assert statement.params == {"p_0": "Mind:*"}

    @pytest.mark.asyncio
    async def test_operator_only_free_text_matches_everything(self, films, executor):
        await films.search_by_text("& | limit:3")

        statement = executed(executor)
        assert statement.sql == f"{SELECT_FILM} LIMIT 3;"
        assert statement.params == {}

    @pytest.mark.asyncio
    async def test_explicit_order_replaces_rank(self, films, executor):
        await films.search_by_text("Mind order:releaseDate")

        statement = executed(executor)
        assert statement.sql == (
            f'{SELECT_FILM} WHERE {MATCH.format(n=0)} ORDER BY "film"."release_date" ASC;'
        )
        assert statement.params == {"p_0": "Mind:*"}

    @pytest.mark.asyncio
    async def test_filters_bind_to_reference_table(self, films, executor):
        await films.search_by_text("Mind releaseDate:<2002-01-01")

        statement = executed(executor)
        assert statement.sql == (
            f'{SELECT_FILM} WHERE "film"."release_date" < :p_0 AND {MATCH.format(n=1)} '
            f"ORDER BY {RANK.format(n=1)};"
        )
        assert statement.params == {"p_0": "2002-01-01", "p_1": "Mind:*"}

    @pytest.mark.asyncio
    async def test_fuzzy_filter(self, films, executor):
        await films.search_by_text("title:beautiful mind")

        statement = executed(executor)
        assert statement.sql == f'{SELECT_FILM} WHERE "film"."title" ILIKE :p_0;'
        assert statement.params == {"p_0": "%beautiful mind%"}

    @pytest.mark.asyncio
    async def test_pagination(self, films, executor):
        await films.search_by_text("Washington limit:2 offset:1")

        statement = executed(executor)
        assert statement.sql.endswith(f"ORDER BY {RANK.format(n=0)} LIMIT 2 OFFSET 1;")

    @pytest.mark.asyncio
    async def test_options_override_parsed_query(self, films, executor):
        parsed = SearchQueryParser().parse("Washington limit:2 order:title")

        await films.search(parsed, SearchOptions(limit=5, attributes=["title"]))

        statement = executed(executor)
        assert statement.sql.startswith('SELECT "film"."title" AS "title" FROM')
        assert statement.sql.endswith('ORDER BY "film"."title" ASC LIMIT 5;')

    @pytest.mark.asyncio
    async def test_options_as_mapping(self, films, executor):
        await films.search(
            "Washington",
            {"where": {"city": "Washington"}, "order": [("releaseDate", "DESC")], "offset": 3},
        )

        statement = executed(executor)
        assert statement.sql == (
            f'{SELECT_FILM} WHERE "film"."city" = :p_0 AND {MATCH.format(n=1)} '
            'ORDER BY "film"."release_date" DESC OFFSET 3;'
        )
        assert statement.params == {"p_0": "Washington", "p_1": "Washington:*"}

    @pytest.mark.asyncio
    async def test_text_search_config(self, film_view, executor):
        films = SearchModel(film_view, executor, settings=SearchSettings(text_search_config="english"))

        await films.search("Chicago")

        assert "to_tsquery('english', :p_0)" in executed(executor).sql

    @pytest.mark.asyncio
    async def test_executor_errors_propagate(self, films, executor):
        executor.fetch_all.side_effect = RuntimeError("column film.rating does not exist")

        with pytest.raises(RuntimeError, match="rating"):
            await films.search_by_text("rating:PG")

    @pytest.mark.asyncio
    async def test_statement_logging(self, film_view, executor, caplog):
        films = SearchModel(film_view, executor, settings=SearchSettings(log_statements=True))

        with caplog.at_level(logging.DEBUG, logger="pgsearch.core.database.search.model"):
            await films.search("Chicago")

        assert "to_tsquery('Chicago:*')" in caplog.text

    def test_executor_protocol(self, executor):
        assert isinstance(executor, StatementExecutor)


@pytest.mark.unit
class TestSearchModelProjection:
    """Projection priority: attributes > search scope > default scope > all."""

    def test_attributes_option_wins(self, films):
        statement = films.build_search_statement(options=SearchOptions(attributes=["city"]))

        assert statement.sql.startswith('SELECT "film"."city" AS "city" FROM')

    def test_search_scope(self, films):
        assert films.build_search_statement().sql.startswith(SELECT_FILM)

    def test_default_scope(self, film, executor, search_settings):
        view = ModelSchema(
            table_name="film_materialized_view",
            attributes={"id": AttributeInfo("id", "film_id"), "document": AttributeInfo("document", "document")},
            default_scope=["title"],
            reference=film,
        )

        statement = SearchModel(view, executor, settings=search_settings).build_search_statement()

        assert statement.sql.startswith('SELECT "film"."title" AS "title" FROM')

    def test_all_view_attributes_without_document(self, film, executor, search_settings):
        view = ModelSchema(
            table_name="film_materialized_view",
            attributes={"id": AttributeInfo("id", "film_id"), "document": AttributeInfo("document", "document")},
            reference=film,
        )

        statement = SearchModel(view, executor, settings=search_settings).build_search_statement()

        assert statement.sql.startswith('SELECT "film"."film_id" AS "id" FROM')

    def test_custom_search_scope(self, film_view, executor):
        view = ModelSchema(
            table_name=film_view.table_name,
            attributes=film_view.attributes,
            scopes={"search": ["id"], "compact": ["title"]},
            reference=film_view.reference,
        )
        films = SearchModel(view, executor, settings=SearchSettings(search_scope="compact"))

        assert films.build_search_statement().sql.startswith('SELECT "film"."title" AS "title" FROM')

    def test_view_without_reference_is_not_joined(self, executor, search_settings):
        view = ModelSchema(
            table_name="film_materialized_view",
            attributes={"id": AttributeInfo("id", "film_id"), "document": AttributeInfo("document", "document")},
        )

        statement = SearchModel(view, executor, settings=search_settings).build_search_statement("Chicago")

        assert "JOIN" not in statement.sql
        assert statement.sql.startswith(
            'SELECT "film_materialized_view"."film_id" AS "id" FROM "film_materialized_view" WHERE'
        )


@pytest.mark.unit
class TestSearchModelViews:
    """Tests for refresh, create, and drop."""

    @pytest.mark.asyncio
    async def test_refresh(self, films, executor):
        await films.refresh()

        executor.execute.assert_awaited_once_with(
            RenderedStatement('REFRESH MATERIALIZED VIEW "film_materialized_view";'),
        )

    @pytest.mark.asyncio
    async def test_drop_view(self, films, executor):
        await films.drop_view(if_exists=True)

        executor.execute.assert_awaited_once_with(
            RenderedStatement('DROP MATERIALIZED VIEW IF EXISTS "film_materialized_view";'),
        )

    @pytest.mark.asyncio
    async def test_create_view(self, films, executor, film_actor, actor, inspector):
        statement = await films.create_view(
            {"title": "A", "description": "B"},
            inspector=inspector,
            include=[
                AssociationSpec(
                    model=film_actor,
                    foreign_key="filmId",
                    association_type="hasMany",
                    include=[
                        AssociationSpec(
                            model=actor,
                            foreign_key="actorId",
                            association_type="belongsTo",
                            attributes={"name": "C"},
                        ),
                    ],
                ),
            ],
        )

        assert statement.sql == (
            'CREATE MATERIALIZED VIEW "film_materialized_view" AS '
            'SELECT "film"."film_id", '
            "setweight(to_tsvector(\"film\".\"title\"), 'A') || "
            "setweight(to_tsvector(coalesce(\"film\".\"description\", '')), 'B') || "
            "setweight(to_tsvector(coalesce(string_agg(\"actor\".\"name\", ', '), '')), 'C') "
            'AS "document" '
            'FROM "film" '
            'LEFT OUTER JOIN "film_actor" ON "film_actor"."film_id" = "film"."film_id" '
            'LEFT OUTER JOIN "actor" ON "film_actor"."actor_id" = "actor"."actor_id" '
            'GROUP BY "film"."film_id";'
        )
        assert statement.params == {}
        executor.execute.assert_awaited_once_with(statement)

    @pytest.mark.asyncio
    async def test_create_view_rejects_bad_weight_before_executing(self, films, executor, inspector):
        with pytest.raises(InvalidWeightError):
            await films.create_view({"title": "E"}, inspector=inspector)

        executor.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_view_statement_settings(self, film, inspector):
        statement = await build_materialized_view_statement(
            "film_search",
            film,
            {"title": "A"},
            inspector=inspector,
            settings=SearchSettings(document_column="search_document", text_search_config="simple"),
        )

        assert statement.sql == (
            'CREATE MATERIALIZED VIEW "film_search" AS SELECT "film"."film_id", '
            "setweight(to_tsvector('simple', \"film\".\"title\"), 'A') AS \"search_document\" "
            'FROM "film";'
        )
