"""Unit tests for schema metadata, search types, identifiers, and errors."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from pgsearch.core.database.exceptions import (
    InvalidAssociationTypeError,
    InvalidOrderDirectionError,
    InvalidWeightError,
    SearchConfigurationError,
    SearchError,
)
from pgsearch.core.database.schema import (
    ColumnDescription,
    ModelSchema,
    SchemaInspector,
    StaticSchemaInspector,
    is_text_type,
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
from pgsearch.core.database.validation import (
    IdentifierValidationError,
    quote_identifier,
    quote_literal,
    safe_table_reference,
    validate_identifier,
)


class Base(DeclarativeBase):
    pass


class Film(Base):
    __tablename__ = "film"
    __search_scopes__ = {"search": ["title", "releaseDate"]}

    id: Mapped[int] = mapped_column("film_id", Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    releaseDate: Mapped[date | None] = mapped_column("release_date")  # noqa: N815


class FilmMaterializedView(Base):
    __tablename__ = "film_materialized_view"

    id: Mapped[int] = mapped_column("film_id", Integer, primary_key=True)
    document: Mapped[str] = mapped_column(TSVECTOR)


# ──────────────────────────────────────────────────────────────
# Schema metadata
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestModelSchema:
    """Tests for ModelSchema construction and lookups."""

    @pytest.mark.parametrize(
        ("type_name", "expected"),
        [
            ("TEXT", True),
            ("VARCHAR(255)", True),
            ("character varying", True),
            ("CITEXT", True),
            ("INTEGER", False),
            ("DATE", False),
            ("TSVECTOR", False),
            (None, False),
        ],
    )
    def test_is_text_type(self, type_name, expected):
        assert is_text_type(type_name) is expected

    def test_field_for(self, film):
        assert film.field_for("releaseDate") == "release_date"
        assert film.field_for("unknown_column") == "unknown_column"
        assert film.primary_key_field == "film_id"

    def test_describe_is_keyed_by_column(self, film):
        columns = film.describe()

        assert columns["release_date"] == ColumnDescription("release_date", "DATE", True)
        assert not columns["release_date"].is_text
        assert columns["title"].is_text

    def test_from_model(self):
        schema = ModelSchema.from_model(Film)

        assert schema.table_name == "film"
        assert schema.primary_key == "id"
        assert schema.primary_key_field == "film_id"
        assert list(schema.attributes) == ["id", "title", "description", "releaseDate"]
        assert schema.attributes["releaseDate"].field == "release_date"
        assert schema.attributes["releaseDate"].type_name == "DATE"
        assert schema.attributes["title"].type_name == "VARCHAR(255)"
        assert schema.attributes["title"].nullable is False
        assert schema.attributes["description"].nullable is True
        assert schema.scopes == {"search": ["title", "releaseDate"]}

    def test_from_model_view_with_reference(self):
        film = ModelSchema.from_model(Film)
        view = ModelSchema.from_model(FilmMaterializedView, reference=film)

        assert view.reference is film
        assert view.attributes["document"].type_name == "TSVECTOR"

    def test_from_table(self):
        table = Table(
            "actor",
            MetaData(),
            Column("actor_id", Integer, primary_key=True),
            Column("full_name", String(100), nullable=False),
            Column("film_id", Integer, ForeignKey("film.film_id")),
        )

        schema = ModelSchema.from_table(table, attribute_names={"full_name": "name"})

        assert schema.primary_key == "actor_id"
        assert schema.field_for("name") == "full_name"


@pytest.mark.unit
class TestStaticSchemaInspector:
    """Tests for StaticSchemaInspector."""

    @pytest.mark.asyncio
    async def test_describe_registered_table(self, film):
        inspector = StaticSchemaInspector(film)

        columns = await inspector.describe("film")

        assert set(columns) == {"film_id", "title", "description", "city", "release_date", "language_id"}

    @pytest.mark.asyncio
    async def test_describe_unknown_table(self):
        assert await StaticSchemaInspector().describe("missing") == {}

    def test_satisfies_protocol(self, inspector):
        assert isinstance(inspector, SchemaInspector)


# ──────────────────────────────────────────────────────────────
# Search types
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestSearchTypes:
    """Tests for weights, association types, and TSVECTOR."""

    @pytest.mark.parametrize("weight", ["A", "B", "C", "D"])
    def test_valid_weights(self, weight):
        assert validate_weight("title", weight) == Weight(weight)

    @pytest.mark.parametrize("weight", ["E", "a", "", None, 0, "A "])
    def test_invalid_weights(self, weight):
        with pytest.raises(InvalidWeightError) as exc_info:
            validate_weight("title", weight)

        assert exc_info.value.weight == weight
        assert isinstance(exc_info.value, SearchConfigurationError)

    def test_validate_weights_keeps_order(self):
        assert list(validate_weights({"b": "B", "a": "A"})) == ["b", "a"]

    @pytest.mark.parametrize("value", ["belongsTo", "hasOne", "hasMany"])
    def test_valid_association_types(self, value):
        assert validate_association_type(value) == AssociationType(value)

    def test_invalid_association_type(self):
        with pytest.raises(InvalidAssociationTypeError):
            validate_association_type("belongs_to", "language")

    def test_association_spec_reference_name(self, language):
        spec = AssociationSpec(model=language, foreign_key="languageId", association_type="belongsTo")

        assert spec.reference_name == "language"
        assert AssociationSpec(
            model=language,
            foreign_key="languageId",
            association_type="belongsTo",
            alias="original_language",
        ).reference_name == "original_language"

    def test_tsvector_postgres_impl(self):
        dialect = MagicMock()
        dialect.name = "postgresql"

        assert TSVECTOR().load_dialect_impl(dialect) is not None

    def test_tsvector_fallback(self):
        dialect = MagicMock()
        dialect.name = "sqlite"

        assert TSVECTOR().load_dialect_impl(dialect) is not None
        assert TSVECTOR.cache_ok is True


# ──────────────────────────────────────────────────────────────
# Identifiers and errors
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestIdentifiers:
    """Tests for identifier validation and quoting."""

    def test_quote_identifier(self):
        assert quote_identifier("releaseYear") == '"releaseYear"'
        assert quote_identifier('we"ird') == '"we""ird"'

    def test_quote_literal(self):
        assert quote_literal("It's") == "'It''s'"
        assert quote_literal(2012) == "'2012'"

    def test_safe_table_reference(self):
        assert safe_table_reference("film") == '"film"'
        assert safe_table_reference("film", schema="public") == '"public"."film"'

    @pytest.mark.parametrize("name", ["", "1film", "film view", "film;drop", "x" * 64])
    def test_invalid_identifiers(self, name):
        with pytest.raises(IdentifierValidationError):
            validate_identifier(name)


@pytest.mark.unit
class TestSearchErrors:
    """Tests for the exception hierarchy."""

    def test_details_in_message(self):
        error = SearchError("View build failed", details={"table": "film"})

        assert str(error) == "View build failed (table='film')"

    def test_weight_error_message(self):
        error = InvalidWeightError("title", "E")

        assert "title" in str(error)
        assert error.details["weight"] == "E"

    def test_order_direction_error(self):
        error = InvalidOrderDirectionError("UP")

        assert isinstance(error, SearchError)
        assert "UP" in str(error)
