"""Pytest configuration and shared fixtures.

Organization:
    - Schema Fixtures: film / actor / film_actor / language schemas and the
      film search view
    - Collaborator Fixtures: schema inspector, statement executor mock
    - Settings Fixtures: explicit SearchSettings instances

Unit tests never touch a database. Integration tests under
tests/integration start PostgreSQL through testcontainers.
"""

from __future__ import annotations

import os
from unittest.mock import AsyncMock

import pytest

from pgsearch.core.database.schema import AttributeInfo, ModelSchema, StaticSchemaInspector
from pgsearch.core.settings import SearchSettings, clear_all_caches

# Keep developer environment variables out of unit tests
for _name in list(os.environ):
    if _name.startswith(("SEARCH_", "LOG_", "DB_")) or _name == "DATABASE_URL":
        os.environ.pop(_name)


# ============================================================================
# Schema Fixtures
# ============================================================================


@pytest.fixture
def film() -> ModelSchema:
    """Film table with camelCase attributes mapped to snake_case columns."""
    return ModelSchema(
        table_name="film",
        primary_key="id",
        attributes={
            "id": AttributeInfo("id", "film_id", "INTEGER", nullable=False),
            "title": AttributeInfo("title", "title", "VARCHAR(255)", nullable=False),
            "description": AttributeInfo("description", "description", "TEXT"),
            "city": AttributeInfo("city", "city", "VARCHAR(100)"),
            "releaseDate": AttributeInfo("releaseDate", "release_date", "DATE"),
            "languageId": AttributeInfo("languageId", "language_id", "INTEGER"),
        },
    )


@pytest.fixture
def actor() -> ModelSchema:
    return ModelSchema(
        table_name="actor",
        primary_key="id",
        attributes={
            "id": AttributeInfo("id", "actor_id", "INTEGER", nullable=False),
            "name": AttributeInfo("name", "name", "VARCHAR(255)", nullable=False),
        },
    )


@pytest.fixture
def film_actor() -> ModelSchema:
    return ModelSchema(
        table_name="film_actor",
        primary_key="id",
        attributes={
            "id": AttributeInfo("id", "film_actor_id", "INTEGER", nullable=False),
            "filmId": AttributeInfo("filmId", "film_id", "INTEGER", nullable=False),
            "actorId": AttributeInfo("actorId", "actor_id", "INTEGER", nullable=False),
        },
    )


@pytest.fixture
def language() -> ModelSchema:
    return ModelSchema(
        table_name="language",
        primary_key="id",
        attributes={
            "id": AttributeInfo("id", "language_id", "INTEGER", nullable=False),
            "name": AttributeInfo("name", "name", "VARCHAR(20)", nullable=False),
        },
    )


@pytest.fixture
def film_view(film: ModelSchema) -> ModelSchema:
    """Materialized search view over film, projecting id/title/releaseDate."""
    return ModelSchema(
        table_name="film_materialized_view",
        primary_key="id",
        attributes={
            "id": AttributeInfo("id", "film_id", "INTEGER", nullable=False),
            "document": AttributeInfo("document", "document", "TSVECTOR"),
        },
        scopes={"search": ["id", "title", "releaseDate"]},
        reference=film,
    )


# ============================================================================
# Collaborator Fixtures
# ============================================================================


@pytest.fixture
def inspector(
    film: ModelSchema,
    actor: ModelSchema,
    film_actor: ModelSchema,
    language: ModelSchema,
) -> StaticSchemaInspector:
    return StaticSchemaInspector(film, actor, film_actor, language)


@pytest.fixture
def executor() -> AsyncMock:
    """StatementExecutor double; fetch_all returns no rows unless configured."""
    mock = AsyncMock()
    mock.fetch_all.return_value = []
    mock.execute.return_value = None
    return mock


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def search_settings() -> SearchSettings:
    return SearchSettings()


@pytest.fixture(autouse=True)
def _clear_settings_caches():
    """Reset cached settings around every test."""
    clear_all_caches()
    yield
    clear_all_caches()
