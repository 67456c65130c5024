"""Integration fixtures: a PostgreSQL container shared by the session.

Skipped when testcontainers is not installed or Docker is unavailable.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest


@pytest.fixture(scope="session")
def postgres_url() -> Iterator[str]:
    """Start PostgreSQL with testcontainers and yield a psycopg3 URL."""
    pytest.importorskip("testcontainers.postgres", reason="testcontainers.postgres is required")
    from testcontainers.postgres import PostgresContainer

    container = PostgresContainer("postgres:16-alpine")
    try:
        container.start()
    except Exception as exc:  # pragma: no cover - environment dependent
        pytest.skip(f"PostgreSQL container unavailable: {exc}")

    # get_connection_url() may return postgresql:// or postgresql+psycopg2://
    url = container.get_connection_url().replace(
        "postgresql+psycopg2://", "postgresql+psycopg://"
    ).replace("postgresql://", "postgresql+psycopg://")
    yield url
    container.stop()
