"""Database infrastructure: engine, statement execution, schema reflection."""

from pgsearch.infra.database.schema import ReflectingSchemaInspector
from pgsearch.infra.database.session import (
    SqlAlchemyExecutor,
    create_engine_from_settings,
    get_engine,
)

__all__ = [
    "ReflectingSchemaInspector",
    "SqlAlchemyExecutor",
    "create_engine_from_settings",
    "get_engine",
]
