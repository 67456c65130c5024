"""Schema metadata consumed by the search compiler.

The compiler never owns table definitions. It reads them through two small
interfaces:

- ModelSchema: attribute names, their column (field) names, storage types,
  nullability, the primary key, and named projections ("scopes").
- SchemaInspector: asynchronous per-table column description, used while
  building a search document across related tables.

ModelSchema values can be declared by hand or derived from SQLAlchemy
tables and declarative models:

    film = ModelSchema.from_model(Film)
    film_view = ModelSchema.from_model(FilmMaterializedView, reference=film)
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import Table, inspect as sa_inspect
from sqlalchemy.dialects import postgresql

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy import Column

logger = logging.getLogger(__name__)

# Base type names (lowercased, without length) that need no cast to TEXT
TEXT_TYPE_NAMES = frozenset(
    {
        "text",
        "character varying",
        "varchar",
        "character",
        "char",
        "bpchar",
        "citext",
        "string",
    },
)


def is_text_type(type_name: str | None) -> bool:
    """Check whether a storage type is already string-like.

    Example:
        >>> is_text_type("VARCHAR(255)")
        True
        >>> is_text_type("INTEGER")
        False
    """
    if not type_name:
        return False
    base = type_name.split("(", 1)[0].strip().lower()
    return base in TEXT_TYPE_NAMES


def compile_type_name(column: Column[Any]) -> str:
    """Render a column's type as PostgreSQL spells it."""
    return str(column.type.compile(dialect=postgresql.dialect()))


@dataclass(frozen=True)
class AttributeInfo:
    """A model attribute and the column that stores it.

    Attributes:
        name: Attribute name used in queries (e.g., "releaseYear")
        field: Column name in the table (e.g., "release_year")
        type_name: Storage type (e.g., "INTEGER", "VARCHAR(255)")
        nullable: Whether the column accepts NULL
    """

    name: str
    field: str
    type_name: str | None = None
    nullable: bool = True

    @property
    def is_text(self) -> bool:
        return is_text_type(self.type_name)


@dataclass(frozen=True)
class ColumnDescription:
    """A column as reported by a SchemaInspector."""

    name: str
    type_name: str | None = None
    nullable: bool = True

    @property
    def is_text(self) -> bool:
        return is_text_type(self.type_name)


@dataclass
class ModelSchema:
    """Search-relevant metadata for one table or view.

    Attributes:
        table_name: Table or materialized view name
        attributes: Attribute name -> AttributeInfo, in definition order
        primary_key: Primary key attribute name
        scopes: Named projections, e.g. {"search": ["title", "releaseYear"]}
        default_scope: Projection used when no "search" scope exists
        reference: Canonical source model a materialized view was built from
    """

    table_name: str
    attributes: dict[str, AttributeInfo] = field(default_factory=dict)
    primary_key: str = "id"
    scopes: dict[str, list[str]] = field(default_factory=dict)
    default_scope: list[str] | None = None
    reference: ModelSchema | None = None

    @property
    def primary_key_field(self) -> str:
        """Column name of the primary key."""
        return self.field_for(self.primary_key)

    def attribute(self, name: str) -> AttributeInfo | None:
        return self.attributes.get(name)

    def field_for(self, name: str) -> str:
        """Column name for an attribute; unknown names pass through as-is."""
        info = self.attributes.get(name)
        return info.field if info is not None else name

    def describe(self) -> dict[str, ColumnDescription]:
        """Column descriptions keyed by column name."""
        return {
            info.field: ColumnDescription(
                name=info.field,
                type_name=info.type_name,
                nullable=info.nullable,
            )
            for info in self.attributes.values()
        }

    @classmethod
    def from_table(
        cls,
        table: Table,
        *,
        attribute_names: Mapping[str, str] | None = None,
        scopes: Mapping[str, list[str]] | None = None,
        default_scope: list[str] | None = None,
        reference: ModelSchema | None = None,
    ) -> ModelSchema:
        """Build a ModelSchema from a SQLAlchemy Table.

        Args:
            table: SQLAlchemy Table
            attribute_names: Optional column name -> attribute name mapping
            scopes: Named projections
            default_scope: Fallback projection
            reference: Canonical source model (for materialized views)
        """
        attribute_names = attribute_names or {}
        attributes: dict[str, AttributeInfo] = {}
        primary_key = None

        for column in table.columns:
            name = attribute_names.get(column.name, column.name)
            attributes[name] = AttributeInfo(
                name=name,
                field=column.name,
                type_name=compile_type_name(column),
                nullable=bool(column.nullable),
            )
            if column.primary_key and primary_key is None:
                primary_key = name

        return cls(
            table_name=table.name,
            attributes=attributes,
            primary_key=primary_key or "id",
            scopes=dict(scopes or {}),
            default_scope=default_scope,
            reference=reference,
        )

    @classmethod
    def from_model(
        cls,
        model: type[Any],
        *,
        scopes: Mapping[str, list[str]] | None = None,
        default_scope: list[str] | None = None,
        reference: ModelSchema | None = None,
    ) -> ModelSchema:
        """Build a ModelSchema from a SQLAlchemy declarative model.

        Attribute names are the mapped attribute keys, so a model declaring
        ``releaseYear = mapped_column("release_year", Integer)`` is queried as
        ``releaseYear`` and stored in ``release_year``.

        Scopes may also be declared on the model:

            class FilmMaterializedView(Base):
                __search_scopes__ = {"search": ["title", "releaseYear"]}
                __search_default_scope__ = ["title"]
        """
        mapper = sa_inspect(model)
        table = mapper.local_table
        if not isinstance(table, Table):  # pragma: no cover - joined/selectable mappings
            msg = f"{model.__name__} is not mapped to a single table"
            raise TypeError(msg)

        attribute_names = {}
        for prop in mapper.column_attrs:
            for column in prop.columns:
                if getattr(column, "table", None) is table:
                    attribute_names[column.name] = prop.key

        return cls.from_table(
            table,
            attribute_names=attribute_names,
            scopes=scopes if scopes is not None else getattr(model, "__search_scopes__", None),
            default_scope=(
                default_scope
                if default_scope is not None
                else getattr(model, "__search_default_scope__", None)
            ),
            reference=reference,
        )


@runtime_checkable
class SchemaInspector(Protocol):
    """Describes a table's columns.

    Implementations may hit the database (see
    pgsearch.infra.database.schema.ReflectingSchemaInspector), so the call
    is asynchronous.
    """

    async def describe(self, table_name: str) -> Mapping[str, ColumnDescription]:
        """Return column name -> ColumnDescription for ``table_name``."""
        ...


class StaticSchemaInspector:
    """SchemaInspector backed by already-known ModelSchema values.

    Example:
        inspector = StaticSchemaInspector(film, actor, film_actor)
        columns = await inspector.describe("film")
    """

    def __init__(self, *models: ModelSchema) -> None:
        self._tables: dict[str, dict[str, ColumnDescription]] = {}
        self.register(models)

    def register(self, models: Iterable[ModelSchema]) -> None:
        for model in models:
            self._tables[model.table_name] = model.describe()

    async def describe(self, table_name: str) -> Mapping[str, ColumnDescription]:
        columns = self._tables.get(table_name)
        if columns is None:
            logger.debug("No column metadata registered for table %s", table_name)
            return {}
        return columns


__all__ = [
    "TEXT_TYPE_NAMES",
    "AttributeInfo",
    "ColumnDescription",
    "ModelSchema",
    "SchemaInspector",
    "StaticSchemaInspector",
    "compile_type_name",
    "is_text_type",
]
