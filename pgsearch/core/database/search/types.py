"""Search document types.

This module provides:
- Weight: PostgreSQL tsvector weight classes (A highest, D lowest)
- AssociationType: How an included table relates to its parent
- AssociationSpec: One included table in a search document definition
- TSVECTOR: SQLAlchemy type for the materialized ``document`` column

Weights and association types are validated eagerly; a bad value is a
configuration error raised before any SQL is generated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy.dialects.postgresql import TSVECTOR as PG_TSVECTOR
from sqlalchemy.types import TypeDecorator, TypeEngine

from pgsearch.core.database.exceptions import (
    InvalidAssociationTypeError,
    InvalidWeightError,
    SearchConfigurationError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Dialect

    from pgsearch.core.database.schema import ModelSchema


class Weight(StrEnum):
    """PostgreSQL weight classes for setweight()."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"


class AssociationType(StrEnum):
    """Relationship between an included table and its parent.

    - BELONGS_TO: the foreign key lives on the parent table
    - HAS_ONE: the foreign key lives on the included table, one row per parent
    - HAS_MANY: the foreign key lives on the included table, many rows per parent
    """

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"


def validate_weight(attribute: str, weight: Any) -> Weight:
    """Validate a weight code.

    Raises:
        InvalidWeightError: If weight is not exactly "A", "B", "C", or "D"
    """
    if isinstance(weight, str):
        try:
            return Weight(weight)
        except ValueError:
            pass
    raise InvalidWeightError(attribute, weight)


def validate_weights(attribute_weights: Mapping[str, Any]) -> dict[str, Weight]:
    """Validate every weight in an attribute -> weight mapping, keeping order."""
    return {name: validate_weight(name, weight) for name, weight in attribute_weights.items()}


def validate_association_type(value: Any, table_name: str | None = None) -> AssociationType:
    """Validate an association type.

    Raises:
        InvalidAssociationTypeError: If value is not belongsTo, hasOne, or hasMany
    """
    if isinstance(value, str):
        try:
            return AssociationType(value)
        except ValueError:
            pass
    raise InvalidAssociationTypeError(value, table_name)


@dataclass
class AssociationSpec:
    """An included table in a search document.

    Example:
        # Films weighted by title, plus the names of their actors
        AssociationSpec(
            model=film_actor,
            foreign_key="film_id",
            association_type="hasMany",
            include=[
                AssociationSpec(
                    model=actor,
                    foreign_key="actor_id",
                    association_type="belongsTo",
                    attributes={"name": "B"},
                ),
            ],
        )

    Attributes:
        model: Schema of the included table
        foreign_key: Foreign key attribute; on the parent for belongsTo,
            on this table for hasOne/hasMany
        association_type: belongsTo, hasOne, or hasMany
        target_key: Key the foreign key references; defaults to the
            primary key of the referenced side
        attributes: Attribute -> weight code for this table
        include: Nested includes
        alias: Optional join alias
    """

    model: ModelSchema
    foreign_key: str
    association_type: AssociationType | str
    target_key: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    include: list[AssociationSpec] = field(default_factory=list)
    alias: str | None = None

    @property
    def reference_name(self) -> str:
        """Name columns of this table are qualified with."""
        return self.alias or self.model.table_name

    def validate(self) -> tuple[AssociationType, dict[str, Weight]]:
        """Validate this include (not its children).

        Returns:
            The association type and validated weights
        """
        association_type = validate_association_type(
            self.association_type,
            self.model.table_name,
        )
        if not self.foreign_key:
            msg = "Included association requires a foreign key"
            raise SearchConfigurationError(msg, details={"table": self.model.table_name})
        return association_type, validate_weights(self.attributes)


class TSVECTOR(TypeDecorator):
    """SQLAlchemy type for the materialized ``document`` column.

    Usage:
        class FilmMaterializedView(Base):
            __tablename__ = "film_materialized_view"
            id: Mapped[int] = mapped_column("film_id", primary_key=True)
            document: Mapped[str] = mapped_column(TSVECTOR)

    Note:
        For SQLite testing, this column will be treated as TEXT.
    """

    impl = PG_TSVECTOR
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        """Use native TSVECTOR on PostgreSQL, TEXT elsewhere."""
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_TSVECTOR())
        from sqlalchemy import Text

        return dialect.type_descriptor(Text())


__all__ = [
    "TSVECTOR",
    "AssociationSpec",
    "AssociationType",
    "Weight",
    "validate_association_type",
    "validate_weight",
    "validate_weights",
]
