"""Weighted search document construction.

Builds the tsvector expression a materialized search view stores, together
with the JOIN and GROUP BY clauses needed to compute it across a table and
its included associations:

    setweight(to_tsvector("film"."title"), 'A')
        || setweight(to_tsvector(coalesce("film"."description", '')), 'B')
        || setweight(to_tsvector(coalesce(string_agg("actor"."name", ', '), '')), 'C')

The build runs in three passes:

1. Validate the whole association tree (weights, association types). Bad
   configuration fails here, before any I/O.
2. Describe every table in the tree through the SchemaInspector, concurrently.
3. Walk the tree depth-first (root, then each include in order, nested
   includes before the next sibling) and render fragments, joins, and
   group-by entries. Output order depends only on tree structure.

Cardinality:
- hasMany includes (and everything below them) are aggregated with
  string_agg and never grouped on.
- belongsTo/hasOne includes outside an aggregate add one GROUP BY entry on
  their primary key; the root primary key leads the GROUP BY whenever the
  tree has includes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
import logging
from typing import TYPE_CHECKING, Any

from pgsearch.core.database.exceptions import SearchConfigurationError
from pgsearch.core.database.schema import is_text_type
from pgsearch.core.database.search.statement import (
    cast,
    coalesce,
    col,
    set_weight,
    string_agg,
    table,
    to_tsvector,
)
from pgsearch.core.database.search.types import (
    AssociationSpec,
    AssociationType,
    Weight,
    validate_weights,
)
from pgsearch.core.database.validation import quote_identifier

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from pgsearch.core.database.schema import ColumnDescription, ModelSchema, SchemaInspector

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = ", "


@dataclass(frozen=True)
class DocumentParts:
    """Output of a document build.

    Attributes:
        root: Root model, with any table name / primary key overrides applied
        document: Full tsvector expression
        joins: LEFT OUTER JOIN clauses in traversal order
        group_by: GROUP BY entries (empty when nothing was joined)
        fragments: Per-attribute weighted fragments in traversal order
    """

    root: ModelSchema
    document: str
    joins: tuple[str, ...] = ()
    group_by: tuple[str, ...] = ()
    fragments: tuple[str, ...] = ()


@dataclass(frozen=True, eq=False)
class AssociationNode:
    """A validated node of the association tree."""

    model: ModelSchema
    weights: dict[str, Weight]
    association_type: AssociationType | None = None
    foreign_key: str | None = None
    target_key: str | None = None
    alias: str | None = None
    children: tuple[AssociationNode, ...] = ()
    columns: Mapping[str, ColumnDescription] = field(default_factory=dict)

    @property
    def reference_name(self) -> str:
        return self.alias or self.model.table_name

    @property
    def is_root(self) -> bool:
        return self.association_type is None


@dataclass(frozen=True)
class BuildContext:
    """Traversal state handed down to each node."""

    parent: AssociationNode | None = None
    aggregate: bool = False
    outer: bool = False


@dataclass(frozen=True)
class _Rendered:
    fragments: tuple[str, ...] = ()
    joins: tuple[str, ...] = ()
    group_by: tuple[str, ...] = ()

    def __add__(self, other: _Rendered) -> _Rendered:
        return _Rendered(
            self.fragments + other.fragments,
            self.joins + other.joins,
            self.group_by + other.group_by,
        )


class DocumentBuilder:
    """Builds weighted search documents.

    Example:
        builder = DocumentBuilder(StaticSchemaInspector(film, actor, film_actor))
        parts = await builder.build(
            film,
            {"title": "A", "description": "B"},
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
    """

    def __init__(
        self,
        inspector: SchemaInspector,
        *,
        text_search_config: str | None = None,
        separator: str = DEFAULT_SEPARATOR,
    ) -> None:
        self.inspector = inspector
        self.text_search_config = text_search_config
        self.separator = separator

    async def build(
        self,
        model: ModelSchema,
        attribute_weights: Mapping[str, Any],
        *,
        table_name: str | None = None,
        primary_key: str | None = None,
        include: Sequence[AssociationSpec] | None = None,
    ) -> DocumentParts:
        """Build the document expression for ``model`` and its includes.

        Args:
            model: Root model
            attribute_weights: Root attribute -> weight code, in document order
            table_name: Override for the root table name
            primary_key: Override for the root primary key attribute
            include: Associations to fold into the document

        Raises:
            InvalidWeightError: A weight code is not A, B, C, or D
            InvalidAssociationTypeError: An include has an unknown type
            SearchConfigurationError: The root has no weighted attributes
        """
        overrides: dict[str, str] = {}
        if table_name:
            overrides["table_name"] = table_name
        if primary_key:
            overrides["primary_key"] = primary_key
        root_model = replace(model, **overrides) if overrides else model

        weights = validate_weights(attribute_weights)
        if not weights:
            msg = "Search document requires at least one weighted attribute"
            raise SearchConfigurationError(msg, details={"table": root_model.table_name})

        root = AssociationNode(
            model=root_model,
            weights=weights,
            children=tuple(self._plan(spec) for spec in include or ()),
        )
        root = await self._describe(root)

        rendered = self._render(root, BuildContext())
        if rendered.joins:
            root_key = col(root_model.primary_key_field, root.reference_name)
            rendered = replace(rendered, group_by=(root_key, *rendered.group_by))

        logger.debug(
            "Built search document for %s: %d fragments, %d joins",
            root_model.table_name,
            len(rendered.fragments),
            len(rendered.joins),
        )
        return DocumentParts(
            root=root_model,
            document=" || ".join(rendered.fragments),
            joins=rendered.joins,
            group_by=rendered.group_by,
            fragments=rendered.fragments,
        )

    def _plan(self, spec: AssociationSpec) -> AssociationNode:
        association_type, weights = spec.validate()
        return AssociationNode(
            model=spec.model,
            weights=weights,
            association_type=association_type,
            foreign_key=spec.foreign_key,
            target_key=spec.target_key,
            alias=spec.alias,
            children=tuple(self._plan(child) for child in spec.include),
        )

    async def _describe(self, node: AssociationNode) -> AssociationNode:
        columns, children = await asyncio.gather(
            self.inspector.describe(node.model.table_name),
            asyncio.gather(*(self._describe(child) for child in node.children)),
        )
        return replace(node, columns=columns, children=tuple(children))

    def _render(self, node: AssociationNode, context: BuildContext) -> _Rendered:
        rendered = _Rendered(
            fragments=tuple(
                self._fragment(node, name, weight, context)
                for name, weight in node.weights.items()
            ),
        )

        if not node.is_root and context.parent is not None:
            rendered += _Rendered(joins=(self._join(node, context.parent),))
            if not context.aggregate:
                key = col(node.model.primary_key_field, node.reference_name)
                rendered += _Rendered(group_by=(key,))

        child_context = BuildContext(parent=node, aggregate=context.aggregate, outer=context.outer)
        for child in node.children:
            aggregate = child_context.aggregate or child.association_type == AssociationType.HAS_MANY
            rendered += self._render(child, replace(child_context, aggregate=aggregate, outer=True))
        return rendered

    def _fragment(
        self,
        node: AssociationNode,
        name: str,
        weight: Weight,
        context: BuildContext,
    ) -> str:
        field_name = node.model.field_for(name)
        type_name, nullable = self._column_type(node, name, field_name)

        expression: Any = col(field_name, node.reference_name)
        if not is_text_type(type_name):
            expression = cast(expression)
        if context.aggregate:
            expression = string_agg(expression, self.separator)
        if nullable or context.outer:
            expression = coalesce(expression)
        return str(set_weight(to_tsvector(expression, self.text_search_config), weight))

    @staticmethod
    def _column_type(node: AssociationNode, name: str, field_name: str) -> tuple[str | None, bool]:
        column = node.columns.get(field_name)
        if column is not None:
            return column.type_name, column.nullable
        info = node.model.attribute(name)
        if info is not None:
            return info.type_name, info.nullable
        return None, True

    @staticmethod
    def _join(node: AssociationNode, parent: AssociationNode) -> str:
        if node.association_type == AssociationType.BELONGS_TO:
            target = node.model.field_for(node.target_key) if node.target_key else node.model.primary_key_field
            left = col(parent.model.field_for(node.foreign_key or ""), parent.reference_name)
            right = col(target, node.reference_name)
        else:
            target = (
                parent.model.field_for(node.target_key)
                if node.target_key
                else parent.model.primary_key_field
            )
            left = col(node.model.field_for(node.foreign_key or ""), node.reference_name)
            right = col(target, parent.reference_name)

        alias = f" AS {quote_identifier(node.alias)}" if node.alias else ""
        return f"LEFT OUTER JOIN {table(node.model)}{alias} ON {left} = {right}"


async def build_document(
    model: ModelSchema,
    attribute_weights: Mapping[str, Any],
    *,
    inspector: SchemaInspector,
    table_name: str | None = None,
    primary_key: str | None = None,
    include: Sequence[AssociationSpec] | None = None,
    text_search_config: str | None = None,
    separator: str = DEFAULT_SEPARATOR,
) -> DocumentParts:
    """Convenience wrapper around DocumentBuilder.build()."""
    builder = DocumentBuilder(
        inspector,
        text_search_config=text_search_config,
        separator=separator,
    )
    return await builder.build(
        model,
        attribute_weights,
        table_name=table_name,
        primary_key=primary_key,
        include=include,
    )


__all__ = [
    "AssociationNode",
    "BuildContext",
    "DocumentBuilder",
    "DocumentParts",
    "build_document",
]
