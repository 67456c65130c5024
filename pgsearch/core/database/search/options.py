"""Caller-supplied search options.

``SearchOptions`` carries the structured part of a search request: filters,
projection, order, and pagination. It can be built directly, from a plain
dict, or from a ParsedQuery produced by the query language parser.

Example:
    options = SearchOptions(
        where={
            "releaseYear": {"operator": ">=", "value": 2012},
            "rating": "PG-13",  # plain values compare with "="
        },
        attributes=["title", "releaseYear"],
        order=[("releaseYear", "DESC"), "title"],
        limit=10,
    )
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pgsearch.core.database.search.parser import (
    FilterCondition,
    FilterOperator,
    OrderClause,
    SortDirection,
)

if TYPE_CHECKING:
    from pgsearch.core.database.search.parser import ParsedQuery


def _to_filter_condition(value: Any) -> FilterCondition:
    if isinstance(value, FilterCondition):
        return value
    if isinstance(value, Mapping) and "operator" in value:
        return FilterCondition(operator=value["operator"], value=value.get("value"))
    return FilterCondition(operator=FilterOperator.EQ, value=value)


def _to_order_clause(value: Any) -> OrderClause:
    if isinstance(value, str):
        return OrderClause(value, SortDirection.ASC)
    expression, direction = value
    normalized = str(direction).upper()
    if normalized not in (SortDirection.ASC, SortDirection.DESC):
        msg = f"Order direction must be ASC or DESC, got: {direction}"
        raise ValueError(msg)
    return OrderClause(expression, SortDirection(normalized))


class SearchOptions(BaseModel):
    """Structured search options.

    Attributes:
        where: Attribute filters, bound to the view's reference table
        attributes: Attributes to project (overrides scopes)
        order: ``(attribute, direction)`` pairs; disables relevance ordering
        limit: Maximum rows, -1 for unbounded
        offset: Rows to skip
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    where: dict[str, FilterCondition] = Field(default_factory=dict)
    attributes: list[str] | None = None
    order: list[OrderClause] = Field(default_factory=list)
    limit: int | None = Field(default=None, ge=-1)
    offset: int | None = Field(default=None, ge=0)

    @field_validator("where", mode="before")
    @classmethod
    def _normalize_where(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, Mapping):
            return {key: _to_filter_condition(value) for key, value in v.items()}
        return v

    @field_validator("order", mode="before")
    @classmethod
    def _normalize_order(cls, v: Any) -> Any:
        if v is None:
            return []
        return [_to_order_clause(item) for item in v]

    @classmethod
    def from_parsed_query(cls, parsed: ParsedQuery) -> SearchOptions:
        """Build options from the structured part of a ParsedQuery."""
        return cls(
            where=dict(parsed.filters),
            order=list(parsed.order),
            limit=parsed.limit,
            offset=parsed.offset,
        )

    def merged_with(self, overrides: SearchOptions | None) -> SearchOptions:
        """Overlay explicitly set fields of ``overrides`` onto these options.

        Filters merge per attribute with ``overrides`` winning; every other
        field is replaced wholesale when ``overrides`` sets it.
        """
        if overrides is None:
            return self

        update: dict[str, Any] = {}
        for name in overrides.model_fields_set:
            if name == "where":
                update["where"] = {**self.where, **overrides.where}
            else:
                update[name] = getattr(overrides, name)
        return self.model_copy(update=update)


__all__ = ["SearchOptions"]
