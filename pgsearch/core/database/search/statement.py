"""SQL statement assembly for search views and search queries.

StatementBuilder accumulates clauses and renders them in a fixed order:

    CREATE, SELECT, FROM, JOIN, WHERE, GROUP BY, ORDER BY, LIMIT, OFFSET

Empty clauses are omitted and the rest are joined with single spaces.
Filter values never enter the SQL text; they are collected as bound
parameters (``:p_0``, ``:p_1``, ...) and returned alongside the SQL in a
RenderedStatement. Identifiers are double-quoted.

Usage:
    statement = (
        StatementBuilder()
        .from_(film_view)
        .select(SelectField("title", model=film, alias="title"))
        .left_outer_join(film, film_view)
        .where(WhereCondition("releaseYear", ">=", 2012, model=film))
        .order_by([(col("release_year", film), "DESC")])
        .limit(10)
        .build()
    )
    # statement.sql:
    #   SELECT "film"."title" AS "title" FROM "film_materialized_view"
    #   LEFT OUTER JOIN "film" ON "film"."film_id" = "film_materialized_view"."film_id"
    #   WHERE "film"."release_year" >= :p_0 ORDER BY "film"."release_year" DESC LIMIT 10;
    # statement.params: {"p_0": 2012}

Column references are not checked against schema metadata; a bad
reference fails when the statement executes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
import re
from typing import Any

from pgsearch.core.database.exceptions import InvalidOrderDirectionError
from pgsearch.core.database.schema import ModelSchema
from pgsearch.core.database.validation import (
    quote_identifier,
    quote_literal,
    safe_table_reference,
)

FUZZY_OPERATORS = frozenset({"fuzzy", "ilike"})
ORDER_DIRECTIONS = frozenset({"ASC", "DESC"})
UNBOUNDED = -1

_PLACEHOLDER = re.compile(r"(?<![:\w]):(p_\d+)\b")


@dataclass(frozen=True)
class BindValue:
    """A value sent to the database as a bound parameter."""

    value: Any


class Fn:
    """A SQL function call.

    Arguments are raw SQL strings, nested Fn calls, or BindValue instances.

    Example:
        >>> str(Fn("coalesce", '"film"."title"', "''"))
        'coalesce("film"."title", \\'\\')'
    """

    def __init__(self, fn: str, *args: Any) -> None:
        self.fn = fn
        self.args = args

    def render(self, bind: Callable[[BindValue], str]) -> str:
        """Render the call, turning BindValue arguments into placeholders."""
        rendered = []
        for arg in self.args:
            if isinstance(arg, Fn):
                rendered.append(arg.render(bind))
            elif isinstance(arg, BindValue):
                rendered.append(bind(arg))
            else:
                rendered.append(str(arg))
        return f"{self.fn}({', '.join(rendered)})"

    def __str__(self) -> str:
        return self.render(lambda bound: quote_literal(bound.value))

    def __repr__(self) -> str:
        return f"Fn({self.fn!r}, {', '.join(repr(arg) for arg in self.args)})"


@dataclass(frozen=True)
class RenderedStatement:
    """SQL text with named placeholders and the values bound to them."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_literal(self) -> str:
        """Inline bound values as quoted literals, for logs and debugging."""
        if not self.params:
            return self.sql
        return _PLACEHOLDER.sub(
            lambda match: quote_literal(self.params[match.group(1)]),
            self.sql,
        )

    def __str__(self) -> str:
        return self.sql


@dataclass(frozen=True)
class SelectField:
    """A projected field.

    Either a column (``field`` qualified by ``model``) or a raw expression,
    which requires an alias.
    """

    field: str | None = None
    model: ModelSchema | str | None = None
    alias: str | None = None
    raw: str | Fn | None = None

    def __post_init__(self) -> None:
        if self.raw is not None and not self.alias:
            msg = "Raw select expressions require an alias"
            raise ValueError(msg)
        if self.raw is None and not self.field:
            msg = "Select field requires a column name or a raw expression"
            raise ValueError(msg)


@dataclass(frozen=True)
class WhereCondition:
    """A predicate: ``attribute operator value``.

    ``model`` defaults to the builder's FROM model. The ``fuzzy`` (or
    ``ilike``) operator renders a case-insensitive substring match.
    """

    attribute: str
    operator: str
    value: Any
    model: ModelSchema | None = None


@dataclass
class StatementPlan:
    """Clauses accumulated by one StatementBuilder."""

    create: str = ""
    select: list[str] = field(default_factory=list)
    from_: str = ""
    joins: list[str] = field(default_factory=list)
    where: list[str] = field(default_factory=list)
    group_by: list[str] = field(default_factory=list)
    order_by: list[str] = field(default_factory=list)
    limit: int = UNBOUNDED
    offset: int = 0


def table(model: ModelSchema | str) -> str:
    """Quoted table name from a ModelSchema or a table name."""
    return quote_identifier(model if isinstance(model, str) else model.table_name)


def col(field_name: str, model: ModelSchema | str | None = None, alias: str | None = None) -> str:
    """Column reference.

    Example:
        >>> col("release_year", "film", "releaseYear")
        '"film"."release_year" AS "releaseYear"'
    """
    qualifier = f"{table(model)}." if model else ""
    suffix = f" AS {quote_identifier(alias)}" if alias else ""
    return f"{qualifier}{quote_identifier(field_name)}{suffix}"


def cast(expression: str, type_name: str = "TEXT") -> str:
    """PostgreSQL ``::`` cast."""
    return f"{expression}::{type_name}"


def set_weight(vector: str | Fn, weight: str) -> Fn:
    """setweight(vector, 'W')."""
    return Fn("setweight", vector, quote_literal(weight))


def to_tsvector(expression: str | Fn, config: str | None = None) -> Fn:
    """to_tsvector([config,] expression)."""
    if config:
        return Fn("to_tsvector", quote_literal(config), expression)
    return Fn("to_tsvector", expression)


def to_tsquery(query: str | BindValue, config: str | None = None) -> Fn:
    """to_tsquery([config,] query); plain strings are bound, not inlined."""
    bound = query if isinstance(query, BindValue) else BindValue(query)
    if config:
        return Fn("to_tsquery", quote_literal(config), bound)
    return Fn("to_tsquery", bound)


def ts_rank(vector: str, query: Fn) -> Fn:
    """ts_rank(vector, query)."""
    return Fn("ts_rank", vector, query)


def coalesce(expression: str | Fn, fallback: str = "") -> Fn:
    """coalesce(expression, 'fallback')."""
    return Fn("coalesce", expression, quote_literal(fallback))


def string_agg(expression: str | Fn, separator: str = ", ") -> Fn:
    """string_agg(expression, 'separator')."""
    return Fn("string_agg", expression, quote_literal(separator))


def refresh_materialized_view_sql(name: ModelSchema | str) -> RenderedStatement:
    """REFRESH MATERIALIZED VIEW statement (full rebuild)."""
    return RenderedStatement(f"REFRESH MATERIALIZED VIEW {_view_reference(name)};")


def drop_materialized_view_sql(name: ModelSchema | str, *, if_exists: bool = False) -> RenderedStatement:
    """DROP MATERIALIZED VIEW statement."""
    guard = "IF EXISTS " if if_exists else ""
    return RenderedStatement(f"DROP MATERIALIZED VIEW {guard}{_view_reference(name)};")


def _view_reference(name: ModelSchema | str) -> str:
    return safe_table_reference(name if isinstance(name, str) else name.table_name)


class StatementBuilder:
    """Clause accumulator for a single statement.

    A builder is scoped to one build; create a new one per statement.
    """

    def __init__(self) -> None:
        self.plan = StatementPlan()
        self.model: ModelSchema | None = None
        self._params: dict[str, Any] = {}
        # id -> (value, placeholder); holding the value keeps its id unique
        self._placeholders: dict[int, tuple[BindValue, str]] = {}

    def create_materialized_view(self, name: ModelSchema | str) -> StatementBuilder:
        """Make this a CREATE MATERIALIZED VIEW ... AS statement."""
        self.plan.create = _view_reference(name)
        return self

    def select(self, *fields: SelectField) -> StatementBuilder:
        """Add projected fields."""
        for select_field in fields:
            if select_field.raw is not None:
                expression = select_field.raw
                if isinstance(expression, Fn):
                    expression = expression.render(self._bind)
                self.plan.select.append(f"{expression} AS {quote_identifier(select_field.alias or '')}")
            else:
                self.plan.select.append(
                    col(select_field.field or "", select_field.model, select_field.alias)
                )
        return self

    def from_(self, model: ModelSchema | str) -> StatementBuilder:
        """Set the FROM table; a ModelSchema also becomes the default WHERE model."""
        if isinstance(model, ModelSchema):
            self.model = model
        self.plan.from_ = table(model)
        return self

    def left_outer_join(
        self,
        reference: ModelSchema | str,
        model: ModelSchema | str,
        target_key: str | None = None,
        alias: str | None = None,
    ) -> StatementBuilder:
        """LEFT OUTER JOIN ``reference``.

        Args:
            reference: Table to join
            model: Model to join on (primary keys of both sides are
                compared), or an already rendered left-hand key
            target_key: Rendered right-hand key; defaults to the primary
                key of ``model``
            alias: Optional alias for the joined table
        """
        if isinstance(model, str):
            first_key = model
        else:
            first_key = col(_primary_key_field(reference), reference)
        if target_key:
            second_key = target_key
        else:
            second_key = col(_primary_key_field(model), model)

        alias_sql = f" AS {quote_identifier(alias)}" if alias else ""
        self.plan.joins.append(
            f"LEFT OUTER JOIN {table(reference)}{alias_sql} ON {first_key} = {second_key}"
        )
        return self

    def join(self, *clauses: str) -> StatementBuilder:
        """Append already rendered JOIN clauses."""
        self.plan.joins.extend(clauses)
        return self

    def where(self, *conditions: WhereCondition) -> StatementBuilder:
        """Add predicates, combined with AND."""
        for condition in conditions:
            self.plan.where.append(self._render_condition(condition))
        return self

    def group_by(self, field_name: str, model: ModelSchema | str | None = None) -> StatementBuilder:
        """Add a GROUP BY entry; without ``model`` the field is used as rendered."""
        self.plan.group_by.append(col(field_name, model) if model else field_name)
        return self

    def order_by(self, fields: Iterable[tuple[str | Fn, str]]) -> StatementBuilder:
        """Add ``(expression, direction)`` order entries in order."""
        for expression, direction in fields:
            normalized = str(direction).upper()
            if normalized not in ORDER_DIRECTIONS:
                raise InvalidOrderDirectionError(direction)
            rendered = expression.render(self._bind) if isinstance(expression, Fn) else expression
            self.plan.order_by.append(f"{rendered} {normalized}")
        return self

    def limit(self, max_rows: int | None) -> StatementBuilder:
        """Set LIMIT; None or a negative value means unbounded."""
        self.plan.limit = UNBOUNDED if max_rows is None else max_rows
        return self

    def offset(self, rows: int | None) -> StatementBuilder:
        """Set OFFSET; None or 0 omits the clause."""
        self.plan.offset = rows or 0
        return self

    # ------------------
    # Rendering
    # ------------------

    def get_create(self) -> str:
        return f"CREATE MATERIALIZED VIEW {self.plan.create} AS" if self.plan.create else ""

    def get_select(self) -> str:
        return f"SELECT {', '.join(self.plan.select)}" if self.plan.select else ""

    def get_from(self) -> str:
        return f"FROM {self.plan.from_}" if self.plan.from_ else ""

    def get_join(self) -> str:
        return " ".join(self.plan.joins)

    def get_where(self) -> str:
        return f"WHERE {' AND '.join(self.plan.where)}" if self.plan.where else ""

    def get_group_by(self) -> str:
        return f"GROUP BY {', '.join(self.plan.group_by)}" if self.plan.group_by else ""

    def get_order_by(self) -> str:
        return f"ORDER BY {', '.join(self.plan.order_by)}" if self.plan.order_by else ""

    def get_limit(self) -> str:
        return f"LIMIT {int(self.plan.limit)}" if self.plan.limit >= 0 else ""

    def get_offset(self) -> str:
        return f"OFFSET {int(self.plan.offset)}" if self.plan.offset > 0 else ""

    def build(self) -> RenderedStatement:
        """Render the statement and its bound parameters."""
        clauses = (
            self.get_create(),
            self.get_select(),
            self.get_from(),
            self.get_join(),
            self.get_where(),
            self.get_group_by(),
            self.get_order_by(),
            self.get_limit(),
            self.get_offset(),
        )
        sql = " ".join(clause for clause in clauses if clause) + ";"
        return RenderedStatement(sql=sql, params=dict(self._params))

    def _bind(self, bound: BindValue) -> str:
        """Register a bound value, reusing the placeholder for the same BindValue."""
        registered = self._placeholders.get(id(bound))
        if registered is not None:
            return registered[1]
        name = f"p_{len(self._params)}"
        self._params[name] = bound.value
        self._placeholders[id(bound)] = (bound, f":{name}")
        return f":{name}"

    def _render_condition(self, condition: WhereCondition) -> str:
        model = condition.model or self.model
        info = model.attribute(condition.attribute) if model is not None else None
        field_name = info.field if info is not None else condition.attribute
        column = col(field_name, model)
        operator = condition.operator
        value = condition.value

        if str(operator).lower() in FUZZY_OPERATORS:
            operator = "ILIKE"
            if info is None or not info.is_text:
                column = cast(column)
            value = f"%{value}%"

        if isinstance(value, Fn):
            rendered = value.render(self._bind)
        else:
            rendered = self._bind(BindValue(value))
        return f"{column} {operator} {rendered}"


def _primary_key_field(model: ModelSchema | str) -> str:
    return model if isinstance(model, str) else model.primary_key_field


__all__ = [
    "BindValue",
    "Fn",
    "RenderedStatement",
    "SelectField",
    "StatementBuilder",
    "StatementPlan",
    "WhereCondition",
    "cast",
    "coalesce",
    "col",
    "drop_materialized_view_sql",
    "refresh_materialized_view_sql",
    "set_weight",
    "string_agg",
    "table",
    "to_tsquery",
    "to_tsvector",
    "ts_rank",
]
