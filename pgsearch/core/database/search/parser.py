"""Search query language parser.

Compiles a human-typed search string into free text plus structured
filter, order, and pagination intent.

Syntax:
- words: Free text, matched against the materialized search document
- key:value: Filter on attribute ``key`` (case-insensitive substring match)
- key:=value, key:>value, key:<value, key:>=value, key:<=value: Comparisons
- order:attribute: Order ascending by attribute
- order:!attribute: Order descending by attribute
- limit:N, offset:N: Pagination

A key is the run of non-space characters directly before a colon. Its value
runs to the next key or the end of the string, so values may contain spaces:

    "Mind title:a beautiful mind order:!releaseYear limit:5"

Free text is whatever remains once every key:value token is removed. The
parser never fails; anything it cannot interpret stays in the free text.

Usage:
    from pgsearch.core.database.search.parser import parse_search_query

    free_text, parsed = parse_search_query("Mind releaseDate:<2002-01-01")
    # free_text == "Mind"
    # parsed.filters == {"releaseDate": FilterCondition("<", "2002-01-01")}
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from pgsearch.core.database.search.options import SearchOptions

ORDER_KEY = "order"
LIMIT_KEY = "limit"
OFFSET_KEY = "offset"
RESERVED_KEYS = frozenset({ORDER_KEY, LIMIT_KEY, OFFSET_KEY})

DESCENDING_PREFIX = "!"
UNBOUNDED_LIMIT = -1

_LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")


class TokenType(StrEnum):
    """Types of tokens in a search query."""

    TEXT = "text"
    KEY_VALUE = "key_value"


class FilterOperator(StrEnum):
    """Comparison operators a filter value may start with."""

    EQ = "="
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    FUZZY = "fuzzy"


class SortDirection(StrEnum):
    """Order by direction."""

    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class QueryToken:
    """A token from the search query.

    ``start``/``end`` are offsets into the raw string; for KEY_VALUE tokens
    the span covers ``key:value``.
    """

    type: TokenType
    value: str
    start: int
    end: int
    key: str | None = None


@dataclass(frozen=True)
class FilterCondition:
    """A single attribute filter."""

    operator: str
    value: Any


class OrderClause(NamedTuple):
    """An ``(expression, direction)`` pair."""

    expression: str
    direction: str = SortDirection.ASC


@dataclass(frozen=True)
class ParsedQuery:
    """Result of parsing a search query.

    Attributes:
        free_text: Remaining text for full-text matching
        filters: Attribute filters, last occurrence of a key wins
        order: Order clauses in the order they were typed
        limit: Maximum rows, -1 for unbounded
        offset: Rows to skip
    """

    free_text: str = ""
    filters: Mapping[str, FilterCondition] = field(
        default_factory=lambda: MappingProxyType({})
    )
    order: tuple[OrderClause, ...] = ()
    limit: int = UNBOUNDED_LIMIT
    offset: int = 0

    def has_free_text(self) -> bool:
        """Check if there's text to match against the search document."""
        return bool(self.free_text)

    def to_query_string(self) -> str:
        """Serialize back into the query language.

        Parsing the result yields an equal ParsedQuery. The string itself
        may differ from the one originally typed.
        """
        parts: list[str] = []
        if self.free_text:
            parts.append(self.free_text)
        for key, condition in self.filters.items():
            if condition.operator == FilterOperator.FUZZY:
                parts.append(f"{key}:{condition.value}")
            elif str(condition.value).startswith(FilterOperator.EQ):
                # keep ">" + "=5" from reading back as ">=" + "5"
                parts.append(f"{key}:{condition.operator} {condition.value}")
            else:
                parts.append(f"{key}:{condition.operator}{condition.value}")
        for clause in self.order:
            prefix = DESCENDING_PREFIX if clause.direction == SortDirection.DESC else ""
            parts.append(f"{ORDER_KEY}:{prefix}{clause.expression}")
        if self.limit != UNBOUNDED_LIMIT:
            parts.append(f"{LIMIT_KEY}:{self.limit}")
        if self.offset:
            parts.append(f"{OFFSET_KEY}:{self.offset}")
        return " ".join(parts)

    def to_options(self) -> SearchOptions:
        """Convert the structured intent into SearchOptions."""
        from pgsearch.core.database.search.options import SearchOptions

        return SearchOptions.from_parsed_query(self)


def all_indices_of(text: str, substring: str) -> list[int]:
    """Return every index at which ``substring`` occurs in ``text``.

    Overlapping occurrences are included. An empty substring matches nothing.

    Example:
        >>> all_indices_of("a:b c:d", ":")
        [1, 5]
    """
    if not substring:
        return []

    indices = []
    index = text.find(substring)
    while index > -1:
        indices.append(index)
        index = text.find(substring, index + 1)
    return indices


def _parse_int(value: str, default: int) -> int:
    """Parse a leading integer, falling back to ``default``."""
    match = _LEADING_INTEGER.match(value)
    if match is None:
        return default
    return int(match.group(1))


class SearchQueryParser:
    """Parser for the search query language.

    Example:
        parser = SearchQueryParser()

        result = parser.parse("Washington limit:2 offset:1")
        # result.free_text == "Washington"
        # result.limit == 2, result.offset == 1

        result = parser.parse("title:the hangover order:!releaseYear")
        # result.filters == {"title": FilterCondition("fuzzy", "the hangover")}
        # result.order == (OrderClause("releaseYear", "DESC"),)
    """

    def parse(self, query: str | None) -> ParsedQuery:
        """Parse a search query string.

        Args:
            query: User's search query

        Returns:
            ParsedQuery with parsed components
        """
        free_text: list[str] = []
        filters: dict[str, FilterCondition] = {}
        order: list[OrderClause] = []
        limit = UNBOUNDED_LIMIT
        offset = 0

        for token in self.tokenize(query or ""):
            if token.type == TokenType.TEXT:
                free_text.append(token.value)
                continue

            key = token.key or ""
            value = token.value.strip()

            if key == ORDER_KEY:
                clause = self._parse_order(value)
                if clause is not None:
                    order.append(clause)
            elif key == LIMIT_KEY:
                limit = max(_parse_int(value, UNBOUNDED_LIMIT), UNBOUNDED_LIMIT)
            elif key == OFFSET_KEY:
                offset = max(_parse_int(value, 0), 0)
            else:
                filters[key] = self._parse_filter(value)

        return ParsedQuery(
            free_text=" ".join(" ".join(free_text).split()),
            filters=MappingProxyType(filters),
            order=tuple(order),
            limit=limit,
            offset=offset,
        )

    def tokenize(self, query: str) -> list[QueryToken]:
        """Split the query into TEXT and KEY_VALUE tokens.

        Args:
            query: Query string to tokenize

        Returns:
            Tokens in textual order
        """
        keys = self._find_keys(query)
        tokens: list[QueryToken] = []

        text_end = keys[0][1] if keys else len(query)
        if query[:text_end].strip():
            tokens.append(QueryToken(TokenType.TEXT, query[:text_end], 0, text_end))

        for i, (key, start, colon) in enumerate(keys):
            end = keys[i + 1][1] if i + 1 < len(keys) else len(query)
            tokens.append(
                QueryToken(
                    type=TokenType.KEY_VALUE,
                    value=query[colon + 1 : end],
                    start=start,
                    end=end,
                    key=key,
                )
            )

        return tokens

    def _find_keys(self, query: str) -> list[tuple[str, int, int]]:
        """Locate key tokens as ``(key, key_start, colon_index)``.

        A key starts at the beginning of the string or after whitespace and
        holds no colon itself, so a colon inside a value (``time:12:30``)
        does not start a new key.
        """
        keys = []
        run_start = 0
        scanned = 0
        run_has_colon = False
        for colon in all_indices_of(query, ":"):
            # only the text since the previous colon is new
            for index in range(colon - 1, scanned - 1, -1):
                if query[index].isspace():
                    run_start = index + 1
                    run_has_colon = False
                    break
            scanned = colon + 1
            if colon > run_start and not run_has_colon:
                keys.append((query[run_start:colon], run_start, colon))
            run_has_colon = True
        return keys

    @staticmethod
    def _parse_order(value: str) -> OrderClause | None:
        if value.startswith(DESCENDING_PREFIX):
            expression = value[len(DESCENDING_PREFIX) :].strip()
            return OrderClause(expression, SortDirection.DESC) if expression else None
        return OrderClause(value, SortDirection.ASC) if value else None

    @staticmethod
    def _parse_filter(value: str) -> FilterCondition:
        if value[:1] in (FilterOperator.EQ, FilterOperator.GT, FilterOperator.LT):
            operator = value[:1]
            if operator != FilterOperator.EQ and value[1:2] == "=":
                operator = value[:2]
            return FilterCondition(
                operator=FilterOperator(operator),
                value=value[len(operator) :].strip(),
            )
        return FilterCondition(operator=FilterOperator.FUZZY, value=value)


def parse_search_query(query: str | None) -> tuple[str, ParsedQuery]:
    """Convenience function to parse a search query.

    Args:
        query: Search query string

    Returns:
        The free-text term and the ParsedQuery it came from
    """
    parsed = SearchQueryParser().parse(query)
    return parsed.free_text, parsed


__all__ = [
    "FilterCondition",
    "FilterOperator",
    "OrderClause",
    "ParsedQuery",
    "QueryToken",
    "SearchQueryParser",
    "SortDirection",
    "TokenType",
    "all_indices_of",
    "parse_search_query",
]
