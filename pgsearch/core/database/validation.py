"""SQL identifier validation and quoting.

Identifiers (table, column, view, alias names) cannot be sent as bound
parameters, so they are quoted here before being spliced into statement
text. Names that end up in DDL are additionally validated against
PostgreSQL naming rules.

Example:
    from pgsearch.core.database.validation import quote_identifier, safe_table_reference

    quote_identifier("releaseYear")  # '"releaseYear"'
    safe_table_reference("film_materialized_view")  # '"film_materialized_view"'
"""

from __future__ import annotations

import re

# PostgreSQL identifier rules:
# - Max 63 characters
# - Start with letter or underscore
# - Contain letters, digits, underscores, dollar signs
VALID_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_$]*$")
MAX_IDENTIFIER_LENGTH = 63


class IdentifierValidationError(ValueError):
    """Invalid SQL identifier."""


def validate_identifier(
    name: str,
    *,
    identifier_type: str = "identifier",
) -> str:
    """Validate a SQL identifier.

    Args:
        name: The identifier to validate
        identifier_type: Type description for error messages (e.g., "view", "table")

    Returns:
        The validated identifier (unchanged if valid)

    Raises:
        IdentifierValidationError: If the identifier is invalid

    Example:
        >>> validate_identifier("film_materialized_view")
        'film_materialized_view'
        >>> validate_identifier("films; DROP TABLE film")  # Raises
    """
    if not name:
        msg = f"Empty {identifier_type} name not allowed"
        raise IdentifierValidationError(msg)

    if len(name) > MAX_IDENTIFIER_LENGTH:
        msg = f"{identifier_type} name exceeds maximum length of {MAX_IDENTIFIER_LENGTH}"
        raise IdentifierValidationError(msg)

    if not VALID_IDENTIFIER.match(name):
        msg = (
            f"Invalid {identifier_type} name: must start with letter or underscore, "
            "contain only letters, digits, underscores, or dollar signs"
        )
        raise IdentifierValidationError(msg)

    return name


def quote_identifier(name: str) -> str:
    """Double-quote an identifier, escaping embedded quotes.

    Mixed-case attribute names such as ``releaseYear`` must be quoted to
    survive PostgreSQL's case folding.
    """
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: object) -> str:
    """Render a value as a single-quoted SQL text literal."""
    return "'" + str(value).replace("'", "''") + "'"


def safe_table_reference(
    table_name: str,
    *,
    schema: str | None = None,
) -> str:
    """Create a validated, quoted table reference.

    Args:
        table_name: The table (or view) name to reference
        schema: Optional schema name

    Returns:
        Quoted table reference string (e.g., '"public"."film"')

    Raises:
        IdentifierValidationError: If table or schema name is invalid
    """
    validated_table = validate_identifier(table_name, identifier_type="table")

    if schema:
        validated_schema = validate_identifier(schema, identifier_type="schema")
        return f"{quote_identifier(validated_schema)}.{quote_identifier(validated_table)}"

    return quote_identifier(validated_table)


__all__ = [
    "IdentifierValidationError",
    "quote_identifier",
    "quote_literal",
    "safe_table_reference",
    "validate_identifier",
]
