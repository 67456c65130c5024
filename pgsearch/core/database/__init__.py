"""Core database package: schema metadata, identifier safety, and errors.

Schema:
    - ModelSchema: Attributes, fields, types, scopes of one table or view
    - SchemaInspector / StaticSchemaInspector: Column descriptions by table

Validation:
    - validate_identifier, quote_identifier, quote_literal, safe_table_reference

Exceptions:
    - SearchError and its configuration/order subclasses

Full-text search lives in pgsearch.core.database.search.
"""

from pgsearch.core.database.exceptions import (
    InvalidAssociationTypeError,
    InvalidOrderDirectionError,
    InvalidWeightError,
    SearchConfigurationError,
    SearchError,
)
from pgsearch.core.database.schema import (
    AttributeInfo,
    ColumnDescription,
    ModelSchema,
    SchemaInspector,
    StaticSchemaInspector,
    is_text_type,
)
from pgsearch.core.database.validation import (
    IdentifierValidationError,
    quote_identifier,
    quote_literal,
    safe_table_reference,
    validate_identifier,
)

__all__ = [
    # Schema
    "AttributeInfo",
    "ColumnDescription",
    "ModelSchema",
    "SchemaInspector",
    "StaticSchemaInspector",
    "is_text_type",
    # Validation
    "IdentifierValidationError",
    "quote_identifier",
    "quote_literal",
    "safe_table_reference",
    "validate_identifier",
    # Exceptions
    "InvalidAssociationTypeError",
    "InvalidOrderDirectionError",
    "InvalidWeightError",
    "SearchConfigurationError",
    "SearchError",
]
