"""Search configuration and statement exceptions.

Custom exceptions raised by the search compiler before any SQL reaches the
database. Errors raised while a statement executes are never wrapped; they
propagate from the executor unchanged.
"""
from __future__ import annotations

from typing import Any


class SearchError(Exception):
    """Base exception for search compilation.

    Raised when a search or view definition cannot be compiled into SQL
    because of a programming or configuration problem.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize search error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class SearchConfigurationError(SearchError):
    """Invalid materialized view configuration.

    Raised at view-build time, before any DDL is sent to the database.
    """


class InvalidWeightError(SearchConfigurationError):
    """Attribute weight is not one of the four PostgreSQL weight classes.

    Attributes:
        attribute: Name of the attribute carrying the bad weight
        weight: The rejected weight value
    """

    def __init__(self, attribute: str, weight: Any):
        """Initialize invalid weight error.

        Args:
            attribute: Attribute name (e.g., "title")
            weight: The weight that was supplied (e.g., "E")
        """
        self.attribute = attribute
        self.weight = weight
        super().__init__(
            f"Weight for '{attribute}' must be A, B, C, or D",
            details={"attribute": attribute, "weight": weight},
        )

    def __repr__(self) -> str:
        """Repr for debugging."""
        return f"InvalidWeightError(attribute={self.attribute!r}, weight={self.weight!r})"


class InvalidAssociationTypeError(SearchConfigurationError):
    """Association type is not belongsTo, hasOne, or hasMany."""

    def __init__(self, association_type: Any, table_name: str | None = None):
        """Initialize invalid association type error.

        Args:
            association_type: The rejected association type
            table_name: Table of the include that declared it (if known)
        """
        self.association_type = association_type
        details: dict[str, Any] = {"association_type": association_type}
        if table_name:
            details["table"] = table_name
        super().__init__("Unrecognized association type", details=details)


class InvalidOrderDirectionError(SearchError):
    """Order direction other than ASC or DESC was supplied programmatically."""

    def __init__(self, direction: Any):
        self.direction = direction
        super().__init__(
            "Order direction must be ASC or DESC",
            details={"direction": direction},
        )


__all__ = [
    "InvalidAssociationTypeError",
    "InvalidOrderDirectionError",
    "InvalidWeightError",
    "SearchConfigurationError",
    "SearchError",
]
