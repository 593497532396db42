"""entity-sql exception hierarchy.

Every error raised by the package derives from EntitySQLError. Driver
exceptions are wrapped and chained, never exposed bare to callers.
"""

from __future__ import annotations

from typing import Any


class EntitySQLError(Exception):
    """Base exception for all entity-sql errors."""


# --- Metadata ---


class MetadataError(EntitySQLError):
    """Base for table metadata errors."""


class MissingIdentityColumnError(MetadataError):
    """Raised when an id-based command is requested for a table without identity."""

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(f"The identity column of table '{table_name}' could not be found.")


class AmbiguousIdentityError(MetadataError):
    """Raised when more than one column of an entity is marked as identity."""

    def __init__(self, type_name: str, columns: list[str]) -> None:
        self.type_name = type_name
        self.columns = columns
        super().__init__(
            f"Entity {type_name} declares more than one identity column: {columns}"
        )


# --- Mapping ---


class MappingError(EntitySQLError):
    """Base for mapping errors."""


class CoercionError(MappingError):
    """Base for value conversion errors."""


class InvalidEnumValueError(CoercionError):
    """Raised when a text value matches no member of the target enumeration."""

    def __init__(self, value: Any, enum_type: type) -> None:
        self.value = value
        self.enum_type = enum_type
        super().__init__(f"'{value}' is not a valid member of {enum_type.__name__}")


class UnconvertibleValueError(CoercionError):
    """Raised when no conversion path exists from a value to the target type."""

    def __init__(self, value: Any, target_type: Any, detail: str | None = None) -> None:
        self.value = value
        self.target_type = target_type
        target_name = getattr(target_type, "__name__", repr(target_type))
        message = f"Cannot convert {type(value).__name__} value {value!r} to {target_name}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ColumnMismatchError(MappingError):
    """Raised when mapped row values cannot construct the target type."""

    def __init__(self, target_type: str, details: list[str]) -> None:
        self.target_type = target_type
        self.details = details
        super().__init__(f"Cannot build {target_type} from row: {'; '.join(details)}")


class InvalidSplitBoundaryError(MappingError):
    """Raised when a row split would produce a zero-width first segment."""

    def __init__(self, boundary: str) -> None:
        self.boundary = boundary
        super().__init__(
            f"Split boundary '{boundary}' matches the first column of the row; "
            "the first object would have no columns"
        )


# --- Execution ---


class ExecutionError(EntitySQLError):
    """Base for query execution errors."""


class EmptyResultError(ExecutionError):
    """Raised when exactly one row was expected but the result set is empty."""

    def __init__(self) -> None:
        super().__init__("The result set is empty.")


class MultipleResultsError(ExecutionError):
    """Raised when exactly one row was expected but more were read."""

    def __init__(self) -> None:
        super().__init__("The result set contains more than one record.")


class ParameterBindingError(ExecutionError):
    """Raised when the driver rejects a statement or its parameters."""

    def __init__(self, sql: str, detail: str) -> None:
        self.sql = sql
        super().__init__(f"Statement execution failed for '{sql}': {detail}")


# --- Adapter ---


class AdapterError(EntitySQLError):
    """Base for adapter errors."""


class ConnectionError(AdapterError):  # noqa: A001
    """Raised on connection failures."""
