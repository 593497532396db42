"""entity-sql - entity-aware SQL command generation and row mapping."""

from __future__ import annotations

import logging

from entity_sql.core.command import CommandBuilder, GeneratedCommand
from entity_sql.core.connection import ConnectionConfig, connect, connect_async
from entity_sql.core.dialect import DialectProfile, dialect_for
from entity_sql.core.engine import AsyncEngine, Engine
from entity_sql.core.enums import (
    CatalogLocation,
    CommandType,
    DatabaseBackend,
    ParameterDirection,
)
from entity_sql.core.exceptions import (
    AdapterError,
    AmbiguousIdentityError,
    CoercionError,
    ColumnMismatchError,
    ConnectionError,  # noqa: A004
    EmptyResultError,
    EntitySQLError,
    ExecutionError,
    InvalidEnumValueError,
    InvalidSplitBoundaryError,
    MappingError,
    MetadataError,
    MissingIdentityColumnError,
    MultipleResultsError,
    ParameterBindingError,
    UnconvertibleValueError,
)
from entity_sql.core.options import CommandOptions, QueryOptions
from entity_sql.core.params import DB_NULL, Parameter, ParameterCollection
from entity_sql.mapping.coercion import coerce
from entity_sql.mapping.metadata import Column, NotMapped, TableDescriptor, table
from entity_sql.mapping.model import Mapper, Record
from entity_sql.mapping.registry import TableRegistry, default_registry
from entity_sql.repository.base import AsyncRepository, Repository

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Connection
    "ConnectionConfig",
    "connect",
    "connect_async",
    # Engine
    "Engine",
    "AsyncEngine",
    "CommandOptions",
    "QueryOptions",
    # Commands
    "CommandBuilder",
    "GeneratedCommand",
    "DialectProfile",
    "dialect_for",
    "Parameter",
    "ParameterCollection",
    "DB_NULL",
    # Metadata
    "Column",
    "NotMapped",
    "table",
    "TableDescriptor",
    "TableRegistry",
    "default_registry",
    # Mapping
    "Mapper",
    "Record",
    "coerce",
    # Repository
    "Repository",
    "AsyncRepository",
    # Enums
    "CatalogLocation",
    "CommandType",
    "DatabaseBackend",
    "ParameterDirection",
    # Exceptions
    "EntitySQLError",
    "MetadataError",
    "MissingIdentityColumnError",
    "AmbiguousIdentityError",
    "MappingError",
    "CoercionError",
    "InvalidEnumValueError",
    "UnconvertibleValueError",
    "ColumnMismatchError",
    "InvalidSplitBoundaryError",
    "ExecutionError",
    "EmptyResultError",
    "MultipleResultsError",
    "ParameterBindingError",
    "AdapterError",
    "ConnectionError",
]
