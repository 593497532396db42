"""Mapping layer - table metadata, value coercion and row-to-object mapping."""

from __future__ import annotations

from entity_sql.mapping.coercion import coerce, zero_value
from entity_sql.mapping.metadata import (
    Column,
    ColumnDescriptor,
    NotMapped,
    TableDescriptor,
    describe,
    table,
)
from entity_sql.mapping.model import AsyncRowIterator, Mapper, Record, RowIterator
from entity_sql.mapping.registry import TableRegistry, default_registry
from entity_sql.mapping.rows import (
    AsyncCursorRowSource,
    CursorRowSource,
    ListRowSource,
    RawRow,
    RowSource,
)

__all__ = [
    "Column",
    "NotMapped",
    "table",
    "describe",
    "ColumnDescriptor",
    "TableDescriptor",
    "coerce",
    "zero_value",
    "TableRegistry",
    "default_registry",
    "Mapper",
    "Record",
    "AsyncRowIterator",
    "RowIterator",
    "RawRow",
    "RowSource",
    "CursorRowSource",
    "AsyncCursorRowSource",
    "ListRowSource",
]
