"""Single-table command generation.

CommandBuilder turns an entity type (or instance) into the SQL text and
parameters of a select, exists, insert, update or delete by identity, using
the conventions of the connection's dialect.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from entity_sql.core.dialect import DialectProfile, dialect_for, driver_identity
from entity_sql.core.exceptions import MetadataError, MissingIdentityColumnError
from entity_sql.core.params import Parameter, ParameterCollection
from entity_sql.mapping.metadata import ColumnDescriptor, TableDescriptor
from entity_sql.mapping.registry import TableRegistry, default_registry

logger = logging.getLogger(__name__)

# Output bind receiving the identity of ``RETURNING ... INTO`` inserts
IDENTITY_OUTPUT = "new_identity"


@dataclass(frozen=True)
class GeneratedCommand:
    """SQL text and the parameters it references, in placeholder order."""

    text: str
    parameters: ParameterCollection = field(default_factory=ParameterCollection)

    def __iter__(self) -> Any:
        # Allows ``text, parameters = builder.build_insert(entity)``
        return iter((self.text, self.parameters))


def _parameter_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class CommandBuilder:
    """Generates single-table commands for entities.

    The dialect is resolved once at construction, from ``driver`` when given,
    otherwise from the driver identity of ``connection``.

    Args:
        connection: DB-API connection whose driver selects the dialect.
        driver: Driver identity overriding the connection's (``"sqlite3"``,
            ``"psycopg"``, ``"oracledb"``...).
        registry: Table registry used to resolve entity types.
    """

    def __init__(
        self,
        connection: Any = None,
        *,
        driver: str | None = None,
        registry: TableRegistry | None = None,
    ) -> None:
        if driver is None:
            driver = driver_identity(connection) if connection is not None else ""
        self._dialect = dialect_for(driver)
        self._registry = registry if registry is not None else default_registry

    @property
    def dialect(self) -> DialectProfile:
        return self._dialect

    # --- Naming ---

    def quote_identifier(self, unquoted: str) -> str:
        """Return the quoted form of an identifier."""
        return self._dialect.quote_identifier(unquoted)

    def unquote_identifier(self, quoted: str) -> str:
        """Return the unquoted form of a quoted identifier."""
        return self._dialect.unquote_identifier(quoted)

    def quote_table(self, name: str, schema: str | None = None, catalog: str | None = None) -> str:
        """Return the quoted, qualified name of a table."""
        return self._dialect.qualify_table(name, schema, catalog)

    def get_parameter_name(self, name: str) -> str:
        """Return the full parameter name for a partial name."""
        return self._dialect.parameter_name(name)

    # --- Commands ---

    def build_select(
        self,
        entity_type: type,
        id: Any,  # noqa: A002
        columns: Sequence[str] | None = None,
    ) -> GeneratedCommand:
        """Command selecting the row whose identity equals *id*.

        Args:
            entity_type: The mapped entity type.
            id: The identity value.
            columns: Physical column names to select; all columns when empty.
                The identity column is always selected.

        Raises:
            MissingIdentityColumnError: If the table has no identity column.
        """
        table, identity = self._table_with_identity(entity_type)
        if columns:
            names = list(dict.fromkeys(columns))
            if identity.name not in names:
                names.append(identity.name)
            field_list = ", ".join(self.quote_identifier(name) for name in names)
        else:
            field_list = "*"

        where, parameters = self._identity_filter(identity, id)
        return self._command(f"SELECT {field_list} FROM {self._table_name(table)} {where}", parameters)

    def build_exists(self, entity_type: type, id: Any) -> GeneratedCommand:  # noqa: A002
        """Command yielding ``1`` when a row with identity *id* exists.

        Raises:
            MissingIdentityColumnError: If the table has no identity column.
        """
        table, identity = self._table_with_identity(entity_type)
        where, parameters = self._identity_filter(identity, id)
        return self._command(f"SELECT 1 FROM {self._table_name(table)} {where}", parameters)

    def build_delete(self, instance: Any) -> GeneratedCommand:
        """Command deleting the row of *instance*, by its current identity value.

        Raises:
            MissingIdentityColumnError: If the table has no identity column.
        """
        table, identity = self._table_with_identity(type(instance))
        where, parameters = self._identity_filter(identity, identity.get_value(instance))
        return self._command(f"DELETE FROM {self._table_name(table)} {where}", parameters)

    def build_insert(self, instance: Any) -> GeneratedCommand:
        """Command inserting *instance* and yielding the generated identity.

        Every writable, non-computed column is inserted, in descriptor order.
        The identity comes back through a RETURNING clause, a
        ``RETURNING ... INTO`` output bind, or the dialect's last-insert-id
        statement appended after a ``;``.

        Raises:
            MissingIdentityColumnError: If the table has no identity column.
        """
        table, identity = self._table_with_identity(type(instance))
        columns = table.writable_columns
        parameters = ParameterCollection()
        placeholders = []
        for position, column in enumerate(columns, start=1):
            placeholders.append(self._placeholder(column))
            parameters.append(self._parameter(column, column.get_value(instance), position))

        if columns:
            column_list = ", ".join(self.quote_identifier(column.name) for column in columns)
            text = (
                f"INSERT INTO {self._table_name(table)} ({column_list}) "
                f"VALUES ({', '.join(placeholders)})"
            )
        else:
            text = f"INSERT INTO {self._table_name(table)} DEFAULT VALUES"

        if self._dialect.supports_returning_clause:
            text = f"{text} RETURNING {self.quote_identifier(identity.name)}"
        elif self._dialect.returning_into:
            text = (
                f"{text} RETURNING {self.quote_identifier(identity.name)} "
                f"INTO {self._dialect.parameter_name(IDENTITY_OUTPUT)}"
            )
        elif self._dialect.last_insert_id_expression:
            text = f"{text}; {self._dialect.last_insert_id_expression}"
        return self._command(text, parameters)

    def build_update(self, instance: Any, columns: Sequence[str] | None = None) -> GeneratedCommand:
        """Command updating the row of *instance*.

        Args:
            instance: The entity to update.
            columns: Attribute or physical names of the columns to update;
                every writable, non-computed column when empty.

        Returns:
            The command. Its parameters hold the updated columns in
            descriptor order, then the identity.

        Raises:
            MissingIdentityColumnError: If the table has no identity column.
            MetadataError: If a requested column is unknown or not writable, or
                there is no column to update.
        """
        table, identity = self._table_with_identity(type(instance))
        updated = self._update_columns(table, columns)
        if not updated:
            raise MetadataError(f"Table '{table.name}' has no writable columns to update")

        parameters = ParameterCollection()
        assignments = []
        for position, column in enumerate(updated, start=1):
            assignments.append(f"{self.quote_identifier(column.name)} = {self._placeholder(column)}")
            parameters.append(self._parameter(column, column.get_value(instance), position))

        parameters.append(self._parameter(identity, identity.get_value(instance), len(updated) + 1))
        text = (
            f"UPDATE {self._table_name(table)} SET {', '.join(assignments)} "
            f"WHERE {self.quote_identifier(identity.name)} = {self._placeholder(identity)}"
        )
        return self._command(text, parameters)

    # --- Helpers ---

    def _table_with_identity(self, entity_type: type) -> tuple[TableDescriptor, ColumnDescriptor]:
        table = self._registry.resolve(entity_type)
        if table.identity_column is None:
            raise MissingIdentityColumnError(table.name)
        return table, table.identity_column

    def _table_name(self, table: TableDescriptor) -> str:
        return self.quote_table(table.name, table.schema)

    def _placeholder(self, column: ColumnDescriptor) -> str:
        return self._dialect.placeholder(column.name)

    def _parameter(self, column: ColumnDescriptor, value: Any, position: int) -> Parameter:
        if self._dialect.use_positional_parameters:
            name = f"?{position}"
        else:
            name = self.get_parameter_name(column.name)
        return Parameter(name, _parameter_value(value))

    def _identity_filter(self, identity: ColumnDescriptor, value: Any) -> tuple[str, ParameterCollection]:
        where = f"WHERE {self.quote_identifier(identity.name)} = {self._placeholder(identity)}"
        return where, ParameterCollection([self._parameter(identity, value, 1)])

    @staticmethod
    def _update_columns(
        table: TableDescriptor, columns: Sequence[str] | None
    ) -> list[ColumnDescriptor]:
        writable = table.writable_columns
        if not columns:
            return writable

        requested = set()
        for name in columns:
            column = table.column(name)
            if column is None or column not in writable:
                raise MetadataError(
                    f"Column '{name}' of table '{table.name}' does not exist or is not writable"
                )
            requested.add(column.attribute)
        return [column for column in writable if column.attribute in requested]

    def _command(self, text: str, parameters: ParameterCollection) -> GeneratedCommand:
        logger.debug("Generated %s command: %s", self._dialect.name, text)
        return GeneratedCommand(text, parameters)
