"""Query execution engine.

The Engine binds parameters, executes statements through the connection's
adapter, maps the rows it reads and runs the generated entity commands.
AsyncEngine offers the same surface over async drivers.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any, TypeVar

from entity_sql.core.command import IDENTITY_OUTPUT, CommandBuilder, GeneratedCommand
from entity_sql.core.connection import (
    ConnectionConfig,
    adapter_for_connection,
    connect,
    connect_async,
)
from entity_sql.core.enums import CommandType
from entity_sql.core.exceptions import (
    EmptyResultError,
    EntitySQLError,
    ExecutionError,
    MultipleResultsError,
    ParameterBindingError,
)
from entity_sql.core.options import CommandOptions, QueryOptions
from entity_sql.core.params import ParameterCollection, coerce_params, normalize_params
from entity_sql.mapping.model import AsyncRowIterator, Mapper, Record, RowIterator
from entity_sql.mapping.registry import TableRegistry, default_registry
from entity_sql.mapping.rows import AsyncCursorRowSource, CursorRowSource, RawRow

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEFAULT_COMMAND_OPTIONS = CommandOptions()
_DEFAULT_QUERY_OPTIONS = QueryOptions()


def _first_value(row: Any) -> Any:
    """First column of a driver row, tuple-like or dict-like."""
    if isinstance(row, dict):
        return next(iter(row.values()), None)
    return row[0]


def _is_buffered(options: CommandOptions) -> bool:
    return getattr(options, "buffered", True)


async def _maybe_await(value: Any) -> Any:
    if hasattr(value, "__await__"):
        return await value
    return value


class _Statement:
    """SQL text and driver-ready parameters of one execution."""

    __slots__ = ("sql", "params")

    def __init__(self, sql: str, params: dict[str, Any] | tuple[Any, ...] | None) -> None:
        self.sql = sql
        self.params = params


def _split_last_insert_id(command: GeneratedCommand, expression: str) -> tuple[str, str]:
    """Separate an insert from its trailing last-insert-id statement."""
    suffix = f"; {expression}"
    if expression and command.text.endswith(suffix):
        return command.text[: -len(suffix)], expression
    return command.text, ""


class _EngineBase:
    """State and helpers shared by Engine and AsyncEngine."""

    def __init__(
        self,
        connection: Any,
        adapter: Any,
        *,
        driver: str | None = None,
        registry: TableRegistry | None = None,
    ) -> None:
        self._connection = connection
        self._adapter = adapter
        self._registry = registry if registry is not None else default_registry
        self._builder = CommandBuilder(connection, driver=driver, registry=self._registry)
        self._mapper = Mapper(self._registry)

    @property
    def connection(self) -> Any:
        return self._connection

    @property
    def builder(self) -> CommandBuilder:
        return self._builder

    @property
    def mapper(self) -> Mapper:
        return self._mapper

    @property
    def registry(self) -> TableRegistry:
        return self._registry

    def _prepare(self, text: str, parameters: Any) -> _Statement:
        params: ParameterCollection = coerce_params(parameters)
        if not params:
            return _Statement(text, None)
        paramstyle = self._adapter.paramstyle
        bound = params.bind(paramstyle)
        if isinstance(bound, dict) and paramstyle == "pyformat":
            text = normalize_params(text, paramstyle, self._builder.dialect.parameter_prefix)
        return _Statement(text, bound)

    def _target(self, options: CommandOptions) -> Any:
        return options.transaction if options.transaction is not None else self._connection

    def _returning_executor(self, name: str) -> Callable[..., Any]:
        """Adapter method binding the output variable of ``RETURNING ... INTO``."""
        executor = getattr(self._adapter, name, None)
        if executor is None:
            raise ExecutionError(
                f"{type(self._adapter).__name__} cannot read back a RETURNING ... INTO identity"
            )
        return executor  # type: ignore[no-any-return]

    def _coerce_identity(self, instance: Any, value: Any) -> None:
        identity = self._registry.resolve(type(instance)).identity_column
        if identity is not None and value is not None:
            identity.set_value(
                instance, self._mapper.change_type(value, identity.field_type, identity.is_nullable)
            )


class Engine(_EngineBase):
    """Synchronous execution engine over a DB-API connection.

    Args:
        connection: An open DB-API connection.
        driver: Driver identity overriding the connection's, for dialect lookup.
        registry: Table registry shared with other components.
        adapter: Adapter executing statements. Picked from the connection's
            driver by default.
    """

    def __init__(
        self,
        connection: Any,
        *,
        driver: str | None = None,
        registry: TableRegistry | None = None,
        adapter: Any | None = None,
    ) -> None:
        super().__init__(
            connection,
            adapter or adapter_for_connection(connection, "sync"),
            driver=driver,
            registry=registry,
        )

    @classmethod
    def from_config(cls, config: ConnectionConfig, *, registry: TableRegistry | None = None) -> Engine:
        """Open a connection for *config* and wrap it in an Engine."""
        return cls(connect(config), registry=registry)

    def close(self) -> None:
        """Close the underlying connection."""
        self._connection.close()

    def __enter__(self) -> Engine:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # --- Execution ---

    def _run(self, text: str, parameters: Any, options: CommandOptions) -> Any:
        statement = self._prepare(text, parameters)
        target = self._target(options)
        logger.debug("Executing: %s", statement.sql)
        try:
            if options.command_type is CommandType.STORED_PROCEDURE:
                cursor = target.cursor()
                callproc = getattr(cursor, "callproc", None)
                if callproc is None:
                    cursor.close()
                    raise ExecutionError("The driver does not support stored procedures")
                args = statement.params or ()
                callproc(text, list(args.values() if isinstance(args, dict) else args))
                return cursor
            return self._adapter.execute(target, statement.sql, statement.params, options.timeout)
        except EntitySQLError:
            raise
        except Exception as e:
            raise ParameterBindingError(text, str(e)) from e

    def _commit(self, options: CommandOptions) -> None:
        if options.transaction is None:
            self._connection.commit()

    def execute(
        self,
        text: str,
        parameters: Any = None,
        options: CommandOptions | None = None,
    ) -> int:
        """Execute a statement. Returns the number of affected rows."""
        options = options or _DEFAULT_COMMAND_OPTIONS
        cursor = self._run(text, parameters, options)
        try:
            count = int(cursor.rowcount)
        finally:
            cursor.close()
        self._commit(options)
        return count

    def execute_scalar(
        self,
        text: str,
        parameters: Any = None,
        target: Any = None,
        options: CommandOptions | None = None,
    ) -> Any:
        """Execute a statement and return the first column of the first row.

        Returns ``None`` when there is no row. The value is converted to
        *target* when given.
        """
        options = options or _DEFAULT_COMMAND_OPTIONS
        cursor = self._run(text, parameters, options)
        try:
            row = cursor.fetchone() if cursor.description else None
        finally:
            cursor.close()
        self._commit(options)

        value = None if row is None else _first_value(row)
        return value if target is None else self._mapper.change_type(value, target)

    def execute_reader(
        self,
        text: str,
        parameters: Any = None,
        options: CommandOptions | None = None,
    ) -> CursorRowSource:
        """Execute a query and return a forward-only row source."""
        cursor = self._run(text, parameters, options or _DEFAULT_COMMAND_OPTIONS)
        return CursorRowSource(cursor)

    # --- Queries ---

    def query(
        self,
        text: str,
        parameters: Any = None,
        target: type[T] = Record,  # type: ignore[assignment]
        options: CommandOptions | None = None,
    ) -> list[T] | RowIterator[T]:
        """Map every row of a query.

        Returns a list, or a lazy RowIterator when ``options.buffered`` is
        false. The iterator holds the cursor open until drained or closed.
        """
        options = options or _DEFAULT_QUERY_OPTIONS
        reader = self.execute_reader(text, parameters, options)
        return self._mapper.build_many(reader, target, buffered=_is_buffered(options))

    def query_split(
        self,
        text: str,
        targets: Sequence[type],
        parameters: Any = None,
        split_on: str | Sequence[str] = "Id",
        options: CommandOptions | None = None,
    ) -> list[tuple[Any, ...]] | RowIterator[tuple[Any, ...]]:
        """Map every row of a query to one object per target type."""
        options = options or _DEFAULT_QUERY_OPTIONS
        reader = self.execute_reader(text, parameters, options)
        return self._mapper.build_split_many(
            reader, targets, split_on, buffered=_is_buffered(options)
        )

    def _first_rows(
        self, text: str, parameters: Any, target: Any, options: CommandOptions | None, count: int
    ) -> list[Any]:
        reader = self.execute_reader(text, parameters, options or _DEFAULT_COMMAND_OPTIONS)
        with self._mapper.build_many(reader, target) as rows:  # type: ignore[union-attr]
            return list(itertools.islice(rows, count))

    def query_first(
        self,
        text: str,
        parameters: Any = None,
        target: type[T] = Record,  # type: ignore[assignment]
        options: CommandOptions | None = None,
    ) -> T:
        """First mapped row.

        Raises:
            EmptyResultError: If the query returns no row.
        """
        rows = self._first_rows(text, parameters, target, options, 1)
        if not rows:
            raise EmptyResultError()
        return rows[0]  # type: ignore[no-any-return]

    def query_first_or_default(
        self,
        text: str,
        parameters: Any = None,
        target: type[T] = Record,  # type: ignore[assignment]
        options: CommandOptions | None = None,
    ) -> T | None:
        """First mapped row, or ``None`` when the query returns no row."""
        rows = self._first_rows(text, parameters, target, options, 1)
        return rows[0] if rows else None

    def query_single(
        self,
        text: str,
        parameters: Any = None,
        target: type[T] = Record,  # type: ignore[assignment]
        options: CommandOptions | None = None,
    ) -> T:
        """The only mapped row.

        Raises:
            EmptyResultError: If the query returns no row.
            MultipleResultsError: If the query returns more than one row.
        """
        rows = self._first_rows(text, parameters, target, options, 2)
        if not rows:
            raise EmptyResultError()
        if len(rows) > 1:
            raise MultipleResultsError()
        return rows[0]  # type: ignore[no-any-return]

    def query_single_or_default(
        self,
        text: str,
        parameters: Any = None,
        target: type[T] = Record,  # type: ignore[assignment]
        options: CommandOptions | None = None,
    ) -> T | None:
        """The only mapped row, or ``None`` when the query returns no row.

        Raises:
            MultipleResultsError: If the query returns more than one row.
        """
        rows = self._first_rows(text, parameters, target, options, 2)
        if len(rows) > 1:
            raise MultipleResultsError()
        return rows[0] if rows else None

    # --- Entities ---

    def find(
        self,
        entity_type: type[T],
        id: Any,  # noqa: A002
        columns: Sequence[str] | None = None,
        options: CommandOptions | None = None,
    ) -> T | None:
        """The entity whose identity is *id*, or ``None``."""
        command = self._builder.build_select(entity_type, id, columns)
        return self.query_single_or_default(command.text, command.parameters, entity_type, options)

    def exists(
        self,
        entity_type: type,
        id: Any,  # noqa: A002
        options: CommandOptions | None = None,
    ) -> bool:
        """Whether an entity with identity *id* exists."""
        command = self._builder.build_exists(entity_type, id)
        return bool(self.execute_scalar(command.text, command.parameters, options=options))

    def insert(self, instance: Any, options: CommandOptions | None = None) -> Any:
        """Insert an entity.

        Returns:
            The generated identity, which is also assigned to *instance*.
        """
        options = options or _DEFAULT_COMMAND_OPTIONS
        command = self._builder.build_insert(instance)
        dialect = self._builder.dialect

        if dialect.supports_returning_clause:
            value = self.execute_scalar(command.text, command.parameters, options=options)
        elif dialect.returning_into:
            execute_returning = self._returning_executor("execute_returning")
            statement = self._prepare(command.text, command.parameters)
            logger.debug("Executing: %s", statement.sql)
            try:
                value = execute_returning(
                    self._target(options),
                    statement.sql,
                    statement.params,
                    IDENTITY_OUTPUT,
                    options.timeout,
                )
            except EntitySQLError:
                raise
            except Exception as e:
                raise ParameterBindingError(command.text, str(e)) from e
            self._commit(options)
        else:
            statement, expression = _split_last_insert_id(command, dialect.last_insert_id_expression)
            cursor = self._run(statement, command.parameters, options)
            try:
                if expression:
                    value = self.execute_scalar(expression, options=options)
                else:
                    value = cursor.lastrowid
            finally:
                cursor.close()
            self._commit(options)

        self._coerce_identity(instance, value)
        return value

    def update(
        self,
        instance: Any,
        columns: Sequence[str] | None = None,
        options: CommandOptions | None = None,
    ) -> int:
        """Update an entity. Returns the number of affected rows."""
        command = self._builder.build_update(instance, columns)
        return self.execute(command.text, command.parameters, options)

    def delete(self, instance: Any, options: CommandOptions | None = None) -> bool:
        """Delete an entity. Returns whether a row was deleted."""
        command = self._builder.build_delete(instance)
        return self.execute(command.text, command.parameters, options) > 0


class AsyncEngine(_EngineBase):
    """Asynchronous execution engine (aiosqlite, psycopg, aiomysql, oracledb).

    Same surface as Engine; every operation is awaitable. Unbuffered queries
    return an AsyncRowIterator, which closes its cursor when exhausted, on
    ``aclose()`` or at the end of an ``async with`` block.
    """

    def __init__(
        self,
        connection: Any,
        *,
        driver: str | None = None,
        registry: TableRegistry | None = None,
        adapter: Any | None = None,
    ) -> None:
        super().__init__(
            connection,
            adapter or adapter_for_connection(connection, "async"),
            driver=driver,
            registry=registry,
        )

    @classmethod
    async def from_config(
        cls, config: ConnectionConfig, *, registry: TableRegistry | None = None
    ) -> AsyncEngine:
        """Open an async connection for *config* and wrap it in an AsyncEngine."""
        return cls(await connect_async(config), registry=registry)

    async def close(self) -> None:
        """Close the underlying connection."""
        await _maybe_await(self._connection.close())

    async def __aenter__(self) -> AsyncEngine:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # --- Execution ---

    async def _run(self, text: str, parameters: Any, options: CommandOptions) -> Any:
        statement = self._prepare(text, parameters)
        target = self._target(options)
        logger.debug("Executing: %s", statement.sql)
        try:
            if options.command_type is CommandType.STORED_PROCEDURE:
                cursor = await _maybe_await(target.cursor())
                callproc = getattr(cursor, "callproc", None)
                if callproc is None:
                    await _maybe_await(cursor.close())
                    raise ExecutionError("The driver does not support stored procedures")
                args = statement.params or ()
                await _maybe_await(
                    callproc(text, list(args.values() if isinstance(args, dict) else args))
                )
                return cursor
            return await self._adapter.execute_async(
                target, statement.sql, statement.params, options.timeout
            )
        except EntitySQLError:
            raise
        except Exception as e:
            raise ParameterBindingError(text, str(e)) from e

    async def _commit(self, options: CommandOptions) -> None:
        if options.transaction is None:
            await _maybe_await(self._connection.commit())

    async def execute(
        self,
        text: str,
        parameters: Any = None,
        options: CommandOptions | None = None,
    ) -> int:
        """Execute a statement. Returns the number of affected rows."""
        options = options or _DEFAULT_COMMAND_OPTIONS
        cursor = await self._run(text, parameters, options)
        try:
            count = int(cursor.rowcount)
        finally:
            await _maybe_await(cursor.close())
        await self._commit(options)
        return count

    async def execute_scalar(
        self,
        text: str,
        parameters: Any = None,
        target: Any = None,
        options: CommandOptions | None = None,
    ) -> Any:
        """Execute a statement and return the first column of the first row."""
        options = options or _DEFAULT_COMMAND_OPTIONS
        cursor = await self._run(text, parameters, options)
        try:
            row = await cursor.fetchone() if cursor.description else None
        finally:
            await _maybe_await(cursor.close())
        await self._commit(options)

        value = None if row is None else _first_value(row)
        return value if target is None else self._mapper.change_type(value, target)

    async def execute_reader(
        self,
        text: str,
        parameters: Any = None,
        options: CommandOptions | None = None,
    ) -> AsyncCursorRowSource:
        """Execute a query and return a forward-only async row source."""
        cursor = await self._run(text, parameters, options or _DEFAULT_COMMAND_OPTIONS)
        return AsyncCursorRowSource(cursor)

    # --- Queries ---

    @staticmethod
    async def _stream(
        source: AsyncCursorRowSource, build: Callable[[RawRow], Any]
    ) -> AsyncIterator[Any]:
        try:
            async for row in source.rows():
                yield build(row)
        finally:
            await source.close()

    async def _map(
        self, source: AsyncCursorRowSource, build: Callable[[RawRow], Any], buffered: bool
    ) -> Any:
        if not buffered:
            return AsyncRowIterator(self._stream(source, build))
        async with source:
            return [build(row) async for row in source.rows()]

    async def query(
        self,
        text: str,
        parameters: Any = None,
        target: type[T] = Record,  # type: ignore[assignment]
        options: CommandOptions | None = None,
    ) -> list[T] | AsyncRowIterator[T]:
        """Map every row of a query.

        Returns a list, or an AsyncRowIterator when ``options.buffered`` is
        false. The iterator holds the cursor open until drained or closed;
        use it in ``async with`` to release the cursor when leaving early.
        """
        options = options or _DEFAULT_QUERY_OPTIONS
        source = await self.execute_reader(text, parameters, options)
        return await self._map(  # type: ignore[no-any-return]
            source, lambda row: self._mapper.build_one(row, target), _is_buffered(options)
        )

    async def query_split(
        self,
        text: str,
        targets: Sequence[type],
        parameters: Any = None,
        split_on: str | Sequence[str] = "Id",
        options: CommandOptions | None = None,
    ) -> list[tuple[Any, ...]] | AsyncRowIterator[tuple[Any, ...]]:
        """Map every row of a query to one object per target type."""
        options = options or _DEFAULT_QUERY_OPTIONS
        source = await self.execute_reader(text, parameters, options)
        return await self._map(  # type: ignore[no-any-return]
            source,
            lambda row: self._mapper.build_split(row, targets, split_on),
            _is_buffered(options),
        )

    async def _first_rows(
        self, text: str, parameters: Any, target: Any, options: CommandOptions | None, count: int
    ) -> list[Any]:
        source = await self.execute_reader(text, parameters, options or _DEFAULT_COMMAND_OPTIONS)
        rows: list[Any] = []
        async with source:
            async for row in source.rows():
                rows.append(self._mapper.build_one(row, target))
                if len(rows) >= count:
                    break
        return rows

    async def query_first(
        self,
        text: str,
        parameters: Any = None,
        target: type[T] = Record,  # type: ignore[assignment]
        options: CommandOptions | None = None,
    ) -> T:
        """First mapped row; raises EmptyResultError when there is none."""
        rows = await self._first_rows(text, parameters, target, options, 1)
        if not rows:
            raise EmptyResultError()
        return rows[0]  # type: ignore[no-any-return]

    async def query_first_or_default(
        self,
        text: str,
        parameters: Any = None,
        target: type[T] = Record,  # type: ignore[assignment]
        options: CommandOptions | None = None,
    ) -> T | None:
        """First mapped row, or ``None``."""
        rows = await self._first_rows(text, parameters, target, options, 1)
        return rows[0] if rows else None

    async def query_single(
        self,
        text: str,
        parameters: Any = None,
        target: type[T] = Record,  # type: ignore[assignment]
        options: CommandOptions | None = None,
    ) -> T:
        """The only mapped row; raises on zero or several rows."""
        rows = await self._first_rows(text, parameters, target, options, 2)
        if not rows:
            raise EmptyResultError()
        if len(rows) > 1:
            raise MultipleResultsError()
        return rows[0]  # type: ignore[no-any-return]

    async def query_single_or_default(
        self,
        text: str,
        parameters: Any = None,
        target: type[T] = Record,  # type: ignore[assignment]
        options: CommandOptions | None = None,
    ) -> T | None:
        """The only mapped row or ``None``; raises on several rows."""
        rows = await self._first_rows(text, parameters, target, options, 2)
        if len(rows) > 1:
            raise MultipleResultsError()
        return rows[0] if rows else None

    # --- Entities ---

    async def find(
        self,
        entity_type: type[T],
        id: Any,  # noqa: A002
        columns: Sequence[str] | None = None,
        options: CommandOptions | None = None,
    ) -> T | None:
        """The entity whose identity is *id*, or ``None``."""
        command = self._builder.build_select(entity_type, id, columns)
        return await self.query_single_or_default(
            command.text, command.parameters, entity_type, options
        )

    async def exists(
        self,
        entity_type: type,
        id: Any,  # noqa: A002
        options: CommandOptions | None = None,
    ) -> bool:
        """Whether an entity with identity *id* exists."""
        command = self._builder.build_exists(entity_type, id)
        return bool(await self.execute_scalar(command.text, command.parameters, options=options))

    async def insert(self, instance: Any, options: CommandOptions | None = None) -> Any:
        """Insert an entity; the generated identity is returned and assigned back."""
        options = options or _DEFAULT_COMMAND_OPTIONS
        command = self._builder.build_insert(instance)
        dialect = self._builder.dialect

        if dialect.supports_returning_clause:
            value = await self.execute_scalar(command.text, command.parameters, options=options)
        elif dialect.returning_into:
            execute_returning = self._returning_executor("execute_returning_async")
            statement = self._prepare(command.text, command.parameters)
            logger.debug("Executing: %s", statement.sql)
            try:
                value = await execute_returning(
                    self._target(options),
                    statement.sql,
                    statement.params,
                    IDENTITY_OUTPUT,
                    options.timeout,
                )
            except EntitySQLError:
                raise
            except Exception as e:
                raise ParameterBindingError(command.text, str(e)) from e
            await self._commit(options)
        else:
            statement, expression = _split_last_insert_id(command, dialect.last_insert_id_expression)
            cursor = await self._run(statement, command.parameters, options)
            try:
                if expression:
                    value = await self.execute_scalar(expression, options=options)
                else:
                    value = cursor.lastrowid
            finally:
                await _maybe_await(cursor.close())
            await self._commit(options)

        self._coerce_identity(instance, value)
        return value

    async def update(
        self,
        instance: Any,
        columns: Sequence[str] | None = None,
        options: CommandOptions | None = None,
    ) -> int:
        """Update an entity. Returns the number of affected rows."""
        command = self._builder.build_update(instance, columns)
        return await self.execute(command.text, command.parameters, options)

    async def delete(self, instance: Any, options: CommandOptions | None = None) -> bool:
        """Delete an entity. Returns whether a row was deleted."""
        command = self._builder.build_delete(instance)
        return await self.execute(command.text, command.parameters, options) > 0
