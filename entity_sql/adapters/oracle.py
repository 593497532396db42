"""Oracle adapter - sync and async using oracledb.

The command timeout maps onto the connection's ``call_timeout``
(milliseconds).
"""

from __future__ import annotations

from typing import Any

from entity_sql.core.connection import ConnectionConfig


def _build_dsn(config: ConnectionConfig) -> str:
    """Build an Oracle DSN string from config fields (host:port/database)."""
    return f"{config.host}:{config.port}/{config.database}"


def _returned_value(variable: Any) -> Any:
    # DML returning binds hold one value per affected row
    values = variable.getvalue()
    if isinstance(values, list):
        return values[0] if values else None
    return values


def _apply_timeout(connection: Any, timeout: int | None) -> None:
    if timeout is not None:
        connection.call_timeout = timeout * 1000


class OracleSyncAdapter:
    """Synchronous Oracle adapter using oracledb."""

    @property
    def paramstyle(self) -> str:
        return "named"

    def connect(self, config: ConnectionConfig) -> Any:
        import oracledb

        return oracledb.connect(
            user=config.user, password=config.password, dsn=_build_dsn(config), **config.extra
        )

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        """Execute SQL and return a cursor."""
        _apply_timeout(connection, timeout)
        cursor = connection.cursor()
        cursor.execute(sql, params or {})
        return cursor

    def execute_returning(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None,
        output: str,
        timeout: int | None = None,
    ) -> Any:
        """Execute a ``RETURNING ... INTO :output`` statement and return the bound value."""
        import oracledb

        _apply_timeout(connection, timeout)
        cursor = connection.cursor()
        try:
            variable = cursor.var(oracledb.DB_TYPE_NUMBER)
            cursor.execute(sql, {**(params or {}), output: variable})
            return _returned_value(variable)
        finally:
            cursor.close()


class OracleAsyncAdapter:
    """Asynchronous Oracle adapter using oracledb async support."""

    @property
    def paramstyle(self) -> str:
        return "named"

    async def connect_async(self, config: ConnectionConfig) -> Any:
        import oracledb

        return await oracledb.connect_async(
            user=config.user, password=config.password, dsn=_build_dsn(config), **config.extra
        )

    async def execute_async(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        """Execute SQL asynchronously and return a cursor."""
        _apply_timeout(connection, timeout)
        cursor = connection.cursor()
        await cursor.execute(sql, params or {})
        return cursor

    async def execute_returning_async(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None,
        output: str,
        timeout: int | None = None,
    ) -> Any:
        """Async counterpart of OracleSyncAdapter.execute_returning."""
        import oracledb

        _apply_timeout(connection, timeout)
        cursor = connection.cursor()
        try:
            variable = cursor.var(oracledb.DB_TYPE_NUMBER)
            await cursor.execute(sql, {**(params or {}), output: variable})
            return _returned_value(variable)
        finally:
            cursor.close()
