"""MySQL adapter - sync (mysql-connector-python) and async (aiomysql)."""

from __future__ import annotations

from typing import Any

from entity_sql.core.connection import ConnectionConfig


class MysqlSyncAdapter:
    """Synchronous MySQL adapter using mysql-connector-python."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    def connect(self, config: ConnectionConfig) -> Any:
        """Open a MySQL connection."""
        import mysql.connector

        return mysql.connector.connect(
            host=config.host,
            port=config.port or 3306,
            user=config.user,
            password=config.password,
            database=config.database,
            **config.extra,
        )

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        """Execute SQL and return a buffered cursor."""
        cursor = connection.cursor(buffered=True)
        cursor.execute(sql, params or ())
        return cursor


class MysqlAsyncAdapter:
    """Asynchronous MySQL adapter using aiomysql."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    async def connect_async(self, config: ConnectionConfig) -> Any:
        """Open an aiomysql connection."""
        import aiomysql

        return await aiomysql.connect(
            host=config.host,
            port=config.port or 3306,
            user=config.user,
            password=config.password or "",
            db=config.database,
            **config.extra,
        )

    async def execute_async(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        """Execute SQL asynchronously and return a cursor."""
        cursor = await connection.cursor()
        await cursor.execute(sql, params or ())
        return cursor
