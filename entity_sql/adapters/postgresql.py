"""PostgreSQL adapter - sync and async using psycopg (v3+).

Rows come back as tuples: row splitting relies on duplicate column names
surviving, which dict rows would collapse.
"""

from __future__ import annotations

from typing import Any

from entity_sql.core.connection import ConnectionConfig


def _build_conninfo(config: ConnectionConfig) -> str:
    """Build a libpq connection string from config fields."""
    parts: list[str] = []
    if config.host is not None:
        parts.append(f"host={config.host}")
    if config.port is not None:
        parts.append(f"port={config.port}")
    if config.user is not None:
        parts.append(f"user={config.user}")
    if config.password is not None:
        parts.append(f"password={config.password}")
    parts.append(f"dbname={config.database}")
    return " ".join(parts)


class PostgresqlSyncAdapter:
    """Synchronous PostgreSQL adapter using psycopg (v3+)."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    def connect(self, config: ConnectionConfig) -> Any:
        import psycopg

        return psycopg.connect(_build_conninfo(config), **config.extra)

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        return connection.execute(sql, params)


class PostgresqlAsyncAdapter:
    """Asynchronous PostgreSQL adapter using psycopg (v3+) async support."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    async def connect_async(self, config: ConnectionConfig) -> Any:
        import psycopg

        return await psycopg.AsyncConnection.connect(_build_conninfo(config), **config.extra)

    async def execute_async(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        return await connection.execute(sql, params)
