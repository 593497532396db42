"""SQLite adapter - sync (sqlite3 stdlib) and async (aiosqlite)."""

from __future__ import annotations

import sqlite3
from typing import Any

from entity_sql.core.connection import ConnectionConfig


class SqliteSyncAdapter:
    """Synchronous SQLite adapter using stdlib sqlite3.

    SQLite has no per-statement timeout; ``timeout`` is accepted and ignored.
    """

    @property
    def paramstyle(self) -> str:
        return "named"

    def connect(self, config: ConnectionConfig) -> sqlite3.Connection:
        """Open a SQLite database file (or ``:memory:``)."""
        return sqlite3.connect(config.database, **config.extra)

    def execute(
        self,
        connection: sqlite3.Connection,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> sqlite3.Cursor:
        """Execute SQL and return a cursor."""
        return connection.execute(sql, params or ())


class SqliteAsyncAdapter:
    """Asynchronous SQLite adapter using aiosqlite."""

    @property
    def paramstyle(self) -> str:
        return "named"

    async def connect_async(self, config: ConnectionConfig) -> Any:
        """Open an aiosqlite connection."""
        import aiosqlite

        return await aiosqlite.connect(config.database, **config.extra)

    async def execute_async(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        """Execute SQL asynchronously and return a cursor."""
        return await connection.execute(sql, params or ())
