"""Generic DB-API 2.0 adapter.

Used for connections of drivers without a dedicated adapter (pyodbc, fdb,
pymysql...). The parameter style is read from the driver module's
``paramstyle`` attribute, as PEP 249 requires every driver to declare it.
"""

from __future__ import annotations

import sys
from typing import Any


def driver_paramstyle(connection: Any, default: str = "qmark") -> str:
    """The ``paramstyle`` declared by the module that owns *connection*."""
    package = (type(connection).__module__ or "").split(".", 1)[0]
    module = sys.modules.get(package)
    return getattr(module, "paramstyle", default)


class DbApiSyncAdapter:
    """Adapter over any PEP 249 connection."""

    def __init__(self, paramstyle: str = "qmark") -> None:
        self._paramstyle = paramstyle

    @property
    def paramstyle(self) -> str:
        return self._paramstyle

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        """Execute SQL on a fresh cursor and return it."""
        cursor = connection.cursor()
        if params:
            cursor.execute(sql, params)
        else:
            cursor.execute(sql)
        return cursor


class DbApiAsyncAdapter:
    """Adapter over async connections exposing an awaitable ``cursor()``."""

    def __init__(self, paramstyle: str = "qmark") -> None:
        self._paramstyle = paramstyle

    @property
    def paramstyle(self) -> str:
        return self._paramstyle

    async def execute_async(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        """Execute SQL on a fresh cursor and return it."""
        cursor = connection.cursor()
        if hasattr(cursor, "__await__"):
            cursor = await cursor
        if params:
            await cursor.execute(sql, params)
        else:
            await cursor.execute(sql)
        return cursor
