"""Database adapter protocols.

Every adapter module implements these protocols, so the engines can drive
any supported driver through the same calls.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from entity_sql.core.connection import ConnectionConfig


@runtime_checkable
class SyncAdapter(Protocol):
    """Synchronous database adapter protocol."""

    @property
    def paramstyle(self) -> str:
        """DB-API parameter style: 'named', 'pyformat', 'qmark'..."""
        ...

    def connect(self, config: ConnectionConfig) -> Any:
        """Open a connection."""
        ...

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        """Execute SQL and return a cursor-like object."""
        ...


@runtime_checkable
class AsyncAdapter(Protocol):
    """Asynchronous database adapter protocol."""

    @property
    def paramstyle(self) -> str:
        """DB-API parameter style: 'named', 'pyformat', 'qmark'..."""
        ...

    async def connect_async(self, config: ConnectionConfig) -> Any:
        """Open an async connection."""
        ...

    async def execute_async(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
        timeout: int | None = None,
    ) -> Any:
        """Execute SQL asynchronously and return a cursor-like object."""
        ...
