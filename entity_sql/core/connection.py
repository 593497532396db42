"""Connection configuration.

ConnectionConfig is a Pydantic model for type-safe connection config.
connect() and connect_async() open a single connection through the adapter
registered for the configured driver; pooling is left to the caller.
"""

from __future__ import annotations

import importlib
from typing import Any

from pydantic import BaseModel

from entity_sql.core.dialect import driver_identity
from entity_sql.core.enums import DatabaseBackend
from entity_sql.core.exceptions import AdapterError, ConnectionError  # noqa: A004


class ConnectionConfig(BaseModel):
    """Configuration for database connections."""

    driver: DatabaseBackend
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str
    extra: dict[str, Any] = {}


# Adapter module mapping: driver name → (module_path, sync_class, async_class)
_ADAPTER_MAP: dict[str, tuple[str, str, str]] = {
    "sqlite": ("entity_sql.adapters.sqlite", "SqliteSyncAdapter", "SqliteAsyncAdapter"),
    "postgresql": (
        "entity_sql.adapters.postgresql",
        "PostgresqlSyncAdapter",
        "PostgresqlAsyncAdapter",
    ),
    "mysql": ("entity_sql.adapters.mysql", "MysqlSyncAdapter", "MysqlAsyncAdapter"),
    "oracle": ("entity_sql.adapters.oracle", "OracleSyncAdapter", "OracleAsyncAdapter"),
}


# Driver identity (top-level module of the connection class) → adapter map key
_DRIVER_ADAPTERS: dict[str, str] = {
    "sqlite3": "sqlite",
    "aiosqlite": "sqlite",
    "psycopg": "postgresql",
    "mysql": "mysql",
    "aiomysql": "mysql",
    "oracledb": "oracle",
}


def load_adapter(driver: str, kind: str = "sync") -> Any:
    """Load a sync or async adapter by driver name."""
    driver_lower = driver.lower()
    if driver_lower not in _ADAPTER_MAP:
        raise AdapterError(f"Unsupported database driver: {driver}")

    module_path, sync_cls_name, async_cls_name = _ADAPTER_MAP[driver_lower]
    cls_name = sync_cls_name if kind == "sync" else async_cls_name

    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load {kind} adapter for '{driver}': {e}") from e


def adapter_for_connection(connection: Any, kind: str = "sync") -> Any:
    """Pick the adapter for an already-open connection.

    Connections of drivers without a dedicated adapter get the generic
    DB-API adapter, using the driver module's declared ``paramstyle``.
    """
    from entity_sql.adapters.dbapi import DbApiAsyncAdapter, DbApiSyncAdapter, driver_paramstyle

    driver = _DRIVER_ADAPTERS.get(driver_identity(connection))
    if driver is not None:
        return load_adapter(driver, kind)
    paramstyle = driver_paramstyle(connection)
    return DbApiSyncAdapter(paramstyle) if kind == "sync" else DbApiAsyncAdapter(paramstyle)


def connect(config: ConnectionConfig) -> Any:
    """Open a DB-API connection for *config*.

    Raises:
        AdapterError: If the driver is unsupported or not installed.
        ConnectionError: If the driver fails to open the connection.
    """
    adapter = load_adapter(config.driver.value, "sync")
    try:
        return adapter.connect(config)
    except ImportError as e:
        raise AdapterError(f"Driver for '{config.driver.value}' is not installed: {e}") from e
    except Exception as e:
        raise ConnectionError(f"Failed to connect to {config.driver.value}: {e}") from e


async def connect_async(config: ConnectionConfig) -> Any:
    """Open an async connection for *config*; errors as in connect()."""
    adapter = load_adapter(config.driver.value, "async")
    try:
        return await adapter.connect_async(config)
    except ImportError as e:
        raise AdapterError(f"Driver for '{config.driver.value}' is not installed: {e}") from e
    except Exception as e:
        raise ConnectionError(f"Failed to connect to {config.driver.value}: {e}") from e
