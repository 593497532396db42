"""Repository base classes.

Thin wrappers over Engine for DDD-oriented usage: one repository per entity
type, delegating to the engine's entity operations.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from entity_sql.core.options import CommandOptions, QueryOptions

T = TypeVar("T")


def _list_sql(engine: Any, entity_type: type, where: str | None) -> str:
    table = engine.registry.resolve(entity_type)
    sql = f"SELECT * FROM {engine.builder.quote_table(table.name, table.schema)}"
    if where:
        sql = f"{sql} WHERE {where}"
    return sql


class Repository(Generic[T]):
    """Base repository class for DDD-oriented usage.

    Subclasses add concrete query methods on top of the generic ones.

    Args:
        engine: The Engine executing the commands.
        entity_type: The mapped entity type.
        options: Command options applied to every call.
    """

    def __init__(
        self,
        engine: Any,
        entity_type: type[T],
        options: CommandOptions | None = None,
    ) -> None:
        self.engine = engine
        self.entity_type = entity_type
        self.options = options

    def get(self, id: Any, columns: Sequence[str] | None = None) -> T | None:  # noqa: A002
        return self.engine.find(self.entity_type, id, columns, self.options)  # type: ignore[no-any-return]

    def exists(self, id: Any) -> bool:  # noqa: A002
        return self.engine.exists(self.entity_type, id, self.options)  # type: ignore[no-any-return]

    def add(self, entity: T) -> Any:
        """Insert *entity*; returns the generated identity."""
        return self.engine.insert(entity, self.options)

    def save(self, entity: T, columns: Sequence[str] | None = None) -> int:
        return self.engine.update(entity, columns, self.options)  # type: ignore[no-any-return]

    def remove(self, entity: T) -> bool:
        return self.engine.delete(entity, self.options)  # type: ignore[no-any-return]

    def list(self, where: str | None = None, parameters: Any = None) -> list[T]:
        """All entities, optionally filtered by a raw SQL condition."""
        options = QueryOptions(**(dict(self.options) if self.options else {}))
        sql = _list_sql(self.engine, self.entity_type, where)
        return self.engine.query(sql, parameters, self.entity_type, options)  # type: ignore[no-any-return]


class AsyncRepository(Generic[T]):
    """Async variant of Repository."""

    def __init__(
        self,
        engine: Any,
        entity_type: type[T],
        options: CommandOptions | None = None,
    ) -> None:
        self.engine = engine
        self.entity_type = entity_type
        self.options = options

    async def get(self, id: Any, columns: Sequence[str] | None = None) -> T | None:  # noqa: A002
        return await self.engine.find(self.entity_type, id, columns, self.options)  # type: ignore[no-any-return]

    async def exists(self, id: Any) -> bool:  # noqa: A002
        return await self.engine.exists(self.entity_type, id, self.options)  # type: ignore[no-any-return]

    async def add(self, entity: T) -> Any:
        return await self.engine.insert(entity, self.options)

    async def save(self, entity: T, columns: Sequence[str] | None = None) -> int:
        return await self.engine.update(entity, columns, self.options)  # type: ignore[no-any-return]

    async def remove(self, entity: T) -> bool:
        return await self.engine.delete(entity, self.options)  # type: ignore[no-any-return]

    async def list(self, where: str | None = None, parameters: Any = None) -> list[T]:
        options = QueryOptions(**(dict(self.options) if self.options else {}))
        sql = _list_sql(self.engine, self.entity_type, where)
        return await self.engine.query(sql, parameters, self.entity_type, options)  # type: ignore[no-any-return]
