"""Row sources.

A row source is a forward-only reader over a result set. The mapper reads
rows as ordered ``(column name, value)`` pairs and closes the source when it
is done with it, however iteration ends.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator, Mapping
from typing import Any, Protocol, runtime_checkable

RawRow = list[tuple[str, Any]]


@runtime_checkable
class RowSource(Protocol):
    """Forward-only result reader."""

    def has_next(self) -> bool:
        """Advance to the next row; False once the result set is exhausted."""
        ...

    @property
    def column_count(self) -> int: ...

    def column_name(self, index: int) -> str: ...

    def column_value(self, index: int) -> Any: ...

    def close(self) -> None: ...


def _row_values(row: Any) -> list[Any]:
    """Values of a driver row, in column order."""
    if isinstance(row, Mapping):
        return list(row.values())
    return list(row)


def read_row(source: RowSource) -> RawRow:
    """The current row of *source* as ordered pairs."""
    return [
        (source.column_name(index), source.column_value(index))
        for index in range(source.column_count)
    ]


def iter_rows(source: RowSource) -> Iterator[RawRow]:
    """Yield every remaining row of *source*, closing it afterwards.

    The source is closed when the generator is exhausted, closed early, or
    garbage-collected, and when the consumer raises.
    """
    try:
        while source.has_next():
            yield read_row(source)
    finally:
        source.close()


class CursorRowSource:
    """RowSource over a DB-API cursor.

    Handles both tuple-like rows and dict-like rows from different drivers.
    """

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        description = cursor.description or ()
        self._columns = [desc[0] for desc in description]
        self._current: list[Any] = []
        self._closed = False

    def has_next(self) -> bool:
        if self._closed or not self._columns:
            return False
        row = self._cursor.fetchone()
        if row is None:
            return False
        self._current = _row_values(row)
        return True

    @property
    def column_count(self) -> int:
        return len(self._columns)

    def column_name(self, index: int) -> str:
        return self._columns[index]

    def column_value(self, index: int) -> Any:
        return self._current[index]

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._cursor.close()

    def __iter__(self) -> Iterator[RawRow]:
        return iter_rows(self)

    def __enter__(self) -> CursorRowSource:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class AsyncCursorRowSource:
    """Async counterpart of CursorRowSource (aiosqlite, psycopg, aiomysql)."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        description = cursor.description or ()
        self._columns = [desc[0] for desc in description]
        self._current: list[Any] = []
        self._closed = False

    async def has_next(self) -> bool:
        if self._closed or not self._columns:
            return False
        row = await self._cursor.fetchone()
        if row is None:
            return False
        self._current = _row_values(row)
        return True

    @property
    def column_count(self) -> int:
        return len(self._columns)

    def column_name(self, index: int) -> str:
        return self._columns[index]

    def column_value(self, index: int) -> Any:
        return self._current[index]

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            result = self._cursor.close()
            if hasattr(result, "__await__"):
                await result

    async def rows(self) -> AsyncIterator[RawRow]:
        """Yield every remaining row, closing the source afterwards."""
        try:
            while await self.has_next():
                yield [
                    (self.column_name(index), self.column_value(index))
                    for index in range(self.column_count)
                ]
        finally:
            await self.close()

    async def __aenter__(self) -> AsyncCursorRowSource:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class ListRowSource:
    """RowSource over rows already in memory (mappings or pair sequences)."""

    def __init__(self, rows: list[Any]) -> None:
        self._rows = [as_raw_row(row) for row in rows]
        self._position = -1
        self._closed = False

    def has_next(self) -> bool:
        if self._closed or self._position + 1 >= len(self._rows):
            return False
        self._position += 1
        return True

    @property
    def column_count(self) -> int:
        if not 0 <= self._position < len(self._rows):
            return 0
        return len(self._rows[self._position])

    def column_name(self, index: int) -> str:
        return self._rows[self._position][index][0]

    def column_value(self, index: int) -> Any:
        return self._rows[self._position][index][1]

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True


def as_raw_row(row: Any) -> RawRow:
    """Accept a mapping or a sequence of pairs and return ordered pairs."""
    if isinstance(row, Mapping):
        return list(row.items())
    return [(str(name), value) for name, value in row]
