"""Row-to-object mapper.

Builds Records (ordered, untyped) or entity instances from raw rows and
carves a single flat row into several objects at split boundaries.

Supports dataclasses, Pydantic models, and plain classes.
"""

from __future__ import annotations

import dataclasses
import typing
from collections.abc import AsyncGenerator, Iterable, Iterator, Mapping, Sequence
from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from entity_sql.core.exceptions import ColumnMismatchError, InvalidSplitBoundaryError
from entity_sql.mapping.coercion import coerce, zero_value
from entity_sql.mapping.metadata import _unwrap
from entity_sql.mapping.registry import TableRegistry, default_registry
from entity_sql.mapping.rows import RawRow, RowSource, as_raw_row, iter_rows

T = TypeVar("T")


class Record(Mapping[str, Any]):
    """Untyped row object.

    Keeps the row's column order. When a column name repeats, the first
    occurrence wins. Values are reachable by key or as attributes.
    """

    __slots__ = ("_values",)

    def __init__(self, pairs: Iterable[tuple[str, Any]] = ()) -> None:
        values: dict[str, Any] = {}
        for name, value in pairs:
            values.setdefault(name, value)
        object.__setattr__(self, "_values", values)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, name: str) -> Any:
        if name == "_values":
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(name) from None

    def __repr__(self) -> str:
        fields = ", ".join(f"{key}={value!r}" for key, value in self._values.items())
        return f"Record({fields})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)


class RowIterator(Generic[T]):
    """Lazy, single-pass sequence of mapped rows.

    Closing the iterator (explicitly, through ``with``, or by draining it)
    releases the underlying row source.
    """

    def __init__(self, rows: Iterator[T]) -> None:
        self._rows = rows

    def __iter__(self) -> RowIterator[T]:
        return self

    def __next__(self) -> T:
        return next(self._rows)

    def close(self) -> None:
        close = getattr(self._rows, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> RowIterator[T]:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class AsyncRowIterator(Generic[T]):
    """Async counterpart of RowIterator.

    Draining the iterator, ``aclose()`` or leaving an ``async with`` block
    releases the cursor. An iterator abandoned part way holds it until
    closed.
    """

    def __init__(self, rows: AsyncGenerator[T, None]) -> None:
        self._rows = rows

    def __aiter__(self) -> AsyncRowIterator[T]:
        return self

    async def __anext__(self) -> T:
        return await self._rows.__anext__()

    async def aclose(self) -> None:
        await self._rows.aclose()

    async def __aenter__(self) -> AsyncRowIterator[T]:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _is_pydantic_model(cls: type) -> bool:
    """Check if a class is a Pydantic BaseModel."""
    return isinstance(cls, type) and issubclass(cls, BaseModel)


@lru_cache(maxsize=256)
def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError):
        return {}


def _missing_value(hint: Any) -> Any:
    """Value for a required constructor argument the row did not provide."""
    base, nullable, _ = _unwrap(hint)
    return None if nullable else zero_value(base)


def _build_dataclass(cls: type[T], values: dict[str, Any]) -> T:
    fields = {field.name: field for field in dataclasses.fields(cls)}  # type: ignore[arg-type]
    kwargs: dict[str, Any] = {}
    late: dict[str, Any] = {}
    for name, value in values.items():
        field = fields.get(name)
        if field is not None and field.init:
            kwargs[name] = value
        else:
            late[name] = value

    hints = _type_hints(cls)
    for field in fields.values():
        if not field.init or field.name in kwargs:
            continue
        if field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING:
            kwargs[field.name] = _missing_value(hints.get(field.name, Any))

    instance = cls(**kwargs)
    for name, value in late.items():
        setattr(instance, name, value)
    return instance


def _build_pydantic(cls: type[T], values: dict[str, Any]) -> T:
    model_fields = cls.model_fields  # type: ignore[attr-defined]
    kwargs = {name: value for name, value in values.items() if name in model_fields}
    for name, field in model_fields.items():
        if name not in kwargs and field.is_required():
            kwargs[name] = _missing_value(field.annotation)

    instance = cls.model_validate(kwargs)  # type: ignore[attr-defined]
    for name, value in values.items():
        if name not in model_fields:
            setattr(instance, name, value)
    return instance  # type: ignore[no-any-return]


def _instantiate(cls: type[T], values: dict[str, Any]) -> T:
    """Construct *cls* from attribute values.

    Pydantic models and dataclasses receive the values as constructor
    arguments, with zero values for required arguments the row lacked.
    Plain classes are default-constructed and then assigned.
    """
    try:
        if _is_pydantic_model(cls):
            return _build_pydantic(cls, values)
        if dataclasses.is_dataclass(cls):
            return _build_dataclass(cls, values)
        instance = cls()
        for name, value in values.items():
            setattr(instance, name, value)
        return instance
    except (TypeError, ValueError, AttributeError) as e:
        raise ColumnMismatchError(cls.__name__, [str(e)]) from e


def _last_cuts(names: list[str], boundaries: Sequence[str], begin: int) -> list[int | None]:
    """Right-to-left cuts at or after *begin*, each boundary at its last occurrence."""
    cuts: list[int | None] = [None] * len(boundaries)
    limit = len(names)
    for position in range(len(boundaries) - 1, -1, -1):
        for index in range(limit - 1, begin - 1, -1):
            if names[index] == boundaries[position]:
                cuts[position] = limit = index
                break
    return cuts


def _cut_points(names: list[str], boundaries: Sequence[str]) -> list[int | None]:
    """Column index where each boundary starts a new segment.

    Boundaries are consumed in order. Each one cuts at its last occurrence
    after the previous cut that still leaves room for the boundaries that
    follow, so an earlier segment may reuse a boundary name. Absent
    boundaries yield ``None``.
    """
    cuts: list[int | None] = [None] * len(boundaries)
    start = 0
    for position, boundary in enumerate(boundaries):
        occurrences = [index for index in range(start, len(names)) if names[index] == boundary]
        if not occurrences:
            continue
        following = _last_cuts(names, boundaries[position + 1 :], occurrences[0] + 1)
        limit = next((index for index in following if index is not None), len(names))
        cut = max(index for index in occurrences if index < limit)
        if cut == 0:
            raise InvalidSplitBoundaryError(boundary)
        cuts[position] = cut
        start = cut + 1
    return cuts


def _aligned_segments(row: RawRow, boundaries: Sequence[str]) -> list[RawRow | None]:
    """One segment per boundary plus the leading one; ``None`` for absent boundaries."""
    cuts = _cut_points([name for name, _ in row], boundaries)
    starts: list[int | None] = [0, *cuts]
    segments: list[RawRow | None] = []
    for position, start in enumerate(starts):
        if start is None:
            segments.append(None)
            continue
        end = next((s for s in starts[position + 1 :] if s is not None), len(row))
        segments.append(row[start:end])
    return segments


class Mapper:
    """Maps raw rows to Records or entity instances.

    Args:
        registry: Table registry used to resolve entity types. Defaults to
            the module-level registry.
    """

    def __init__(self, registry: TableRegistry | None = None) -> None:
        self._registry = registry if registry is not None else default_registry

    @property
    def registry(self) -> TableRegistry:
        return self._registry

    def build_one(self, row: Any, target: type[T] = Record) -> T:  # type: ignore[assignment]
        """Map a single row.

        Args:
            row: A mapping or a sequence of ``(column, value)`` pairs.
            target: ``Record`` for an untyped object, otherwise an entity type.

        Returns:
            The mapped object. Row columns matching no writable column of the
            entity are ignored.
        """
        pairs = as_raw_row(row)
        if target is Record:
            return Record(pairs)  # type: ignore[return-value]

        table = self._registry.resolve(target)
        values: dict[str, Any] = {}
        for name, value in pairs:
            column = table.column(name)
            if column is None or not column.can_write or column.attribute in values:
                continue
            values[column.attribute] = coerce(value, column.field_type, column.is_nullable)
        return _instantiate(target, values)

    def build_many(
        self,
        rows: RowSource | Iterable[Any],
        target: type[T] = Record,  # type: ignore[assignment]
        *,
        buffered: bool = False,
    ) -> RowIterator[T] | list[T]:
        """Map every row, in order.

        Returns a lazy RowIterator, or a list when *buffered* is true. The row
        source is closed once the rows are drained, the iterator is closed,
        or mapping raises.
        """
        iterator = RowIterator(self._iterate(rows, lambda row: self.build_one(row, target)))
        return list(iterator) if buffered else iterator

    def split_row(self, row: Any, boundaries: str | Sequence[str]) -> list[RawRow]:
        """Split a flat row into segments at the given boundary columns.

        The first segment always starts at column 0. A boundary missing from
        the row creates no segment.

        Raises:
            InvalidSplitBoundaryError: If a boundary matches column 0.
        """
        if isinstance(boundaries, str):
            boundaries = [boundaries]
        segments = _aligned_segments(as_raw_row(row), boundaries)
        return [segment for segment in segments if segment is not None]

    def build_split(
        self,
        row: Any,
        targets: Sequence[type],
        split_on: str | Sequence[str] = "Id",
    ) -> tuple[Any, ...]:
        """Map one row to one object per target type.

        A segment whose values are all null (or whose boundary is absent)
        yields ``None`` for its target.

        Args:
            row: A mapping or a sequence of ``(column, value)`` pairs.
            targets: Target types, left to right.
            split_on: Boundary column name, repeated for every target after
                the first, or one name per target after the first.
        """
        boundaries = self._boundaries(targets, split_on)
        segments = _aligned_segments(as_raw_row(row), boundaries)
        return tuple(
            None
            if segment is None or all(value is None for _, value in segment)
            else self.build_one(segment, target)
            for segment, target in zip(segments, targets)
        )

    def build_split_many(
        self,
        rows: RowSource | Iterable[Any],
        targets: Sequence[type],
        split_on: str | Sequence[str] = "Id",
        *,
        buffered: bool = False,
    ) -> RowIterator[tuple[Any, ...]] | list[tuple[Any, ...]]:
        """build_split over every row; lazy unless *buffered*."""
        self._boundaries(targets, split_on)
        iterator = RowIterator(
            self._iterate(rows, lambda row: self.build_split(row, targets, split_on))
        )
        return list(iterator) if buffered else iterator

    def change_type(self, value: Any, target_type: Any, nullable: bool = True) -> Any:
        """Convert a single value, as row mapping does."""
        return coerce(value, target_type, nullable)

    @staticmethod
    def _boundaries(targets: Sequence[type], split_on: str | Sequence[str]) -> list[str]:
        if len(targets) < 2:
            raise ValueError("A split needs at least two target types")
        if isinstance(split_on, str):
            return [split_on] * (len(targets) - 1)
        if len(split_on) != len(targets) - 1:
            raise ValueError(
                f"Expected {len(targets) - 1} split columns for {len(targets)} "
                f"target types, got {len(split_on)}"
            )
        return list(split_on)

    @staticmethod
    def _iterate(rows: RowSource | Iterable[Any], build: Any) -> Iterator[Any]:
        source = iter_rows(rows) if isinstance(rows, RowSource) else iter(rows)
        try:
            for row in source:
                yield build(row)
        finally:
            close = getattr(source, "close", None)
            if close is not None:
                close()
