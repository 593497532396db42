"""Unit tests for Mapper, Record and row splitting."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, Any, Optional

import pytest
from entities import Character, CharacterGender
from pydantic import BaseModel

from entity_sql.core.exceptions import (
    ColumnMismatchError,
    InvalidSplitBoundaryError,
    UnconvertibleValueError,
)
from entity_sql.mapping.metadata import Column
from entity_sql.mapping.model import AsyncRowIterator, Mapper, Record, RowIterator
from entity_sql.mapping.registry import TableRegistry
from entity_sql.mapping.rows import ListRowSource


@dataclass
class Label:
    Id: int = 0
    LongLabel: str = ""
    ShortLabel: Optional[str] = None


@dataclass
class Person:
    Id: int = 0
    FirstName: str = ""
    LastName: str = ""


@dataclass
class Required:
    Id: int
    name: str
    score: Optional[float]


class Product(BaseModel):
    Id: int = 0
    name: Annotated[str, Column("Name")] = ""
    price: Optional[Decimal] = None


class Tag:
    Id: int
    label: str

    def __init__(self) -> None:
        self.Id = 0
        self.label = ""


class Strict:
    Id: int

    def __init__(self, Id: int) -> None:
        self.Id = Id


@pytest.fixture
def mapper(registry: TableRegistry) -> Mapper:
    return Mapper(registry)


@pytest.fixture
def joined_row() -> list[tuple[str, Any]]:
    return [
        ("Id", 123),
        ("LongLabel", "Hello"),
        ("ShortLabel", None),
        ("Id", 456),
        ("FirstName", "Cédric"),
        ("LastName", "Belin"),
        ("RowID", 789),
    ]


def _character_row(**overrides: Any) -> dict[str, Any]:
    row = {"ID": 5, "firstName": "Cédric", "gender": 1, "lastName": "Belin", "fullName": "x"}
    row.update(overrides)
    return row


class TestRecord:
    def test_build_record(self, mapper: Mapper) -> None:
        record = mapper.build_one({"Id": 1, "Name": "Alice"})
        assert isinstance(record, Record)
        assert record["Name"] == "Alice"
        assert record.Id == 1

    def test_column_order_and_first_duplicate_wins(
        self, mapper: Mapper, joined_row: list[tuple[str, Any]]
    ) -> None:
        record = mapper.build_one(joined_row)
        assert list(record) == ["Id", "LongLabel", "ShortLabel", "FirstName", "LastName", "RowID"]
        assert record["Id"] == 123

    def test_missing_attribute(self, mapper: Mapper) -> None:
        record = mapper.build_one({"Id": 1})
        with pytest.raises(AttributeError):
            record.Name  # noqa: B018

    def test_to_dict(self, mapper: Mapper) -> None:
        assert mapper.build_one([("a", 1), ("b", None)]).to_dict() == {"a": 1, "b": None}

    def test_repr(self) -> None:
        assert repr(Record([("Id", 1)])) == "Record(Id=1)"


class TestBuildOne:
    def test_dataclass_entity(self, mapper: Mapper) -> None:
        character = mapper.build_one(_character_row(), Character)
        assert isinstance(character, Character)
        assert character.id == 5
        assert character.first_name == "Cédric"
        assert character.gender is CharacterGender.MALE
        assert character.full_name == "Cédric Belin"

    def test_unknown_columns_are_ignored(self, mapper: Mapper) -> None:
        character = mapper.build_one(_character_row(extra="ignored"), Character)
        assert not hasattr(character, "extra")

    def test_missing_required_fields_get_zero_values(self, mapper: Mapper) -> None:
        result = mapper.build_one({"Id": 1}, Required)
        assert result.Id == 1
        assert result.name == ""
        assert result.score is None

    def test_pydantic_model(self, mapper: Mapper) -> None:
        product = mapper.build_one({"Id": "7", "Name": "Pen", "price": 1.5}, Product)
        assert isinstance(product, Product)
        assert product.Id == 7
        assert product.name == "Pen"
        assert product.price == Decimal("1.5")

    def test_plain_class(self, mapper: Mapper) -> None:
        tag = mapper.build_one({"Id": 3, "label": "news"}, Tag)
        assert isinstance(tag, Tag)
        assert tag.Id == 3
        assert tag.label == "news"

    def test_constructor_mismatch(self, mapper: Mapper) -> None:
        with pytest.raises(ColumnMismatchError):
            mapper.build_one({"Id": 1}, Strict)

    def test_unconvertible_value(self, mapper: Mapper) -> None:
        with pytest.raises(UnconvertibleValueError):
            mapper.build_one(_character_row(ID="abc"), Character)

    def test_null_column_gets_zero_value(self, mapper: Mapper) -> None:
        character = mapper.build_one(_character_row(lastName=None), Character)
        assert character.last_name == ""

    def test_change_type(self, mapper: Mapper) -> None:
        assert mapper.change_type("5", int) == 5
        assert mapper.change_type(None, int) is None
        assert mapper.change_type(None, int, nullable=False) == 0


class TestBuildMany:
    def test_buffered(self, mapper: Mapper) -> None:
        source = ListRowSource([{"Id": 1}, {"Id": 2}, {"Id": 3}])
        records = mapper.build_many(source, buffered=True)
        assert isinstance(records, list)
        assert [record.Id for record in records] == [1, 2, 3]
        assert source.closed

    def test_empty_source(self, mapper: Mapper) -> None:
        assert mapper.build_many(ListRowSource([]), buffered=True) == []
        assert list(mapper.build_many(ListRowSource([]))) == []

    def test_plain_iterable(self, mapper: Mapper) -> None:
        tags = mapper.build_many([{"Id": 1, "label": "a"}, {"Id": 2, "label": "b"}], Tag)
        assert [tag.label for tag in tags] == ["a", "b"]

    def test_lazy_iterator_closes_source(self, mapper: Mapper) -> None:
        source = ListRowSource([{"Id": 1}, {"Id": 2}, {"Id": 3}])
        rows = mapper.build_many(source)
        assert isinstance(rows, RowIterator)
        assert next(rows).Id == 1
        assert not source.closed
        rows.close()
        assert source.closed

    def test_draining_closes_source(self, mapper: Mapper) -> None:
        source = ListRowSource([{"Id": 1}])
        with mapper.build_many(source) as rows:
            assert len(list(rows)) == 1
        assert source.closed

    def test_mapping_error_closes_source(self, mapper: Mapper) -> None:
        source = ListRowSource([_character_row(), _character_row(ID="abc")])
        with pytest.raises(UnconvertibleValueError):
            mapper.build_many(source, Character, buffered=True)
        assert source.closed


class TestAsyncRowIterator:
    @staticmethod
    async def _rows(released: list[int]) -> Any:
        try:
            for value in (1, 2, 3):
                yield value
        finally:
            released.append(1)

    async def test_leaving_block_releases_rows(self) -> None:
        released: list[int] = []
        async with AsyncRowIterator(self._rows(released)) as rows:
            assert await anext(rows) == 1
        assert released == [1]
        with pytest.raises(StopAsyncIteration):
            await anext(rows)

    async def test_draining_releases_rows(self) -> None:
        released: list[int] = []
        assert [value async for value in AsyncRowIterator(self._rows(released))] == [1, 2, 3]
        assert released == [1]


class TestSplit:
    def test_split_row(self, mapper: Mapper, joined_row: list[tuple[str, Any]]) -> None:
        segments = mapper.split_row(joined_row, "Id")
        assert len(segments) == 2
        assert [name for name, _ in segments[0]] == ["Id", "LongLabel", "ShortLabel"]
        assert [name for name, _ in segments[1]] == ["Id", "FirstName", "LastName", "RowID"]

    def test_split_row_several_boundaries(
        self, mapper: Mapper, joined_row: list[tuple[str, Any]]
    ) -> None:
        segments = mapper.split_row(joined_row, ["Id", "RowID"])
        assert [len(segment) for segment in segments] == [3, 3, 1]

    def test_out_of_order_boundaries(self, mapper: Mapper) -> None:
        row = [("x", 1), ("B", 2), ("y", 3), ("A", 4), ("z", 5)]
        segments = mapper.split_row(row, ["A", "B"])
        assert [[name for name, _ in segment] for segment in segments] == [
            ["x", "B", "y"],
            ["A", "z"],
        ]

    def test_repeated_boundary_name(self, mapper: Mapper) -> None:
        row = [("Id", 1), ("a", 2), ("Id", 3), ("b", 4), ("Id", 5), ("c", 6)]
        segments = mapper.split_row(row, ["Id", "Id"])
        assert [[value for _, value in segment] for segment in segments] == [[1, 2], [3, 4], [5, 6]]

    def test_absent_boundary(self, mapper: Mapper, joined_row: list[tuple[str, Any]]) -> None:
        segments = mapper.split_row(joined_row, "Missing")
        assert segments == [joined_row]

    def test_boundary_on_first_column(self, mapper: Mapper) -> None:
        with pytest.raises(InvalidSplitBoundaryError):
            mapper.split_row([("Id", 1), ("Name", "x")], "Id")

    def test_build_split(self, mapper: Mapper, joined_row: list[tuple[str, Any]]) -> None:
        label, person = mapper.build_split(joined_row, [Label, Person])
        assert label == Label(123, "Hello", None)
        assert person == Person(456, "Cédric", "Belin")

    def test_all_null_segment_is_none(self, mapper: Mapper) -> None:
        row = [
            ("Id", 1),
            ("LongLabel", "Hello"),
            ("Id", None),
            ("FirstName", None),
            ("LastName", None),
        ]
        label, person = mapper.build_split(row, [Label, Person])
        assert label.Id == 1
        assert person is None

    def test_absent_boundary_segment_is_none(
        self, mapper: Mapper, joined_row: list[tuple[str, Any]]
    ) -> None:
        label, person = mapper.build_split(joined_row, [Label, Person], "Missing")
        assert label.Id == 123
        assert person is None

    def test_split_needs_two_targets(self, mapper: Mapper, joined_row: list[tuple[str, Any]]) -> None:
        with pytest.raises(ValueError):
            mapper.build_split(joined_row, [Label])

    def test_split_column_count_must_match(
        self, mapper: Mapper, joined_row: list[tuple[str, Any]]
    ) -> None:
        with pytest.raises(ValueError):
            mapper.build_split(joined_row, [Label, Person], ["Id", "RowID"])

    def test_build_split_many(self, mapper: Mapper, joined_row: list[tuple[str, Any]]) -> None:
        source = ListRowSource([joined_row, joined_row])
        pairs = mapper.build_split_many(source, [Label, Person], buffered=True)
        assert len(pairs) == 2
        assert all(person.LastName == "Belin" for _, person in pairs)
        assert source.closed
