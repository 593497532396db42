"""Unit tests for table metadata and the table registry."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, ClassVar, Optional

import pytest
from entities import Character
from pydantic import BaseModel

from entity_sql.core.exceptions import AmbiguousIdentityError
from entity_sql.mapping.metadata import Column, describe
from entity_sql.mapping.registry import TableRegistry


@dataclass
class TwoKeys:
    a: Annotated[int, Column(identity=True)] = 0
    b: Annotated[int, Column(identity=True)] = 0


@dataclass
class Event:
    id: int = 0
    label: Optional[str] = None
    kind: ClassVar[str] = "event"
    _cache: int = 0


@dataclass
class LogLine:
    message: str = ""


class Product(BaseModel):
    Id: int = 0
    name: Annotated[str, Column("Name")] = ""
    price: Optional[Decimal] = None


class Account:
    Id: int
    owner: str

    def __init__(self) -> None:
        self.Id = 0
        self.owner = ""
        self._balance = 0

    @property
    def balance(self) -> int:
        return self._balance

    @balance.setter
    def balance(self, value: int) -> None:
        self._balance = value

    @property
    def display(self) -> str:
        return f"{self.owner}: {self._balance}"


class TestDescribe:
    def test_table_name_and_schema(self) -> None:
        table = describe(Character)
        assert table.name == "Characters"
        assert table.schema == "main"

    def test_default_table_name(self) -> None:
        table = describe(LogLine)
        assert table.name == "LogLine"
        assert table.schema is None

    def test_columns(self) -> None:
        table = describe(Character)
        assert list(table.columns) == ["id", "first_name", "gender", "last_name", "full_name"]

    def test_not_mapped_is_excluded(self) -> None:
        assert "nickname" not in describe(Character).columns

    def test_explicit_identity(self) -> None:
        identity = describe(Character).identity_column
        assert identity is not None
        assert identity.name == "ID"
        assert identity.attribute == "id"
        assert identity.is_identity

    def test_computed_property(self) -> None:
        column = describe(Character).columns["full_name"]
        assert column.name == "fullName"
        assert column.is_computed
        assert not column.can_write
        assert column.can_read

    def test_writable_columns(self) -> None:
        names = [column.name for column in describe(Character).writable_columns]
        assert names == ["firstName", "gender", "lastName"]

    def test_lookup_by_physical_or_attribute_name(self) -> None:
        table = describe(Character)
        assert table.column("firstName") is table.column("first_name")
        assert table.column("missing") is None

    def test_conventional_lowercase_identity(self) -> None:
        table = describe(Event)
        assert table.identity_column is not None
        assert table.identity_column.attribute == "id"
        assert table.identity_column.is_identity
        assert "id" not in [column.attribute for column in table.writable_columns]

    def test_class_vars_and_private_attributes_are_skipped(self) -> None:
        assert list(describe(Event).columns) == ["id", "label"]

    def test_optional_is_nullable(self) -> None:
        column = describe(Event).columns["label"]
        assert column.is_nullable
        assert column.field_type is str

    def test_no_identity(self) -> None:
        assert describe(LogLine).identity_column is None

    def test_ambiguous_identity(self) -> None:
        with pytest.raises(AmbiguousIdentityError) as exc_info:
            describe(TwoKeys)
        assert exc_info.value.columns == ["a", "b"]

    def test_pydantic_model(self) -> None:
        table = describe(Product)
        assert table.identity_column is not None
        assert table.identity_column.attribute == "Id"
        assert table.columns["name"].name == "Name"
        assert table.columns["price"].is_nullable
        assert "model_config" not in table.columns

    def test_plain_class_with_properties(self) -> None:
        table = describe(Account)
        assert table.identity_column is not None
        assert table.identity_column.name == "Id"
        assert table.columns["balance"].can_write
        assert not table.columns["balance"].is_computed
        assert "display" not in table.columns

    def test_descriptor_reads_and_writes_attributes(self, character: Character) -> None:
        column = describe(Character).columns["last_name"]
        assert column.get_value(character) == "Belin"
        column.set_value(character, "Dupont")
        assert character.last_name == "Dupont"


class TestTableRegistry:
    def test_resolve_caches(self, registry: TableRegistry) -> None:
        first = registry.resolve(Character)
        assert registry.resolve(Character) is first
        assert registry.has(Character)
        assert len(registry) == 1

    def test_registries_are_isolated(self, registry: TableRegistry) -> None:
        registry.resolve(Character)
        assert not TableRegistry().has(Character)

    def test_clear(self, registry: TableRegistry) -> None:
        registry.resolve(Character)
        registry.resolve(LogLine)
        registry.clear()
        assert len(registry) == 0
        assert not registry.has(Character)

    def test_failed_resolution_is_not_cached(self, registry: TableRegistry) -> None:
        with pytest.raises(AmbiguousIdentityError):
            registry.resolve(TwoKeys)
        assert not registry.has(TwoKeys)
