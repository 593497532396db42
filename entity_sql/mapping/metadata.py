"""Table metadata.

Entities declare their table mapping with plain annotations:

    @table("Characters", schema="main")
    @dataclass
    class Character:
        id: Annotated[int, Column("ID", identity=True)] = 0
        first_name: Annotated[str, Column("firstName")] = ""
        nickname: Annotated[str, NotMapped()] = ""

describe() turns such a class into an immutable TableDescriptor. Dataclasses,
Pydantic models and plain annotated classes are supported.
"""

from __future__ import annotations

import dataclasses
import types
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any, ClassVar, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel

from entity_sql.core.exceptions import AmbiguousIdentityError, MetadataError

T = TypeVar("T")

_TABLE_ATTRIBUTE = "__entity_table__"


@dataclass(frozen=True)
class Column:
    """Marks an attribute as a mapped column.

    Attributes:
        name: Physical column name. Defaults to the attribute name.
        identity: The column is the table's identity (primary key).
        computed: The database computes the value; never inserted or updated.
    """

    name: str | None = None
    identity: bool = False
    computed: bool = False


@dataclass(frozen=True)
class NotMapped:
    """Excludes an attribute from the table mapping."""


@dataclass(frozen=True)
class TableMapping:
    name: str | None = None
    schema: str | None = None


def table(name: str | None = None, schema: str | None = None) -> Callable[[type[T]], type[T]]:
    """Class decorator overriding the table name and schema of an entity."""

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _TABLE_ATTRIBUTE, TableMapping(name, schema))
        return cls

    return decorator


@dataclass(frozen=True)
class ColumnDescriptor:
    """Mapping between an entity attribute and a table column."""

    attribute: str
    name: str
    field_type: Any
    is_nullable: bool = False
    is_identity: bool = False
    is_computed: bool = False
    can_read: bool = True
    can_write: bool = True

    def get_value(self, instance: Any) -> Any:
        return getattr(instance, self.attribute)

    def set_value(self, instance: Any, value: Any) -> None:
        setattr(instance, self.attribute, value)


@dataclass(frozen=True)
class TableDescriptor:
    """Immutable description of the table behind an entity type."""

    type: type
    name: str
    schema: str | None
    columns: Mapping[str, ColumnDescriptor]
    identity_column: ColumnDescriptor | None = None
    _by_name: Mapping[str, ColumnDescriptor] = field(
        default_factory=dict, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        by_name = {column.name: column for column in self.columns.values()}
        object.__setattr__(self, "_by_name", types.MappingProxyType(by_name))

    def column(self, name: str) -> ColumnDescriptor | None:
        """Find a column by physical name, then by attribute name."""
        return self._by_name.get(name) or self.columns.get(name)

    @property
    def writable_columns(self) -> list[ColumnDescriptor]:
        """Columns whose values are sent by insert and update commands."""
        return [
            column
            for column in self.columns.values()
            if column.can_write and not column.is_computed and not column.is_identity
        ]


def _unwrap(hint: Any) -> tuple[Any, bool, list[Any]]:
    """Split a type hint into (base type, nullable, Annotated markers)."""
    markers: list[Any] = []
    nullable = False
    while True:
        origin = get_origin(hint)
        if origin is Annotated:
            base, *extras = get_args(hint)
            markers.extend(extras)
            hint = base
        elif origin is Union or origin is types.UnionType:
            args = get_args(hint)
            non_null = [arg for arg in args if arg is not type(None)]
            nullable = nullable or len(non_null) < len(args)
            hint = non_null[0] if len(non_null) == 1 else Any
        else:
            return hint, nullable, markers


def _marker(markers: list[Any], kind: type) -> Any:
    for marker in markers:
        if isinstance(marker, kind) or marker is kind:
            return marker
    return None


def _build_column(
    attribute: str,
    hint: Any,
    *,
    writable: bool,
    require_marker: bool = False,
) -> ColumnDescriptor | None:
    base, nullable, markers = _unwrap(hint)
    if _marker(markers, NotMapped) is not None:
        return None
    column = _marker(markers, Column)
    if column is None and require_marker:
        return None
    column = column or Column()
    return ColumnDescriptor(
        attribute=attribute,
        name=column.name or attribute,
        field_type=base,
        is_nullable=nullable,
        is_identity=column.identity,
        is_computed=column.computed or not writable,
        can_read=True,
        can_write=writable,
    )


def _attribute_hints(cls: type) -> dict[str, Any]:
    if issubclass(cls, BaseModel):
        # Pydantic moves Annotated extras into FieldInfo.metadata
        return {
            name: Annotated[(field.annotation, *field.metadata)] if field.metadata else field.annotation
            for name, field in cls.model_fields.items()
        }
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as e:
        raise MetadataError(f"Cannot resolve the annotations of {cls.__name__}: {e}") from e


def _is_class_var(hint: Any) -> bool:
    hint, _, _ = _unwrap(hint)
    return hint is ClassVar or get_origin(hint) is ClassVar or isinstance(
        hint, dataclasses.InitVar
    )


def _property_columns(cls: type) -> list[ColumnDescriptor]:
    columns: list[ColumnDescriptor] = []
    seen: set[str] = set()
    for klass in reversed(cls.__mro__):
        for attribute, member in vars(klass).items():
            if attribute.startswith("_") or not isinstance(member, property):
                continue
            if attribute in seen or member.fget is None:
                continue
            seen.add(attribute)
            try:
                hint = typing.get_type_hints(member.fget, include_extras=True).get(
                    "return", Any
                )
            except (NameError, TypeError):
                hint = Any
            writable = member.fset is not None
            column = _build_column(
                attribute, hint, writable=writable, require_marker=not writable
            )
            if column is not None:
                columns.append(column)
    return columns


def describe(cls: type) -> TableDescriptor:
    """Build the table descriptor of an entity type.

    Every public annotated attribute is a read/write column; properties with
    a setter are read/write columns; read-only properties are computed
    columns when their return annotation carries a Column marker.

    Raises:
        AmbiguousIdentityError: If more than one column is marked identity.
    """
    columns: dict[str, ColumnDescriptor] = {}
    for attribute, hint in _attribute_hints(cls).items():
        if attribute.startswith("_") or _is_class_var(hint):
            continue
        column = _build_column(attribute, hint, writable=True)
        if column is not None:
            columns.setdefault(attribute, column)

    for column in _property_columns(cls):
        columns.setdefault(column.attribute, column)

    marked = [column for column in columns.values() if column.is_identity]
    if len(marked) > 1:
        raise AmbiguousIdentityError(cls.__name__, [column.attribute for column in marked])

    identity = marked[0] if marked else columns.get("Id") or columns.get("id")
    if identity is not None and not identity.is_identity:
        identity = dataclasses.replace(identity, is_identity=True)
        columns[identity.attribute] = identity

    mapping: TableMapping = getattr(cls, _TABLE_ATTRIBUTE, None) or TableMapping()
    return TableDescriptor(
        type=cls,
        name=mapping.name or cls.__name__,
        schema=mapping.schema,
        columns=types.MappingProxyType(columns),
        identity_column=identity,
    )
