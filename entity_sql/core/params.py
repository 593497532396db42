"""Statement parameters.

Parameter names always carry a placeholder prefix (``@id``, ``:id``, ``?1``).
Null values are stored as the DB_NULL marker and turned back into ``None``
when the collection is bound to a DB-API driver.

Also converts ``:name`` placeholders to the ``%(name)s`` format expected by
pyformat drivers (psycopg, mysql-connector), leaving string literals alone.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from entity_sql.core.enums import ParameterDirection

PARAMETER_PREFIXES = ("@", ":", "$", "?")

_POSITIONAL_STYLES = ("qmark", "format", "numeric")

# Matches single-quoted string literals (with escaped quotes handled)
_STRING_LITERAL_PATTERN = re.compile(r"'(?:[^'\\]|\\.)*'")


class _DBNull:
    """Marker for an explicit SQL NULL parameter value."""

    _instance: _DBNull | None = None

    def __new__(cls) -> _DBNull:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DB_NULL"

    def __bool__(self) -> bool:
        return False


DB_NULL = _DBNull()


def normalize_parameter_name(name: str, prefix: str = "@") -> str:
    """Return *name* with a placeholder prefix.

    An empty name is the positional placeholder ``?``. Names that already
    start with a known prefix are returned unchanged.
    """
    if not name:
        return "?"
    if name.startswith(PARAMETER_PREFIXES):
        return name
    return f"{prefix}{name}"


def bare_parameter_name(name: str) -> str:
    """Strip the placeholder prefix from a parameter name."""
    if name.startswith(PARAMETER_PREFIXES):
        return name[1:]
    return name


@dataclass
class Parameter:
    """A parameter of a parameterized SQL statement."""

    name: str
    value: Any = None
    db_type: str | None = None
    size: int | None = None
    direction: ParameterDirection | None = None
    precision: int | None = None
    scale: int | None = None
    prefix: str = field(default="@", repr=False, compare=False)

    def __post_init__(self) -> None:
        self.name = normalize_parameter_name(self.name, self.prefix)
        if self.value is None:
            self.value = DB_NULL

    @property
    def bare_name(self) -> str:
        return bare_parameter_name(self.name)

    @property
    def bound_value(self) -> Any:
        """Value as handed to a DB-API driver."""
        return None if self.value is DB_NULL else self.value


class ParameterCollection(list[Parameter]):
    """Ordered parameters of a statement with name-based lookup.

    Lookups ignore the placeholder prefix: ``"Key"`` and ``"@Key"`` refer to
    the same parameter.
    """

    def __init__(self, parameters: Iterable[Parameter] = ()) -> None:
        super().__init__(parameters)

    @classmethod
    def of(
        cls,
        name: str,
        value: Any = None,
        db_type: str | None = None,
        size: int | None = None,
    ) -> ParameterCollection:
        """Collection holding a single parameter."""
        return cls([Parameter(name, value, db_type=db_type, size=size)])

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> ParameterCollection:
        """Named parameters from a mapping; Parameter values are kept as-is."""
        return cls(
            value if isinstance(value, Parameter) else Parameter(str(key), value)
            for key, value in mapping.items()
        )

    @classmethod
    def from_sequence(cls, values: Iterable[Any]) -> ParameterCollection:
        """Positional parameters named ``?1``, ``?2``..."""
        return cls(
            value if isinstance(value, Parameter) else Parameter(f"?{index}", value)
            for index, value in enumerate(values, start=1)
        )

    def __getitem__(self, key: Any) -> Any:  # type: ignore[override]
        if isinstance(key, str):
            index = self.index_of(key)
            if index < 0:
                raise KeyError(key)
            return super().__getitem__(index)
        return super().__getitem__(key)

    def contains(self, name: str) -> bool:
        """Whether a parameter with the given name exists."""
        return self.index_of(name) >= 0

    def index_of(self, name: str) -> int:
        """Index of the named parameter, or -1."""
        wanted = bare_parameter_name(name)
        for index, parameter in enumerate(self):
            if parameter.bare_name == wanted:
                return index
        return -1

    def remove_named(self, name: str) -> None:
        """Remove the named parameter.

        Raises:
            KeyError: If no parameter has that name.
        """
        index = self.index_of(name)
        if index < 0:
            raise KeyError(name)
        del self[index]

    def bind(self, paramstyle: str) -> dict[str, Any] | tuple[Any, ...]:
        """Driver-ready parameters.

        A tuple for positional drivers or when every parameter is positional
        (``?``, ``?1``...), otherwise a dict keyed by bare name.
        """
        positional = bool(self) and all(p.name.startswith("?") for p in self)
        if positional or paramstyle in _POSITIONAL_STYLES:
            return tuple(parameter.bound_value for parameter in self)
        return {parameter.bare_name: parameter.bound_value for parameter in self}


def coerce_params(params: Any) -> ParameterCollection:
    """Normalize *params* to a ParameterCollection.

    * ``None`` -> empty collection.
    * ``ParameterCollection`` -> returned as-is.
    * ``Parameter`` -> single-element collection.
    * mapping -> named parameters.
    * ``tuple`` / ``list`` -> positional parameters.
    * Any other scalar -> a single positional parameter.
    """
    if params is None:
        return ParameterCollection()
    if isinstance(params, ParameterCollection):
        return params
    if isinstance(params, Parameter):
        return ParameterCollection([params])
    if isinstance(params, Mapping):
        return ParameterCollection.from_mapping(params)
    if isinstance(params, (tuple, list)):
        return ParameterCollection.from_sequence(params)
    return ParameterCollection.from_sequence((params,))


def normalize_params(sql: str, paramstyle: str, prefix: str = ":") -> str:
    """Convert *prefix*-named placeholders to the target param style.

    Args:
        sql: SQL string with ``:name`` (or other prefixed) placeholders.
        paramstyle: Target style. Only ``pyformat`` rewrites the text.
        prefix: Placeholder prefix used in *sql*.

    Returns:
        SQL with parameters converted to the target style.
    """
    if paramstyle != "pyformat":
        return sql
    return _convert_to_pyformat(sql, prefix)


@lru_cache(maxsize=256)
def _convert_to_pyformat(sql: str, prefix: str) -> str:
    """Convert prefixed params to %(name)s, preserving string literals."""
    escaped = re.escape(prefix)
    # Negative lookbehind for the prefix (handles ::typecast) and \w (mid-word)
    pattern = re.compile(rf"(?<![{escaped}\w]){escaped}([a-zA-Z_]\w*)")

    parts: list[str] = []
    last_end = 0

    for match in _STRING_LITERAL_PATTERN.finditer(sql):
        start, end = match.span()
        if start > last_end:
            parts.append(pattern.sub(r"%(\1)s", sql[last_end:start].replace("%", "%%")))
        parts.append(match.group().replace("%", "%%"))
        last_end = end

    if last_end < len(sql):
        parts.append(pattern.sub(r"%(\1)s", sql[last_end:].replace("%", "%%")))

    return "".join(parts)
