"""Dialect profiles.

A DialectProfile captures the syntactic conventions a target engine needs for
single-table commands: identifier quoting, placeholder style, catalog
qualification and how a freshly generated identity is read back.

Profiles are looked up once by driver identity, the top-level module name of
the DB-API connection class (``sqlite3``, ``psycopg``, ``oracledb``...).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from entity_sql.core.enums import CatalogLocation


@dataclass(frozen=True)
class DialectProfile:
    """Immutable set of SQL conventions for one database engine."""

    name: str
    quote_prefix: str = "["
    quote_suffix: str = "]"
    parameter_prefix: str = "@"
    catalog_separator: str = "."
    catalog_location: CatalogLocation = CatalogLocation.START
    schema_separator: str = "."
    use_positional_parameters: bool = False
    supports_returning_clause: bool = False
    returning_into: bool = False
    last_insert_id_expression: str = ""
    paramstyle: str = "named"

    def quote_identifier(self, unquoted: str) -> str:
        """Quote an identifier, doubling any embedded quote suffix."""
        escaped = unquoted.replace(self.quote_suffix, self.quote_suffix * 2)
        return f"{self.quote_prefix}{escaped}{self.quote_suffix}"

    def unquote_identifier(self, quoted: str) -> str:
        """Reverse quote_identifier."""
        if quoted.startswith(self.quote_prefix):
            quoted = quoted[len(self.quote_prefix) :]
        if quoted.endswith(self.quote_suffix):
            quoted = quoted[: -len(self.quote_suffix)]
        return quoted.replace(self.quote_suffix * 2, self.quote_suffix)

    def parameter_name(self, name: str) -> str:
        """Full placeholder name for a bare parameter name."""
        return f"{self.parameter_prefix}{name}"

    def placeholder(self, name: str) -> str:
        """Placeholder text emitted into generated SQL for a parameter."""
        return "?" if self.use_positional_parameters else self.parameter_name(name)

    def qualify_table(
        self,
        name: str,
        schema: str | None = None,
        catalog: str | None = None,
    ) -> str:
        """Quoted ``[catalog.]schema.table`` (or ``schema.table@catalog``)."""
        qualified = self.quote_identifier(name)
        if schema:
            qualified = f"{self.quote_identifier(schema)}{self.schema_separator}{qualified}"
        if catalog:
            quoted_catalog = self.quote_identifier(catalog)
            if self.catalog_location is CatalogLocation.END:
                qualified = f"{qualified}{self.catalog_separator}{quoted_catalog}"
            else:
                qualified = f"{quoted_catalog}{self.catalog_separator}{qualified}"
        return qualified


SQLITE = DialectProfile(
    name="sqlite",
    quote_prefix='"',
    quote_suffix='"',
    supports_returning_clause=True,
    last_insert_id_expression="SELECT last_insert_rowid()",
)

POSTGRESQL = DialectProfile(
    name="postgresql",
    quote_prefix='"',
    quote_suffix='"',
    parameter_prefix=":",
    supports_returning_clause=True,
    last_insert_id_expression="SELECT lastval()",
    paramstyle="pyformat",
)

MYSQL = DialectProfile(
    name="mysql",
    quote_prefix="`",
    quote_suffix="`",
    parameter_prefix=":",
    last_insert_id_expression="SELECT LAST_INSERT_ID()",
    paramstyle="pyformat",
)

ORACLE = DialectProfile(
    name="oracle",
    quote_prefix='"',
    quote_suffix='"',
    parameter_prefix=":",
    returning_into=True,
    catalog_separator="@",
    catalog_location=CatalogLocation.END,
)

FIREBIRD = DialectProfile(
    name="firebird",
    quote_prefix='"',
    quote_suffix='"',
    use_positional_parameters=True,
    supports_returning_clause=True,
    paramstyle="qmark",
)

ODBC = DialectProfile(
    name="odbc",
    use_positional_parameters=True,
    last_insert_id_expression="SELECT @@IDENTITY",
    paramstyle="qmark",
)

# Bracket quoting and @-prefixed parameters (SQL Server conventions).
DEFAULT = DialectProfile(
    name="default",
    last_insert_id_expression="SELECT SCOPE_IDENTITY()",
)

# Driver identity -> dialect profile
_DIALECTS: dict[str, DialectProfile] = {
    "sqlite": SQLITE,
    "sqlite3": SQLITE,
    "aiosqlite": SQLITE,
    "postgresql": POSTGRESQL,
    "psycopg": POSTGRESQL,
    "psycopg2": POSTGRESQL,
    "mysql": MYSQL,
    "pymysql": MYSQL,
    "aiomysql": MYSQL,
    "oracle": ORACLE,
    "oracledb": ORACLE,
    "firebird": FIREBIRD,
    "fdb": FIREBIRD,
    "odbc": ODBC,
    "pyodbc": ODBC,
}


def driver_identity(connection: Any) -> str:
    """Return the driver identity of a DB-API connection object.

    The identity is the top-level package of the connection's class, e.g.
    ``sqlite3`` for ``sqlite3.Connection`` and ``aiosqlite`` for
    ``aiosqlite.core.Connection``.
    """
    module = type(connection).__module__ or ""
    return module.split(".", 1)[0]


def dialect_for(driver: str) -> DialectProfile:
    """Look up the dialect of a driver identity, falling back to DEFAULT."""
    return _DIALECTS.get(driver.lower(), DEFAULT)
