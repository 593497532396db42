"""Enumerations shared by the command and execution layers."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Database backends with a bundled adapter."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    ORACLE = "oracle"


class CatalogLocation(Enum):
    """Position of the catalog name in a qualified table name."""

    START = "start"
    END = "end"


class CommandType(Enum):
    """How the text of a command is interpreted."""

    TEXT = "text"
    STORED_PROCEDURE = "stored_procedure"


class ParameterDirection(Enum):
    """Direction of a statement parameter."""

    INPUT = "input"
    OUTPUT = "output"
    INPUT_OUTPUT = "input_output"
    RETURN_VALUE = "return_value"
