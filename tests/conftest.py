"""Shared test fixtures."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator

import pytest
from entities import CHARACTERS_DDL, Character, CharacterGender

from entity_sql.core.connection import ConnectionConfig
from entity_sql.mapping.registry import TableRegistry


@pytest.fixture
def sqlite_config() -> ConnectionConfig:
    """SQLite in-memory connection config."""
    return ConnectionConfig(driver="sqlite", database=":memory:")


@pytest.fixture
def registry() -> TableRegistry:
    """A fresh registry, isolated from the module-level one."""
    return TableRegistry()


@pytest.fixture
def character() -> Character:
    return Character(id=1000, first_name="Cédric", gender=CharacterGender.MALE, last_name="Belin")


@pytest.fixture
def sqlite_connection() -> Iterator[sqlite3.Connection]:
    """In-memory SQLite database holding an empty Characters table."""
    connection = sqlite3.connect(":memory:")
    connection.execute(CHARACTERS_DDL)
    connection.commit()
    yield connection
    connection.close()
