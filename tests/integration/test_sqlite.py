"""Integration test for SQLite full workflow.

Covers: entity commands, typed queries, row splitting over a join,
repositories and the async engine against real SQLite in-memory databases.
"""

from __future__ import annotations

import sqlite3
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass
from typing import Annotated, Optional

import pytest
from entities import CHARACTERS_DDL, Character, CharacterGender

from entity_sql import AsyncEngine, Column, ConnectionConfig, Engine, QueryOptions, table
from entity_sql.mapping.registry import TableRegistry
from entity_sql.repository.base import AsyncRepository, Repository

# --- Test models ---


@table("Quotes")
@dataclass
class Quote:
    Id: Annotated[int, Column(identity=True)] = 0
    characterId: int = 0
    text: str = ""
    source: Optional[str] = None


QUOTES_DDL = """
CREATE TABLE Quotes (
    Id INTEGER PRIMARY KEY AUTOINCREMENT,
    characterId INTEGER NOT NULL REFERENCES Characters (ID),
    text TEXT NOT NULL,
    source TEXT
)
"""


# --- Fixtures ---


@pytest.fixture
def engine(registry: TableRegistry) -> Iterator[Engine]:
    connection = sqlite3.connect(":memory:")
    connection.execute(CHARACTERS_DDL)
    connection.execute(QUOTES_DDL)
    connection.commit()
    with Engine(connection, registry=registry) as engine:
        yield engine


@pytest.fixture
async def async_engine(sqlite_config: ConnectionConfig, registry: TableRegistry) -> AsyncIterator[AsyncEngine]:
    engine = await AsyncEngine.from_config(sqlite_config, registry=registry)
    await engine.execute(CHARACTERS_DDL)
    try:
        yield engine
    finally:
        await engine.close()


# --- Tests ---


@pytest.mark.integration
class TestSqliteWorkflow:
    def test_entity_round_trip(self, engine: Engine) -> None:
        character = Character(first_name="Cédric", gender=CharacterGender.MALE, last_name="Belin")
        engine.insert(character)
        assert character.id > 0

        stored = engine.find(Character, character.id)
        assert stored == character
        assert stored.full_name == "Cédric Belin"

        stored.gender = CharacterGender.OTHER
        engine.update(stored, ["gender"])
        assert engine.find(Character, character.id).gender is CharacterGender.OTHER

        assert engine.delete(stored)
        assert not engine.exists(Character, character.id)

    def test_split_join(self, engine: Engine) -> None:
        character = Character(first_name="Cédric", gender=CharacterGender.MALE, last_name="Belin")
        engine.insert(character)
        engine.insert(Quote(characterId=character.id, text="Hello"))
        engine.insert(Quote(characterId=character.id, text="World", source="Book"))

        rows = engine.query_split(
            "SELECT q.Id, q.characterId, q.text, q.source, c.* "
            "FROM Quotes q JOIN Characters c ON c.ID = q.characterId ORDER BY q.Id",
            [Quote, Character],
            split_on="ID",
        )
        assert [quote.text for quote, _ in rows] == ["Hello", "World"]
        assert rows[0][0].source is None
        assert all(author == character for _, author in rows)

    def test_left_join_without_match(self, engine: Engine) -> None:
        engine.insert(Character(first_name="Anne", gender=CharacterGender.FEMALE, last_name="Belin"))
        rows = engine.query_split(
            "SELECT c.*, q.* FROM Characters c LEFT JOIN Quotes q ON q.characterId = c.ID",
            [Character, Quote],
        )
        assert len(rows) == 1
        assert rows[0][0].first_name == "Anne"
        assert rows[0][1] is None

    def test_unbuffered_query_streams_rows(self, engine: Engine) -> None:
        for index in range(5):
            engine.insert(Character(first_name=f"N{index}", last_name="Belin"))
        rows = engine.query(
            "SELECT * FROM Characters ORDER BY ID",
            target=Character,
            options=QueryOptions(buffered=False),
        )
        assert [character.first_name for character in rows] == [f"N{index}" for index in range(5)]

    def test_repository(self, engine: Engine) -> None:
        characters = Repository(engine, Character)
        identity = characters.add(Character(first_name="Marc", last_name="Durand"))
        assert characters.exists(identity)
        assert [c.first_name for c in characters.list("lastName = :name", {"name": "Durand"})] == ["Marc"]

        marc = characters.get(identity)
        marc.first_name = "Marco"
        assert characters.save(marc) == 1
        assert characters.get(identity).first_name == "Marco"
        assert characters.remove(marc)


@pytest.mark.integration
class TestAsyncSqlite:
    async def test_entity_round_trip(self, async_engine: AsyncEngine) -> None:
        character = Character(first_name="Cédric", gender=CharacterGender.MALE, last_name="Belin")
        identity = await async_engine.insert(character)
        assert character.id == identity

        stored = await async_engine.find(Character, identity)
        assert stored == character
        assert await async_engine.exists(Character, identity)

        stored.last_name = "Dupont"
        assert await async_engine.update(stored) == 1
        assert await async_engine.execute_scalar(
            "SELECT fullName FROM Characters WHERE ID = :id", {"id": identity}
        ) == "Cédric Dupont"

        assert await async_engine.delete(stored)
        assert await async_engine.find(Character, identity) is None

    async def test_queries(self, async_engine: AsyncEngine) -> None:
        for name in ("Anne", "Marc"):
            await async_engine.insert(Character(first_name=name, last_name="Belin"))

        records = await async_engine.query("SELECT firstName FROM Characters ORDER BY ID")
        assert [record.firstName for record in records] == ["Anne", "Marc"]

        first = await async_engine.query_first("SELECT * FROM Characters ORDER BY ID", target=Character)
        assert first.first_name == "Anne"

        stream = await async_engine.query(
            "SELECT * FROM Characters ORDER BY ID",
            target=Character,
            options=QueryOptions(buffered=False),
        )
        assert [character.first_name async for character in stream] == ["Anne", "Marc"]

        async with await async_engine.query(
            "SELECT * FROM Characters ORDER BY ID", options=QueryOptions(buffered=False)
        ) as stream:
            assert (await anext(stream)).firstName == "Anne"
        with pytest.raises(StopAsyncIteration):
            await anext(stream)

    async def test_repository(self, async_engine: AsyncEngine) -> None:
        characters = AsyncRepository(async_engine, Character)
        identity = await characters.add(Character(first_name="Marc", last_name="Durand"))
        assert (await characters.get(identity)).first_name == "Marc"
        assert len(await characters.list()) == 1
