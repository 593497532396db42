"""
Example 02: Entity Mapping

This example demonstrates table metadata on dataclasses and Pydantic models,
and the generated insert, select, update and delete commands.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel

from entity_sql import Column, CommandBuilder, ConnectionConfig, Engine, NotMapped, table


class Gender(Enum):
    FEMALE = 0
    MALE = 1
    OTHER = 2


@table("Characters")
@dataclass
class Character:
    id: Annotated[int, Column("ID", identity=True)] = 0
    first_name: Annotated[str, Column("firstName")] = ""
    gender: Gender = Gender.OTHER
    last_name: Annotated[str, Column("lastName")] = ""
    nickname: Annotated[str, NotMapped()] = ""


class Product(BaseModel):
    Id: int = 0
    name: str = ""
    price: Optional[float] = None


def main():
    config = ConnectionConfig(driver="sqlite", database=":memory:")
    engine = Engine.from_config(config)

    engine.execute("""
        CREATE TABLE Characters (
            ID INTEGER PRIMARY KEY AUTOINCREMENT,
            firstName TEXT NOT NULL,
            gender INTEGER NOT NULL,
            lastName TEXT NOT NULL
        )
    """)
    engine.execute("CREATE TABLE Product (Id INTEGER PRIMARY KEY, name TEXT, price REAL)")

    print("=== Entity Mapping ===\n")

    # Generated commands for another dialect
    builder = CommandBuilder(driver="pyodbc")
    text, parameters = builder.build_insert(Character(first_name="Cédric", gender=Gender.MALE, last_name="Belin"))
    print("1. ODBC insert command:")
    print(f"   {text}")
    print(f"   {[(p.name, p.value) for p in parameters]}\n")

    # Insert assigns the generated identity back
    print("2. Insert:")
    character = Character(first_name="Cédric", gender=Gender.MALE, last_name="Belin")
    engine.insert(character)
    print(f"   Inserted with id {character.id}\n")

    # Find by identity
    print("3. Find:")
    found = engine.find(Character, character.id)
    print(f"   {found}\n")

    # Update selected columns only
    print("4. Update:")
    found.last_name = "Dupont"
    engine.update(found, ["lastName"])
    print(f"   {engine.find(Character, character.id)}\n")

    # Pydantic models map the same way
    print("5. Pydantic model:")
    product_id = engine.insert(Product(name="Pen", price=1.5))
    product = engine.find(Product, product_id)
    print(f"   {product!r}\n")

    # Delete
    print("6. Delete:")
    print(f"   Deleted: {engine.delete(found)}")
    print(f"   Exists: {engine.exists(Character, character.id)}")

    engine.close()


if __name__ == "__main__":
    main()
