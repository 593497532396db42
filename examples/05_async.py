"""
Example 05: Async Support

This example demonstrates asynchronous execution using AsyncEngine and
aiosqlite.
"""

import asyncio
from dataclasses import dataclass

from entity_sql import AsyncEngine, ConnectionConfig, QueryOptions


@dataclass
class User:
    id: int = 0
    name: str = ""
    email: str = ""


async def main():
    config = ConnectionConfig(driver="sqlite", database=":memory:")
    engine = await AsyncEngine.from_config(config)

    await engine.execute("""
        CREATE TABLE User (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL
        )
    """)

    print("=== Async Query Execution ===\n")

    print("1. Insert entities:")
    for name in ("Alice", "Bob", "Charlie"):
        user = User(name=name, email=f"{name.lower()}@example.com")
        await engine.insert(user)
        print(f"   {user}")
    print()

    print("2. Typed query:")
    users = await engine.query("SELECT * FROM User ORDER BY name", target=User)
    for user in users:
        print(f"   - {user.name}")
    print()

    print("3. Streaming query:")
    rows = await engine.query("SELECT name FROM User", options=QueryOptions(buffered=False))
    async for row in rows:
        print(f"   - {row.name}")
    print()

    print("4. Find and count:")
    bob = await engine.find(User, 2)
    count = await engine.execute_scalar("SELECT COUNT(*) FROM User")
    print(f"   User 2: {bob.name}")
    print(f"   Count: {count}\n")

    await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
