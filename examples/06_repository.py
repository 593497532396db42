"""
Example 06: Repository Pattern

This example demonstrates using the Repository pattern for DDD-style code organization.
"""

from dataclasses import dataclass
from typing import Annotated, Optional

from entity_sql import Column, ConnectionConfig, Engine, table
from entity_sql.repository import Repository


@table("users")
@dataclass
class User:
    """User entity"""
    id: Annotated[int, Column(identity=True)] = 0
    name: str = ""
    email: str = ""
    active: bool = True


class UserRepository(Repository[User]):
    """Repository for User entities"""

    def __init__(self, engine: Engine):
        super().__init__(engine, User)

    def find_all_active(self) -> list[User]:
        """Find all active users"""
        return self.list("active = 1")

    def find_by_email(self, email: str) -> Optional[User]:
        return self.engine.query_single_or_default(
            "SELECT * FROM users WHERE email = :email", {"email": email}, User
        )


def main():
    config = ConnectionConfig(driver="sqlite", database=":memory:")
    engine = Engine.from_config(config)
    engine.execute("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            active INTEGER DEFAULT 1
        )
    """)
    user_repo = UserRepository(engine)

    print("=== Repository Pattern ===\n")

    # Add users
    print("1. Add users:")
    for user in (
        User(name="Alice", email="alice@example.com"),
        User(name="Bob", email="bob@example.com", active=False),
    ):
        user_repo.add(user)
        print(f"   Created user with ID: {user.id}")
    print()

    # Get by ID
    print("2. Get user by ID:")
    user = user_repo.get(1)
    if user:
        print(f"   Found: {user.name} ({user.email})\n")

    # Find all active users
    print("3. Find all active users:")
    for u in user_repo.find_all_active():
        print(f"   - {u.name}")
    print()

    # Update user
    print("4. Update user:")
    user = user_repo.find_by_email("alice@example.com")
    if user:
        user.email = "alice.updated@example.com"
        user_repo.save(user, ["email"])
        print(f"   Updated user #{user.id}\n")

    # Delete user
    print("5. Delete user:")
    bob = user_repo.get(2)
    print(f"   Deleted user #2: {user_repo.remove(bob)}\n")

    # Verify final state
    print("6. Final users:")
    for u in user_repo.list():
        print(f"   - {u.name} ({u.email})")

    engine.close()


if __name__ == "__main__":
    main()
