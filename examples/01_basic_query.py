"""
Example 01: Basic Query Execution

This example demonstrates parameterized statements, scalars and untyped
Record results with the Engine.
"""

from entity_sql import Engine, ConnectionConfig, EmptyResultError, QueryOptions


def main():
    config = ConnectionConfig(driver="sqlite", database=":memory:")
    engine = Engine.from_config(config)

    engine.execute("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            active INTEGER DEFAULT 1
        )
    """)
    engine.execute("INSERT INTO users (name, email) VALUES (:name, :email)", {"name": "Alice", "email": "alice@example.com"})
    engine.execute("INSERT INTO users (name, email) VALUES (?, ?)", ("Bob", "bob@example.com"))
    engine.execute(
        "INSERT INTO users (name, email, active) VALUES (:name, :email, 0)",
        {"name": "Charlie", "email": "charlie@example.com"},
    )

    print("=== Basic Query Execution ===\n")

    # query: every row as a Record
    users = engine.query("SELECT * FROM users WHERE active = 1")
    print(f"query result ({len(users)} rows):")
    for user in users:
        print(f"  - {user.name} ({user['email']})")
    print()

    # query_single: exactly one row
    user = engine.query_single("SELECT * FROM users WHERE id = :id", {"id": 1})
    print(f"query_single result: {user}\n")

    # query_first_or_default: None when there is no row
    missing = engine.query_first_or_default("SELECT * FROM users WHERE id = :id", {"id": 999})
    print(f"query_first_or_default for a missing id: {missing}\n")

    try:
        engine.query_first("SELECT * FROM users WHERE id = :id", {"id": 999})
    except EmptyResultError as e:
        print(f"query_first for a missing id: {e}\n")

    # execute_scalar: first column of the first row, optionally converted
    count = engine.execute_scalar("SELECT COUNT(*) FROM users")
    print(f"execute_scalar result: {count} total users")
    print(f"as text: {engine.execute_scalar('SELECT COUNT(*) FROM users', target=str)!r}\n")

    # Unbuffered queries stream rows from the open cursor
    print("Streaming rows:")
    with engine.query("SELECT name FROM users ORDER BY name", options=QueryOptions(buffered=False)) as rows:
        for row in rows:
            print(f"  - {row.name}")

    engine.close()


if __name__ == "__main__":
    main()
