"""
Example 04: Transactions

This example demonstrates running statements inside a caller-owned
transaction. Statements given a transaction are never committed by the
engine; the caller commits or rolls back.
"""

import sqlite3
import tempfile
from pathlib import Path

from entity_sql import CommandOptions, Engine, ParameterBindingError


def main():
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    conn = sqlite3.connect(db_path)
    engine = Engine(conn)
    engine.execute("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE
        )
    """)
    insert = "INSERT INTO users (name, email) VALUES (:name, :email)"

    print("=== Transaction Management ===\n")

    # Example 1: Statements commit on their own without a transaction
    print("1. Autocommitted statement:")
    engine.execute(insert, {"name": "Alice", "email": "alice@example.com"})
    print(f"   Users: {engine.execute_scalar('SELECT COUNT(*) FROM users')}\n")

    # Example 2: Caller-owned transaction, rolled back on error
    print("2. Transaction with error:")
    in_transaction = CommandOptions(transaction=conn)
    try:
        engine.execute(insert, {"name": "Bob", "email": "bob@example.com"}, in_transaction)
        # This will fail due to duplicate email
        engine.execute(insert, {"name": "Charlie", "email": "alice@example.com"}, in_transaction)
        conn.commit()
    except ParameterBindingError as e:
        conn.rollback()
        print(f"   Error occurred: {e.__cause__}")
        print("   Transaction was rolled back\n")
    print(f"   Users after rollback: {engine.execute_scalar('SELECT COUNT(*) FROM users')} (Bob was not added)\n")

    # Example 3: Several statements committed together
    print("3. Multiple operations in transaction:")
    engine.execute(insert, {"name": "Dave", "email": "dave@example.com"}, in_transaction)
    engine.execute(insert, {"name": "Eve", "email": "eve@example.com"}, in_transaction)
    conn.commit()
    print(f"   Users after commit: {engine.execute_scalar('SELECT COUNT(*) FROM users')}\n")

    engine.close()
    Path(db_path).unlink()


if __name__ == "__main__":
    main()
