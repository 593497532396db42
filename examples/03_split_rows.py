"""
Example 03: Splitting Joined Rows

This example demonstrates mapping one flat joined row to several objects.
"""

import sqlite3
from dataclasses import dataclass
from typing import Optional

from entity_sql import Engine


@dataclass
class Author:
    Id: int = 0
    name: str = ""


@dataclass
class Book:
    Id: int = 0
    title: str = ""
    year: Optional[int] = None


def main():
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE authors (Id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
    conn.execute("CREATE TABLE books (Id INTEGER PRIMARY KEY, authorId INTEGER, title TEXT, year INTEGER)")
    conn.execute("INSERT INTO authors (Id, name) VALUES (1, 'Jules Verne'), (2, 'Unpublished')")
    conn.execute("""
        INSERT INTO books (Id, authorId, title, year) VALUES
            (10, 1, 'Vingt mille lieues sous les mers', 1870),
            (11, 1, 'Le Tour du monde en quatre-vingts jours', 1872)
    """)
    conn.commit()

    engine = Engine(conn)

    print("=== Splitting Joined Rows ===\n")

    rows = engine.query_split(
        """
        SELECT a.Id, a.name, b.Id, b.title, b.year
        FROM authors a LEFT JOIN books b ON b.authorId = a.Id
        ORDER BY a.Id, b.Id
        """,
        [Author, Book],
        split_on="Id",
    )
    for author, book in rows:
        # Authors without books get None: the book columns are all NULL
        print(f"  {author.name}: {book.title if book else '(no books)'}")

    engine.close()


if __name__ == "__main__":
    main()
