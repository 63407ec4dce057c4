from __future__ import annotations

from typing import Sequence

from psycopg import sql as psql

TABLE = "posts"

# Writable columns per deployment variant
COLUMNS: dict[bool, list[str]] = {
    True: ["title", "content", "author_id"],
    False: ["title", "content"],
}


def columns(announcing: bool) -> list[str]:
    return COLUMNS[announcing]


def create_table_statement(announcing: bool) -> psql.Composed:
    """CREATE TABLE IF NOT EXISTS; safe to run on every startup."""
    author = psql.SQL("author_id INT NOT NULL,") if announcing else psql.SQL("")
    return psql.SQL(
        "CREATE TABLE IF NOT EXISTS {} ("
        "id SERIAL PRIMARY KEY, "
        "title VARCHAR(255) NOT NULL, "
        "content TEXT, "
        "{} "
        "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
    ).format(psql.Identifier(TABLE), author)


def insert_statement(cols: Sequence[str]) -> psql.Composed:
    """INSERT with named parameters (%(name)s)."""
    return psql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
        psql.Identifier(TABLE),
        psql.SQL(", ").join(psql.Identifier(c) for c in cols),
        psql.SQL(", ").join(psql.Placeholder(c) for c in cols),
    )


def select_all_statement() -> psql.Composed:
    return psql.SQL("SELECT * FROM {}").format(psql.Identifier(TABLE))


def update_statement(cols: Sequence[str]) -> psql.Composed:
    setlist = psql.SQL(", ").join(
        psql.SQL("{} = {}").format(psql.Identifier(c), psql.Placeholder(c)) for c in cols
    )
    return psql.SQL("UPDATE {} SET {} WHERE id = {}").format(
        psql.Identifier(TABLE), setlist, psql.Placeholder("id")
    )


def delete_statement() -> psql.Composed:
    return psql.SQL("DELETE FROM {} WHERE id = {}").format(
        psql.Identifier(TABLE), psql.Placeholder("id")
    )
