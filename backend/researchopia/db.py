from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager

from .config import BASE_DIR

DATA_DIR = os.path.join(BASE_DIR, "data")
DB_PATH = os.getenv("DATABASE_PATH", os.path.join(DATA_DIR, "researchopia.db"))


PAPERS_COLUMNS = {
    "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
    "doi": "TEXT",
    "title": "TEXT",
    "authors": "TEXT",
    "year": "INTEGER",
    "url": "TEXT",
    "created_at": "INTEGER",
    "updated_at": "INTEGER",
}


WEBPAGES_COLUMNS = {
    "title": "TEXT",
    "first_submitted_by": "TEXT",
    "created_at": "INTEGER",
    "updated_at": "INTEGER",
}


def _get_existing_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return {row[1] for row in rows}


def _ensure_columns(conn: sqlite3.Connection, table: str, columns: dict[str, str]) -> None:
    existing = _get_existing_columns(conn, table)
    for name, definition in columns.items():
        if name in existing:
            continue
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {name} {definition}")


def _create_rating_table(conn: sqlite3.Connection, table: str, target_column: str, target_table: str) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {table} (
            id TEXT PRIMARY KEY,
            {target_column} INTEGER NOT NULL,
            user_id TEXT NOT NULL,
            overall_score INTEGER NOT NULL,
            dimension1 INTEGER,
            dimension2 INTEGER,
            dimension3 INTEGER,
            is_anonymous INTEGER DEFAULT 0,
            show_username INTEGER DEFAULT 1,
            created_at INTEGER,
            updated_at INTEGER,
            FOREIGN KEY({target_column}) REFERENCES {target_table}(id)
        );
        """
    )
    conn.execute(
        f"CREATE UNIQUE INDEX IF NOT EXISTS idx_{table}_unique "
        f"ON {table}({target_column}, user_id)"
    )


def _create_comment_table(conn: sqlite3.Connection, table: str, target_column: str, target_table: str) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {table} (
            id TEXT PRIMARY KEY,
            {target_column} INTEGER NOT NULL,
            user_id TEXT NOT NULL,
            parent_id TEXT,
            content TEXT NOT NULL,
            is_anonymous INTEGER DEFAULT 0,
            created_at INTEGER,
            updated_at INTEGER,
            deleted_at INTEGER,
            FOREIGN KEY({target_column}) REFERENCES {target_table}(id)
        );
        """
    )
    conn.execute(
        f"CREATE INDEX IF NOT EXISTS idx_{table}_target "
        f"ON {table}({target_column}, created_at)"
    )
    conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{table}_parent ON {table}(parent_id)")


def ensure_db() -> None:
    directory = os.path.dirname(DB_PATH)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with sqlite3.connect(DB_PATH) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS papers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                doi TEXT,
                title TEXT
            );
            """
        )
        _ensure_columns(conn, "papers", PAPERS_COLUMNS)
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS webpages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                url TEXT NOT NULL,
                url_hash TEXT NOT NULL
            );
            """
        )
        _ensure_columns(conn, "webpages", WEBPAGES_COLUMNS)
        _create_rating_table(conn, "paper_ratings", "paper_id", "papers")
        _create_rating_table(conn, "webpage_ratings", "webpage_id", "webpages")
        _create_comment_table(conn, "paper_comments", "paper_id", "papers")
        _create_comment_table(conn, "webpage_comments", "webpage_id", "webpages")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_papers_doi ON papers(lower(doi))")
        conn.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_webpages_url_hash ON webpages(url_hash)"
        )
        conn.commit()


@contextmanager
def get_conn():
    ensure_db()
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
