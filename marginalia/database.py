"""Opening the SQLite database and creating its schema."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Union

_SCHEMA = """
CREATE TABLE IF NOT EXISTS recommendations (
    id        INTEGER PRIMARY KEY AUTOINCREMENT,
    url       TEXT NOT NULL UNIQUE,
    title     TEXT,
    byline    TEXT,
    excerpt   TEXT,
    content   TEXT,
    site_name TEXT,
    added_at  INTEGER NOT NULL DEFAULT (CAST(strftime('%s', 'now') AS INTEGER))
)
"""


def open_database(db_path: Union[str, Path]) -> sqlite3.Connection:
    """Open the database, creating its directory and table as needed."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    connection = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
    try:
        connection.execute(_SCHEMA)
    except sqlite3.Error:
        connection.close()
        raise

    try:
        connection.execute("ALTER TABLE recommendations ADD COLUMN content TEXT")
    except sqlite3.OperationalError:
        pass  # column already present

    return connection