"""
SQLite foundation: connections and schema for the canonical memory store.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator, Optional

from .config import DB_PATH, ensure_db_directory
from .errors import StoreUnavailableError


@contextmanager
def get_db(db_path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection; sqlite errors surface as StoreUnavailableError."""
    path = db_path or DB_PATH
    try:
        conn = sqlite3.connect(path)
    except sqlite3.Error as e:
        raise StoreUnavailableError(f"Cannot open database at {path}: {e}", backend="sqlite") from e
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    except sqlite3.Error as e:
        conn.rollback()
        raise StoreUnavailableError(f"Database error: {e}", backend="sqlite") from e
    finally:
        conn.close()


def init_db(db_path: Optional[str] = None):
    """Initialize the database with required tables."""
    path = db_path or DB_PATH
    if path != ":memory:":
        ensure_db_directory(path)

    with get_db(path) as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS memories (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                session_id TEXT,
                type TEXT NOT NULL,
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                source TEXT,
                tags_json TEXT,
                is_favorite BOOLEAN NOT NULL DEFAULT 0,
                is_pinned BOOLEAN NOT NULL DEFAULT 0,
                confidence REAL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')

        # Create indexes for performance
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_memories_project_created ON memories(project_id, created_at DESC)')

        conn.commit()


def health_check(db_path: Optional[str] = None) -> bool:
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='memories'")
            return cursor.fetchone() is not None
    except StoreUnavailableError:
        return False
