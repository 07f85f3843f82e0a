"""Database connection management for notion-sync.

Every store opens a short-lived connection per operation through
get_connection(). Connections run in WAL mode so the batch worker can write
while the HTTP surface reads, enforce foreign keys, and return rows as dicts.

Usage:
    from src.storage.connection import get_connection, init_db

    init_db(".notion-sync/notion-sync.db")

    with get_connection(".notion-sync/notion-sync.db") as conn:
        row = conn.execute("SELECT * FROM notion_links WHERE slug = ?", ("home",)).fetchone()
        print(row["remote_title"])
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Tuple, Union

from .schema import create_schema, needs_migration

PathLike = Union[str, Path]


def dict_factory(cursor: sqlite3.Cursor, row: Tuple[Any, ...]) -> Dict[str, Any]:
    """Row factory that returns rows as dictionaries keyed by column name."""
    fields = [column[0] for column in cursor.description]
    return dict(zip(fields, row))


def configure_connection(conn: sqlite3.Connection) -> None:
    """Apply WAL mode, foreign key enforcement and the dict row factory."""
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = dict_factory


def init_db(db_path: PathLike) -> None:
    """Create the database file and schema if needed.

    Args:
        db_path: Path to the SQLite database file
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    try:
        configure_connection(conn)
        if needs_migration(conn):
            create_schema(conn)
    finally:
        conn.close()


@contextmanager
def get_connection(db_path: PathLike) -> Iterator[sqlite3.Connection]:
    """Get a configured connection as a context manager.

    Commits when the block exits normally, rolls back when it raises, and
    always closes the connection.

    Args:
        db_path: Path to the SQLite database file

    Yields:
        Configured SQLite connection
    """
    db_path = Path(db_path)
    if not db_path.exists():
        init_db(db_path)

    conn = sqlite3.connect(str(db_path), timeout=10)
    configure_connection(conn)

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
