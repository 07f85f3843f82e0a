"""Persistence for Notion database entries.

Each synced database keeps its entries here, one row per entry page, with
the property values already flattened to JSON. The record that mirrors
the database in the content store renders its table from these rows.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from .connection import PathLike, get_connection, init_db
from .errors import StorageError
from .models import DatabaseRow
from .timestamps import format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


class RowStore:
    """SQLite-backed DatabaseRow records.

    Example:
        >>> store = RowStore(".notion-sync/notion-sync.db")
        >>> store.upsert(DatabaseRow(database_id="d1", row_id="r1", title="Task"))
        >>> [row.title for row in store.list_rows("d1")]
        ['Task']
    """

    def __init__(self, db_path: PathLike):
        self._db_path = db_path
        init_db(db_path)

    def upsert(self, row: DatabaseRow) -> None:
        """Insert an entry or replace the stored one with the same row_id.

        Raises:
            StorageError: If the write fails
        """
        self.upsert_many([row])

    def upsert_many(self, rows: Iterable[DatabaseRow]) -> int:
        """Write several entries in one transaction.

        Returns:
            Number of entries written

        Raises:
            StorageError: If the write fails; no entry is written
        """
        now = format_timestamp(utc_now())
        written = 0
        try:
            with get_connection(self._db_path) as conn:
                for row in rows:
                    conn.execute(
                        """
                        INSERT INTO database_rows
                            (database_id, row_id, title, properties,
                             remote_created_at, remote_last_modified, synced_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(row_id) DO UPDATE SET
                            database_id = excluded.database_id,
                            title = excluded.title,
                            properties = excluded.properties,
                            remote_created_at = excluded.remote_created_at,
                            remote_last_modified = excluded.remote_last_modified,
                            synced_at = excluded.synced_at
                        """,
                        (
                            row.database_id,
                            row.row_id,
                            row.title,
                            json.dumps(row.properties, default=str),
                            format_timestamp(row.remote_created_at),
                            format_timestamp(row.remote_last_modified),
                            now,
                        ),
                    )
                    written += 1
        except sqlite3.Error as e:
            logger.error(f"Failed to write database rows: {e}")
            raise StorageError(str(e), operation="write database rows")
        return written

    def list_rows(self, database_id: str, limit: Optional[int] = None) -> List[DatabaseRow]:
        """Entries of one database in Notion creation order.

        Raises:
            StorageError: If the query fails
        """
        query = "SELECT * FROM database_rows WHERE database_id = ? ORDER BY remote_created_at, id"
        params: List[Any] = [database_id]
        if limit:
            query += " LIMIT ?"
            params.append(limit)
        try:
            with get_connection(self._db_path) as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="list database rows")
        return [self._to_row(row) for row in rows]

    def get_row(self, row_id: str) -> Optional[DatabaseRow]:
        with get_connection(self._db_path) as conn:
            row = conn.execute("SELECT * FROM database_rows WHERE row_id = ?", (row_id,)).fetchone()
        return self._to_row(row) if row else None

    def count(self, database_id: str) -> int:
        with get_connection(self._db_path) as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM database_rows WHERE database_id = ?", (database_id,)
            ).fetchone()
        return row['n']

    def delete_missing(self, database_id: str, keep_row_ids: Iterable[str]) -> int:
        """Delete entries of a database that are not in `keep_row_ids`.

        Returns:
            Number of entries deleted
        """
        keep = list(keep_row_ids)
        query = "DELETE FROM database_rows WHERE database_id = ?"
        params: List[Any] = [database_id]
        if keep:
            query += f" AND row_id NOT IN ({','.join('?' for _ in keep)})"
            params.extend(keep)
        with get_connection(self._db_path) as conn:
            cursor = conn.execute(query, params)
        if cursor.rowcount:
            logger.info(f"Removed {cursor.rowcount} deleted entries of database {database_id}")
        return cursor.rowcount

    @staticmethod
    def _to_row(row: Dict[str, Any]) -> DatabaseRow:
        return DatabaseRow(
            id=row['id'],
            database_id=row['database_id'],
            row_id=row['row_id'],
            title=row['title'],
            properties=json.loads(row['properties'] or '{}'),
            remote_created_at=parse_timestamp(row['remote_created_at']),
            remote_last_modified=parse_timestamp(row['remote_last_modified']),
            synced_at=parse_timestamp(row['synced_at']),
        )
