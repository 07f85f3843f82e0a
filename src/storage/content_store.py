"""Local content store: posts and their key/value metadata.

This is the WordPress-style side of the sync. Records are created as draft
placeholders, filled in by the orchestrator, and linked back to Notion
through "_remote_*" metadata.
"""

import logging
import sqlite3
from typing import Dict, List, Optional

from .connection import PathLike, get_connection, init_db
from .errors import ContentNotFoundError, StorageError
from .models import LocalContent
from .timestamps import format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

# Statuses that no longer resolve to a public page
_UNPUBLISHED_STATUSES = {'trash'}


class ContentStore:
    """SQLite-backed store of local content records.

    Every write raises StorageError on failure with the underlying SQLite
    message, so callers can report it verbatim.

    Example:
        >>> store = ContentStore(".notion-sync/notion-sync.db", site_url="https://example.com")
        >>> post_id = store.create(LocalContent(title="Getting Started"))
        >>> store.permalink(post_id)
        'https://example.com/?p=1'
    """

    def __init__(self, db_path: PathLike, site_url: str = "http://localhost:8000"):
        self._db_path = db_path
        self._site_url = site_url.rstrip('/')
        init_db(db_path)

    def create(self, content: LocalContent) -> int:
        """Insert a new record and its metadata.

        Returns:
            The new record id

        Raises:
            StorageError: If the insert fails
        """
        now = format_timestamp(utc_now())
        try:
            with get_connection(self._db_path) as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO content (title, body, content_type, status, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (content.title, content.body, content.content_type, content.status, now, now),
                )
                content_id = cursor.lastrowid
                self._write_meta(conn, content_id, content.meta)
        except sqlite3.Error as e:
            logger.error(f"Failed to create content '{content.title}': {e}")
            raise StorageError(str(e), operation="create content")

        logger.info(f"Created {content.content_type} {content_id} ('{content.title}')")
        return content_id

    def update(self, content_id: int, content: LocalContent) -> None:
        """Replace title, body, type and status; merge metadata.

        A meta value of None removes that key.

        Raises:
            ContentNotFoundError: If the record does not exist
            StorageError: If the update fails
        """
        try:
            with get_connection(self._db_path) as conn:
                cursor = conn.execute(
                    """
                    UPDATE content
                    SET title = ?, body = ?, content_type = ?, status = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        content.title,
                        content.body,
                        content.content_type,
                        content.status,
                        format_timestamp(utc_now()),
                        content_id,
                    ),
                )
                if cursor.rowcount == 0:
                    raise ContentNotFoundError(content_id)
                self._write_meta(conn, content_id, content.meta)
        except sqlite3.Error as e:
            logger.error(f"Failed to update content {content_id}: {e}")
            raise StorageError(str(e), operation="update content")

        logger.debug(f"Updated content {content_id}")

    def get(self, content_id: int) -> Optional[LocalContent]:
        with get_connection(self._db_path) as conn:
            row = conn.execute("SELECT * FROM content WHERE id = ?", (content_id,)).fetchone()
            if row is None:
                return None
            meta = self._read_meta(conn, [content_id]).get(content_id, {})
        return self._to_content(row, meta)

    def delete(self, content_id: int) -> bool:
        """Delete a record and its metadata. Returns False if it did not exist."""
        with get_connection(self._db_path) as conn:
            cursor = conn.execute("DELETE FROM content WHERE id = ?", (content_id,))
        return cursor.rowcount > 0

    def find_by_meta(self, key: str, value: str) -> List[int]:
        """Return ids of records whose meta `key` equals `value`, oldest first.

        Raises:
            StorageError: If the query fails
        """
        try:
            with get_connection(self._db_path) as conn:
                rows = conn.execute(
                    "SELECT content_id FROM content_meta WHERE key = ? AND value = ? ORDER BY content_id",
                    (key, value),
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="find content by meta")
        return [row['content_id'] for row in rows]

    def find_all_with_meta(self, key: str) -> List[LocalContent]:
        """Return every record that has `key` set, with all of its metadata loaded.

        Used to build in-memory indexes in a single pass.
        """
        with get_connection(self._db_path) as conn:
            rows = conn.execute(
                """
                SELECT c.* FROM content c
                JOIN content_meta m ON m.content_id = c.id AND m.key = ?
                ORDER BY c.id
                """,
                (key,),
            ).fetchall()
            meta = self._read_meta(conn, [row['id'] for row in rows])
        return [self._to_content(row, meta.get(row['id'], {})) for row in rows]

    def find_containing(self, fragment: str) -> List[int]:
        """Return ids of records whose body contains `fragment`, oldest first."""
        escaped = fragment.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
        try:
            with get_connection(self._db_path) as conn:
                rows = conn.execute(
                    "SELECT id FROM content WHERE body LIKE ? ESCAPE '\\' ORDER BY id",
                    (f"%{escaped}%",),
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="search content bodies")
        return [row['id'] for row in rows]

    def update_body(self, content_id: int, body: str) -> None:
        """Replace only the body of a record.

        Raises:
            ContentNotFoundError: If the record does not exist
            StorageError: If the update fails
        """
        try:
            with get_connection(self._db_path) as conn:
                cursor = conn.execute(
                    "UPDATE content SET body = ?, updated_at = ? WHERE id = ?",
                    (body, format_timestamp(utc_now()), content_id),
                )
                if cursor.rowcount == 0:
                    raise ContentNotFoundError(content_id)
        except sqlite3.Error as e:
            logger.error(f"Failed to update body of content {content_id}: {e}")
            raise StorageError(str(e), operation="update content body")

    def get_meta(self, content_id: int, key: str) -> Optional[str]:
        with get_connection(self._db_path) as conn:
            row = conn.execute(
                "SELECT value FROM content_meta WHERE content_id = ? AND key = ?",
                (content_id, key),
            ).fetchone()
        return row['value'] if row else None

    def permalink(self, content_id: int) -> Optional[str]:
        """Public URL of a record, or None when it is missing or trashed."""
        with get_connection(self._db_path) as conn:
            row = conn.execute(
                "SELECT id, status FROM content WHERE id = ?", (content_id,)
            ).fetchone()
        if row is None or row['status'] in _UNPUBLISHED_STATUSES:
            return None
        return f"{self._site_url}/?p={row['id']}"

    def _write_meta(self, conn: sqlite3.Connection, content_id: int, meta: Dict[str, Optional[str]]) -> None:
        for key, value in meta.items():
            if value is None:
                conn.execute(
                    "DELETE FROM content_meta WHERE content_id = ? AND key = ?",
                    (content_id, key),
                )
            else:
                conn.execute(
                    "INSERT OR REPLACE INTO content_meta (content_id, key, value) VALUES (?, ?, ?)",
                    (content_id, key, str(value)),
                )

    def _read_meta(self, conn: sqlite3.Connection, content_ids: List[int]) -> Dict[int, Dict[str, str]]:
        if not content_ids:
            return {}
        placeholders = ','.join('?' for _ in content_ids)
        rows = conn.execute(
            f"SELECT content_id, key, value FROM content_meta WHERE content_id IN ({placeholders})",
            content_ids,
        ).fetchall()
        meta: Dict[int, Dict[str, str]] = {}
        for row in rows:
            meta.setdefault(row['content_id'], {})[row['key']] = row['value']
        return meta

    @staticmethod
    def _to_content(row: Dict, meta: Dict[str, str]) -> LocalContent:
        return LocalContent(
            id=row['id'],
            title=row['title'],
            body=row['body'],
            content_type=row['content_type'],
            status=row['status'],
            meta=dict(meta),
            created_at=parse_timestamp(row['created_at']),
            updated_at=parse_timestamp(row['updated_at']),
        )
