"""Persistence for imported media.

Notion serves uploaded files from short-lived signed URLs, so the same
image shows up under a new query string on every sync. Records are keyed
by the URL without its query string; a re-sync finds the earlier download
instead of fetching the file again.
"""

import logging
import sqlite3
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from .connection import PathLike, get_connection, init_db
from .errors import StorageError
from .models import MediaFile, MediaStatus
from .timestamps import format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


def source_key(url: str) -> str:
    """The URL without query string or fragment."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, '', ''))


class MediaStore:
    """SQLite-backed MediaFile records."""

    def __init__(self, db_path: PathLike):
        self._db_path = db_path
        init_db(db_path)

    def get(self, url: str) -> Optional[MediaFile]:
        """Find the record for any signed variant of `url`."""
        with get_connection(self._db_path) as conn:
            row = conn.execute(
                "SELECT * FROM media_files WHERE source_key = ?", (source_key(url),)
            ).fetchone()
        return self._to_media(row) if row else None

    def save(self, media: MediaFile) -> None:
        """Insert or update the record for media.source_key.

        Raises:
            StorageError: If the write fails
        """
        now = format_timestamp(utc_now())
        try:
            with get_connection(self._db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO media_files
                        (source_key, source_url, file_name, mime_type, size, local_content_id,
                         status, error_count, last_error, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(source_key) DO UPDATE SET
                        source_url = excluded.source_url,
                        file_name = excluded.file_name,
                        mime_type = excluded.mime_type,
                        size = excluded.size,
                        local_content_id = COALESCE(media_files.local_content_id, excluded.local_content_id),
                        status = excluded.status,
                        error_count = excluded.error_count,
                        last_error = excluded.last_error,
                        updated_at = excluded.updated_at
                    """,
                    (
                        media.source_key,
                        media.source_url,
                        media.file_name,
                        media.mime_type,
                        media.size,
                        media.local_content_id,
                        MediaStatus(media.status).value,
                        media.error_count,
                        media.last_error,
                        now,
                        now,
                    ),
                )
        except sqlite3.Error as e:
            logger.error(f"Failed to save media record for {media.source_key}: {e}")
            raise StorageError(str(e), operation="save media record")

    def record_failure(self, url: str, message: str, local_content_id: Optional[int] = None) -> MediaFile:
        """Count one failed download of `url` and keep the message.

        Raises:
            StorageError: If the write fails
        """
        media = self.get(url) or MediaFile(
            source_key=source_key(url),
            source_url=url,
            status=MediaStatus.FAILED,
            local_content_id=local_content_id,
        )
        media.source_url = url
        media.status = MediaStatus.FAILED
        media.error_count += 1
        media.last_error = message
        self.save(media)
        return media

    def stats(self) -> Dict[str, int]:
        """Number of records per status, every status present."""
        counts = {status.value: 0 for status in MediaStatus}
        with get_connection(self._db_path) as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS n FROM media_files GROUP BY status"
            ).fetchall()
        for row in rows:
            counts[row['status']] = row['n']
        return counts

    @staticmethod
    def _to_media(row: Dict[str, Any]) -> MediaFile:
        return MediaFile(
            id=row['id'],
            source_key=row['source_key'],
            source_url=row['source_url'],
            status=MediaStatus(row['status']),
            file_name=row['file_name'],
            mime_type=row['mime_type'],
            size=row['size'],
            local_content_id=row['local_content_id'],
            error_count=row['error_count'],
            last_error=row['last_error'],
            created_at=parse_timestamp(row['created_at']),
            updated_at=parse_timestamp(row['updated_at']),
        )
