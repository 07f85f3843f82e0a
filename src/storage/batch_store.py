"""Persistence for bulk sync jobs.

The batch worker is the only writer. The status resolver and the HTTP
status endpoint read rows while a worker is running, which WAL mode allows
without blocking either side.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from .connection import PathLike, get_connection, init_db
from .errors import StorageError
from .models import BatchState, BatchStatus, ItemState
from .timestamps import format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


class BatchStore:
    """SQLite-backed BatchStatus records."""

    def __init__(self, db_path: PathLike):
        self._db_path = db_path
        init_db(db_path)

    def save(self, batch: BatchStatus) -> None:
        """Insert or replace the whole batch row.

        Raises:
            StorageError: If the write fails
        """
        try:
            with get_connection(self._db_path) as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO batches
                        (batch_id, status, total, processed, successful, failed,
                         current_item_id, item_ids, per_item_status, results, error,
                         started_at, completed_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        batch.batch_id,
                        batch.status.value,
                        batch.total,
                        batch.processed,
                        batch.successful,
                        batch.failed,
                        batch.current_item_id,
                        json.dumps(batch.item_ids),
                        json.dumps({k: v.value for k, v in batch.per_item_status.items()}),
                        json.dumps(batch.results),
                        batch.error,
                        format_timestamp(batch.started_at or utc_now()),
                        format_timestamp(batch.completed_at),
                        format_timestamp(utc_now()),
                    ),
                )
        except sqlite3.Error as e:
            logger.error(f"Failed to save batch {batch.batch_id}: {e}")
            raise StorageError(str(e), operation="save batch")

    def get(self, batch_id: str) -> Optional[BatchStatus]:
        """Return a batch, or None when unknown.

        Raises:
            StorageError: If the query fails
        """
        try:
            with get_connection(self._db_path) as conn:
                row = conn.execute("SELECT * FROM batches WHERE batch_id = ?", (batch_id,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="read batch")
        return self._to_batch(row) if row else None

    def list_active(self) -> List[BatchStatus]:
        """Batches still queued or processing, most recent first.

        Raises:
            StorageError: If the query fails
        """
        try:
            with get_connection(self._db_path) as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM batches WHERE status IN ('queued', 'processing')
                    ORDER BY started_at DESC
                    """
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="list active batches")
        return [self._to_batch(row) for row in rows]

    def delete(self, batch_id: str) -> bool:
        with get_connection(self._db_path) as conn:
            cursor = conn.execute("DELETE FROM batches WHERE batch_id = ?", (batch_id,))
        return cursor.rowcount > 0

    @staticmethod
    def _to_batch(row: Dict[str, Any]) -> BatchStatus:
        per_item = json.loads(row['per_item_status'] or '{}')
        return BatchStatus(
            batch_id=row['batch_id'],
            status=BatchState(row['status']),
            item_ids=json.loads(row['item_ids'] or '[]'),
            per_item_status={k: ItemState(v) for k, v in per_item.items()},
            results=json.loads(row['results'] or '{}'),
            total=row['total'],
            processed=row['processed'],
            successful=row['successful'],
            failed=row['failed'],
            current_item_id=row['current_item_id'],
            error=row['error'],
            started_at=parse_timestamp(row['started_at']),
            completed_at=parse_timestamp(row['completed_at']),
        )
