"""Sync diagnostics log.

Records what happened during each sync (successes, API failures,
conversion problems) so failures can be audited after the fact and
marked resolved once dealt with.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from .connection import PathLike, get_connection, init_db
from .errors import StorageError
from .models import SyncLogEntry
from .schema import LOG_CATEGORIES, LOG_SEVERITIES
from .timestamps import format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

SEVERITY_INFO = "info"
SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"

CATEGORY_IMAGE = "image"
CATEGORY_BLOCK = "block"
CATEGORY_API = "api"
CATEGORY_CONVERSION = "conversion"
CATEGORY_PERFORMANCE = "performance"


class SyncLog:
    """SQLite-backed sync log."""

    def __init__(self, db_path: PathLike):
        self._db_path = db_path
        init_db(db_path)

    def log(
        self,
        severity: str,
        category: str,
        message: str,
        remote_id: Optional[str] = None,
        local_content_id: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Write one record.

        Raises:
            ValueError: If severity or category is unknown
            StorageError: If the insert fails
        """
        if severity not in LOG_SEVERITIES:
            raise ValueError(f"Invalid severity: '{severity}'. Expected one of {LOG_SEVERITIES}")
        if category not in LOG_CATEGORIES:
            raise ValueError(f"Invalid category: '{category}'. Expected one of {LOG_CATEGORIES}")

        try:
            with get_connection(self._db_path) as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO sync_log
                        (remote_id, local_content_id, severity, category, message, context, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        remote_id,
                        local_content_id,
                        severity,
                        category,
                        message,
                        json.dumps(context) if context else None,
                        format_timestamp(utc_now()),
                    ),
                )
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="write sync log")
        return cursor.lastrowid

    def recent(
        self,
        limit: int = 50,
        remote_id: Optional[str] = None,
        unresolved_only: bool = False,
    ) -> List[SyncLogEntry]:
        """Most recent records first."""
        clauses = []
        params: List[Any] = []
        if remote_id:
            clauses.append("remote_id = ?")
            params.append(remote_id)
        if unresolved_only:
            clauses.append("resolved = 0")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)

        with get_connection(self._db_path) as conn:
            rows = conn.execute(
                f"SELECT * FROM sync_log {where} ORDER BY id DESC LIMIT ?",
                params,
            ).fetchall()
        return [self._to_entry(row) for row in rows]

    def resolve(self, log_id: int) -> bool:
        with get_connection(self._db_path) as conn:
            cursor = conn.execute(
                "UPDATE sync_log SET resolved = 1, resolved_at = ? WHERE id = ? AND resolved = 0",
                (format_timestamp(utc_now()), log_id),
            )
        return cursor.rowcount > 0

    def counts(self) -> Dict[str, int]:
        """Unresolved record counts per severity."""
        with get_connection(self._db_path) as conn:
            rows = conn.execute(
                "SELECT severity, COUNT(*) AS total FROM sync_log WHERE resolved = 0 GROUP BY severity"
            ).fetchall()
        counts = {severity: 0 for severity in LOG_SEVERITIES}
        counts.update({row['severity']: row['total'] for row in rows})
        return counts

    @staticmethod
    def _to_entry(row: Dict[str, Any]) -> SyncLogEntry:
        return SyncLogEntry(
            id=row['id'],
            severity=row['severity'],
            category=row['category'],
            message=row['message'],
            remote_id=row['remote_id'],
            local_content_id=row['local_content_id'],
            context=json.loads(row['context']) if row['context'] else {},
            resolved=bool(row['resolved']),
            created_at=parse_timestamp(row['created_at']),
            resolved_at=parse_timestamp(row['resolved_at']),
        )
