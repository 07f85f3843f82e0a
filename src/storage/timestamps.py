"""Timestamp helpers shared by the stores.

Timestamps are timezone-aware datetimes in memory and ISO 8601 strings in
SQLite. Notion sends "2024-01-15T10:30:00.000Z"; both forms parse here.
"""

import logging
from datetime import datetime, UTC
from typing import Any, Optional

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 value to an aware datetime.

    Returns None for empty or unparseable values. Naive values are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            logger.warning(f"Ignoring unparseable timestamp: {value!r}")
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat()
