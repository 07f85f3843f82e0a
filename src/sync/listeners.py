"""Sync listeners: the extension point for code that reacts to sync outcomes.

The orchestrator calls every registered listener after each sync. A
listener that raises is logged and skipped; it never changes the result.
"""

import logging
from typing import Optional

from src.registry.models import RegistryEntry
from src.storage.sync_log import (
    CATEGORY_API,
    CATEGORY_BLOCK,
    CATEGORY_CONVERSION,
    SEVERITY_ERROR,
    SEVERITY_INFO,
    SyncLog,
)

logger = logging.getLogger(__name__)

_API_MARKERS = ("notion api", "fetch", "credentials", "rate limit", "unreachable", "not found")


class SyncListener:
    """Base listener. Subclasses override whichever hooks they need."""

    def on_synced(self, entry: RegistryEntry) -> None:
        """Called after a page was synced and its registry entry updated."""

    def on_failed(self, remote_id: str, message: str, local_content_id: Optional[int] = None) -> None:
        """Called after a sync attempt failed."""


def infer_category(message: str) -> str:
    """Pick a sync log category from a failure message."""
    lowered = (message or "").lower()
    if "conversion" in lowered:
        return CATEGORY_CONVERSION
    if any(marker in lowered for marker in _API_MARKERS):
        return CATEGORY_API
    return CATEGORY_BLOCK


class SyncLogListener(SyncListener):
    """Writes one sync log record per sync outcome."""

    def __init__(self, sync_log: SyncLog):
        self._sync_log = sync_log

    def on_synced(self, entry: RegistryEntry) -> None:
        self._sync_log.log(
            SEVERITY_INFO,
            CATEGORY_API,
            f"Synced '{entry.remote_title}'",
            remote_id=entry.remote_id_compact,
            local_content_id=entry.local_content_id,
            context={'slug': entry.slug},
        )

    def on_failed(self, remote_id: str, message: str, local_content_id: Optional[int] = None) -> None:
        self._sync_log.log(
            SEVERITY_ERROR,
            infer_category(message),
            message,
            remote_id=remote_id,
            local_content_id=local_content_id,
        )
