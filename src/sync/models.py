"""Data models for sync results and composite status."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from src.storage.timestamps import format_timestamp


@dataclass
class SyncResult:
    """Outcome of syncing one Notion page.

    Attributes:
        success: True when the local record was written and the registry updated
        local_content_id: Local record id, also set on failures after the placeholder was created
        error: Failure message, None on success
    """
    success: bool
    local_content_id: Optional[int] = None
    error: Optional[str] = None


class StatusKind(str, Enum):
    """Derived sync state shown to users."""
    NOT_SYNCED = "not_synced"
    SYNCING = "syncing"
    SYNCED = "synced"
    OUTDATED = "outdated"
    FAILED = "failed"


_LABELS = {
    StatusKind.NOT_SYNCED: "Not Synced",
    StatusKind.SYNCING: "Syncing",
    StatusKind.SYNCED: "Synced",
    StatusKind.OUTDATED: "Outdated",
    StatusKind.FAILED: "Sync Failed",
}


@dataclass
class BatchProgress:
    """Progress of the active batch an id belongs to."""
    batch_id: str
    item_status: str
    total: int
    processed: int
    percentage: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batch_id': self.batch_id,
            'item_status': self.item_status,
            'total': self.total,
            'processed': self.processed,
            'percentage': self.percentage,
        }


@dataclass
class CompositeStatus:
    """Sync state of one remote id, combining registry and batch data.

    Attributes:
        remote_id: Compact Notion id
        status: Derived state
        local_content_id: Linked local record, if any
        error: Last sync error (FAILED only)
        batch: Active batch progress (SYNCING only)
        last_synced: Last successful sync time
    """
    remote_id: str
    status: StatusKind
    local_content_id: Optional[int] = None
    error: Optional[str] = None
    batch: Optional[BatchProgress] = None
    last_synced: Optional[datetime] = None

    @property
    def label(self) -> str:
        if self.status == StatusKind.SYNCING and self.batch:
            return f"Syncing ({self.batch.processed}/{self.batch.total})"
        return _LABELS[self.status]

    @property
    def tooltip(self) -> str:
        if self.status == StatusKind.FAILED:
            return f"Last sync failed: {self.error}"
        if self.status == StatusKind.SYNCING:
            return "This page is currently being synced"
        if self.status == StatusKind.OUTDATED:
            return "Content has been modified in Notion since last sync"
        if self.status == StatusKind.SYNCED and self.last_synced:
            return f"Last synced {format_timestamp(self.last_synced)}"
        if self.status == StatusKind.SYNCED:
            return "Content is synced and up-to-date"
        return "This page has not been synced yet"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'remote_id': self.remote_id,
            'status': self.status.value,
            'label': self.label,
            'tooltip': self.tooltip,
            'local_content_id': self.local_content_id,
            'error': self.error,
            'batch': self.batch.to_dict() if self.batch else None,
            'last_synced': format_timestamp(self.last_synced),
        }
