"""Data models for the local stores.

This module defines the records kept by the content store, the navigation
store, the batch-job store, the sync log, the database row store and the
media store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

# Content meta keys written by sync
META_REMOTE_ID = "_remote_page_id"
META_PARENT_ID = "_remote_parent_id"
META_LAST_SYNCED = "_remote_last_synced"
META_LAST_EDITED = "_remote_last_edited"
META_CHILD_IDS = "_remote_child_ids"
# Set instead of META_REMOTE_ID on records that mirror a Notion database
META_DATABASE_ID = "_remote_database_id"


@dataclass
class LocalContent:
    """A local content record (the WordPress-style post).

    Attributes:
        title: Post title
        body: Rendered HTML body
        content_type: Post type, e.g. "post" or "page"
        status: Publication status, e.g. "draft", "publish" or "trash"
        meta: Key/value metadata; keys starting with "_remote_" are owned by sync
        id: Primary key (None until created)
        created_at: Creation time
        updated_at: Last update time
    """
    title: str
    body: str = ""
    content_type: str = "post"
    status: str = "draft"
    meta: Dict[str, Optional[str]] = field(default_factory=dict)
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MenuItemOrigin(str, Enum):
    """Who created a menu item. Written once at creation."""
    SYSTEM = "system"
    MANUAL = "manual"


@dataclass
class MenuItem:
    """An entry in a navigation menu.

    Attributes:
        id: Primary key
        menu_id: Owning menu
        title: Label shown in navigation
        origin: SYSTEM for items created by menu sync, MANUAL for everything else
        parent_id: Parent menu item id (None at top level)
        local_content_id: Linked content record, if any
        remote_id: Compact Notion id of the linked page (system items only)
        url: Target URL
        order: Position among siblings
        override: When True, menu sync leaves title, order and parent alone
    """
    id: int
    menu_id: int
    title: str
    origin: MenuItemOrigin
    parent_id: Optional[int] = None
    local_content_id: Optional[int] = None
    remote_id: Optional[str] = None
    url: Optional[str] = None
    order: int = 0
    override: bool = False

    @property
    def is_system(self) -> bool:
        return self.origin == MenuItemOrigin.SYSTEM


@dataclass
class Menu:
    """A named navigation menu."""
    id: int
    name: str


class BatchState(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ItemState(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_BATCH_STATES = (BatchState.QUEUED, BatchState.PROCESSING)


@dataclass
class BatchStatus:
    """State of one bulk sync job.

    Written exclusively by the batch worker; everything else reads it.

    Attributes:
        batch_id: Job identifier, e.g. "page_sync_20240115103000_a1b2c3d4"
        status: Overall job state
        item_ids: Compact Notion ids in processing order
        per_item_status: Compact id → item state
        results: Compact id → {"success", "local_content_id" or "error", "duration"}
        total: Number of items
        processed: Items finished (successfully or not)
        successful: Items synced
        failed: Items that failed
        current_item_id: Item being processed right now
        error: Reason the job was marked failed
        started_at: Scheduling time
        completed_at: Time the job reached a terminal state
    """
    batch_id: str
    status: BatchState
    item_ids: List[str] = field(default_factory=list)
    per_item_status: Dict[str, ItemState] = field(default_factory=dict)
    results: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    total: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    current_item_id: Optional[str] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BATCH_STATES

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.processed / self.total * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batch_id': self.batch_id,
            'status': self.status.value,
            'total': self.total,
            'processed': self.processed,
            'successful': self.successful,
            'failed': self.failed,
            'percentage': self.percentage,
            'current_item_id': self.current_item_id,
            'per_item_status': {k: v.value for k, v in self.per_item_status.items()},
            'results': self.results,
            'error': self.error,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class SyncLogEntry:
    """One diagnostic record written during or after a sync."""
    id: int
    severity: str
    category: str
    message: str
    remote_id: Optional[str] = None
    local_content_id: Optional[int] = None
    context: Dict[str, Any] = field(default_factory=dict)
    resolved: bool = False
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


@dataclass
class DatabaseRow:
    """One entry of a synced Notion database.

    Attributes:
        database_id: Compact id of the owning database
        row_id: Compact id of the entry (entries are Notion pages)
        title: Plain-text value of the title property
        properties: Flattened property values keyed by property name
        remote_created_at: Entry created_time on Notion
        remote_last_modified: Entry last_edited_time on Notion
        synced_at: When the row was last written
    """
    database_id: str
    row_id: str
    title: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)
    remote_created_at: Optional[datetime] = None
    remote_last_modified: Optional[datetime] = None
    synced_at: Optional[datetime] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'row_id': self.row_id,
            'title': self.title,
            'properties': self.properties,
            'created_time': self.remote_created_at.isoformat() if self.remote_created_at else None,
            'last_edited_time': self.remote_last_modified.isoformat() if self.remote_last_modified else None,
        }


class MediaStatus(str, Enum):
    """Outcome of importing one image."""
    DOWNLOADED = "downloaded"
    UNSUPPORTED = "unsupported"
    EXTERNAL = "external"
    FAILED = "failed"


@dataclass
class MediaFile:
    """An image referenced by a synced page.

    Attributes:
        source_key: Source URL without query string (Notion re-signs file URLs)
        source_url: Last full URL seen
        status: Import outcome
        file_name: Name under the media directory (downloaded files only)
        mime_type: Content type reported by the server
        size: File size in bytes
        local_content_id: Record that first referenced the image
        error_count: Consecutive failed downloads
        last_error: Message of the last failure
    """
    source_key: str
    source_url: str
    status: MediaStatus
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None
    local_content_id: Optional[int] = None
    error_count: int = 0
    last_error: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
