"""Data models for the link registry.

All models use dataclasses with explicit enums for the persisted status
fields. Timestamps are datetimes in memory and ISO 8601 strings in SQLite.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from src.storage.timestamps import format_timestamp, parse_timestamp


class RemoteType(str, Enum):
    """Kind of Notion resource a registry entry points at."""
    PAGE = "page"
    DATABASE = "database"


class SyncStatus(str, Enum):
    """Persisted sync flag. Richer states are derived by StatusResolver."""
    SYNCED = "synced"
    NOT_SYNCED = "not_synced"


@dataclass
class RegistryEntry:
    """One row of the link registry: a Notion resource and its local counterpart.

    Attributes:
        id: Primary key
        remote_id_compact: 32-character id without separators
        remote_id_delimited: 36-character id in 8-4-4-4-12 grouping
        remote_id_original: The id exactly as first registered, used for Notion URLs
        remote_type: PAGE or DATABASE
        remote_title: Last known Notion title
        remote_url: Informational link to the Notion page
        slug: Public routing key, unique across the registry
        sync_status: SYNCED once local content exists, NOT_SYNCED before
        local_content_id: Local content record id (set only when synced)
        local_content_type: Local content type, e.g. "post"
        remote_last_modified: Notion last_edited_time seen at the last sync
        local_last_synced: When the local record was last written by sync
        sync_error: Last failure message, cleared by the next successful sync
        access_count: Number of routed requests for this slug
        last_accessed_at: Time of the last routed request
        created_at: Row creation time
        updated_at: Last row update time
    """
    id: int
    remote_id_compact: str
    remote_id_delimited: str
    remote_type: RemoteType
    remote_title: str
    remote_url: str
    slug: str
    sync_status: SyncStatus = SyncStatus.NOT_SYNCED
    local_content_id: Optional[int] = None
    local_content_type: Optional[str] = None
    remote_last_modified: Optional[datetime] = None
    local_last_synced: Optional[datetime] = None
    sync_error: Optional[str] = None
    access_count: int = 0
    last_accessed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    remote_id_original: Optional[str] = None

    @property
    def is_synced(self) -> bool:
        return self.sync_status == SyncStatus.SYNCED

    @property
    def original_remote_id(self) -> str:
        """The id as Notion was first asked for it, falling back to the compact form."""
        return self.remote_id_original or self.remote_id_compact

    @property
    def is_placeholder_slug(self) -> bool:
        """True while the slug is still the raw id, i.e. no real title was known."""
        return self.slug in (self.remote_id_compact, self.remote_id_delimited)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'RegistryEntry':
        """Build an entry from a notion_links row (dict_factory output)."""
        return cls(
            id=row['id'],
            remote_id_compact=row['remote_id_compact'],
            remote_id_delimited=row['remote_id_delimited'],
            remote_type=RemoteType(row['remote_type']),
            remote_title=row['remote_title'],
            remote_url=row['remote_url'] or '',
            slug=row['slug'],
            sync_status=SyncStatus(row['sync_status']),
            local_content_id=row['local_content_id'],
            local_content_type=row['local_content_type'],
            remote_last_modified=parse_timestamp(row['remote_last_modified']),
            local_last_synced=parse_timestamp(row['local_last_synced']),
            sync_error=row['sync_error'],
            access_count=row['access_count'] or 0,
            last_accessed_at=parse_timestamp(row['last_accessed_at']),
            created_at=parse_timestamp(row['created_at']),
            updated_at=parse_timestamp(row['updated_at']),
            remote_id_original=row.get('remote_id_original'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'remote_id': self.remote_id_compact,
            'remote_id_delimited': self.remote_id_delimited,
            'remote_id_original': self.original_remote_id,
            'remote_type': self.remote_type.value,
            'title': self.remote_title,
            'remote_url': self.remote_url,
            'slug': self.slug,
            'sync_status': self.sync_status.value,
            'local_content_id': self.local_content_id,
            'local_content_type': self.local_content_type,
            'remote_last_modified': format_timestamp(self.remote_last_modified),
            'local_last_synced': format_timestamp(self.local_last_synced),
            'sync_error': self.sync_error,
            'access_count': self.access_count,
            'last_accessed_at': format_timestamp(self.last_accessed_at),
        }
