"""Local persistence for notion-sync.

One SQLite database holds the link registry, the local content store, the
navigation store, bulk sync jobs, the sync log, database entries and
imported media.
"""

from .connection import get_connection, init_db
from .errors import StorageError, ContentNotFoundError, MenuNotFoundError
from .models import (
    LocalContent,
    Menu,
    MenuItem,
    MenuItemOrigin,
    BatchState,
    BatchStatus,
    ItemState,
    SyncLogEntry,
    DatabaseRow,
    MediaFile,
    MediaStatus,
    META_REMOTE_ID,
    META_PARENT_ID,
    META_LAST_SYNCED,
    META_LAST_EDITED,
    META_CHILD_IDS,
    META_DATABASE_ID,
)
from .content_store import ContentStore
from .navigation_store import NavigationStore
from .batch_store import BatchStore
from .sync_log import SyncLog
from .row_store import RowStore
from .media_store import MediaStore

__all__ = [
    'get_connection',
    'init_db',
    'StorageError',
    'ContentNotFoundError',
    'MenuNotFoundError',
    'LocalContent',
    'Menu',
    'MenuItem',
    'MenuItemOrigin',
    'BatchState',
    'BatchStatus',
    'ItemState',
    'SyncLogEntry',
    'DatabaseRow',
    'MediaFile',
    'MediaStatus',
    'META_REMOTE_ID',
    'META_PARENT_ID',
    'META_LAST_SYNCED',
    'META_LAST_EDITED',
    'META_CHILD_IDS',
    'META_DATABASE_ID',
    'ContentStore',
    'NavigationStore',
    'BatchStore',
    'SyncLog',
    'RowStore',
    'MediaStore',
]
