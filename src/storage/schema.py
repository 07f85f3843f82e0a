"""SQLite schema for the notion-sync database.

Tables:
- notion_links: link registry, one row per Notion resource ever seen
- content / content_meta: local content store (posts and their metadata)
- menus / menu_items: navigation store
- batches: bulk sync jobs written by the batch worker
- sync_log: per-sync diagnostic records
- database_rows: entries of synced Notion databases
- media_files: images downloaded from Notion into the media directory
- schema_info: version tracking
"""

import logging
import sqlite3
from typing import Optional

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

SYNC_STATUSES = ["synced", "not_synced"]
REMOTE_TYPES = ["page", "database"]
MEDIA_STATUSES = ["downloaded", "unsupported", "external", "failed"]
MENU_ITEM_ORIGINS = ["system", "manual"]
BATCH_STATES = ["queued", "processing", "completed", "failed", "cancelled"]
LOG_SEVERITIES = ["info", "warning", "error"]
LOG_CATEGORIES = ["image", "block", "api", "conversion", "performance"]

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

-- Link registry
CREATE TABLE IF NOT EXISTS notion_links (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    remote_id_compact TEXT NOT NULL COLLATE NOCASE,
    remote_id_delimited TEXT NOT NULL COLLATE NOCASE,
    remote_id_original TEXT,
    remote_type TEXT NOT NULL CHECK(remote_type IN ('page', 'database')),
    remote_title TEXT NOT NULL,
    remote_url TEXT,
    slug TEXT NOT NULL,
    sync_status TEXT NOT NULL DEFAULT 'not_synced' CHECK(sync_status IN ('synced', 'not_synced')),
    local_content_id INTEGER,
    local_content_type TEXT,
    remote_last_modified TIMESTAMP,
    local_last_synced TIMESTAMP,
    sync_error TEXT,
    access_count INTEGER NOT NULL DEFAULT 0,
    last_accessed_at TIMESTAMP,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_links_slug ON notion_links(slug);
CREATE UNIQUE INDEX IF NOT EXISTS idx_links_compact ON notion_links(remote_id_compact);
CREATE INDEX IF NOT EXISTS idx_links_delimited ON notion_links(remote_id_delimited);
CREATE INDEX IF NOT EXISTS idx_links_status ON notion_links(sync_status);

-- Local content store
CREATE TABLE IF NOT EXISTS content (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    body TEXT NOT NULL DEFAULT '',
    content_type TEXT NOT NULL DEFAULT 'post',
    status TEXT NOT NULL DEFAULT 'draft',
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS content_meta (
    content_id INTEGER NOT NULL,
    key TEXT NOT NULL,
    value TEXT,
    FOREIGN KEY (content_id) REFERENCES content(id) ON DELETE CASCADE,
    PRIMARY KEY (content_id, key)
);

CREATE INDEX IF NOT EXISTS idx_content_meta_key_value ON content_meta(key, value);

-- Navigation store. parent_id has no foreign key: deleting a system item
-- must never rewrite a manual child.
CREATE TABLE IF NOT EXISTS menus (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    created_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS menu_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    menu_id INTEGER NOT NULL,
    parent_id INTEGER,
    local_content_id INTEGER,
    remote_id TEXT,
    title TEXT NOT NULL,
    url TEXT,
    position INTEGER NOT NULL DEFAULT 0,
    origin TEXT NOT NULL CHECK(origin IN ('system', 'manual')),
    override INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL,
    FOREIGN KEY (menu_id) REFERENCES menus(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_menu_items_menu ON menu_items(menu_id);

-- Bulk sync jobs
CREATE TABLE IF NOT EXISTS batches (
    batch_id TEXT PRIMARY KEY,
    status TEXT NOT NULL CHECK(status IN ('queued', 'processing', 'completed', 'failed', 'cancelled')),
    total INTEGER NOT NULL DEFAULT 0,
    processed INTEGER NOT NULL DEFAULT 0,
    successful INTEGER NOT NULL DEFAULT 0,
    failed INTEGER NOT NULL DEFAULT 0,
    current_item_id TEXT,
    item_ids JSON NOT NULL,
    per_item_status JSON NOT NULL,
    results JSON NOT NULL,
    error TEXT,
    started_at TIMESTAMP NOT NULL,
    completed_at TIMESTAMP,
    updated_at TIMESTAMP NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_batches_status ON batches(status);

-- Sync diagnostics
CREATE TABLE IF NOT EXISTS sync_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    remote_id TEXT,
    local_content_id INTEGER,
    severity TEXT NOT NULL CHECK(severity IN ('info', 'warning', 'error')),
    category TEXT NOT NULL CHECK(category IN ('image', 'block', 'api', 'conversion', 'performance')),
    message TEXT NOT NULL,
    context JSON,
    resolved INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP NOT NULL,
    resolved_at TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_sync_log_remote ON sync_log(remote_id);
CREATE INDEX IF NOT EXISTS idx_sync_log_created ON sync_log(created_at);

-- Notion database entries, one row per entry page
CREATE TABLE IF NOT EXISTS database_rows (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    database_id TEXT NOT NULL COLLATE NOCASE,
    row_id TEXT NOT NULL UNIQUE COLLATE NOCASE,
    title TEXT NOT NULL DEFAULT '',
    properties JSON NOT NULL,
    remote_created_at TIMESTAMP,
    remote_last_modified TIMESTAMP,
    synced_at TIMESTAMP NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_database_rows_database ON database_rows(database_id);

-- Downloaded media, keyed by the Notion file URL without its signature
CREATE TABLE IF NOT EXISTS media_files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_key TEXT NOT NULL UNIQUE,
    source_url TEXT NOT NULL,
    file_name TEXT,
    mime_type TEXT,
    size INTEGER,
    local_content_id INTEGER,
    status TEXT NOT NULL CHECK(status IN ('downloaded', 'unsupported', 'external', 'failed')),
    error_count INTEGER NOT NULL DEFAULT 0,
    last_error TEXT,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
);
"""

# Columns added after version 1; CREATE TABLE IF NOT EXISTS leaves old tables alone
_ADDED_COLUMNS = [
    ("notion_links", "remote_id_original", "TEXT"),
]


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes, upgrading older databases. Idempotent.

    Args:
        conn: SQLite database connection
    """
    conn.executescript(SCHEMA_DDL)
    for table, column, column_type in _ADDED_COLUMNS:
        existing = {row['name'] if isinstance(row, dict) else row[1]
                    for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}
        if column not in existing:
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")
            logger.info(f"Added column {table}.{column}")
    conn.execute(
        "INSERT OR REPLACE INTO schema_info (version, description) VALUES (?, ?)",
        (SCHEMA_VERSION, "Link registry, content store, navigation, batches, sync log, database rows and media"),
    )
    conn.commit()
    logger.debug(f"Database schema created (version {SCHEMA_VERSION})")


def get_schema_version(conn: sqlite3.Connection) -> Optional[int]:
    """Return the recorded schema version, or None if the schema was never created."""
    try:
        row = conn.execute("SELECT MAX(version) AS version FROM schema_info").fetchone()
    except sqlite3.OperationalError:
        return None
    if row is None:
        return None
    version = row['version'] if isinstance(row, dict) else row[0]
    return version


def needs_migration(conn: sqlite3.Connection) -> bool:
    current_version = get_schema_version(conn)
    return current_version is None or current_version < SCHEMA_VERSION
