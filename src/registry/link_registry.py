"""Link registry: the identity table between Notion and the local store.

Each row maps one Notion resource to its public slug and, once synced, to
its local content record. The router, the status resolver and the sync
orchestrator all read from here.

The registry is a best-effort index, not a transactional ledger: apart
from `register` rejecting incomplete input, every operation logs storage
failures and answers "not found" / False instead of raising.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Any, List, Optional, Union

from src.storage.connection import PathLike, get_connection, init_db
from src.storage.timestamps import format_timestamp, parse_timestamp, utc_now
from .identity import IdentityNormalizer
from .models import RegistryEntry, RemoteType, SyncStatus
from .slug_converter import SlugConverter

logger = logging.getLogger(__name__)

Timestamp = Union[str, datetime, None]


class LinkRegistry:
    """SQLite-backed registry of Notion resources.

    Example:
        >>> registry = LinkRegistry(".notion-sync/notion-sync.db")
        >>> entry_id = registry.register("abc123", "Getting Started", RemoteType.PAGE)
        >>> registry.find_by_slug("getting-started").remote_id_compact
        'abc123'
    """

    def __init__(self, db_path: PathLike, remote_origin: str = "notion.so"):
        """Initialize the registry.

        Args:
            db_path: Path to the SQLite database file
            remote_origin: Host used to build informational Notion URLs
        """
        self._db_path = db_path
        self._remote_origin = remote_origin.strip('/')
        init_db(db_path)

    def remote_url_for(self, remote_id: str) -> str:
        return f"https://{self._remote_origin}/{remote_id}"

    def register(
        self,
        remote_id: Optional[str],
        title: Optional[str],
        remote_type: Union[RemoteType, str, None],
        slug: Optional[str] = None,
        local_content_id: Optional[int] = None,
        local_content_type: Optional[str] = None,
    ) -> Optional[int]:
        """Create or update the entry for a Notion resource.

        Slug resolution:
        1. A caller-supplied slug is used as given.
        2. An existing real (non-placeholder) slug is kept while the title is unchanged.
        3. Otherwise a slug is generated from the title.

        Passing local_content_id marks the entry synced. Without it, a new
        entry starts not_synced and an existing entry keeps its sync state.

        Args:
            remote_id: Notion id in any spelling
            title: Notion title (use the id itself when no title is known yet)
            remote_type: RemoteType or its string value
            slug: Explicit slug
            local_content_id: Local record id, when known
            local_content_type: Local record type, e.g. "post"

        Returns:
            Entry id, or None when required fields are missing or the write failed
        """
        if not remote_id or not str(remote_id).strip() or not title or not remote_type:
            logger.warning(
                f"Refusing to register link with missing fields "
                f"(remote_id={remote_id!r}, title={title!r}, type={remote_type!r})"
            )
            return None

        try:
            remote_type = RemoteType(remote_type)
        except ValueError:
            logger.warning(f"Refusing to register link with unknown type {remote_type!r}")
            return None

        raw_id = str(remote_id).strip()
        compact, delimited = IdentityNormalizer.normalize(raw_id)

        # Two writers can race to insert the same id; the loser updates instead.
        for attempt in range(2):
            existing = self.find_by_remote_id(raw_id)
            final_slug = self._resolve_slug(slug, title, raw_id, existing)

            try:
                if existing:
                    self._update_entry(existing, compact, delimited, raw_id, remote_type, title,
                                       final_slug, local_content_id, local_content_type)
                    logger.debug(f"Updated link {existing.id} for {compact} (slug: {final_slug})")
                    return existing.id

                entry_id = self._insert_entry(compact, delimited, raw_id, remote_type, title,
                                              final_slug, local_content_id, local_content_type)
                logger.info(f"Registered link {entry_id} for {compact} (slug: {final_slug})")
                return entry_id
            except sqlite3.IntegrityError as e:
                if attempt == 0 and self.find_by_remote_id(raw_id) is not None and not existing:
                    continue
                logger.error(f"Failed to register link for {compact}: {e}")
                return None
            except sqlite3.Error as e:
                logger.error(f"Failed to register link for {compact}: {e}")
                return None

        return None

    def _resolve_slug(
        self,
        slug: Optional[str],
        title: str,
        raw_id: str,
        existing: Optional[RegistryEntry],
    ) -> str:
        if slug:
            return slug
        if (
            existing is not None
            and existing.slug != raw_id
            and not existing.is_placeholder_slug
            and existing.remote_title == title
        ):
            return existing.slug
        return self.generate_slug(title, raw_id, exclude_entry_id=existing.id if existing else None)

    def generate_slug(self, title: str, remote_id: str, exclude_entry_id: Optional[int] = None) -> str:
        """Generate a unique slug for a title.

        Collisions get "-1", "-2", ... appended. When both the colliding slug
        and the candidate are the raw remote id (two placeholders waiting for
        a real title), no suffix is added.

        Args:
            title: Title to slugify
            remote_id: Raw remote id, used when the title has no URL-safe characters
            exclude_entry_id: The caller's own row, which never counts as a collision

        Returns:
            A slug not used by any other entry
        """
        base = SlugConverter.title_to_slug(title)
        if not base:
            base = str(remote_id).strip()

        candidate = base
        counter = 1
        while True:
            holder = self.find_by_slug(candidate)
            if holder is None or holder.id == exclude_entry_id:
                return candidate
            if holder.slug == remote_id and candidate == remote_id:
                return candidate
            candidate = f"{base}-{counter}"
            counter += 1

    def _insert_entry(
        self,
        compact: str,
        delimited: str,
        original: str,
        remote_type: RemoteType,
        title: str,
        slug: str,
        local_content_id: Optional[int],
        local_content_type: Optional[str],
    ) -> int:
        now = format_timestamp(utc_now())
        status = SyncStatus.SYNCED if local_content_id else SyncStatus.NOT_SYNCED
        with get_connection(self._db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO notion_links
                    (remote_id_compact, remote_id_delimited, remote_id_original, remote_type,
                     remote_title, remote_url, slug, sync_status, local_content_id,
                     local_content_type, access_count, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (compact, delimited, original, remote_type.value, title, self.remote_url_for(original),
                 slug, status.value, local_content_id, local_content_type, now, now),
            )
        return cursor.lastrowid

    def _update_entry(
        self,
        existing: RegistryEntry,
        compact: str,
        delimited: str,
        raw_id: str,
        remote_type: RemoteType,
        title: str,
        slug: str,
        local_content_id: Optional[int],
        local_content_type: Optional[str],
    ) -> None:
        # Rewrites both id columns so rows stored in a legacy spelling converge.
        # The original id is written once and kept.
        original = existing.remote_id_original or raw_id
        assignments = [
            "remote_id_compact = ?",
            "remote_id_delimited = ?",
            "remote_id_original = ?",
            "remote_type = ?",
            "remote_title = ?",
            "remote_url = ?",
            "slug = ?",
            "updated_at = ?",
        ]
        params: List[Any] = [compact, delimited, original, remote_type.value, title,
                             self.remote_url_for(original), slug, format_timestamp(utc_now())]
        if local_content_id:
            assignments += ["local_content_id = ?", "local_content_type = ?", "sync_status = ?"]
            params += [local_content_id, local_content_type or existing.local_content_type,
                       SyncStatus.SYNCED.value]
        params.append(existing.id)

        with get_connection(self._db_path) as conn:
            conn.execute(
                f"UPDATE notion_links SET {', '.join(assignments)} WHERE id = ?",
                params,
            )

    def find_by_remote_id(self, remote_id: Optional[str]) -> Optional[RegistryEntry]:
        """Find an entry by any spelling of its remote id.

        Matches either stored column against every normalized form, since
        older write paths stored the id in whichever form they had at hand.
        """
        forms = IdentityNormalizer.candidates(remote_id)
        if not forms:
            return None

        placeholders = ','.join('?' for _ in forms)
        try:
            with get_connection(self._db_path) as conn:
                row = conn.execute(
                    f"""
                    SELECT * FROM notion_links
                    WHERE remote_id_compact IN ({placeholders})
                       OR remote_id_delimited IN ({placeholders})
                    ORDER BY id
                    LIMIT 1
                    """,
                    forms + forms,
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Registry lookup failed for {remote_id}: {e}")
            return None
        return RegistryEntry.from_row(row) if row else None

    def find_by_slug(self, slug: Optional[str]) -> Optional[RegistryEntry]:
        if not slug:
            return None
        try:
            with get_connection(self._db_path) as conn:
                row = conn.execute("SELECT * FROM notion_links WHERE slug = ?", (slug,)).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Registry lookup failed for slug {slug}: {e}")
            return None
        return RegistryEntry.from_row(row) if row else None

    def get_entry(self, entry_id: int) -> Optional[RegistryEntry]:
        try:
            with get_connection(self._db_path) as conn:
                row = conn.execute("SELECT * FROM notion_links WHERE id = ?", (entry_id,)).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Registry lookup failed for entry {entry_id}: {e}")
            return None
        return RegistryEntry.from_row(row) if row else None

    def get_slug_for_remote_id(self, remote_id: str) -> Optional[str]:
        entry = self.find_by_remote_id(remote_id)
        return entry.slug if entry else None

    def list_entries(self, status: Optional[SyncStatus] = None, limit: Optional[int] = None) -> List[RegistryEntry]:
        """Entries ordered by most recently updated."""
        query = "SELECT * FROM notion_links"
        params: List[Any] = []
        if status is not None:
            query += " WHERE sync_status = ?"
            params.append(SyncStatus(status).value)
        query += " ORDER BY updated_at DESC, id DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        try:
            with get_connection(self._db_path) as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to list registry entries: {e}")
            return []
        return [RegistryEntry.from_row(row) for row in rows]

    def mark_synced(self, remote_id: str, local_content_id: int, local_content_type: str = "post") -> bool:
        """Link an entry to its local record and flag it synced."""
        return self._update_by_remote_id(
            remote_id,
            "local_content_id = ?, local_content_type = ?, sync_status = ?",
            [local_content_id, local_content_type, SyncStatus.SYNCED.value],
        )

    def update_sync_timestamps(
        self,
        remote_id: str,
        remote_modified: Timestamp,
        local_synced: Timestamp = None,
    ) -> bool:
        """Record the Notion edit time and local sync time; clear any sync error.

        Args:
            remote_id: Notion id in any spelling
            remote_modified: Notion last_edited_time seen during this sync
            local_synced: Sync time (defaults to now)
        """
        return self._update_by_remote_id(
            remote_id,
            "remote_last_modified = ?, local_last_synced = ?, sync_error = NULL",
            [
                format_timestamp(parse_timestamp(remote_modified)),
                format_timestamp(parse_timestamp(local_synced) or utc_now()),
            ],
        )

    def update_sync_error(self, remote_id: str, message: str) -> bool:
        return self._update_by_remote_id(remote_id, "sync_error = ?", [message])

    def increment_access(self, entry_id: int) -> bool:
        """Count one routed request. Failures are logged and swallowed."""
        try:
            with get_connection(self._db_path) as conn:
                cursor = conn.execute(
                    """
                    UPDATE notion_links
                    SET access_count = access_count + 1, last_accessed_at = ?
                    WHERE id = ?
                    """,
                    (format_timestamp(utc_now()), entry_id),
                )
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.warning(f"Failed to record access for link {entry_id}: {e}")
            return False

    def _update_by_remote_id(self, remote_id: str, assignments: str, params: List[Any]) -> bool:
        entry = self.find_by_remote_id(remote_id)
        if entry is None:
            logger.debug(f"No registry entry for {remote_id}, skipping update")
            return False

        try:
            with get_connection(self._db_path) as conn:
                conn.execute(
                    f"UPDATE notion_links SET {assignments}, updated_at = ? WHERE id = ?",
                    params + [format_timestamp(utc_now()), entry.id],
                )
        except sqlite3.Error as e:
            logger.error(f"Failed to update registry entry for {remote_id}: {e}")
            return False
        return True
