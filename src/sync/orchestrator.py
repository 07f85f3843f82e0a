"""Sync orchestration: one Notion page or database into one local content record.

This module provides the SyncOrchestrator class that runs the whole
one-way sync for a page or a database. It coordinates ContentFetcher,
LinkRegistry, BlockConverter and ContentStore (plus RowStore and
MediaImporter when configured), and notifies SyncListeners of the outcome.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional

from src.config.models import AppConfig
from src.content_converter.block_converter import BlockConverter
from src.content_converter.property_formatter import column_order, normalize_properties, rows_to_table
from src.notion_api.content_fetcher import ContentFetcher, PageProperties
from src.registry.identity import IdentityNormalizer
from src.registry.link_registry import LinkRegistry
from src.registry.models import RegistryEntry, RemoteType
from src.storage.content_store import ContentStore
from src.storage.errors import StorageError
from src.storage.models import (
    DatabaseRow,
    LocalContent,
    META_CHILD_IDS,
    META_DATABASE_ID,
    META_LAST_EDITED,
    META_LAST_SYNCED,
    META_PARENT_ID,
    META_REMOTE_ID,
)
from src.storage.row_store import RowStore
from src.storage.timestamps import format_timestamp, parse_timestamp, utc_now
from .listeners import SyncListener
from .media_importer import MediaImporter, MediaResolver
from .models import SyncResult

logger = logging.getLogger(__name__)

_VALID_ID = re.compile(r'^[a-zA-Z0-9\-]+$')

PROPERTIES_FETCH_ERROR = (
    "Failed to fetch page properties from Notion. "
    "The page may not exist or the integration may not have access."
)
BLOCKS_FETCH_ERROR = "Failed to fetch page blocks from Notion API."
DATABASE_FETCH_ERROR = (
    "Failed to fetch database from Notion. "
    "The database may not exist or the integration may not have access."
)
ROWS_FETCH_ERROR = "Failed to query database entries from Notion API."

ProgressCallback = Callable[[int, int, str, SyncResult], None]


class SyncOrchestrator:
    """Syncs Notion pages into the local content store.

    The sync workflow for one page:
        1. Validate the id (no I/O)
        2. Fetch properties, register the page, fetch blocks
        3. Find or create the local record (a draft placeholder)
        4. Convert blocks to HTML, registering linked pages on the way
        5. Write title, body and "_remote_*" metadata
        6. Mark the registry entry synced and stamp its timestamps
        7. Notify listeners

    A database sync stores its entries in the RowStore and writes one
    record whose body is a table of them.

    Running it twice for the same page updates the same local record.
    Failures are returned in the SyncResult and stored on the registry
    entry; nothing raises to the caller.

    Example:
        >>> orchestrator = SyncOrchestrator(registry, fetcher, content_store)
        >>> result = orchestrator.sync("598337872cf94fdf8782e53db20768a5")
        >>> result.success, result.local_content_id
        (True, 12)
    """

    def __init__(
        self,
        registry: LinkRegistry,
        fetcher: ContentFetcher,
        content_store: ContentStore,
        converter: Optional[BlockConverter] = None,
        listeners: Optional[Iterable[SyncListener]] = None,
        config: Optional[AppConfig] = None,
        row_store: Optional[RowStore] = None,
        media_importer: Optional[MediaImporter] = None,
    ):
        """Initialize the orchestrator with its collaborators.

        Args:
            registry: Link registry
            fetcher: Notion content fetcher
            content_store: Local content store
            converter: Block converter (optional, defaults to one that resolves
                page and database links through the registry)
            listeners: Listeners notified after each sync (optional)
            config: Application config (optional, defaults to AppConfig())
            row_store: Store for database entries (optional; without it a
                database sync only renders the table)
            media_importer: Image importer (optional; without it images keep
                their Notion URLs)
        """
        self.registry = registry
        self.fetcher = fetcher
        self.content_store = content_store
        self.config = config or AppConfig()
        self.converter = converter or BlockConverter(
            link_resolver=self.resolve_link,
            database_resolver=self.resolve_database_link,
        )
        self.listeners: List[SyncListener] = list(listeners or [])
        self.row_store = row_store
        self.media_importer = media_importer

    def add_listener(self, listener: SyncListener) -> None:
        self.listeners.append(listener)

    def validate_remote_id(self, remote_id: Optional[str]) -> Optional[str]:
        """Return a validation error message, or None if the id is acceptable."""
        if not remote_id or not str(remote_id).strip():
            return "Notion page ID cannot be empty."
        value = str(remote_id).strip()
        max_length = self.config.sync.max_id_length
        if len(value) > max_length:
            return f"Notion page ID exceeds maximum length of {max_length} characters."
        if not _VALID_ID.match(value):
            return (
                "Notion page ID contains invalid characters. "
                "Only alphanumeric characters and hyphens are allowed."
            )
        return None

    def sync(self, remote_id: Optional[str]) -> SyncResult:
        """Sync one Notion page.

        Args:
            remote_id: Notion page id in any spelling

        Returns:
            SyncResult with the local record id on success, or an error message
        """
        return self._run(remote_id, "page", self._sync_page)

    def sync_database(self, remote_id: Optional[str]) -> SyncResult:
        """Sync one Notion database: its entries and the record that lists them.

        Args:
            remote_id: Notion database id in any spelling

        Returns:
            SyncResult with the local record id on success, or an error message
        """
        return self._run(remote_id, "database", self._sync_database)

    def _run(
        self,
        remote_id: Optional[str],
        kind: str,
        work: Callable[[str, str], SyncResult],
    ) -> SyncResult:
        validation_error = self.validate_remote_id(remote_id)
        if validation_error:
            logger.warning(f"Rejected sync request for {remote_id!r}: {validation_error}")
            result = SyncResult(success=False, error=validation_error)
            self._notify_failed(str(remote_id or ''), result)
            return result

        raw_id = str(remote_id).strip()
        remote_id = IdentityNormalizer.compact(raw_id)
        logger.info(f"Syncing Notion {kind} {remote_id}")

        try:
            result = work(remote_id, raw_id)
        except Exception as e:
            logger.exception(f"Unexpected error while syncing {remote_id}")
            result = SyncResult(success=False, error=f"Sync failed: {e}")
            self.registry.update_sync_error(remote_id, result.error)

        if result.success:
            entry = self.registry.find_by_remote_id(remote_id)
            if entry is not None:
                self._notify_synced(entry)
        else:
            self._notify_failed(remote_id, result)
        return result

    def sync_many(
        self,
        remote_ids: List[str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Dict[str, SyncResult]:
        """Sync several pages one after another.

        Args:
            remote_ids: Notion page ids
            progress_callback: Called as (done, total, remote_id, result) after each page

        Returns:
            Dictionary mapping each given id to its SyncResult
        """
        results: Dict[str, SyncResult] = {}
        total = len(remote_ids)
        for index, remote_id in enumerate(remote_ids, start=1):
            result = self.sync(remote_id)
            results[remote_id] = result
            if progress_callback:
                progress_callback(index, total, remote_id, result)

        failed = sum(1 for r in results.values() if not r.success)
        logger.info(f"Synced {total - failed}/{total} pages")
        return results

    def resolve_link(
        self,
        remote_id: str,
        title: Optional[str] = None,
        remote_type: RemoteType = RemoteType.PAGE,
    ) -> Optional[str]:
        """Register a linked page and return its public path.

        Pages seen for the first time, or still waiting for a real title,
        are registered with the best title known so far. A page that only
        has a placeholder gets a slug equal to its id until its own sync.
        """
        compact = IdentityNormalizer.compact(remote_id)
        if not compact:
            return None

        entry = self.registry.find_by_remote_id(compact)
        if entry is None or (title and entry.is_placeholder_slug):
            self.registry.register(str(remote_id).strip(), title or compact, remote_type)

        slug = self.registry.get_slug_for_remote_id(compact)
        if not slug:
            return None
        return f"/{self.config.router.prefix}/{slug}"

    def resolve_database_link(self, remote_id: str, title: Optional[str] = None) -> Optional[str]:
        """resolve_link for child databases and links to databases."""
        return self.resolve_link(remote_id, title, RemoteType.DATABASE)

    def _media_resolver(self, remote_id: str, local_id: int) -> Optional[MediaResolver]:
        if self.media_importer is None:
            return None
        return self.media_importer.resolver_for(remote_id, local_id)

    def _sync_page(self, remote_id: str, raw_id: str) -> SyncResult:
        properties_result = self.fetcher.fetch_page_properties(remote_id)
        if not properties_result.ok:
            return self._fail(remote_id, properties_result.error or PROPERTIES_FETCH_ERROR)
        properties: PageProperties = properties_result.data

        self.registry.register(raw_id, properties.title, RemoteType.PAGE)

        blocks_result = self.fetcher.fetch_page_blocks(remote_id)
        if blocks_result.error or blocks_result.data is None:
            return self._fail(remote_id, blocks_result.error or BLOCKS_FETCH_ERROR)
        blocks = blocks_result.data

        local_id = self._find_local_content(remote_id)
        if local_id is None:
            try:
                local_id = self.content_store.create(LocalContent(
                    title=properties.title,
                    body="",
                    content_type=self.config.sync.content_type,
                    status=self.config.sync.content_status,
                    meta={META_REMOTE_ID: remote_id},
                ))
            except StorageError as e:
                return self._fail(remote_id, f"Local content creation failed: {e}")
            logger.info(f"Created placeholder {local_id} for {remote_id}")

        try:
            body = self.converter.convert(blocks, media_resolver=self._media_resolver(remote_id, local_id))
        except Exception as e:
            logger.warning(f"Block conversion failed for {remote_id}: {e}")
            return self._fail(remote_id, f"Block conversion failed: {e}", local_id)

        existing = self.content_store.get(local_id)
        parent_id = properties.parent_page_id
        try:
            self.content_store.update(local_id, LocalContent(
                title=properties.title,
                body=body,
                content_type=existing.content_type if existing else self.config.sync.content_type,
                status=existing.status if existing else self.config.sync.content_status,
                meta={
                    META_REMOTE_ID: remote_id,
                    META_LAST_SYNCED: format_timestamp(utc_now()),
                    META_LAST_EDITED: properties.last_edited_time or None,
                    META_PARENT_ID: IdentityNormalizer.compact(parent_id) if parent_id else None,
                    META_CHILD_IDS: json.dumps(child_page_ids(blocks)),
                },
            ))
        except StorageError as e:
            return self._fail(remote_id, f"Local content update failed: {e}", local_id)

        content_type = existing.content_type if existing else self.config.sync.content_type
        return self._finish(remote_id, raw_id, properties, RemoteType.PAGE, local_id, content_type)

    def _sync_database(self, remote_id: str, raw_id: str) -> SyncResult:
        database_result = self.fetcher.fetch_database(remote_id)
        if not database_result.ok:
            return self._fail(remote_id, database_result.error or DATABASE_FETCH_ERROR)
        database: PageProperties = database_result.data

        self.registry.register(raw_id, database.title, RemoteType.DATABASE)

        rows_result = self.fetcher.fetch_database_rows(remote_id)
        if rows_result.error or rows_result.data is None:
            return self._fail(remote_id, rows_result.error or ROWS_FETCH_ERROR)
        rows = [
            DatabaseRow(
                database_id=remote_id,
                row_id=IdentityNormalizer.compact(entry.id),
                title=entry.title,
                properties=normalize_properties(entry.properties),
                remote_created_at=parse_timestamp(entry.created_time),
                remote_last_modified=parse_timestamp(entry.last_edited_time),
            )
            for entry in rows_result.data
        ]

        if self.row_store is not None:
            try:
                self.row_store.upsert_many(rows)
                self.row_store.delete_missing(remote_id, [row.row_id for row in rows])
            except StorageError as e:
                return self._fail(remote_id, f"Database entry storage failed: {e}")

        body = rows_to_table(column_order(database.properties), [row.properties for row in rows])
        content_type = self.config.sync.database_content_type

        local_id = self._find_local_content(remote_id, META_DATABASE_ID)
        try:
            if local_id is None:
                local_id = self.content_store.create(LocalContent(
                    title=database.title,
                    body=body,
                    content_type=content_type,
                    status=self.config.sync.content_status,
                    meta={META_DATABASE_ID: remote_id},
                ))
                logger.info(f"Created record {local_id} for database {remote_id}")
            existing = self.content_store.get(local_id)
            content_type = existing.content_type
            self.content_store.update(local_id, LocalContent(
                title=database.title,
                body=body,
                content_type=existing.content_type,
                status=existing.status,
                meta={
                    META_DATABASE_ID: remote_id,
                    META_LAST_SYNCED: format_timestamp(utc_now()),
                    META_LAST_EDITED: database.last_edited_time or None,
                },
            ))
        except StorageError as e:
            return self._fail(remote_id, f"Local content update failed: {e}", local_id)

        logger.info(f"Stored {len(rows)} entries of database {remote_id}")
        return self._finish(remote_id, raw_id, database, RemoteType.DATABASE, local_id, content_type)

    def _finish(
        self,
        remote_id: str,
        raw_id: str,
        properties: PageProperties,
        remote_type: RemoteType,
        local_id: int,
        content_type: str,
    ) -> SyncResult:
        entry_id = self.registry.register(
            raw_id,
            properties.title,
            remote_type,
            local_content_id=local_id,
            local_content_type=content_type,
        )
        if entry_id is None:
            return self._fail(remote_id, "Link registry update failed.", local_id)
        self.registry.mark_synced(remote_id, local_id, content_type)
        self.registry.update_sync_timestamps(remote_id, properties.last_edited_time, utc_now())

        logger.info(f"Synced {remote_id} into {content_type} {local_id}")
        return SyncResult(success=True, local_content_id=local_id)

    def _find_local_content(self, remote_id: str, meta_key: str = META_REMOTE_ID) -> Optional[int]:
        for form in IdentityNormalizer.candidates(remote_id):
            matches = self.content_store.find_by_meta(meta_key, form)
            if matches:
                if len(matches) > 1:
                    logger.warning(f"Multiple local records for {remote_id}: {matches}, using {matches[0]}")
                return matches[0]
        return None

    def _fail(self, remote_id: str, message: str, local_content_id: Optional[int] = None) -> SyncResult:
        logger.warning(f"Sync of {remote_id} failed: {message}")
        self.registry.update_sync_error(remote_id, message)
        return SyncResult(success=False, local_content_id=local_content_id, error=message)

    def _notify_synced(self, entry: RegistryEntry) -> None:
        for listener in self.listeners:
            try:
                listener.on_synced(entry)
            except Exception:
                logger.exception(f"Listener {type(listener).__name__} failed in on_synced")

    def _notify_failed(self, remote_id: str, result: SyncResult) -> None:
        for listener in self.listeners:
            try:
                listener.on_failed(remote_id, result.error or "", result.local_content_id)
            except Exception:
                logger.exception(f"Listener {type(listener).__name__} failed in on_failed")


def child_page_ids(blocks: List[Dict[str, Any]]) -> List[str]:
    """Compact ids of child_page blocks in document order, nested ones included."""
    ids: List[str] = []
    for block in blocks or []:
        if not isinstance(block, dict):
            continue
        if block.get('type') == 'child_page' and block.get('id'):
            ids.append(IdentityNormalizer.compact(block['id']))
        ids.extend(child_page_ids(block.get('children') or []))
    return list(dict.fromkeys(ids))
