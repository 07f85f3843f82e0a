"""Composite sync status for Notion pages.

Combines the persisted registry flag with live batch-job state. The batch
worker writes batch rows while this module reads them, so every read here
tolerates a missing, empty or failing batch store.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional

from src.registry.identity import IdentityNormalizer
from src.registry.link_registry import LinkRegistry
from src.storage.batch_store import BatchStore
from src.storage.errors import StorageError
from src.storage.models import BatchStatus, ItemState
from .models import BatchProgress, CompositeStatus, StatusKind

logger = logging.getLogger(__name__)

_VALID_ID = re.compile(r'^[a-zA-Z0-9\-]+$')


class StatusResolver:
    """Derives a CompositeStatus per remote id.

    Priority, first match wins:
        1. Listed in an active (queued or processing) batch → SYNCING
        2. Registry entry carries a sync error → FAILED
        3. Synced, and Notion was edited after the last sync → OUTDATED
        4. Synced → SYNCED
        5. Anything else → NOT_SYNCED
    """

    def __init__(self, registry: LinkRegistry, batch_store: Optional[BatchStore] = None):
        self._registry = registry
        self._batch_store = batch_store

    def status_for(self, remote_id: str) -> CompositeStatus:
        return self._resolve(remote_id, self._active_batches())

    def statuses_for(self, remote_ids: Iterable[str]) -> Dict[str, CompositeStatus]:
        """Resolve several ids with a single batch-store read.

        Empty or malformed ids are skipped. Keys are compact ids.
        """
        batches = self._active_batches()
        statuses: Dict[str, CompositeStatus] = {}
        for remote_id in remote_ids:
            value = (remote_id or '').strip()
            if not value or not _VALID_ID.match(value):
                logger.debug(f"Skipping invalid id in status request: {remote_id!r}")
                continue
            status = self._resolve(value, batches)
            statuses[status.remote_id] = status
        return statuses

    def _resolve(self, remote_id: str, batches: List[BatchStatus]) -> CompositeStatus:
        compact = IdentityNormalizer.compact(remote_id)
        entry = self._registry.find_by_remote_id(compact)
        local_id = entry.local_content_id if entry else None
        last_synced = entry.local_last_synced if entry else None

        progress = self._batch_progress(compact, batches)
        if progress is not None:
            return CompositeStatus(compact, StatusKind.SYNCING, local_content_id=local_id,
                                   batch=progress, last_synced=last_synced)

        if entry is None:
            return CompositeStatus(compact, StatusKind.NOT_SYNCED)

        if entry.sync_error:
            return CompositeStatus(compact, StatusKind.FAILED, local_content_id=local_id,
                                   error=entry.sync_error, last_synced=last_synced)

        if entry.is_synced:
            if (
                entry.remote_last_modified is not None
                and entry.local_last_synced is not None
                and entry.remote_last_modified > entry.local_last_synced
            ):
                return CompositeStatus(compact, StatusKind.OUTDATED, local_content_id=local_id,
                                       last_synced=last_synced)
            return CompositeStatus(compact, StatusKind.SYNCED, local_content_id=local_id,
                                   last_synced=last_synced)

        return CompositeStatus(compact, StatusKind.NOT_SYNCED, local_content_id=local_id)

    def _active_batches(self) -> List[BatchStatus]:
        if self._batch_store is None:
            return []
        try:
            return self._batch_store.list_active()
        except StorageError as e:
            logger.warning(f"Batch store unavailable, ignoring batch state: {e}")
            return []

    @staticmethod
    def _batch_progress(compact: str, batches: List[BatchStatus]) -> Optional[BatchProgress]:
        for batch in batches:
            for item_id in batch.item_ids:
                if IdentityNormalizer.same_id(item_id, compact):
                    item_state = batch.per_item_status.get(item_id, ItemState.QUEUED)
                    return BatchProgress(
                        batch_id=batch.batch_id,
                        item_status=ItemState(item_state).value,
                        total=batch.total,
                        processed=batch.processed,
                        percentage=batch.percentage,
                    )
        return None
