"""Bulk sync jobs.

A batch is scheduled once and then processed one page at a time by
`notion-sync batch run`, usually in a separate process. After every item
the whole BatchStatus row is written back, so the status endpoint can
report progress while the job runs.
"""

import logging
import time
import uuid
from typing import Iterable, Optional

from src.registry.identity import IdentityNormalizer
from src.storage.batch_store import BatchStore
from src.storage.models import BatchState, BatchStatus, ItemState
from src.storage.timestamps import utc_now
from .models import SyncResult
from .orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

BATCH_ID_PREFIX = "page_sync_"


class BatchWorker:
    """Schedules and runs bulk sync jobs.

    The worker is the only writer of batch rows. Cancelling or failing a
    batch stops further items but keeps the results already recorded.

    Example:
        >>> worker = BatchWorker(orchestrator, BatchStore(db_path))
        >>> batch_id = worker.schedule(["abc123", "def456"])
        >>> worker.run(batch_id).status
        <BatchState.COMPLETED: 'completed'>
    """

    def __init__(self, orchestrator: SyncOrchestrator, batch_store: BatchStore):
        self._orchestrator = orchestrator
        self._batch_store = batch_store

    def schedule(self, remote_ids: Iterable[str]) -> str:
        """Create a queued batch.

        Args:
            remote_ids: Notion page ids in any spelling; duplicates are dropped

        Returns:
            The new batch id

        Raises:
            ValueError: If no ids were given
            StorageError: If the batch cannot be saved
        """
        item_ids = []
        for remote_id in remote_ids:
            compact = IdentityNormalizer.compact(remote_id)
            if compact and compact not in item_ids:
                item_ids.append(compact)

        if not item_ids:
            raise ValueError("No page IDs provided")

        batch_id = f"{BATCH_ID_PREFIX}{utc_now().strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex[:8]}"
        self._batch_store.save(BatchStatus(
            batch_id=batch_id,
            status=BatchState.QUEUED,
            item_ids=item_ids,
            per_item_status={item_id: ItemState.QUEUED for item_id in item_ids},
            total=len(item_ids),
            started_at=utc_now(),
        ))
        logger.info(f"Scheduled batch {batch_id} with {len(item_ids)} pages")
        return batch_id

    def process_item(self, batch_id: str, remote_id: str) -> Optional[SyncResult]:
        """Sync one item of a batch and record its outcome.

        Returns:
            The SyncResult, or None when the item was skipped (unknown batch,
            batch no longer active, item not part of it or already done)
        """
        batch = self._batch_store.get(batch_id)
        if batch is None:
            logger.warning(f"Batch {batch_id} not found, skipping {remote_id}")
            return None
        if not batch.is_active:
            logger.info(f"Batch {batch_id} is {batch.status.value}, skipping {remote_id}")
            return None

        item_id = self._item_key(batch, remote_id)
        if item_id is None:
            logger.warning(f"{remote_id} is not part of batch {batch_id}")
            return None
        if batch.per_item_status.get(item_id) in (ItemState.COMPLETED, ItemState.FAILED):
            logger.debug(f"{item_id} already processed in batch {batch_id}")
            return None

        batch.status = BatchState.PROCESSING
        batch.current_item_id = item_id
        batch.per_item_status[item_id] = ItemState.PROCESSING
        self._batch_store.save(batch)

        start_time = time.monotonic()
        try:
            result = self._orchestrator.sync(item_id)
        except Exception as e:
            logger.exception(f"Unexpected error syncing {item_id} in batch {batch_id}")
            result = SyncResult(success=False, error=str(e))
        duration = round(time.monotonic() - start_time, 3)

        # The batch may have been cancelled or failed while this item ran
        current = self._batch_store.get(batch_id) or batch
        if result.success:
            current.successful += 1
            current.per_item_status[item_id] = ItemState.COMPLETED
            current.results[item_id] = {
                'success': True,
                'local_content_id': result.local_content_id,
                'duration': duration,
            }
        else:
            current.failed += 1
            current.per_item_status[item_id] = ItemState.FAILED
            current.results[item_id] = {
                'success': False,
                'error': result.error or 'Unknown error',
                'duration': duration,
            }

        current.processed += 1
        current.current_item_id = None
        if current.is_active and current.processed >= current.total:
            current.status = BatchState.COMPLETED
            current.completed_at = utc_now()
            logger.info(
                f"Batch {batch_id} completed: {current.successful} succeeded, {current.failed} failed"
            )
        self._batch_store.save(current)
        return result

    def run(self, batch_id: str) -> Optional[BatchStatus]:
        """Process queued items until the batch finishes or stops being active.

        The batch row is re-read before each item, so a cancel issued from
        another process takes effect at the next item boundary.

        Returns:
            Final BatchStatus, or None if the batch does not exist
        """
        while True:
            batch = self._batch_store.get(batch_id)
            if batch is None:
                logger.warning(f"Batch {batch_id} not found")
                return None
            if not batch.is_active:
                return batch

            pending = [
                item_id for item_id in batch.item_ids
                if batch.per_item_status.get(item_id, ItemState.QUEUED) in (ItemState.QUEUED, ItemState.PROCESSING)
            ]
            if not pending:
                batch.status = BatchState.COMPLETED
                batch.current_item_id = None
                batch.completed_at = utc_now()
                self._batch_store.save(batch)
                return batch

            self.process_item(batch_id, pending[0])

    def mark_failed(self, batch_id: str, reason: str) -> bool:
        """Stop a batch with an error. Recorded item results are kept."""
        return self._finish(batch_id, BatchState.FAILED, reason)

    def cancel(self, batch_id: str) -> bool:
        """Stop a batch. Recorded item results are kept."""
        return self._finish(batch_id, BatchState.CANCELLED)

    def get_progress(self, batch_id: str) -> Optional[BatchStatus]:
        return self._batch_store.get(batch_id)

    def active_batch_id(self) -> Optional[str]:
        """Most recently started batch that is still queued or processing."""
        active = self._batch_store.list_active()
        return active[0].batch_id if active else None

    def cleanup(self, batch_id: str) -> bool:
        return self._batch_store.delete(batch_id)

    def _finish(self, batch_id: str, state: BatchState, reason: Optional[str] = None) -> bool:
        batch = self._batch_store.get(batch_id)
        if batch is None:
            return False
        if not batch.is_active:
            logger.info(f"Batch {batch_id} already {batch.status.value}")
            return False

        batch.status = state
        batch.error = reason
        batch.current_item_id = None
        batch.completed_at = utc_now()
        self._batch_store.save(batch)
        logger.info(f"Batch {batch_id} marked {state.value}" + (f": {reason}" if reason else ""))
        return True

    @staticmethod
    def _item_key(batch: BatchStatus, remote_id: str) -> Optional[str]:
        for item_id in batch.item_ids:
            if IdentityNormalizer.same_id(item_id, remote_id):
                return item_id
        return None
