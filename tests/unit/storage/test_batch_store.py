"""Unit tests for storage.batch_store module."""

import sqlite3
from datetime import datetime, timedelta, UTC

import pytest

from src.storage.errors import StorageError
from src.storage.models import BatchState, BatchStatus, ItemState
from tests.fixtures.notion_pages import CHILD_ID, ROOT_ID


def make_batch(batch_id="page_sync_1", status=BatchState.QUEUED, started_at=None):
    return BatchStatus(
        batch_id=batch_id,
        status=status,
        item_ids=[ROOT_ID, CHILD_ID],
        per_item_status={ROOT_ID: ItemState.COMPLETED, CHILD_ID: ItemState.QUEUED},
        results={ROOT_ID: {'success': True, 'local_content_id': 3, 'duration': 0.5}},
        total=2,
        processed=1,
        successful=1,
        started_at=started_at or datetime(2024, 1, 15, 10, 0, tzinfo=UTC),
    )


class TestBatchStore:
    """Test cases for BatchStore persistence."""

    def test_save_and_get_round_trips_items(self, batch_store):
        batch_store.save(make_batch())

        batch = batch_store.get("page_sync_1")

        assert batch.status == BatchState.QUEUED
        assert batch.item_ids == [ROOT_ID, CHILD_ID]
        assert batch.per_item_status[ROOT_ID] == ItemState.COMPLETED
        assert batch.results[ROOT_ID]['local_content_id'] == 3
        assert batch.percentage == 50

    def test_get_unknown(self, batch_store):
        assert batch_store.get("nope") is None

    def test_save_replaces_row(self, batch_store):
        batch = make_batch()
        batch_store.save(batch)
        batch.status = BatchState.CANCELLED
        batch_store.save(batch)

        assert batch_store.get("page_sync_1").status == BatchState.CANCELLED

    def test_list_active_most_recent_first(self, batch_store):
        now = datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
        batch_store.save(make_batch("old", started_at=now))
        batch_store.save(make_batch("new", BatchState.PROCESSING, started_at=now + timedelta(minutes=5)))
        batch_store.save(make_batch("done", BatchState.COMPLETED, started_at=now + timedelta(minutes=9)))

        assert [b.batch_id for b in batch_store.list_active()] == ["new", "old"]

    def test_delete(self, batch_store):
        batch_store.save(make_batch())
        assert batch_store.delete("page_sync_1") is True
        assert batch_store.delete("page_sync_1") is False

    def test_get_wraps_sqlite_errors(self, batch_store, mocker):
        mocker.patch(
            'src.storage.batch_store.get_connection',
            side_effect=sqlite3.DatabaseError("file is not a database"),
        )
        with pytest.raises(StorageError):
            batch_store.get("page_sync_1")

    def test_to_dict(self):
        data = make_batch().to_dict()
        assert data['status'] == 'queued'
        assert data['per_item_status'] == {ROOT_ID: 'completed', CHILD_ID: 'queued'}
        assert data['percentage'] == 50
