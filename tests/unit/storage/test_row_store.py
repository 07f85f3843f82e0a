"""Unit tests for storage.row_store module."""

import sqlite3
from datetime import datetime, timezone

import pytest

from src.storage.errors import StorageError
from src.storage.models import DatabaseRow
from tests.fixtures.notion_pages import DATABASE_ID, ROW_ID, SECOND_ROW_ID

OTHER_DATABASE_ID = "8d7c6b5a49384726b5c4d3e2f1a0b9c8"


def make_row(row_id, title, created_day=2, database_id=DATABASE_ID, **properties):
    return DatabaseRow(
        database_id=database_id,
        row_id=row_id,
        title=title,
        properties={'Name': title, **properties},
        remote_created_at=datetime(2024, 1, created_day, 9, 0, tzinfo=timezone.utc),
    )


class TestRowStore:
    """Test cases for RowStore."""

    def test_upsert_and_list_in_creation_order(self, row_store):
        row_store.upsert_many([
            make_row(SECOND_ROW_ID, "Review", created_day=3),
            make_row(ROW_ID, "Write docs", Status="Done", Tags=["a", "b"]),
        ])

        rows = row_store.list_rows(DATABASE_ID)

        assert [row.row_id for row in rows] == [ROW_ID, SECOND_ROW_ID]
        assert rows[0].properties == {'Name': "Write docs", 'Status': "Done", 'Tags': ["a", "b"]}
        assert rows[0].remote_created_at == datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)
        assert rows[0].synced_at is not None

    def test_upsert_replaces_existing_entry(self, row_store):
        row_store.upsert(make_row(ROW_ID, "Draft"))
        row_store.upsert(make_row(ROW_ID, "Final", Status="Done"))

        assert row_store.count(DATABASE_ID) == 1
        row = row_store.get_row(ROW_ID)
        assert row.title == "Final"
        assert row.properties['Status'] == "Done"

    def test_list_limit_and_other_databases(self, row_store):
        row_store.upsert_many([
            make_row(ROW_ID, "One"),
            make_row(SECOND_ROW_ID, "Two", created_day=3),
            make_row("6f5e4d3c2b1a4098f7e6d5c4b3a2f1e0", "Elsewhere", database_id=OTHER_DATABASE_ID),
        ])

        assert [row.title for row in row_store.list_rows(DATABASE_ID, limit=1)] == ["One"]
        assert row_store.count(DATABASE_ID) == 2
        assert row_store.count(OTHER_DATABASE_ID) == 1

    def test_delete_missing(self, row_store):
        row_store.upsert_many([make_row(ROW_ID, "Keep"), make_row(SECOND_ROW_ID, "Gone")])

        assert row_store.delete_missing(DATABASE_ID, [ROW_ID]) == 1

        assert [row.title for row in row_store.list_rows(DATABASE_ID)] == ["Keep"]

    def test_delete_missing_with_empty_keep_list_clears_database(self, row_store):
        row_store.upsert_many([make_row(ROW_ID, "One"), make_row(SECOND_ROW_ID, "Two")])

        assert row_store.delete_missing(DATABASE_ID, []) == 2
        assert row_store.count(DATABASE_ID) == 0

    def test_non_json_values_stored_as_text(self, row_store):
        when = datetime(2024, 5, 1, tzinfo=timezone.utc)
        row_store.upsert(make_row(ROW_ID, "Dated", Due=when))

        assert row_store.get_row(ROW_ID).properties['Due'] == str(when)

    def test_get_missing_row(self, row_store):
        assert row_store.get_row(ROW_ID) is None

    def test_write_failure_raises_storage_error(self, row_store, mocker):
        mocker.patch(
            'src.storage.row_store.get_connection',
            side_effect=sqlite3.OperationalError("database is locked"),
        )

        with pytest.raises(StorageError) as exc_info:
            row_store.upsert(make_row(ROW_ID, "Locked"))
        assert exc_info.value.operation == "write database rows"
