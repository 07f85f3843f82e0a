"""Unit tests for notion_api.content_fetcher module."""

from unittest.mock import Mock

from src.notion_api.content_fetcher import ContentFetcher, MAX_BATCHES, extract_title
from src.notion_api.errors import APIUnreachableError, PageNotFoundError
from tests.fixtures.notion_pages import (
    CHILD_ID,
    DATABASE_ID,
    ROOT_ID,
    ROW_ID,
    SECOND_ROW_ID,
    block_children,
    child_page,
    database_payload,
    database_row,
    page_payload,
    paragraph,
    rich_text,
)


def toggle(block_id, has_children=True):
    return {'id': block_id, 'type': 'toggle', 'has_children': has_children,
            'toggle': {'rich_text': rich_text("More")}}


class TestExtractTitle:
    """Test cases for extract_title."""

    def test_title_from_any_property_name(self):
        properties = {
            'Status': {'type': 'select', 'select': {'name': 'Done'}},
            'Name': {'type': 'title', 'title': rich_text("Row ") + rich_text("Title")},
        }
        assert extract_title(properties) == "Row Title"

    def test_untitled_when_missing_or_blank(self):
        assert extract_title({}) == "Untitled"
        assert extract_title({'title': {'type': 'title', 'title': rich_text("   ")}}) == "Untitled"


class TestFetchPageProperties:
    """Test cases for ContentFetcher.fetch_page_properties."""

    def test_success(self):
        client = Mock()
        client.get_page.return_value = page_payload(CHILD_ID, "Onboarding", parent_page_id=ROOT_ID)

        result = ContentFetcher(client).fetch_page_properties(CHILD_ID)

        assert result.ok
        assert result.data.title == "Onboarding"
        assert result.data.last_edited_time == "2024-01-15T10:30:00.000Z"
        assert result.data.parent_page_id.replace('-', '') == ROOT_ID

    def test_workspace_parent_has_no_parent_page(self):
        client = Mock()
        client.get_page.return_value = page_payload(ROOT_ID, "Handbook")

        result = ContentFetcher(client).fetch_page_properties(ROOT_ID)

        assert result.data.parent_page_id is None

    def test_api_error_becomes_result_error(self):
        client = Mock()
        client.get_page.side_effect = PageNotFoundError(ROOT_ID)

        result = ContentFetcher(client).fetch_page_properties(ROOT_ID)

        assert not result.ok
        assert result.error == f"Page {ROOT_ID} not found"

    def test_invalid_id_becomes_result_error(self):
        client = Mock()
        client.get_page.side_effect = ValueError("page_id cannot be empty")

        result = ContentFetcher(client).fetch_page_properties("")

        assert result.error == "page_id cannot be empty"

    def test_empty_payload_is_an_error(self):
        client = Mock()
        client.get_page.return_value = {}

        result = ContentFetcher(client).fetch_page_properties(ROOT_ID)

        assert not result.ok
        assert "Failed to fetch page properties" in result.error


class TestFetchPageBlocks:
    """Test cases for ContentFetcher.fetch_page_blocks."""

    def test_paginates_top_level_blocks(self):
        client = Mock()
        client.get_block_children.side_effect = [
            block_children([paragraph("one", "b1")], next_cursor="c2"),
            block_children([paragraph("two", "b2")]),
        ]

        result = ContentFetcher(client).fetch_page_blocks(ROOT_ID)

        assert [b['id'] for b in result.data] == ["b1", "b2"]
        assert client.get_block_children.call_args_list[1].kwargs['start_cursor'] == "c2"

    def test_stops_after_max_batches(self):
        client = Mock()
        client.get_block_children.return_value = block_children([paragraph("x")], next_cursor="again")

        result = ContentFetcher(client).fetch_page_blocks(ROOT_ID)

        assert client.get_block_children.call_count == MAX_BATCHES
        assert len(result.data) == MAX_BATCHES

    def test_attaches_nested_children(self):
        client = Mock()
        responses = {
            ROOT_ID: block_children([toggle("t1"), child_page(CHILD_ID, "Sub page")]),
            "t1": block_children([paragraph("inside", "p1")]),
        }
        client.get_block_children.side_effect = lambda block_id, **kwargs: responses[block_id]

        result = ContentFetcher(client).fetch_page_blocks(ROOT_ID)

        assert result.data[0]['children'][0]['id'] == "p1"
        assert 'children' not in result.data[1]
        fetched = [c.args[0] for c in client.get_block_children.call_args_list]
        assert fetched == [ROOT_ID, "t1"]

    def test_nesting_depth_is_limited(self):
        client = Mock()
        client.get_block_children.side_effect = (
            lambda block_id, **kwargs: block_children([toggle(f"{block_id}-t")])
        )

        result = ContentFetcher(client, max_child_depth=2).fetch_page_blocks(ROOT_ID)

        assert client.get_block_children.call_count == 2
        assert 'children' not in result.data[0]['children'][0]

    def test_error_becomes_result_error(self):
        client = Mock()
        client.get_block_children.side_effect = APIUnreachableError("https://api.notion.com/v1")

        result = ContentFetcher(client).fetch_page_blocks(ROOT_ID)

        assert result.data is None
        assert result.error == "API is not available at https://api.notion.com/v1"


class TestSearchPages:
    """Test cases for ContentFetcher.search_pages."""

    def test_collects_pages_across_cursors(self):
        client = Mock()
        client.search_pages.side_effect = [
            {'results': [page_payload(ROOT_ID, "Handbook")], 'has_more': True, 'next_cursor': 'c2'},
            {'results': [page_payload(CHILD_ID, "Onboarding")], 'has_more': False, 'next_cursor': None},
        ]

        result = ContentFetcher(client).search_pages("o")

        assert [p.title for p in result.data] == ["Handbook", "Onboarding"]

    def test_limit_stops_paging(self):
        client = Mock()
        client.search_pages.return_value = {
            'results': [page_payload(ROOT_ID, "A"), page_payload(CHILD_ID, "B")],
            'has_more': True,
            'next_cursor': 'more',
        }

        result = ContentFetcher(client).search_pages("", limit=1)

        assert [p.title for p in result.data] == ["A"]
        client.search_pages.assert_called_once_with("", start_cursor=None, page_size=1)

    def test_empty_search_is_ok(self):
        client = Mock()
        client.search_pages.return_value = {'results': [], 'has_more': False}

        result = ContentFetcher(client).search_pages("nothing")

        assert result.ok
        assert result.data == []

    def test_error_becomes_result_error(self):
        client = Mock()
        client.search_pages.side_effect = APIUnreachableError("https://api.notion.com/v1")

        result = ContentFetcher(client).search_pages("x")

        assert not result.ok
        assert "API is not available" in result.error


class TestFetchDatabase:
    """Test cases for ContentFetcher.fetch_database and fetch_database_rows."""

    def test_database_title_and_schema(self):
        client = Mock()
        client.get_database.return_value = database_payload(DATABASE_ID, "Tasks", parent_page_id=ROOT_ID)

        result = ContentFetcher(client).fetch_database(DATABASE_ID)

        assert result.ok
        assert result.data.title == "Tasks"
        assert set(result.data.properties) == {'Name', 'Status'}
        assert result.data.parent_page_id.replace('-', '') == ROOT_ID

    def test_untitled_database(self):
        client = Mock()
        payload = database_payload(DATABASE_ID, "")
        payload['title'] = []
        client.get_database.return_value = payload

        assert ContentFetcher(client).fetch_database(DATABASE_ID).data.title == "Untitled"

    def test_database_not_found(self):
        client = Mock()
        client.get_database.side_effect = PageNotFoundError(page_id=DATABASE_ID)

        result = ContentFetcher(client).fetch_database(DATABASE_ID)

        assert not result.ok
        assert DATABASE_ID in result.error

    def test_rows_follow_cursor(self):
        client = Mock()
        client.query_database.side_effect = [
            {'results': [database_row(ROW_ID, "First")], 'has_more': True, 'next_cursor': 'c2'},
            {'results': [database_row(SECOND_ROW_ID, "Second")], 'has_more': False, 'next_cursor': None},
        ]

        result = ContentFetcher(client).fetch_database_rows(DATABASE_ID)

        assert [row.title for row in result.data] == ["First", "Second"]
        assert client.query_database.call_args_list[1].kwargs['start_cursor'] == 'c2'

    def test_rows_truncated_after_max_batches(self):
        client = Mock()
        client.query_database.return_value = {
            'results': [database_row(ROW_ID, "Again")], 'has_more': True, 'next_cursor': 'more',
        }

        result = ContentFetcher(client).fetch_database_rows(DATABASE_ID)

        assert client.query_database.call_count == MAX_BATCHES
        assert len(result.data) == MAX_BATCHES

    def test_rows_query_failure(self):
        client = Mock()
        client.query_database.side_effect = APIUnreachableError(endpoint="https://api.notion.com/v1")

        result = ContentFetcher(client).fetch_database_rows(DATABASE_ID)

        assert result.data is None
        assert result.error
