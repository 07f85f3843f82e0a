"""Sample Notion API payloads and an in-memory fetcher for tests.

Payloads follow the shapes returned by the Notion REST API (page objects
and block children), trimmed to the fields the sync pipeline reads.
"""

from typing import Any, Dict, List, Optional

from src.notion_api.content_fetcher import FetchResult, PageProperties, extract_title
from src.registry.identity import IdentityNormalizer

ROOT_ID = "598337872cf94fdf8782e53db20768a5"
ROOT_ID_DELIMITED = "59833787-2cf9-4fdf-8782-e53db20768a5"
CHILD_ID = "1a2b3c4d5e6f47a8b9c0d1e2f3a4b5c6"
SECOND_CHILD_ID = "2b3c4d5e6f7a48b9c0d1e2f3a4b5c6d7"
GRANDCHILD_ID = "9f8e7d6c5b4a43218765fedcba987654"
UNKNOWN_ID = "00000000000040008000000000000000"
DATABASE_ID = "7c6b5a4938274615a4b3c2d1e0f9a8b7"
ROW_ID = "4d3c2b1a09f84e7d8c6b5a4f3e2d1c0b"
SECOND_ROW_ID = "5e4d3c2b1a0948f7e6d5c4b3a2f1e0d9"

LAST_EDITED = "2024-01-15T10:30:00.000Z"

SITE_URL = "https://example.com"


def rich_text(content: str, bold: bool = False, href: Optional[str] = None) -> List[Dict[str, Any]]:
    return [{
        'type': 'text',
        'plain_text': content,
        'text': {'content': content, 'link': {'url': href} if href else None},
        'href': href,
        'annotations': {
            'bold': bold,
            'italic': False,
            'strikethrough': False,
            'underline': False,
            'code': False,
        },
    }]


def page_payload(
    page_id: str,
    title: str,
    parent_page_id: Optional[str] = None,
    last_edited_time: str = LAST_EDITED,
) -> Dict[str, Any]:
    """A page object as returned by GET /pages/{id}."""
    if parent_page_id:
        parent = {'type': 'page_id', 'page_id': IdentityNormalizer.delimited(parent_page_id)}
    else:
        parent = {'type': 'workspace', 'workspace': True}
    return {
        'object': 'page',
        'id': IdentityNormalizer.delimited(page_id),
        'created_time': '2024-01-01T09:00:00.000Z',
        'last_edited_time': last_edited_time,
        'url': f"https://www.notion.so/{page_id}",
        'parent': parent,
        'icon': None,
        'cover': None,
        'properties': {
            'title': {'id': 'title', 'type': 'title', 'title': rich_text(title)},
        },
    }


def paragraph(content: str, block_id: str = "b-paragraph") -> Dict[str, Any]:
    return {'id': block_id, 'type': 'paragraph', 'has_children': False,
            'paragraph': {'rich_text': rich_text(content)}}


def heading(content: str, level: int = 1, block_id: str = "b-heading") -> Dict[str, Any]:
    block_type = f"heading_{level}"
    return {'id': block_id, 'type': block_type, 'has_children': False,
            block_type: {'rich_text': rich_text(content)}}


def bulleted(content: str, block_id: str = "b-bullet") -> Dict[str, Any]:
    return {'id': block_id, 'type': 'bulleted_list_item', 'has_children': False,
            'bulleted_list_item': {'rich_text': rich_text(content)}}


def child_page(page_id: str, title: str) -> Dict[str, Any]:
    return {'id': IdentityNormalizer.delimited(page_id), 'type': 'child_page', 'has_children': True,
            'child_page': {'title': title}}


def link_to_page(page_id: str, block_id: str = "b-link") -> Dict[str, Any]:
    return {'id': block_id, 'type': 'link_to_page', 'has_children': False,
            'link_to_page': {'type': 'page_id', 'page_id': IdentityNormalizer.delimited(page_id)}}


def child_database(database_id: str, title: str) -> Dict[str, Any]:
    return {'id': IdentityNormalizer.delimited(database_id), 'type': 'child_database', 'has_children': False,
            'child_database': {'title': title}}


def image(url: str, caption: str = "", block_id: str = "b-image") -> Dict[str, Any]:
    return {'id': block_id, 'type': 'image', 'has_children': False,
            'image': {'type': 'file', 'file': {'url': url}, 'caption': rich_text(caption) if caption else []}}


def database_payload(database_id: str, title: str, parent_page_id: Optional[str] = None) -> Dict[str, Any]:
    """A database object as returned by GET /databases/{id}."""
    return {
        'object': 'database',
        'id': IdentityNormalizer.delimited(database_id),
        'created_time': '2024-01-01T09:00:00.000Z',
        'last_edited_time': LAST_EDITED,
        'title': rich_text(title),
        'url': f"https://www.notion.so/{database_id}",
        'parent': (
            {'type': 'page_id', 'page_id': IdentityNormalizer.delimited(parent_page_id)}
            if parent_page_id else {'type': 'workspace', 'workspace': True}
        ),
        'properties': {
            'Status': {'id': 'st', 'name': 'Status', 'type': 'select', 'select': {'options': []}},
            'Name': {'id': 'title', 'name': 'Name', 'type': 'title', 'title': {}},
        },
    }


def database_row(row_id: str, name: str, status: Optional[str] = None,
                 created_time: str = '2024-01-02T09:00:00.000Z') -> Dict[str, Any]:
    """An entry as returned by POST /databases/{id}/query."""
    return {
        'object': 'page',
        'id': IdentityNormalizer.delimited(row_id),
        'created_time': created_time,
        'last_edited_time': LAST_EDITED,
        'parent': {'type': 'database_id', 'database_id': IdentityNormalizer.delimited(DATABASE_ID)},
        'properties': {
            'Name': {'id': 'title', 'type': 'title', 'title': rich_text(name)},
            'Status': {'id': 'st', 'type': 'select', 'select': {'name': status} if status else None},
        },
    }


def block_children(results: List[Dict[str, Any]], next_cursor: Optional[str] = None) -> Dict[str, Any]:
    """A list object as returned by GET /blocks/{id}/children."""
    return {
        'object': 'list',
        'results': results,
        'has_more': next_cursor is not None,
        'next_cursor': next_cursor,
    }


class FakeFetcher:
    """In-memory stand-in for ContentFetcher.

    Pages are keyed by compact id, so any id spelling finds them.

    Example:
        >>> fetcher = FakeFetcher()
        >>> fetcher.add_page(ROOT_ID, "Handbook", blocks=[paragraph("Hello")])
    """

    def __init__(self):
        self.pages: Dict[str, Dict[str, Any]] = {}
        self.blocks: Dict[str, List[Dict[str, Any]]] = {}
        self.property_errors: Dict[str, str] = {}
        self.block_errors: Dict[str, str] = {}
        self.databases: Dict[str, Dict[str, Any]] = {}
        self.database_rows: Dict[str, List[Dict[str, Any]]] = {}
        self.database_errors: Dict[str, str] = {}
        self.calls: List[str] = []

    def add_page(
        self,
        page_id: str,
        title: str,
        parent_page_id: Optional[str] = None,
        blocks: Optional[List[Dict[str, Any]]] = None,
        last_edited_time: str = LAST_EDITED,
    ) -> None:
        compact = IdentityNormalizer.compact(page_id)
        self.pages[compact] = page_payload(compact, title, parent_page_id, last_edited_time)
        self.blocks[compact] = blocks if blocks is not None else [paragraph(f"{title} body")]

    def fetch_page_properties(self, page_id: str) -> FetchResult:
        compact = IdentityNormalizer.compact(page_id)
        self.calls.append(f"properties:{compact}")
        if compact in self.property_errors:
            return FetchResult(error=self.property_errors[compact])
        page = self.pages.get(compact)
        if page is None:
            return FetchResult(error=f"Page {page_id} not found")
        return FetchResult(data=self._properties(page))

    def fetch_page_blocks(self, page_id: str) -> FetchResult:
        compact = IdentityNormalizer.compact(page_id)
        self.calls.append(f"blocks:{compact}")
        if compact in self.block_errors:
            return FetchResult(error=self.block_errors[compact])
        if compact not in self.blocks:
            return FetchResult(error=f"Page {page_id} not found")
        return FetchResult(data=[dict(block) for block in self.blocks[compact]])

    def add_database(
        self,
        database_id: str,
        title: str,
        rows: Optional[List[Dict[str, Any]]] = None,
        parent_page_id: Optional[str] = None,
    ) -> None:
        compact = IdentityNormalizer.compact(database_id)
        self.databases[compact] = database_payload(compact, title, parent_page_id)
        self.database_rows[compact] = list(rows or [])

    def fetch_database(self, database_id: str) -> FetchResult:
        compact = IdentityNormalizer.compact(database_id)
        self.calls.append(f"database:{compact}")
        if compact in self.database_errors:
            return FetchResult(error=self.database_errors[compact])
        database = self.databases.get(compact)
        if database is None:
            return FetchResult(error=f"Page {database_id} not found")
        properties = self._properties(database)
        properties.title = ''.join(part['plain_text'] for part in database['title'])
        return FetchResult(data=properties)

    def fetch_database_rows(self, database_id: str) -> FetchResult:
        compact = IdentityNormalizer.compact(database_id)
        self.calls.append(f"rows:{compact}")
        if compact not in self.database_rows:
            return FetchResult(error=f"Page {database_id} not found")
        return FetchResult(data=[self._properties(row) for row in self.database_rows[compact]])

    def search_pages(self, query: str = "", limit: int = 100) -> FetchResult:
        matches = [
            self._properties(page) for page in self.pages.values()
            if query.lower() in extract_title(page['properties']).lower()
        ]
        return FetchResult(data=matches[:limit])

    @staticmethod
    def _properties(page: Dict[str, Any]) -> PageProperties:
        return PageProperties(
            id=page['id'],
            title=extract_title(page['properties']),
            last_edited_time=page['last_edited_time'],
            created_time=page['created_time'],
            url=page.get('url', ''),
            parent=page['parent'],
            properties=page['properties'],
        )
