"""Fetch page properties, block trees and database entries from Notion.

ContentFetcher is the boundary between the HTTP client and the sync core:
it never lets an exception escape. Every call returns a FetchResult that
either carries data or an error message the orchestrator reports verbatim.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .api_wrapper import NotionClient
from .errors import NotionError

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
MAX_BATCHES = 50
MAX_CHILD_DEPTH = 3

# Blocks whose children are separate pages, fetched by their own sync
_NO_RECURSE_TYPES = {'child_page', 'child_database'}


@dataclass
class FetchResult:
    """Outcome of a fetch call.

    Attributes:
        data: Fetched payload (dict of properties or list of blocks), None on failure
        error: Error message, None on success
    """
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None


@dataclass
class PageProperties:
    """Subset of a Notion page object the sync pipeline relies on."""
    id: str
    title: str
    last_edited_time: str = ""
    created_time: str = ""
    url: str = ""
    parent: Dict[str, Any] = field(default_factory=dict)
    icon: Optional[Dict[str, Any]] = None
    cover: Optional[Dict[str, Any]] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def parent_page_id(self) -> Optional[str]:
        """Parent page id when the page is nested under another page."""
        if self.parent.get('type') == 'page_id':
            return self.parent.get('page_id')
        return None


def extract_title(properties: Dict[str, Any]) -> str:
    """Return the plain-text title from a page's properties map.

    The title lives under whichever property has type 'title' (its name
    varies between pages and database rows).
    """
    for prop in properties.values():
        if isinstance(prop, dict) and prop.get('type') == 'title':
            parts = prop.get('title') or []
            text = ''.join(part.get('plain_text', '') for part in parts)
            if text.strip():
                return text.strip()
    return "Untitled"


class ContentFetcher:
    """Fetches Notion page content for the sync orchestrator.

    Example:
        >>> fetcher = ContentFetcher(NotionClient(Authenticator()))
        >>> result = fetcher.fetch_page_properties("abc123")
        >>> if result.ok:
        ...     print(result.data.title)
    """

    def __init__(self, client: NotionClient, max_child_depth: int = MAX_CHILD_DEPTH):
        self._client = client
        self._max_child_depth = max_child_depth

    def fetch_page_properties(self, page_id: str) -> FetchResult:
        """Fetch page properties.

        Returns:
            FetchResult with PageProperties data, or an error message
        """
        try:
            page = self._client.get_page(page_id)
        except (NotionError, ValueError) as e:
            logger.warning(f"Failed to fetch properties for {page_id}: {e}")
            return FetchResult(error=str(e))

        if not page or 'id' not in page:
            return FetchResult(error=(
                "Failed to fetch page properties from Notion. The page may not exist "
                "or the integration may not have access."
            ))

        return FetchResult(data=_to_properties(page))

    def search_pages(self, query: str = "", limit: int = PAGE_SIZE) -> FetchResult:
        """Search pages shared with the integration, most recently edited first.

        Returns:
            FetchResult with a list of PageProperties (at most limit), or an error message
        """
        pages: List[PageProperties] = []
        cursor: Optional[str] = None
        try:
            for _ in range(MAX_BATCHES):
                response = self._client.search_pages(query, start_cursor=cursor, page_size=min(limit, PAGE_SIZE))
                for page in response.get('results', []):
                    if isinstance(page, dict) and 'id' in page:
                        pages.append(_to_properties(page))
                if len(pages) >= limit or not response.get('has_more') or not response.get('next_cursor'):
                    break
                cursor = response['next_cursor']
        except NotionError as e:
            logger.warning(f"Notion search for {query!r} failed: {e}")
            return FetchResult(error=str(e))

        return FetchResult(data=pages[:limit])

    def fetch_database(self, database_id: str) -> FetchResult:
        """Fetch a database object.

        Returns:
            FetchResult with PageProperties data (properties holds the column
            schema), or an error message
        """
        try:
            database = self._client.get_database(database_id)
        except (NotionError, ValueError) as e:
            logger.warning(f"Failed to fetch database {database_id}: {e}")
            return FetchResult(error=str(e))

        if not database or 'id' not in database:
            return FetchResult(error=(
                "Failed to fetch database from Notion. The database may not exist "
                "or the integration may not have access."
            ))

        properties = _to_properties(database)
        properties.title = ''.join(
            part.get('plain_text', '') for part in database.get('title') or []
        ).strip() or "Untitled"
        return FetchResult(data=properties)

    def fetch_database_rows(self, database_id: str) -> FetchResult:
        """Fetch every entry of a database (100 per request, at most 50 requests).

        Returns:
            FetchResult with a list of PageProperties, one per entry, or an error message
        """
        rows: List[PageProperties] = []
        cursor: Optional[str] = None
        try:
            for _ in range(MAX_BATCHES):
                response = self._client.query_database(database_id, start_cursor=cursor, page_size=PAGE_SIZE)
                for row in response.get('results', []):
                    if isinstance(row, dict) and 'id' in row:
                        rows.append(_to_properties(row))
                if not response.get('has_more') or not response.get('next_cursor'):
                    break
                cursor = response['next_cursor']
            else:
                logger.warning(f"Database {database_id} has more than {MAX_BATCHES * PAGE_SIZE} entries, truncating")
        except (NotionError, ValueError) as e:
            logger.warning(f"Failed to query database {database_id}: {e}")
            return FetchResult(error=str(e))

        logger.debug(f"Fetched {len(rows)} entries for database {database_id}")
        return FetchResult(data=rows)

    def fetch_page_blocks(self, page_id: str) -> FetchResult:
        """Fetch the full block tree of a page.

        Top-level blocks are paginated (100 per request, at most 50 requests).
        Nested children are attached under a 'children' key.

        Returns:
            FetchResult with a list of block dicts, or an error message
        """
        try:
            blocks = self._fetch_children(page_id, depth=0)
        except (NotionError, ValueError) as e:
            logger.warning(f"Failed to fetch blocks for {page_id}: {e}")
            return FetchResult(error=str(e))

        logger.debug(f"Fetched {len(blocks)} top-level blocks for {page_id}")
        return FetchResult(data=blocks)

    def _fetch_children(self, block_id: str, depth: int) -> List[Dict[str, Any]]:
        blocks: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        for _ in range(MAX_BATCHES):
            response = self._client.get_block_children(block_id, start_cursor=cursor, page_size=PAGE_SIZE)
            blocks.extend(response.get('results', []))

            if not response.get('has_more') or not response.get('next_cursor'):
                break
            cursor = response['next_cursor']
        else:
            logger.warning(
                f"Block {block_id} has more than {MAX_BATCHES * PAGE_SIZE} children, "
                f"truncating"
            )

        if depth + 1 < self._max_child_depth:
            for block in blocks:
                if block.get('has_children') and block.get('type') not in _NO_RECURSE_TYPES:
                    block['children'] = self._fetch_children(block['id'], depth + 1)

        return blocks


def _to_properties(page: Dict[str, Any]) -> PageProperties:
    properties = page.get('properties') or {}
    return PageProperties(
        id=page['id'],
        title=extract_title(properties),
        last_edited_time=page.get('last_edited_time', ''),
        created_time=page.get('created_time', ''),
        url=page.get('url', ''),
        parent=page.get('parent') or {},
        icon=page.get('icon'),
        cover=page.get('cover'),
        properties=properties,
    )
