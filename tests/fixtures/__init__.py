"""Test fixtures for notion-sync.

This module provides:
- Sample Notion page and block payloads
- FakeFetcher, an in-memory ContentFetcher stand-in
"""

from .notion_pages import (
    ROOT_ID,
    ROOT_ID_DELIMITED,
    CHILD_ID,
    SECOND_CHILD_ID,
    GRANDCHILD_ID,
    UNKNOWN_ID,
    LAST_EDITED,
    SITE_URL,
    FakeFetcher,
    block_children,
    bulleted,
    child_page,
    heading,
    link_to_page,
    page_payload,
    paragraph,
    rich_text,
)

__all__ = [
    'ROOT_ID',
    'ROOT_ID_DELIMITED',
    'CHILD_ID',
    'SECOND_CHILD_ID',
    'GRANDCHILD_ID',
    'UNKNOWN_ID',
    'LAST_EDITED',
    'SITE_URL',
    'FakeFetcher',
    'block_children',
    'bulleted',
    'child_page',
    'heading',
    'link_to_page',
    'page_payload',
    'paragraph',
    'rich_text',
]
