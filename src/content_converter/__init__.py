"""Content conversion module for Notion blocks → HTML post bodies.

BlockConverter builds post HTML from Notion block trees with BeautifulSoup;
html_to_markdown turns stored post bodies into Markdown for terminal previews.
property_formatter flattens database entry properties and renders them as
a table.
"""

from .block_converter import BlockConverter
from .rich_text import LinkResolver, RichTextRenderer, plain_text, internal_page_id
from .markdown_preview import html_to_markdown
from .property_formatter import normalize_properties, property_value, rows_to_table

__all__ = [
    'BlockConverter',
    'LinkResolver',
    'RichTextRenderer',
    'plain_text',
    'internal_page_id',
    'html_to_markdown',
    'normalize_properties',
    'property_value',
    'rows_to_table',
]
