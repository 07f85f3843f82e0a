"""Notion block tree to HTML converter.

Builds the post body with BeautifulSoup from the block list returned by
ContentFetcher. Consecutive list items are grouped into a single <ul>/<ol>,
nested children (toggles, nested lists) are rendered recursively, and
references to other Notion pages become links resolved through the link
registry.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup, Comment, PageElement, Tag

from ..notion_api.errors import ConversionError
from .rich_text import LinkResolver, RichTextRenderer, plain_text

logger = logging.getLogger(__name__)

_LIST_CONTAINERS = {
    'bulleted_list_item': ('ul', None),
    'numbered_list_item': ('ol', None),
    'to_do': ('ul', 'notion-to-do-list'),
}


class BlockConverter:
    """Converts Notion blocks to HTML.

    Supported block types: paragraph, heading_1-3, bulleted_list_item,
    numbered_list_item, to_do, quote, callout, code, divider, toggle, image,
    bookmark, child_page, child_database and link_to_page. Anything else
    renders as an HTML comment so the post still saves. Child databases and
    database links go through the database resolver when one is given.

    Example:
        >>> converter = BlockConverter()
        >>> converter.convert([{"type": "divider", "divider": {}}])
        '<hr/>'
    """

    def __init__(
        self,
        link_resolver: Optional[LinkResolver] = None,
        database_resolver: Optional[LinkResolver] = None,
    ):
        """Initialize the converter.

        Args:
            link_resolver: Callable (remote_id, title) -> URL used for child
                pages, page links and mentions. Without it, such references
                point at notion.so.
            database_resolver: Same contract, used for child databases and
                links to databases
        """
        self._link_resolver = link_resolver
        self._database_resolver = database_resolver

    def convert(
        self,
        blocks: List[Dict[str, Any]],
        media_resolver: Optional[Callable[[str, Optional[str]], Optional[str]]] = None,
    ) -> str:
        """Convert a list of top-level blocks to an HTML string.

        Args:
            blocks: Top-level blocks with nested children attached
            media_resolver: Callable (image url, block id) -> local URL for
                images, or None to keep the Notion URL

        Raises:
            ConversionError: If a block is malformed (not a dict or has no type)
        """
        if blocks is None:
            raise ConversionError("No blocks to convert")

        soup = BeautifulSoup('', 'html.parser')
        renderer = RichTextRenderer(soup, self._link_resolver, media_resolver)
        for node in self._convert_blocks(soup, renderer, blocks):
            soup.append(node)
        return soup.decode()

    def _convert_blocks(
        self,
        soup: BeautifulSoup,
        renderer: RichTextRenderer,
        blocks: List[Dict[str, Any]],
    ) -> List[PageElement]:
        nodes: List[PageElement] = []
        open_list: Optional[Tag] = None
        open_list_type: Optional[str] = None

        for block in blocks:
            if not isinstance(block, dict) or not block.get('type'):
                block_id = block.get('id') if isinstance(block, dict) else None
                raise ConversionError("Block has no type", block_id=block_id)

            block_type = block['type']
            if block_type in _LIST_CONTAINERS:
                if open_list is None or open_list_type != block_type:
                    tag_name, css_class = _LIST_CONTAINERS[block_type]
                    open_list = soup.new_tag(tag_name)
                    if css_class:
                        open_list['class'] = css_class
                    open_list_type = block_type
                    nodes.append(open_list)
                open_list.append(self._convert_block(soup, renderer, block))
                continue

            open_list = None
            open_list_type = None
            node = self._convert_block(soup, renderer, block)
            if node is not None:
                nodes.append(node)

        return nodes

    def _convert_block(
        self,
        soup: BeautifulSoup,
        renderer: RichTextRenderer,
        block: Dict[str, Any],
    ) -> Optional[PageElement]:
        block_type = block['type']
        data = block.get(block_type) or {}
        handler = getattr(self, f"_convert_{block_type}", None)

        if handler is None:
            logger.debug(f"Unsupported block type {block_type} ({block.get('id')})")
            return Comment(f" Unsupported Notion block type: {block_type} ")

        node = handler(soup, renderer, block, data)
        children = block.get('children')
        if children and isinstance(node, Tag) and block_type not in ('child_page', 'child_database'):
            for child in self._convert_blocks(soup, renderer, children):
                node.append(child)
        return node

    def _text_tag(self, soup, renderer, tag_name: str, data: Dict[str, Any]) -> Tag:
        return renderer.render_into(soup.new_tag(tag_name), data.get('rich_text'))

    def _convert_paragraph(self, soup, renderer, block, data):
        return self._text_tag(soup, renderer, 'p', data)

    def _convert_heading_1(self, soup, renderer, block, data):
        return self._text_tag(soup, renderer, 'h1', data)

    def _convert_heading_2(self, soup, renderer, block, data):
        return self._text_tag(soup, renderer, 'h2', data)

    def _convert_heading_3(self, soup, renderer, block, data):
        return self._text_tag(soup, renderer, 'h3', data)

    def _convert_bulleted_list_item(self, soup, renderer, block, data):
        return self._text_tag(soup, renderer, 'li', data)

    def _convert_numbered_list_item(self, soup, renderer, block, data):
        return self._text_tag(soup, renderer, 'li', data)

    def _convert_to_do(self, soup, renderer, block, data):
        item = soup.new_tag('li')
        checkbox = soup.new_tag('input', attrs={'type': 'checkbox', 'disabled': 'disabled'})
        if data.get('checked'):
            checkbox['checked'] = 'checked'
        item.append(checkbox)
        return renderer.render_into(item, data.get('rich_text'))

    def _convert_quote(self, soup, renderer, block, data):
        return self._text_tag(soup, renderer, 'blockquote', data)

    def _convert_callout(self, soup, renderer, block, data):
        callout = soup.new_tag('div', attrs={'class': 'notion-callout'})
        icon = data.get('icon') or {}
        if icon.get('type') == 'emoji':
            span = soup.new_tag('span', attrs={'class': 'notion-callout-icon'})
            span.string = icon.get('emoji', '')
            callout.append(span)
        callout.append(self._text_tag(soup, renderer, 'p', data))
        return callout

    def _convert_code(self, soup, renderer, block, data):
        pre = soup.new_tag('pre')
        code = soup.new_tag('code')
        language = data.get('language')
        if language:
            code['class'] = f"language-{language}"
        code.string = plain_text(data.get('rich_text'))
        pre.append(code)
        return pre

    def _convert_divider(self, soup, renderer, block, data):
        return soup.new_tag('hr')

    def _convert_toggle(self, soup, renderer, block, data):
        details = soup.new_tag('details')
        details.append(self._text_tag(soup, renderer, 'summary', data))
        return details

    def _convert_image(self, soup, renderer, block, data):
        source = data.get(data.get('type', 'external')) or {}
        url = source.get('url')
        if not url:
            return Comment(f" Image without URL ({block.get('id')}) ")

        if renderer.media_resolver is not None:
            url = renderer.media_resolver(url, block.get('id')) or url

        figure = soup.new_tag('figure')
        caption_text = plain_text(data.get('caption'))
        figure.append(soup.new_tag('img', attrs={'src': url, 'alt': caption_text}))
        if caption_text:
            figure.append(renderer.render_into(soup.new_tag('figcaption'), data.get('caption')))
        return figure

    def _convert_bookmark(self, soup, renderer, block, data):
        url = data.get('url')
        if not url:
            return None
        paragraph = soup.new_tag('p', attrs={'class': 'notion-bookmark'})
        anchor = soup.new_tag('a', href=url)
        anchor.string = plain_text(data.get('caption')) or url
        paragraph.append(anchor)
        return paragraph

    def _page_link(
        self,
        soup,
        remote_id: Optional[str],
        title: Optional[str],
        css_class: str,
        resolver: Optional[LinkResolver],
    ):
        paragraph = soup.new_tag('p', attrs={'class': css_class})
        label = title or "Linked page"
        if not remote_id:
            strong = soup.new_tag('strong')
            strong.string = label
            paragraph.append(strong)
            return paragraph

        compact = remote_id.replace('-', '').lower()
        href = resolver(compact, title) if resolver else None
        anchor = soup.new_tag('a', href=href or f"https://notion.so/{compact}")
        anchor['data-notion-id'] = compact
        anchor.string = label
        paragraph.append(anchor)
        return paragraph

    def _convert_child_page(self, soup, renderer, block, data):
        return self._page_link(
            soup, block.get('id'), data.get('title') or "Untitled Page", 'notion-child-page', self._link_resolver,
        )

    def _convert_link_to_page(self, soup, renderer, block, data):
        if data.get('database_id') and not data.get('page_id'):
            return self._page_link(soup, data['database_id'], None, 'notion-link-to-page', self._database_resolver)
        return self._page_link(soup, data.get('page_id'), None, 'notion-link-to-page', self._link_resolver)

    def _convert_child_database(self, soup, renderer, block, data):
        title = data.get('title') or 'Untitled'
        if self._database_resolver is None:
            paragraph = soup.new_tag('p', attrs={'class': 'notion-child-database'})
            paragraph.string = f"Database: {title}"
            return paragraph
        return self._page_link(soup, block.get('id'), title, 'notion-child-database', self._database_resolver)
