"""Rendering of Notion rich-text arrays to HTML nodes.

A rich-text array is a list of runs, each with plain text, annotations
(bold, italic, ...) and an optional link. Page mentions and internal
Notion links are handed to a link resolver so they point at /{prefix}/{slug}
instead of notion.so. Such anchors carry data-notion-id so they can be
rewritten when the target page changes slug.
"""

import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, NavigableString, PageElement

# (remote_id, title) -> URL, or None to keep the original link
LinkResolver = Callable[[str, Optional[str]], Optional[str]]

# Annotation → tag, innermost first
_ANNOTATION_TAGS = (
    ('code', 'code'),
    ('bold', 'strong'),
    ('italic', 'em'),
    ('strikethrough', 's'),
    ('underline', 'u'),
)

# "/598337872cf94fdf8782e53db20768a5" or "https://www.notion.so/Title-5983...68a5"
_INTERNAL_LINK = re.compile(
    r'^(?:https?://(?:www\.)?notion\.so/(?:[^/?#]+/)?(?:[^/?#]*-)?|/)([0-9a-fA-F]{32})(?:[?#].*)?$'
)


def plain_text(rich_text: Optional[List[Dict[str, Any]]]) -> str:
    """Concatenate the plain text of every run."""
    return ''.join(part.get('plain_text', '') for part in rich_text or [])


def internal_page_id(href: str) -> Optional[str]:
    """Return the compact page id if `href` points at a Notion page."""
    match = _INTERNAL_LINK.match(href or '')
    return match.group(1).lower() if match else None


class RichTextRenderer:
    """Converts rich-text runs into BeautifulSoup nodes for one document."""

    def __init__(
        self,
        soup: BeautifulSoup,
        link_resolver: Optional[LinkResolver] = None,
        media_resolver: Optional[Callable[[str, Optional[str]], Optional[str]]] = None,
    ):
        self._soup = soup
        self._link_resolver = link_resolver
        # Used by image blocks of the same document
        self.media_resolver = media_resolver

    def render(self, rich_text: Optional[List[Dict[str, Any]]]) -> List[PageElement]:
        nodes: List[PageElement] = []
        for part in rich_text or []:
            nodes.extend(self._render_run(part))
        return nodes

    def render_into(self, tag, rich_text: Optional[List[Dict[str, Any]]]):
        for node in self.render(rich_text):
            tag.append(node)
        return tag

    def _render_run(self, part: Dict[str, Any]) -> List[PageElement]:
        text = part.get('plain_text')
        if text is None:
            text = (part.get('text') or {}).get('content', '')

        annotations = part.get('annotations') or {}
        href, remote_id = self._resolve_href(part)

        rendered: List[PageElement] = []
        lines = text.split('\n')
        for index, line in enumerate(lines):
            if index > 0:
                rendered.append(self._soup.new_tag('br'))
            if not line:
                continue
            node: PageElement = NavigableString(line)
            for flag, tag_name in _ANNOTATION_TAGS:
                if annotations.get(flag):
                    wrapper = self._soup.new_tag(tag_name)
                    wrapper.append(node)
                    node = wrapper
            if href:
                anchor = self._soup.new_tag('a', href=href)
                if remote_id:
                    anchor['data-notion-id'] = remote_id
                anchor.append(node)
                node = anchor
            rendered.append(node)
        return rendered

    def _resolve_href(self, part: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        """Return (href, compact remote id); the id is set only for resolved Notion links."""
        if part.get('type') == 'mention':
            mention = part.get('mention') or {}
            if mention.get('type') == 'page' and self._link_resolver:
                page_id = (mention.get('page') or {}).get('id')
                if page_id:
                    href = self._link_resolver(page_id, part.get('plain_text')) or part.get('href')
                    return href, page_id.replace('-', '').lower()

        href = part.get('href') or ((part.get('text') or {}).get('link') or {}).get('url')
        if href and self._link_resolver:
            page_id = internal_page_id(href)
            if page_id:
                return self._link_resolver(page_id, None) or href, page_id
        return href, None
