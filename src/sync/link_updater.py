"""Rewrites stored links when a page's public slug changes.

Converted bodies link to other Notion pages through /{prefix}/{slug}. A
page that was only referenced so far has a placeholder slug (its id);
its first sync gives it a real slug, and a later title change may give it
another. LinkUpdater keeps every stored anchor that carries
data-notion-id pointing at the current slug.
"""

import logging
from typing import Dict, Optional

from bs4 import BeautifulSoup

from src.registry.identity import IdentityNormalizer
from src.registry.link_registry import LinkRegistry
from src.registry.models import RegistryEntry
from src.storage.content_store import ContentStore
from .listeners import SyncListener

logger = logging.getLogger(__name__)

NOTION_ID_ATTRIBUTE = 'data-notion-id'


class LinkUpdater(SyncListener):
    """Points data-notion-id anchors at the registry's current slug.

    Example:
        >>> updater = LinkUpdater(registry, content_store, prefix="notion")
        >>> updater.update_links_to(registry.find_by_remote_id("598337872cf94fdf8782e53db20768a5"))
        2
    """

    def __init__(self, registry: LinkRegistry, content_store: ContentStore, prefix: str = "notion"):
        self._registry = registry
        self._content_store = content_store
        self._prefix = prefix.strip('/')

    def path_for(self, entry: RegistryEntry) -> str:
        return f"/{self._prefix}/{entry.slug}"

    def on_synced(self, entry: RegistryEntry) -> None:
        self.update_links_to(entry)

    def update_links_to(self, entry: RegistryEntry) -> int:
        """Rewrite anchors that reference one page.

        Returns:
            Number of records whose body changed
        """
        compact = entry.remote_id_compact
        targets = {compact: self.path_for(entry)}
        updated = 0
        for content_id in self._content_store.find_containing(f'{NOTION_ID_ATTRIBUTE}="{compact}"'):
            if self._rewrite(content_id, targets):
                updated += 1
        if updated:
            logger.info(f"Updated links to {compact} in {updated} record(s)")
        return updated

    def update_all_links(self) -> int:
        """Rewrite every tagged anchor in every stored body.

        Returns:
            Number of records whose body changed
        """
        cache: Dict[str, Optional[str]] = {}
        updated = 0
        for content_id in self._content_store.find_containing(f'{NOTION_ID_ATTRIBUTE}="'):
            if self._rewrite(content_id, cache, lookup=True):
                updated += 1
        logger.info(f"Link update finished: {updated} record(s) changed")
        return updated

    def _rewrite(self, content_id: int, targets: Dict[str, Optional[str]], lookup: bool = False) -> bool:
        record = self._content_store.get(content_id)
        if record is None:
            return False

        soup = BeautifulSoup(record.body, 'html.parser')
        changed = False
        for anchor in soup.find_all('a', attrs={NOTION_ID_ATTRIBUTE: True}):
            compact = IdentityNormalizer.compact(anchor[NOTION_ID_ATTRIBUTE])
            if lookup and compact not in targets:
                entry = self._registry.find_by_remote_id(compact)
                targets[compact] = self.path_for(entry) if entry else None
            path = targets.get(compact)
            if path and anchor.get('href') != path:
                anchor['href'] = path
                changed = True

        if not changed:
            return False
        self._content_store.update_body(content_id, soup.decode())
        return True
