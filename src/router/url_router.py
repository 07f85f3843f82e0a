"""Public link routing: /{prefix}/{slug} → local permalink or Notion.

A slug keeps working before, during and after sync. Once the page has a
live local record the request goes there; otherwise it falls back to the
page on Notion. Placeholder slugs (the raw Notion id) keep resolving after
the page is renamed by its first sync.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.registry.link_registry import LinkRegistry
from src.storage.content_store import ContentStore

logger = logging.getLogger(__name__)


@dataclass
class RouteResult:
    """HTTP answer for a routed slug.

    Attributes:
        status_code: 302 for a redirect, 404 for an unknown slug
        location: Redirect target (None for 404)
    """
    status_code: int
    location: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.status_code == 302


class UrlRouter:
    """Resolves public slugs through the link registry."""

    def __init__(self, registry: LinkRegistry, content_store: ContentStore, remote_origin: str = "notion.so"):
        self._registry = registry
        self._content_store = content_store
        self._remote_origin = remote_origin.strip('/')

    def route(self, slug: str) -> RouteResult:
        """Resolve a slug.

        Args:
            slug: Slug from the request path

        Returns:
            RouteResult with a 302 to the local permalink when the page is
            synced and its record is live, a 302 to Notion otherwise, or 404
            when neither a slug nor a remote id matches
        """
        entry = self._registry.find_by_slug(slug) or self._registry.find_by_remote_id(slug)
        if entry is None:
            logger.debug(f"No link registered for slug '{slug}'")
            return RouteResult(status_code=404)

        location = None
        if entry.is_synced and entry.local_content_id:
            location = self._content_store.permalink(entry.local_content_id)
            if location is None:
                logger.info(
                    f"Local record {entry.local_content_id} for '{slug}' is gone, falling back to Notion"
                )

        if location is None:
            location = f"https://{self._remote_origin}/{entry.original_remote_id}"

        self._record_access(entry.id)
        return RouteResult(status_code=302, location=location)

    def _record_access(self, entry_id: int) -> None:
        # Access counting must never break routing
        try:
            self._registry.increment_access(entry_id)
        except Exception as e:
            logger.warning(f"Failed to record access for link {entry_id}: {e}")
