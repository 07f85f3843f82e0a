"""Projects page trees into a navigation menu.

Menu sync owns SYSTEM items only. It creates one per page in the tree,
moves and renames them to match, and deletes those whose page left the
tree. MANUAL items are never read for placement, updated or deleted.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Union

from src.storage.content_store import ContentStore
from src.storage.models import MenuItem, MenuItemOrigin
from src.storage.navigation_store import NavigationStore
from .models import HierarchyNode

logger = logging.getLogger(__name__)


class MenuSynchronizer:
    """Keeps a named menu in step with one or more page trees."""

    def __init__(self, navigation_store: NavigationStore, content_store: ContentStore):
        self._navigation = navigation_store
        self._content_store = content_store

    def sync_menu(self, menu_name: str, tree: Union[HierarchyNode, Iterable[HierarchyNode], None]) -> int:
        """Create or update the menu called `menu_name`.

        Args:
            menu_name: Menu to sync (created if missing)
            tree: Root node, or a list of root nodes

        Returns:
            Menu id

        Raises:
            StorageError: If the navigation store cannot be written
        """
        roots = self._as_roots(tree)
        menu_id = self._navigation.get_or_create_menu(menu_name)
        items = self._navigation.list_items(menu_id)

        tree_ids: Set[int] = set()
        for root in roots:
            tree_ids |= root.local_ids()

        system_items = sorted((i for i in items if i.is_system), key=lambda i: i.id)
        by_content: Dict[int, MenuItem] = {}
        deleted = 0
        for item in system_items:
            if item.local_content_id not in tree_ids or item.local_content_id in by_content:
                self._warn_manual_children(item, items)
                self._navigation.delete_item(item.id)
                deleted += 1
                continue
            by_content[item.local_content_id] = item

        counts = {'created': 0, 'updated': 0}
        for position, root in enumerate(roots, start=1):
            self._sync_node(menu_id, root, None, position, by_content, counts)

        manual = sum(1 for i in items if not i.is_system)
        logger.info(
            f"Menu '{menu_name}' synced: {counts['created']} created, {counts['updated']} updated, "
            f"{deleted} removed, {manual} manual item(s) preserved"
        )
        return menu_id

    def _sync_node(
        self,
        menu_id: int,
        node: HierarchyNode,
        parent_item_id: Optional[int],
        position: int,
        by_content: Dict[int, MenuItem],
        counts: Dict[str, int],
    ) -> None:
        url = self._content_store.permalink(node.local_id)
        item = by_content.get(node.local_id)

        if item is None:
            item_id = self._navigation.add_item(
                menu_id,
                node.title,
                MenuItemOrigin.SYSTEM,
                parent_id=parent_item_id,
                local_content_id=node.local_id,
                remote_id=node.remote_id,
                url=url,
                order=position,
            )
            counts['created'] += 1
        else:
            item_id = item.id
            if item.override:
                # Title, order and parent are frozen; only the link follows the page
                if item.url != url:
                    self._navigation.update_item(item.id, item.title, item.parent_id, url, item.order)
                    counts['updated'] += 1
            elif (item.title, item.parent_id, item.url, item.order) != (node.title, parent_item_id, url, position):
                self._navigation.update_item(item.id, node.title, parent_item_id, url, position)
                counts['updated'] += 1

        for child_position, child in enumerate(node.children, start=1):
            self._sync_node(menu_id, child, item_id, child_position, by_content, counts)

    @staticmethod
    def _warn_manual_children(item: MenuItem, items: List[MenuItem]) -> None:
        children = [i for i in items if not i.is_system and i.parent_id == item.id]
        if children:
            logger.warning(
                f"Removing menu item '{item.title}' ({item.id}); its {len(children)} manual "
                f"child item(s) will be listed at the top level"
            )

    @staticmethod
    def _as_roots(tree: Union[HierarchyNode, Iterable[HierarchyNode], None]) -> List[HierarchyNode]:
        if tree is None:
            return []
        if isinstance(tree, HierarchyNode):
            return [tree]
        return list(tree)
