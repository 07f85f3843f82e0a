"""Keeps the navigation menu current after each sync."""

import logging
from typing import Callable, List, Optional

from src.registry.models import RegistryEntry
from src.sync.listeners import SyncListener
from .hierarchy_builder import HierarchyBuilder
from .menu_synchronizer import MenuSynchronizer
from .models import HierarchyNode

logger = logging.getLogger(__name__)

MenuSyncedCallback = Callable[[int, str, List[HierarchyNode]], None]


class NavigationSync(SyncListener):
    """Rebuilds the page forest and syncs it into the navigation menu.

    Registered as a SyncListener, it runs after every successful page sync.
    Callbacks added with add_menu_synced_callback receive
    (menu_id, menu_name, forest) after each menu update.
    """

    def __init__(
        self,
        builder: HierarchyBuilder,
        menu_synchronizer: MenuSynchronizer,
        menu_name: str = "Notion Navigation",
        enabled: bool = True,
    ):
        self._builder = builder
        self._menu_synchronizer = menu_synchronizer
        self.menu_name = menu_name
        self.enabled = enabled
        self._callbacks: List[MenuSyncedCallback] = []

    def add_menu_synced_callback(self, callback: MenuSyncedCallback) -> None:
        self._callbacks.append(callback)

    def sync_navigation(self) -> Optional[int]:
        """Sync the whole forest into the menu.

        Returns:
            Menu id, or None when there is nothing to sync
        """
        forest = self._builder.build_forest()
        if not forest:
            logger.info("No synced pages with a Notion id, skipping menu sync")
            return None

        menu_id = self._menu_synchronizer.sync_menu(self.menu_name, forest)
        for callback in self._callbacks:
            callback(menu_id, self.menu_name, forest)
        return menu_id

    def on_synced(self, entry: RegistryEntry) -> None:
        if not self.enabled:
            return
        logger.debug(f"Updating navigation after sync of {entry.remote_id_compact}")
        self.sync_navigation()
