"""Composition root: builds every component from one AppConfig.

Commands and the HTTP app receive an AppContext instead of constructing
their own collaborators, so tests can swap the fetcher for a fake.
"""

import logging
import os
from typing import Optional

from src.config.config_loader import ConfigLoader, DEFAULT_CONFIG_PATH
from src.config.models import AppConfig
from src.hierarchy.hierarchy_builder import HierarchyBuilder
from src.hierarchy.menu_synchronizer import MenuSynchronizer
from src.hierarchy.navigation_sync import NavigationSync
from src.notion_api.api_wrapper import NotionClient
from src.notion_api.auth import Authenticator
from src.notion_api.content_fetcher import ContentFetcher
from src.notion_api.media_downloader import MediaDownloader
from src.registry.link_registry import LinkRegistry
from src.router.url_router import UrlRouter
from src.storage.batch_store import BatchStore
from src.storage.content_store import ContentStore
from src.storage.media_store import MediaStore
from src.storage.navigation_store import NavigationStore
from src.storage.row_store import RowStore
from src.storage.sync_log import SyncLog
from src.sync.batch_worker import BatchWorker
from src.sync.link_updater import LinkUpdater
from src.sync.listeners import SyncLogListener
from src.sync.media_importer import MediaImporter
from src.sync.orchestrator import SyncOrchestrator
from src.sync.status_resolver import StatusResolver
from .errors import ConfigNotFoundError

logger = logging.getLogger(__name__)


class AppContext:
    """All wired components for one configuration.

    The Notion client only reads NOTION_TOKEN on its first request, so
    read-only commands (status, links, menu tree) work without a token.

    Example:
        >>> context = AppContext.from_config_file(".notion-sync/config.yaml")
        >>> context.orchestrator.sync("598337872cf94fdf8782e53db20768a5")
    """

    def __init__(self, config: AppConfig, fetcher: Optional[ContentFetcher] = None):
        """Wire all components.

        Args:
            config: Loaded configuration
            fetcher: ContentFetcher to use (optional, defaults to one backed
                by the live Notion API)
        """
        self.config = config
        db_path = config.database_path

        self.registry = LinkRegistry(db_path, remote_origin=config.router.remote_origin)
        self.content_store = ContentStore(db_path, site_url=config.site_url)
        self.navigation_store = NavigationStore(db_path)
        self.batch_store = BatchStore(db_path)
        self.sync_log = SyncLog(db_path)
        self.row_store = RowStore(db_path)
        self.media_store = MediaStore(db_path)

        self.authenticator: Optional[Authenticator] = None
        if fetcher is None:
            self.authenticator = Authenticator(default_base_url=config.api.base_url)
            client = NotionClient(
                self.authenticator,
                notion_version=config.api.version,
                timeout=config.api.timeout,
            )
            fetcher = ContentFetcher(client)
        self.fetcher = fetcher

        self.hierarchy_builder = HierarchyBuilder(
            self.content_store,
            max_depth=config.hierarchy.max_depth,
            max_root_iterations=config.hierarchy.max_root_iterations,
        )
        self.menu_synchronizer = MenuSynchronizer(self.navigation_store, self.content_store)
        self.navigation_sync = NavigationSync(
            self.hierarchy_builder,
            self.menu_synchronizer,
            menu_name=config.menu.name,
            enabled=config.menu.enabled,
        )

        self.media_importer = MediaImporter(
            MediaDownloader(
                download_external=config.media.download_external,
                max_file_size=config.media.max_file_size,
                timeout=config.media.timeout,
            ),
            self.media_store,
            config.media.directory,
            url_prefix=config.media.url_prefix,
            sync_log=self.sync_log,
            enabled=config.media.enabled,
        )
        self.link_updater = LinkUpdater(self.registry, self.content_store, prefix=config.router.prefix)

        self.orchestrator = SyncOrchestrator(
            self.registry,
            self.fetcher,
            self.content_store,
            listeners=[SyncLogListener(self.sync_log), self.link_updater, self.navigation_sync],
            config=config,
            row_store=self.row_store,
            media_importer=self.media_importer,
        )
        self.status_resolver = StatusResolver(self.registry, self.batch_store)
        self.batch_worker = BatchWorker(self.orchestrator, self.batch_store)
        self.url_router = UrlRouter(self.registry, self.content_store, remote_origin=config.router.remote_origin)

    @classmethod
    def from_config_file(cls, config_path: Optional[str] = None, fetcher: Optional[ContentFetcher] = None) -> 'AppContext':
        """Load the config file and wire components.

        Raises:
            ConfigNotFoundError: If the config file does not exist
            ConfigError: If the config file is invalid
        """
        config_path = config_path or DEFAULT_CONFIG_PATH
        if not os.path.exists(config_path):
            raise ConfigNotFoundError(config_path)
        config = ConfigLoader.load(config_path)
        logger.debug(f"Loaded config from {config_path} (database: {config.database_path})")
        return cls(config, fetcher=fetcher)
