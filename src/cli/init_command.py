"""InitCommand for configuration initialization.

Creates .notion-sync/config.yaml with defaults for the given site and
creates the SQLite database with its schema.
"""

import logging
import os
import sqlite3
from typing import Optional
from urllib.parse import urlparse

from src.config.config_loader import ConfigLoader, DEFAULT_CONFIG_PATH
from src.config.errors import ConfigError
from src.config.models import AppConfig, MediaConfig, RouterConfig
from src.storage.connection import init_db
from .errors import InitError

logger = logging.getLogger(__name__)


class InitCommand:
    """Handles initialization of the sync configuration and database.

    Example:
        >>> init = InitCommand()
        >>> config = init.run(site_url="https://example.com")
        >>> config.database_path
        '.notion-sync/notion-sync.db'
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or DEFAULT_CONFIG_PATH

    def _validate_url(self, url: str) -> None:
        """Validate that a site URL has a scheme and a host.

        Raises:
            InitError: If URL is malformed or missing required components
        """
        if not url or not url.strip():
            raise InitError("URL cannot be empty")

        parsed = urlparse(url)
        if not parsed.scheme or parsed.scheme not in ('http', 'https'):
            raise InitError(
                f"Invalid URL scheme: '{parsed.scheme or '(missing)'}'\n"
                f"URL must start with http:// or https://"
            )
        if not parsed.netloc or not parsed.netloc.strip():
            raise InitError(
                "Invalid URL: missing domain name\n"
                "URL must include a domain (e.g., example.com)"
            )

    def run(
        self,
        site_url: str = "http://localhost:8000",
        database_path: Optional[str] = None,
        prefix: str = "notion",
        force: bool = False,
    ) -> AppConfig:
        """Write the config file and create the database.

        Args:
            site_url: Base URL of the local site, used for permalinks
            database_path: SQLite file (defaults next to the config file)
            prefix: First path segment for public Notion links
            force: Overwrite an existing config file

        Returns:
            The written AppConfig

        Raises:
            InitError: If the config exists (without force) or cannot be written
        """
        self._validate_url(site_url)
        prefix = prefix.strip().strip('/')
        if not prefix:
            raise InitError("Link prefix cannot be empty")

        if os.path.exists(self.config_path) and not force:
            raise InitError(
                f"Configuration already exists at {self.config_path}. Use --force to overwrite."
            )

        config_dir = os.path.dirname(self.config_path)
        if database_path is None:
            database_path = os.path.join(config_dir, "notion-sync.db") if config_dir else "notion-sync.db"

        config = AppConfig(
            database_path=database_path,
            site_url=site_url.rstrip('/'),
            router=RouterConfig(prefix=prefix),
            media=MediaConfig(directory=os.path.join(config_dir, "media") if config_dir else "media"),
        )

        try:
            ConfigLoader.save(self.config_path, config)
        except ConfigError as e:
            raise InitError(f"Failed to write configuration: {e}")

        try:
            init_db(database_path)
        except (sqlite3.Error, OSError) as e:
            raise InitError(f"Failed to create database at {database_path}: {e}")

        logger.info(f"Initialized {self.config_path} with database {database_path}")
        return config
