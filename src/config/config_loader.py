"""YAML configuration loading and validation.

This module loads and saves .notion-sync/config.yaml. Every section is
optional; missing keys fall back to the dataclass defaults, and present
keys are type-checked so a typo fails at startup instead of mid-sync.
"""

import logging
import os
from dataclasses import asdict
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError, FilesystemError
from .models import (
    ApiConfig,
    AppConfig,
    HierarchyConfig,
    MediaConfig,
    MenuConfig,
    RouterConfig,
    ServerConfig,
    SyncSettings,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".notion-sync/config.yaml"

MAX_DEPTH_LIMIT = 10


class ConfigLoader:
    """Handles configuration file loading, validation, and saving.

    Configuration file structure:
        database_path: .notion-sync/notion-sync.db
        site_url: https://example.com
        router:
          prefix: notion
          remote_origin: notion.so
        sync:
          content_type: post
          content_status: draft
        hierarchy:
          max_depth: 5
        menu:
          enabled: true
          name: Notion Navigation
        media:
          enabled: true
          directory: .notion-sync/media
          download_external: false
    """

    @classmethod
    def load(cls, config_path: str = DEFAULT_CONFIG_PATH) -> AppConfig:
        """Load and parse configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            AppConfig object with parsed configuration

        Raises:
            FilesystemError: If file cannot be read
            ConfigError: If configuration is invalid or malformed
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise FilesystemError(config_path, 'read', 'Configuration file not found')
        except PermissionError:
            raise FilesystemError(config_path, 'read', 'Permission denied')
        except OSError as e:
            raise FilesystemError(config_path, 'read', str(e))

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax: {str(e)}")

        if config_dict is None:
            config_dict = {}

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )

        return cls._parse_config(config_dict)

    @classmethod
    def load_or_default(cls, config_path: Optional[str] = None) -> AppConfig:
        """Load the config file if it exists, otherwise return defaults.

        Raises:
            ConfigError: If the file exists but is invalid
        """
        config_path = config_path or DEFAULT_CONFIG_PATH
        if not os.path.exists(config_path):
            logger.debug(f"No config at {config_path}, using defaults")
            return AppConfig()
        return cls.load(config_path)

    @classmethod
    def save(cls, config_path: str, config: AppConfig) -> None:
        """Save configuration to a YAML file.

        Raises:
            FilesystemError: If file cannot be written
        """
        yaml_str = yaml.safe_dump(
            asdict(config),
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False
        )

        config_dir = os.path.dirname(config_path)
        if config_dir:
            try:
                os.makedirs(config_dir, exist_ok=True)
            except OSError as e:
                raise FilesystemError(config_dir, 'create_directory', str(e))

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                f.write(yaml_str)
        except PermissionError:
            raise FilesystemError(config_path, 'write', 'Permission denied')
        except OSError as e:
            raise FilesystemError(config_path, 'write', str(e))

    @classmethod
    def _parse_config(cls, config_dict: Dict[str, Any]) -> AppConfig:
        defaults = AppConfig()

        router = cls._section(config_dict, 'router')
        sync = cls._section(config_dict, 'sync')
        hierarchy = cls._section(config_dict, 'hierarchy')
        menu = cls._section(config_dict, 'menu')
        api = cls._section(config_dict, 'api')
        server = cls._section(config_dict, 'server')
        media = cls._section(config_dict, 'media')

        prefix = cls._str(router, 'prefix', defaults.router.prefix, 'router.prefix').strip('/')
        if not prefix:
            raise ConfigError("Router prefix cannot be empty", 'router.prefix')

        max_depth = cls._int(hierarchy, 'max_depth', defaults.hierarchy.max_depth, 'hierarchy.max_depth')
        if not 1 <= max_depth <= MAX_DEPTH_LIMIT:
            raise ConfigError(
                f"Must be between 1 and {MAX_DEPTH_LIMIT}, got {max_depth}",
                'hierarchy.max_depth'
            )

        max_id_length = cls._int(sync, 'max_id_length', defaults.sync.max_id_length, 'sync.max_id_length')
        if max_id_length < 1:
            raise ConfigError(f"Must be at least 1, got {max_id_length}", 'sync.max_id_length')

        max_file_size = cls._int(media, 'max_file_size', defaults.media.max_file_size, 'media.max_file_size')
        if max_file_size < 1:
            raise ConfigError(f"Must be at least 1, got {max_file_size}", 'media.max_file_size')

        url_prefix = '/' + cls._str(media, 'url_prefix', defaults.media.url_prefix, 'media.url_prefix').strip('/')
        if url_prefix == '/' or url_prefix == f"/{prefix}":
            raise ConfigError("Must be a non-empty path different from the router prefix", 'media.url_prefix')

        return AppConfig(
            database_path=cls._str(config_dict, 'database_path', defaults.database_path, 'database_path'),
            site_url=cls._str(config_dict, 'site_url', defaults.site_url, 'site_url').rstrip('/'),
            router=RouterConfig(
                prefix=prefix,
                remote_origin=cls._str(router, 'remote_origin', defaults.router.remote_origin, 'router.remote_origin'),
            ),
            sync=SyncSettings(
                content_type=cls._str(sync, 'content_type', defaults.sync.content_type, 'sync.content_type'),
                content_status=cls._str(sync, 'content_status', defaults.sync.content_status, 'sync.content_status'),
                max_id_length=max_id_length,
                database_content_type=cls._str(
                    sync, 'database_content_type',
                    defaults.sync.database_content_type, 'sync.database_content_type'
                ),
            ),
            hierarchy=HierarchyConfig(
                max_depth=max_depth,
                max_root_iterations=cls._int(
                    hierarchy, 'max_root_iterations',
                    defaults.hierarchy.max_root_iterations, 'hierarchy.max_root_iterations'
                ),
            ),
            menu=MenuConfig(
                enabled=cls._bool(menu, 'enabled', defaults.menu.enabled, 'menu.enabled'),
                name=cls._str(menu, 'name', defaults.menu.name, 'menu.name'),
            ),
            api=ApiConfig(
                base_url=cls._str(api, 'base_url', defaults.api.base_url, 'api.base_url'),
                version=cls._str(api, 'version', defaults.api.version, 'api.version'),
                timeout=cls._int(api, 'timeout', defaults.api.timeout, 'api.timeout'),
            ),
            server=ServerConfig(
                host=cls._str(server, 'host', defaults.server.host, 'server.host'),
                port=cls._int(server, 'port', defaults.server.port, 'server.port'),
            ),
            media=MediaConfig(
                enabled=cls._bool(media, 'enabled', defaults.media.enabled, 'media.enabled'),
                directory=cls._str(media, 'directory', defaults.media.directory, 'media.directory'),
                url_prefix=url_prefix,
                download_external=cls._bool(
                    media, 'download_external', defaults.media.download_external, 'media.download_external'
                ),
                max_file_size=max_file_size,
                timeout=cls._int(media, 'timeout', defaults.media.timeout, 'media.timeout'),
            ),
        )

    @staticmethod
    def _section(config_dict: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = config_dict.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ConfigError(f"Section '{name}' must be a dictionary", name)
        return section

    @staticmethod
    def _str(section: Dict[str, Any], key: str, default: str, field_name: str) -> str:
        value = section.get(key, default)
        if value is None or isinstance(value, (dict, list)):
            raise ConfigError(f"Expected a string, got {value!r}", field_name)
        return str(value)

    @staticmethod
    def _int(section: Dict[str, Any], key: str, default: int, field_name: str) -> int:
        value = section.get(key, default)
        if isinstance(value, bool):
            raise ConfigError(f"Expected an integer, got {value!r}", field_name)
        try:
            return int(value)
        except (ValueError, TypeError):
            raise ConfigError(f"Expected an integer, got {value!r}", field_name)

    @staticmethod
    def _bool(section: Dict[str, Any], key: str, default: bool, field_name: str) -> bool:
        value = section.get(key, default)
        if not isinstance(value, bool):
            raise ConfigError(f"Expected true or false, got {value!r}", field_name)
        return value
