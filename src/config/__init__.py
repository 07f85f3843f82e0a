"""Configuration for notion-sync: YAML file plus NOTION_TOKEN from the environment."""

from .errors import ConfigError, FilesystemError
from .models import (
    AppConfig,
    RouterConfig,
    SyncSettings,
    HierarchyConfig,
    MenuConfig,
    ApiConfig,
    ServerConfig,
    MediaConfig,
)
from .config_loader import ConfigLoader, DEFAULT_CONFIG_PATH

__all__ = [
    'ConfigError',
    'FilesystemError',
    'AppConfig',
    'RouterConfig',
    'SyncSettings',
    'HierarchyConfig',
    'MenuConfig',
    'ApiConfig',
    'ServerConfig',
    'MediaConfig',
    'ConfigLoader',
    'DEFAULT_CONFIG_PATH',
]
