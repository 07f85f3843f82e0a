"""Configuration models.

Each component receives the section it needs at construction time; nothing
reads configuration from global state.
"""

from dataclasses import dataclass, field


@dataclass
class RouterConfig:
    """Public routing under /{prefix}/{slug}.

    Attributes:
        prefix: First path segment of public Notion links
        remote_origin: Host used for fallback redirects to Notion
    """
    prefix: str = "notion"
    remote_origin: str = "notion.so"


@dataclass
class SyncSettings:
    """Attributes:
        content_type: Type of created local records
        content_status: Status of created local records
        max_id_length: Longest accepted Notion id
        database_content_type: Type of records that mirror a Notion database
    """
    content_type: str = "post"
    content_status: str = "draft"
    max_id_length: int = 50
    database_content_type: str = "notion_database"


@dataclass
class HierarchyConfig:
    """Attributes:
        max_depth: Deepest level expanded by build_tree (1-10)
        max_root_iterations: Upper bound for the upward root walk
    """
    max_depth: int = 5
    max_root_iterations: int = 10


@dataclass
class MenuConfig:
    enabled: bool = True
    name: str = "Notion Navigation"


@dataclass
class MediaConfig:
    """Image import.

    Attributes:
        enabled: Download images into the media directory during sync
        directory: Where downloaded files are written
        url_prefix: Public path the HTTP server serves the directory under
        download_external: Also download images not hosted by Notion
        max_file_size: Largest accepted file in bytes
        timeout: Per-download timeout in seconds
    """
    enabled: bool = True
    directory: str = ".notion-sync/media"
    url_prefix: str = "/media"
    download_external: bool = False
    max_file_size: int = 10 * 1024 * 1024
    timeout: int = 30


@dataclass
class ApiConfig:
    base_url: str = "https://api.notion.com/v1"
    version: str = "2022-06-28"
    timeout: int = 30


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class AppConfig:
    """Complete notion-sync configuration loaded from .notion-sync/config.yaml.

    Attributes:
        database_path: SQLite database file
        site_url: Base URL used to build local permalinks
        router: Public routing settings
        sync: Sync pipeline settings
        hierarchy: Tree reconstruction limits
        menu: Navigation menu settings
        api: Notion API settings (the token comes from NOTION_TOKEN)
        server: HTTP server bind address
        media: Image import settings

    Example:
        >>> config = AppConfig()
        >>> config.router.prefix
        'notion'
    """
    database_path: str = ".notion-sync/notion-sync.db"
    site_url: str = "http://localhost:8000"
    router: RouterConfig = field(default_factory=RouterConfig)
    sync: SyncSettings = field(default_factory=SyncSettings)
    hierarchy: HierarchyConfig = field(default_factory=HierarchyConfig)
    menu: MenuConfig = field(default_factory=MenuConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    media: MediaConfig = field(default_factory=MediaConfig)
