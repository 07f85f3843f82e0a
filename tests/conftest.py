"""Root pytest configuration for all tests.

Shared fixtures build every store against one temporary SQLite database,
so a test sees exactly the rows it wrote.
"""

import logging

import pytest

from src.config.models import AppConfig, MediaConfig
from src.registry.link_registry import LinkRegistry
from src.storage.batch_store import BatchStore
from src.storage.content_store import ContentStore
from src.storage.media_store import MediaStore
from src.storage.navigation_store import NavigationStore
from src.storage.row_store import RowStore
from src.storage.sync_log import SyncLog
from tests.fixtures.notion_pages import SITE_URL, FakeFetcher

# werkzeug logs every request at INFO during Flask test-client calls
logging.getLogger("werkzeug").setLevel(logging.WARNING)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "notion-sync.db"


@pytest.fixture
def registry(db_path) -> LinkRegistry:
    return LinkRegistry(db_path)


@pytest.fixture
def content_store(db_path) -> ContentStore:
    return ContentStore(db_path, site_url=SITE_URL)


@pytest.fixture
def navigation_store(db_path) -> NavigationStore:
    return NavigationStore(db_path)


@pytest.fixture
def batch_store(db_path) -> BatchStore:
    return BatchStore(db_path)


@pytest.fixture
def row_store(db_path) -> RowStore:
    return RowStore(db_path)


@pytest.fixture
def media_store(db_path) -> MediaStore:
    return MediaStore(db_path)


@pytest.fixture
def sync_log(db_path) -> SyncLog:
    return SyncLog(db_path)


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def app_config(db_path, tmp_path) -> AppConfig:
    """Default configuration pointing at the temporary database."""
    return AppConfig(
        database_path=str(db_path),
        site_url=SITE_URL,
        media=MediaConfig(directory=str(tmp_path / "media")),
    )
