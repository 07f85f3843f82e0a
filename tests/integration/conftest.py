"""Pytest configuration and fixtures for integration tests.

Integration tests wire every component through AppContext, the same way
the CLI does, with the Notion API replaced by the in-memory FakeFetcher.
"""

import pytest

from src.cli.app_context import AppContext
from src.config.config_loader import ConfigLoader
from src.config.models import AppConfig, MediaConfig
from src.router.web import create_app
from tests.fixtures.notion_pages import SITE_URL


@pytest.fixture
def config_path(tmp_path) -> str:
    """A config file as written by `notion-sync init`."""
    path = str(tmp_path / ".notion-sync" / "config.yaml")
    ConfigLoader.save(path, AppConfig(
        database_path=str(tmp_path / ".notion-sync" / "notion-sync.db"),
        site_url=SITE_URL,
        media=MediaConfig(directory=str(tmp_path / ".notion-sync" / "media")),
    ))
    return path


@pytest.fixture
def context(config_path, fake_fetcher) -> AppContext:
    return AppContext.from_config_file(config_path, fetcher=fake_fetcher)


@pytest.fixture
def client(context):
    app = create_app(context)
    app.config['TESTING'] = True
    return app.test_client()
