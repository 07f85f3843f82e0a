"""Notion client library for one-way sync into the local content store.

This package provides Python abstractions over the Notion REST API:
authentication, rate-limit retries, typed errors, a fetcher that
returns explicit results instead of raising, and a downloader for the
images pages embed.
"""

from .errors import (
    SyncError,
    NotionError,
    InvalidCredentialsError,
    PageNotFoundError,
    APIUnreachableError,
    APIAccessError,
    ConversionError,
    MediaDownloadError,
    UnsupportedMediaError,
)
from .auth import Authenticator, Credentials
from .api_wrapper import NotionClient, format_api_error
from .content_fetcher import ContentFetcher, FetchResult, PageProperties, extract_title
from .media_downloader import MediaDownloader, DownloadedFile

__all__ = [
    "SyncError",
    "NotionError",
    "InvalidCredentialsError",
    "PageNotFoundError",
    "APIUnreachableError",
    "APIAccessError",
    "ConversionError",
    "MediaDownloadError",
    "UnsupportedMediaError",
    "Authenticator",
    "Credentials",
    "NotionClient",
    "format_api_error",
    "ContentFetcher",
    "FetchResult",
    "PageProperties",
    "extract_title",
    "MediaDownloader",
    "DownloadedFile",
]
