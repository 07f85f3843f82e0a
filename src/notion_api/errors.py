"""Typed exception hierarchy for Notion-related errors.

This module defines the root SyncError and the exceptions raised by the
Notion client library. Every exception formats its own message and keeps
the context it was raised with as attributes, so callers can report or
persist the failure without parsing strings.
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for all notion-sync errors.

    Use this to catch any application-level error from the sync tool.
    """
    pass


class NotionError(SyncError):
    """Base exception for all Notion API errors."""
    pass


class InvalidCredentialsError(NotionError):
    """Raised when the integration token is missing, invalid or revoked."""

    def __init__(self, endpoint: str, token_hint: Optional[str] = None):
        message = f"Notion integration token is invalid (endpoint: {endpoint})"
        if token_hint:
            message = f"Notion integration token is invalid (token: {token_hint}, endpoint: {endpoint})"
        super().__init__(message)
        self.endpoint = endpoint
        self.token_hint = token_hint


class PageNotFoundError(NotionError):
    """Raised when a requested page or block does not exist or is not shared."""

    def __init__(self, page_id: str):
        super().__init__(f"Page {page_id} not found")
        self.page_id = page_id


class APIUnreachableError(NotionError):
    """Raised when the Notion API is not available or unreachable."""

    def __init__(self, endpoint: str):
        super().__init__(f"API is not available at {endpoint}")
        self.endpoint = endpoint


class APIAccessError(NotionError):
    """Raised when API access fails after retries or due to access restrictions."""

    def __init__(self, message: str = "Notion API failure (after 3 retries)", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConversionError(NotionError):
    """Raised when a Notion block tree cannot be converted to local markup."""

    def __init__(self, message: str, block_id: Optional[str] = None):
        if block_id:
            message = f"{message} (block: {block_id})"
        super().__init__(message)
        self.block_id = block_id


class MediaDownloadError(SyncError):
    """Raised when an image cannot be downloaded into the media directory."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Could not download {url}: {reason}")
        self.url = url
        self.reason = reason


class UnsupportedMediaError(MediaDownloadError):
    """Raised when a download is refused because of its type or size."""
    pass
