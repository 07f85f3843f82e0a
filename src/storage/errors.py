"""Typed exception hierarchy for local storage errors.

All exceptions inherit from StorageError so callers at component
boundaries can catch one type and report the underlying message verbatim.
"""

from typing import Optional

from src.notion_api.errors import SyncError


class StorageError(SyncError):
    """Raised when a local insert, update or query fails."""

    def __init__(self, message: str, operation: Optional[str] = None):
        if operation:
            message = f"{operation} failed: {message}"
        super().__init__(message)
        self.operation = operation


class ContentNotFoundError(StorageError):
    """Raised when a local content record does not exist."""

    def __init__(self, content_id: int):
        super().__init__(f"Content {content_id} not found")
        self.content_id = content_id


class MenuNotFoundError(StorageError):
    """Raised when a navigation menu does not exist."""

    def __init__(self, menu_id: int):
        super().__init__(f"Menu {menu_id} not found")
        self.menu_id = menu_id
