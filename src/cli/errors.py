"""Typed exception hierarchy for CLI-related errors.

All exceptions inherit from CLIError so command handlers can catch them
in one place and map them to an exit code.
"""

from src.notion_api.errors import SyncError


class CLIError(SyncError):
    """Base exception for all CLI-related errors."""
    pass


class ConfigNotFoundError(CLIError):
    """Raised when a command needs a configuration file that does not exist."""

    def __init__(self, config_path: str):
        super().__init__(
            f"Configuration file not found at {config_path}. Run 'notion-sync init' first."
        )
        self.config_path = config_path


class InitError(CLIError):
    """Raised when initialization fails."""

    def __init__(self, message: str):
        super().__init__(message)
