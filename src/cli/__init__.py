"""Command-line interface for notion-sync."""

from .app_context import AppContext
from .errors import CLIError, ConfigNotFoundError, InitError
from .init_command import InitCommand
from .models import ExitCode, SyncSummary
from .output import OutputHandler

__all__ = [
    'AppContext',
    'CLIError',
    'ConfigNotFoundError',
    'InitError',
    'InitCommand',
    'ExitCode',
    'SyncSummary',
    'OutputHandler',
]
