"""Data models for CLI operations."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    - SUCCESS (0): Operation completed successfully
    - GENERAL_ERROR (1): General error (config issues, validation failures)
    - AUTH_ERROR (3): Notion rejected the integration token
    - NETWORK_ERROR (4): Notion API unreachable
    - PARTIAL_FAILURE (5): Some pages synced, others failed

    Example:
        >>> sys.exit(ExitCode.SUCCESS)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 3
    NETWORK_ERROR = 4
    PARTIAL_FAILURE = 5


@dataclass
class SyncSummary:
    """Counts shown after a sync run.

    Attributes:
        synced_count: Pages synced successfully
        failed_count: Pages that failed
        errors: Page id → error message for failed pages
    """
    synced_count: int = 0
    failed_count: int = 0
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def exit_code(self) -> ExitCode:
        if self.failed_count == 0:
            return ExitCode.SUCCESS
        if self.synced_count > 0:
            return ExitCode.PARTIAL_FAILURE
        return ExitCode.GENERAL_ERROR
