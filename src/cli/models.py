"""Data models for CLI operations."""

from enum import Enum, IntEnum


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    - SUCCESS (0): Operation completed successfully
    - GENERAL_ERROR (1): Configuration, staging or other failure
    - CONFLICTS (2): Sync finished but complex conflicts were deferred
    - VALIDATION_ERROR (3): One or more feature files failed validation

    Example:
        >>> raise typer.Exit(ExitCode.CONFLICTS)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    CONFLICTS = 2
    VALIDATION_ERROR = 3


class ReportFormat(str, Enum):
    """Output formats for the validate command."""
    TEXT = "text"
    CSV = "csv"
    JSON = "json"
