"""Typed exception hierarchy for CLI-related errors.

All exceptions inherit from CLIError, itself a SyncError, so the entry
point can catch every application-level failure in one place.
"""

from src.core.errors import SyncError


class CLIError(SyncError):
    """Base exception for all CLI-related errors."""
    pass


class FeaturesDirectoryNotFoundError(CLIError):
    """Raised when the directory given to validate does not exist."""

    def __init__(self, directory: str):
        super().__init__(f"Features directory not found: {directory}", {"directory": directory})
        self.directory = directory
