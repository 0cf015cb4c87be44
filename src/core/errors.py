"""Typed exception hierarchy for feature sync errors.

This module defines all custom exceptions used by the sync engine.
All exceptions inherit from SyncError base class for easy catching and
carry the operation context (paths, phases, commands) that failed, so a
caller can report a precise message without inspecting the traceback.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional


class SyncError(Exception):
    """Base exception for all feature-sync errors.

    Use this to catch any application-level error from the sync tool.

    Attributes:
        context: Operation context for debugging (paths, phase, etc.)
        timestamp: When the error was raised
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for event payloads and JSON reports."""
        return {
            "name": type(self).__name__,
            "message": str(self),
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
        }


class SyncConfigurationError(SyncError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None):
        super().__init__(message, {"missing_fields": missing_fields or []})
        self.missing_fields = missing_fields or []

    @classmethod
    def from_missing_fields(cls, missing_fields: List[str]) -> "SyncConfigurationError":
        return cls(
            f"Missing required configuration: {', '.join(missing_fields)}",
            missing_fields,
        )


class StagingAreaError(SyncError):
    """Raised when the staging area cannot be created, fetched or cleaned.

    Attributes:
        operation: Attempted operation (create, fetch, clean, scan)
        staging_path: Staging directory path
    """

    def __init__(self, message: str, operation: str, staging_path: str):
        super().__init__(
            f"Staging area '{operation}' failed at {staging_path}: {message}",
            {"operation": operation, "staging_path": staging_path},
        )
        self.operation = operation
        self.staging_path = staging_path


class FileSystemError(SyncError):
    """Raised when filesystem operations fail (read, write, scan, etc)."""

    def __init__(self, operation: str, file_path: str, reason: Optional[str] = None):
        message = f"Filesystem operation '{operation}' failed for {file_path}"
        if reason:
            message += f": {reason}"
        super().__init__(
            message,
            {"operation": operation, "file_path": file_path, "reason": reason},
        )
        self.operation = operation
        self.file_path = file_path
        self.reason = reason


class GherkinParseError(SyncError):
    """Raised when feature text cannot be parsed into a Feature tree."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(
            f"Gherkin parse error in {file_path}: {reason}",
            {"file_path": file_path, "reason": reason},
        )
        self.file_path = file_path
        self.reason = reason


class FeatureValidationError(SyncError):
    """Raised when a feature file fails structural or business-rule checks."""

    def __init__(self, file_path: str, validation_errors: Optional[List[str]] = None):
        validation_errors = validation_errors or []
        message = f"Feature validation failed for {file_path}"
        if validation_errors:
            message += f": {', '.join(validation_errors)}"
        super().__init__(
            message,
            {"file_path": file_path, "validation_errors": validation_errors},
        )
        self.file_path = file_path
        self.validation_errors = validation_errors


class ExternalProcessError(SyncError):
    """Raised when an external process exits non-zero with no usable output.

    Attributes:
        command: Command line that was executed
        exit_code: Process exit status (None if it never started)
        stderr: Captured error stream
    """

    def __init__(self, command: List[str], exit_code: Optional[int], stderr: str = ""):
        command_str = " ".join(command)
        message = f"Command failed ({exit_code}): {command_str}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(
            message,
            {"command": command_str, "exit_code": exit_code, "stderr": stderr},
        )
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


class ConflictResolutionError(SyncError):
    """Raised when a conflicting document could not be classified or resolved."""

    def __init__(self, filename: str, message: str, conflict_type: Optional[str] = None):
        super().__init__(
            f"Conflict resolution failed for {filename}: {message}",
            {"filename": filename, "conflict_type": conflict_type},
        )
        self.filename = filename
        self.conflict_type = conflict_type


class UserInteractionError(SyncError):
    """Raised when an interactive session is aborted or cannot be read."""

    def __init__(self, message: str, interaction_type: str):
        super().__init__(message, {"interaction_type": interaction_type})
        self.interaction_type = interaction_type


class SyncOrchestrationError(SyncError):
    """Phase-level wrapper raised by the orchestrator.

    Attributes:
        phase: Name of the phase that failed
        partial_results: Results gathered by earlier phases
    """

    def __init__(
        self,
        message: str,
        phase: str,
        partial_results: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            f"Phase {phase} failed: {message}",
            {"phase": phase, "partial_results": partial_results or {}},
        )
        self.phase = phase
        self.partial_results = partial_results or {}
