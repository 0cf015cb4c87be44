"""Shared building blocks for the feature sync engine.

This package holds the error taxonomy, the event bus every component
reports through, and the asynchronous filesystem collaborator.
"""

from src.core.errors import (
    ConflictResolutionError,
    ExternalProcessError,
    FeatureValidationError,
    FileSystemError,
    GherkinParseError,
    StagingAreaError,
    SyncConfigurationError,
    SyncError,
    SyncOrchestrationError,
    UserInteractionError,
)
from src.core.events import (
    EVENT_SCHEMAS,
    EventBus,
    SyncEvent,
    SyncEvents,
    create_event_data,
)
from src.core.filesystem import FEATURE_EXTENSION, FileSystem, LocalFileSystem

__all__ = [
    # Errors
    'SyncError',
    'SyncConfigurationError',
    'StagingAreaError',
    'FileSystemError',
    'GherkinParseError',
    'FeatureValidationError',
    'ExternalProcessError',
    'ConflictResolutionError',
    'UserInteractionError',
    'SyncOrchestrationError',
    # Events
    'EventBus',
    'SyncEvent',
    'SyncEvents',
    'EVENT_SCHEMAS',
    'create_event_data',
    # Filesystem
    'FileSystem',
    'LocalFileSystem',
    'FEATURE_EXTENSION',
]
