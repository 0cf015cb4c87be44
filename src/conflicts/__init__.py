"""Conflict detection, automatic merging and interactive resolution.

This package classifies documents that changed on both sides, tries
whitespace-tolerant automatic merges through git, falls back to content
analysis, and hands the remaining conflicts to an interactive collaborator.
"""

from src.conflicts.conflict_resolver import ConflictResolver, build_conflict_block
from src.conflicts.content_analyzer import CONFLICT_MARKERS, classify_content, has_conflict_markers
from src.conflicts.merge_runner import GitMergeRunner, MergeRunner
from src.conflicts.models import (
    DEFAULT_MERGE_STRATEGIES,
    ConflictOutcome,
    ConflictType,
    InteractiveResolutionResult,
    MergeAttempt,
    MergeStrategy,
    ProcessResult,
    ResolutionBatch,
    ResolutionChoice,
    ResolutionFailure,
    ResolvedDocument,
)
from src.conflicts.user_interaction import (
    ConsoleUserInteraction,
    DeferringUserInteraction,
    UserInteraction,
)

__all__ = [
    # Components
    'ConflictResolver',
    'GitMergeRunner',
    'MergeRunner',
    'ConsoleUserInteraction',
    'DeferringUserInteraction',
    'UserInteraction',
    # Helpers
    'build_conflict_block',
    'classify_content',
    'has_conflict_markers',
    'CONFLICT_MARKERS',
    # Models
    'DEFAULT_MERGE_STRATEGIES',
    'ConflictOutcome',
    'ConflictType',
    'InteractiveResolutionResult',
    'MergeAttempt',
    'MergeStrategy',
    'ProcessResult',
    'ResolutionBatch',
    'ResolutionChoice',
    'ResolutionFailure',
    'ResolvedDocument',
]
