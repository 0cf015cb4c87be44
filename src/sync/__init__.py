"""Change detection and phase orchestration for a sync run."""

from src.sync.diff_manager import DiffManager
from src.sync.models import ChangeSet, ClassifiedChanges, SyncCounts, SyncOutcome, SyncPhase
from src.sync.orchestrator import SyncOrchestrator, build_orchestrator

__all__ = [
    # Components
    'DiffManager',
    'SyncOrchestrator',
    'build_orchestrator',
    # Models
    'ChangeSet',
    'ClassifiedChanges',
    'SyncCounts',
    'SyncOutcome',
    'SyncPhase',
]
