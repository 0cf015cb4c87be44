"""Data models for change detection and sync orchestration."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from src.conflicts.models import ConflictOutcome, InteractiveResolutionResult, ResolutionFailure
from src.gherkin.models import BatchValidationResult


class SyncPhase(Enum):
    """Orchestrator phases in execution order, plus the two terminal states."""

    CONFIGURATION_VALIDATION = "configuration-validation"
    STAGING_SETUP = "staging-setup"
    CHANGE_DETECTION_AND_VALIDATION = "change-detection-and-validation"
    CONFLICT_CLASSIFICATION = "conflict-classification"
    INTERACTIVE_RESOLUTION = "interactive-resolution"
    CLEANUP = "cleanup"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class ChangeSet:
    """Presence and content differences between local and remote.

    Attributes:
        additions: Paths only the remote has
        modifications: Paths on both sides whose trimmed text differs
        deletions: Paths only the local side has
    """

    additions: List[str] = field(default_factory=list)
    modifications: List[str] = field(default_factory=list)
    deletions: List[str] = field(default_factory=list)

    @property
    def total_changes(self) -> int:
        return len(self.additions) + len(self.modifications) + len(self.deletions)

    @property
    def is_empty(self) -> bool:
        return self.total_changes == 0


@dataclass
class ClassifiedChanges:
    """Change set split by how each document gets resolved.

    Attributes:
        simple: Additions and deletions (no conflict possible)
        auto_resolved: Modifications resolved without a human
        complex: Modifications needing interactive input
        failed: Modifications whose resolution raised
    """

    simple: List[str] = field(default_factory=list)
    auto_resolved: List[ConflictOutcome] = field(default_factory=list)
    complex: List[ConflictOutcome] = field(default_factory=list)
    failed: List[ResolutionFailure] = field(default_factory=list)

    @property
    def complex_filenames(self) -> List[str]:
        return [outcome.filename for outcome in self.complex]

    def to_event_data(self) -> Dict[str, Any]:
        return {
            "simple": list(self.simple),
            "auto_resolved": [outcome.filename for outcome in self.auto_resolved],
            "complex": self.complex_filenames,
            "failed": [failure.filename for failure in self.failed],
        }


@dataclass
class SyncCounts:
    """Per-run document counts reported on every outcome.

    Attributes:
        simple: Additions plus deletions
        auto_resolved: Modifications resolved automatically
        complex: Modifications that needed a human
        failed: Documents whose resolution raised
        resolved: Complex documents resolved interactively
        deferred: Complex documents skipped for a future run
    """

    simple: int = 0
    auto_resolved: int = 0
    complex: int = 0
    failed: int = 0
    resolved: int = 0
    deferred: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "simple": self.simple,
            "auto_resolved": self.auto_resolved,
            "complex": self.complex,
            "failed": self.failed,
            "resolved": self.resolved,
            "deferred": self.deferred,
        }


@dataclass
class SyncOutcome:
    """Terminal result of SyncOrchestrator.execute().

    Attributes:
        success: True when every phase completed
        phase: Terminal state ("completed" or "error")
        failed_phase: Name of the phase that failed, if any
        error: Error message, if any
        counts: Document counts
        duration: Run time in seconds
        demo_mode: Whether demo credentials were substituted
        change_set: Detected changes, if detection ran
        validation: Batch validation of staged features, if it ran
        deferred_files: Complex documents left for a future run
    """

    success: bool
    phase: SyncPhase
    failed_phase: Optional[str] = None
    error: Optional[str] = None
    counts: SyncCounts = field(default_factory=SyncCounts)
    duration: float = 0.0
    demo_mode: bool = False
    change_set: Optional[ChangeSet] = None
    validation: Optional[BatchValidationResult] = None
    interactive: Optional[InteractiveResolutionResult] = None
    deferred_files: List[str] = field(default_factory=list)
