"""Data models for conflict detection and resolution."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class MergeStrategy(Enum):
    """Whitespace-tolerant automatic merge variants, in the order tried."""

    IGNORE_SPACE_CHANGE = "ignore-space-change"
    IGNORE_ALL_SPACE = "ignore-all-space"
    IGNORE_BLANK_LINES = "ignore-blank-lines"


DEFAULT_MERGE_STRATEGIES = [strategy.value for strategy in MergeStrategy]


class ConflictType(Enum):
    """Content-analysis classification of a conflicting pair."""

    WHITESPACE_ONLY = "whitespace-only"
    COMMENTS_ONLY = "comments-only"
    CONTENT_CHANGES = "content-changes"

    @property
    def auto_resolvable(self) -> bool:
        return self is not ConflictType.CONTENT_CHANGES


class ResolutionChoice(Enum):
    """Choices offered for a conflict that needs a human decision."""

    KEEP_REMOTE = "keep-remote"
    KEEP_LOCAL = "keep-local"
    INJECT_MARKERS = "inject-markers"
    SKIP = "skip"
    SHOW_DIFF = "show-diff"


@dataclass
class ProcessResult:
    """Captured output of an external merge/diff process.

    Attributes:
        stdout: Standard output (merged text or diff)
        stderr: Standard error
        exit_code: Process exit status
    """

    stdout: str
    stderr: str = ""
    exit_code: int = 0


@dataclass
class MergeAttempt:
    """Outcome of one automatic merge strategy.

    A merge that produces conflict markers is an expected outcome, reported
    as success=False rather than raised.

    Attributes:
        strategy: Strategy name
        success: True if the merged output has no conflict markers
        content: Merged output (may contain markers)
        error: Process error message when the merge could not run
    """

    strategy: str
    success: bool
    content: str = ""
    error: Optional[str] = None


@dataclass
class ConflictOutcome:
    """Resolution outcome for one modified document.

    Attributes:
        filename: Path relative to both roots
        auto_resolved: Whether the document was resolved without a human
        strategy: Winning merge strategy or content-analysis type (auto only)
        content: Resolved content, always the remote text (auto only)
        conflict_type: Content-analysis type when manual input is required
        attempts: Merge attempts made, in order
    """

    filename: str
    auto_resolved: bool
    strategy: Optional[str] = None
    content: Optional[str] = None
    conflict_type: Optional[ConflictType] = None
    attempts: List[MergeAttempt] = field(default_factory=list)


@dataclass
class ResolutionFailure:
    """A document whose resolution raised."""

    filename: str
    error: str


@dataclass
class ResolutionBatch:
    """Result of resolving a set of modified documents.

    Attributes:
        auto_resolved: Outcomes resolved by merge or content analysis
        requires_manual: Outcomes needing interactive resolution
        failed: Documents whose resolution raised
    """

    auto_resolved: List[ConflictOutcome] = field(default_factory=list)
    requires_manual: List[ConflictOutcome] = field(default_factory=list)
    failed: List[ResolutionFailure] = field(default_factory=list)


@dataclass
class ResolvedDocument:
    filename: str
    choice: ResolutionChoice


@dataclass
class InteractiveResolutionResult:
    """Result of the interactive resolution loop.

    Attributes:
        resolved: Documents resolved by keep-remote, keep-local or inject-markers
        skipped: Documents deferred to a future run
        failed: Documents whose resolution raised
    """

    resolved: List[ResolvedDocument] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[ResolutionFailure] = field(default_factory=list)

    @property
    def staged_only(self) -> List[str]:
        """Resolved documents whose result lives only in the discarded staged copy."""
        return [
            document.filename
            for document in self.resolved
            if document.choice in (ResolutionChoice.KEEP_LOCAL, ResolutionChoice.INJECT_MARKERS)
        ]
