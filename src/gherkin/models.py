"""Data models for parsed and validated feature documents."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ScenarioType(Enum):
    """Kind of scenario block."""

    SCENARIO = "scenario"
    OUTLINE = "outline"


class StepType(Enum):
    """Role of a step keyword in its dialect."""

    CONTEXT = "context"
    ACTION = "action"
    OUTCOME = "outcome"
    CONJUNCTION = "conjunction"
    UNKNOWN = "unknown"


@dataclass
class DataTable:
    """Pipe-delimited table attached to a step or an Examples block.

    Attributes:
        headers: Cells of the first row
        rows: Remaining rows
    """

    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)


@dataclass
class Step:
    """A single step such as Given/When/Then/And/But/* or a localized keyword.

    Attributes:
        keyword: Step keyword without trailing whitespace (e.g. "Given", "Soit")
        text: Step text after the keyword
        type: Role of the keyword (Given-like steps are CONTEXT)
        data_table: Optional attached table
        doc_string: Optional attached doc string content
    """

    keyword: str
    text: str
    type: StepType = StepType.UNKNOWN
    data_table: Optional[DataTable] = None
    doc_string: Optional[str] = None


@dataclass
class Examples:
    """Examples/Scenarios block owned by a scenario outline."""

    name: str = ""
    tags: List[str] = field(default_factory=list)
    table: Optional[DataTable] = None

    @property
    def row_count(self) -> int:
        return len(self.table.rows) if self.table else 0


@dataclass
class Background:
    name: str = ""
    steps: List[Step] = field(default_factory=list)


@dataclass
class Scenario:
    """A scenario or scenario outline.

    Attributes:
        name: Scenario title
        tags: Tags declared directly above the scenario
        steps: Ordered steps
        type: Scenario or outline
        examples: Examples blocks (outlines only)
        rule: Name of the owning Rule, if any
    """

    name: str
    tags: List[str] = field(default_factory=list)
    steps: List[Step] = field(default_factory=list)
    type: ScenarioType = ScenarioType.SCENARIO
    examples: List[Examples] = field(default_factory=list)
    rule: Optional[str] = None


@dataclass
class FeatureMetadata:
    """Structural summary of one feature document.

    Attributes:
        name: Feature title
        description: Free text between the Feature line and the first block
        tags: Feature-level tags
        language: Gherkin dialect (from the "# language:" header, default "en")
        scenarios: Scenarios in document order, Rule children flattened in
        background: Optional Background block
    """

    name: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    language: str = "en"
    scenarios: List[Scenario] = field(default_factory=list)
    background: Optional[Background] = None

    @property
    def all_tags(self) -> List[str]:
        """Feature tags followed by every scenario's tags."""
        tags = list(self.tags)
        for scenario in self.scenarios:
            tags.extend(scenario.tags)
        return tags

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        step_lists = [scenario["steps"] for scenario in data["scenarios"]]
        if data["background"]:
            step_lists.append(data["background"]["steps"])
        for scenario in data["scenarios"]:
            scenario["type"] = scenario["type"].value
        for steps in step_lists:
            for step in steps:
                step["type"] = step["type"].value
        return data


@dataclass
class ValidationResult:
    """Outcome of validating one feature document.

    Errors make the document invalid; warnings never do.
    """

    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    metadata: Optional[FeatureMetadata] = None
    file_path: Optional[str] = None

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


@dataclass
class ValidationSummary:
    """Aggregate content summary for a batch."""

    features: int = 0
    scenarios: int = 0
    tags: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)


@dataclass
class BatchValidationResult:
    """Aggregated result of validating many feature documents.

    Attributes:
        total_files: Number of paths submitted
        valid_files: Documents with no errors
        invalid_files: Documents with errors or that failed to load
        total_errors: Sum of error counts
        total_warnings: Sum of warning counts
        files: Per-file results in submission order
        summary: Features, scenarios, sorted tags and languages
    """

    total_files: int = 0
    valid_files: int = 0
    invalid_files: int = 0
    total_errors: int = 0
    total_warnings: int = 0
    files: List[ValidationResult] = field(default_factory=list)
    summary: ValidationSummary = field(default_factory=ValidationSummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_files": self.total_files,
            "valid_files": self.valid_files,
            "invalid_files": self.invalid_files,
            "total_errors": self.total_errors,
            "total_warnings": self.total_warnings,
            "files": [result.to_dict() for result in self.files],
            "summary": asdict(self.summary),
        }
