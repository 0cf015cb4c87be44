"""Parsing, validation and batch reporting for Gherkin feature files."""

from src.gherkin.feature_processor import FeatureProcessor
from src.gherkin.models import (
    Background,
    BatchValidationResult,
    DataTable,
    Examples,
    FeatureMetadata,
    Scenario,
    ScenarioType,
    Step,
    StepType,
    ValidationResult,
    ValidationSummary,
)
from src.gherkin.parser import GherkinParser, content_hash
from src.gherkin.validator import GherkinValidator

__all__ = [
    # Components
    'GherkinParser',
    'GherkinValidator',
    'FeatureProcessor',
    'content_hash',
    # Models
    'Background',
    'BatchValidationResult',
    'DataTable',
    'Examples',
    'FeatureMetadata',
    'Scenario',
    'ScenarioType',
    'Step',
    'StepType',
    'ValidationResult',
    'ValidationSummary',
]
