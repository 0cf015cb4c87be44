"""Structural and business-rule validation of feature documents.

Errors make a document invalid. Warnings are advisory only and never change
ValidationResult.is_valid.
"""

import logging
from typing import Optional

from src.cache.cache_manager import CacheManager
from src.core.errors import FeatureValidationError, FileSystemError, GherkinParseError
from src.core.events import EventBus, SyncEvents
from src.core.filesystem import FileSystem, LocalFileSystem
from src.gherkin.models import FeatureMetadata, ScenarioType, StepType, ValidationResult
from src.gherkin.parser import GherkinParser, content_hash

logger = logging.getLogger(__name__)

MIN_FEATURE_NAME_LENGTH = 5
MAX_SCENARIO_STEPS = 10
MAX_STEP_TEXT_LENGTH = 100
LARGE_FEATURE_SCENARIOS = 5
PRIORITY_TAGS = ("@critical", "@smoke", "@regression", "@priority")
GIVEN_WHEN_THEN = {StepType.CONTEXT, StepType.ACTION, StepType.OUTCOME}


class GherkinValidator:
    """Validates feature text, caching results by (path, content hash).

    Example:
        >>> validator = GherkinValidator()
        >>> result = validator.validate(content, "features/login.feature")
        >>> if not result.is_valid:
        ...     print(result.errors)
    """

    def __init__(
        self,
        parser: Optional[GherkinParser] = None,
        cache_manager: Optional[CacheManager] = None,
        events: Optional[EventBus] = None,
        filesystem: Optional[FileSystem] = None,
    ):
        self.cache_manager = cache_manager
        self.events = events
        self.parser = parser or GherkinParser(cache_manager=cache_manager, events=events)
        self.filesystem = filesystem or LocalFileSystem()

    async def validate_file(self, path: str) -> ValidationResult:
        """Read and validate a feature file.

        Raises:
            FeatureValidationError: If the file cannot be read
        """
        content = None
        if self.cache_manager is not None:
            content = self.cache_manager.file_cache.get_file_content(path)

        if content is None:
            try:
                content = await self.filesystem.read_text(path)
            except (FileSystemError, OSError) as e:
                raise FeatureValidationError(path, [f"Failed to read feature file: {e}"]) from e
            if self.cache_manager is not None:
                self.cache_manager.file_cache.cache_file_content(path, content)

        return self.validate(content, path)

    def validate(self, content: str, source_path: str = "unknown") -> ValidationResult:
        """Validate feature text.

        Args:
            content: Raw feature text
            source_path: Path used in messages and cache keys

        Returns:
            ValidationResult with errors, warnings and parsed metadata
        """
        file_hash = content_hash(content)
        if self.cache_manager is not None:
            cached = self.cache_manager.validation_cache.get_validation(source_path, file_hash)
            if cached is not None:
                return cached

        self._emit(SyncEvents.VALIDATION_STARTED, {"source_path": source_path, "type": "validation"})

        result = ValidationResult(file_path=source_path)
        try:
            feature = self.parser.parse(content, source_path)
        except GherkinParseError as e:
            result.add_error(str(e))
            self._emit(
                SyncEvents.VALIDATION_FAILED,
                {"source_path": source_path, "type": "validation", "error": str(e)},
            )
            return result

        result.metadata = feature
        self._check_structure(feature, result)
        self._check_naming(feature, result)
        self._check_scenarios(feature, result)
        self._check_tags(feature, result)
        self._check_steps(feature, result)
        self._check_business_rules(feature, result)

        if self.cache_manager is not None:
            self.cache_manager.validation_cache.cache_validation(source_path, file_hash, result)

        self._emit(
            SyncEvents.VALIDATION_COMPLETED,
            {
                "source_path": source_path,
                "type": "validation",
                "is_valid": result.is_valid,
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
            },
        )
        logger.debug(
            f"Validated {source_path}: {len(result.errors)} error(s), {len(result.warnings)} warning(s)"
        )
        return result

    def _check_structure(self, feature: FeatureMetadata, result: ValidationResult) -> None:
        if not feature.name.strip():
            result.add_warning("Feature should have a descriptive name")

        if not feature.scenarios:
            result.add_error("Feature must contain at least one scenario")

        for position, scenario in enumerate(feature.scenarios, start=1):
            if not scenario.name.strip():
                result.add_warning(f"Scenario {position} should have a descriptive name")
            if not scenario.steps:
                result.add_warning(f'Scenario "{scenario.name}" has no steps')

    def _check_naming(self, feature: FeatureMetadata, result: ValidationResult) -> None:
        name = feature.name.strip()
        # An empty name is already reported by the structure check
        if name and len(name) < MIN_FEATURE_NAME_LENGTH:
            result.add_warning(
                f"Feature name should be more descriptive (at least {MIN_FEATURE_NAME_LENGTH} characters)"
            )
        if "test" in name.lower():
            result.add_warning("Feature name should describe business value, not testing")

    def _check_scenarios(self, feature: FeatureMetadata, result: ValidationResult) -> None:
        seen = set()
        for scenario in feature.scenarios:
            if scenario.name in seen:
                result.add_warning(f'Duplicate scenario name: "{scenario.name}"')
            seen.add(scenario.name)

            if scenario.type == ScenarioType.OUTLINE:
                example_rows = sum(examples.row_count for examples in scenario.examples)
                if example_rows == 0:
                    result.add_error(f'Scenario Outline "{scenario.name}" must have examples')

            if len(scenario.steps) > MAX_SCENARIO_STEPS:
                result.add_warning(
                    f'Scenario "{scenario.name}" has many steps ({len(scenario.steps)}). '
                    f"Consider breaking it down."
                )

    def _check_tags(self, feature: FeatureMetadata, result: ValidationResult) -> None:
        for tag in feature.all_tags:
            if not tag.startswith("@"):
                result.add_error(f'Invalid tag format: "{tag}". Tags must start with @')

    def _check_steps(self, feature: FeatureMetadata, result: ValidationResult) -> None:
        for scenario in feature.scenarios:
            step_types = {step.type for step in scenario.steps}

            for step in scenario.steps:
                if len(step.text) > MAX_STEP_TEXT_LENGTH:
                    result.add_warning(
                        f"Step text is very long ({len(step.text)} chars). Consider breaking it down."
                    )

            if scenario.steps and not GIVEN_WHEN_THEN <= step_types:
                result.add_warning(f'Scenario "{scenario.name}" should follow Given-When-Then structure')

    def _check_business_rules(self, feature: FeatureMetadata, result: ValidationResult) -> None:
        has_priority_tag = any(
            tag in PRIORITY_TAGS
            for scenario in feature.scenarios
            for tag in scenario.tags
        )
        if not has_priority_tag and len(feature.scenarios) > LARGE_FEATURE_SCENARIOS:
            result.add_warning("Large feature without critical scenarios. Consider adding @critical tags.")

        if not feature.description.strip():
            result.add_warning("Feature should have a description explaining its business value.")

    def _emit(self, event_name: str, data) -> None:
        if self.events is not None:
            self.events.emit(event_name, data)
