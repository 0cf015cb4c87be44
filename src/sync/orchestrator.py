"""Phase-based sync orchestration.

A run moves through fixed phases, strictly in order:

    configuration-validation -> staging-setup -> change-detection-and-validation
    -> conflict-classification -> interactive-resolution -> cleanup

Every phase emits phase:started, then phase:completed or phase:failed. A
failed phase stops the run, triggers one best-effort cleanup, and is
reported as an error outcome. execute() itself never raises.
"""

import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from rich.console import Console

from src.cache.cache_manager import CacheManager
from src.cli.config import SyncConfiguration
from src.conflicts.conflict_resolver import ConflictResolver
from src.conflicts.merge_runner import GitMergeRunner
from src.conflicts.models import InteractiveResolutionResult
from src.conflicts.user_interaction import (
    ConsoleUserInteraction,
    DeferringUserInteraction,
    UserInteraction,
)
from src.core.errors import SyncConfigurationError, SyncOrchestrationError
from src.core.events import EventBus, SyncEvents, create_event_data
from src.core.filesystem import LocalFileSystem
from src.gherkin.feature_processor import FeatureProcessor
from src.gherkin.models import BatchValidationResult
from src.gherkin.validator import GherkinValidator
from src.staging.staging_manager import StagingManager
from src.staging.transport import DemoTransport, DirectoryTransport
from src.sync.diff_manager import DiffManager
from src.sync.models import ChangeSet, ClassifiedChanges, SyncCounts, SyncOutcome, SyncPhase

logger = logging.getLogger(__name__)

PhaseFunction = Callable[[], Awaitable[Dict[str, Any]]]


class SyncOrchestrator:
    """Runs one sync between the local features directory and the remote set.

    All collaborators are injected. Use build_orchestrator() to wire the
    production components from a SyncConfiguration.

    Example:
        >>> orchestrator = build_orchestrator(SyncConfiguration(), interactive=False)
        >>> outcome = asyncio.run(orchestrator.execute())
        >>> outcome.phase
        <SyncPhase.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        config: SyncConfiguration,
        staging: StagingManager,
        diff_manager: DiffManager,
        resolver: ConflictResolver,
        feature_processor: FeatureProcessor,
        interaction: Optional[UserInteraction] = None,
        cache_manager: Optional[CacheManager] = None,
        events: Optional[EventBus] = None,
    ):
        self.config = config
        self.staging = staging
        self.diff_manager = diff_manager
        self.resolver = resolver
        self.feature_processor = feature_processor
        self.events = events or EventBus(config.history_size)
        self.interaction = interaction or ConsoleUserInteraction(events=self.events)
        self.cache_manager = cache_manager or CacheManager(self.events, enabled=config.cache_enabled)
        self._reset_run_state()

    def _reset_run_state(self) -> None:
        self.demo_mode = False
        self.change_set: Optional[ChangeSet] = None
        self.validation: Optional[BatchValidationResult] = None
        self.classified: Optional[ClassifiedChanges] = None
        self.interactive: Optional[InteractiveResolutionResult] = None
        self.phase_results: Dict[str, Dict[str, Any]] = {}

    async def execute(self) -> SyncOutcome:
        """Run every phase and report the outcome.

        Returns:
            SyncOutcome, successful or not. Errors are reported, never raised.
        """
        self._reset_run_state()
        start = time.monotonic()
        self._emit(SyncEvents.SYNC_STARTED, {"features_dir": self.config.features_dir})
        logger.info("Starting feature sync")

        phases = [
            (SyncPhase.CONFIGURATION_VALIDATION, self._validate_configuration),
            (SyncPhase.STAGING_SETUP, self._setup_staging),
            (SyncPhase.CHANGE_DETECTION_AND_VALIDATION, self._detect_and_validate),
            (SyncPhase.CONFLICT_CLASSIFICATION, self._classify_changes),
            (SyncPhase.INTERACTIVE_RESOLUTION, self._resolve_interactively),
            (SyncPhase.CLEANUP, self._cleanup),
        ]

        try:
            for phase, func in phases:
                if phase is SyncPhase.INTERACTIVE_RESOLUTION and not self.classified.complex:
                    logger.debug("No complex conflicts, skipping interactive resolution")
                    continue
                await self._run_phase(phase, func)
        except SyncOrchestrationError as e:
            if e.phase != SyncPhase.CLEANUP.value:
                await self._best_effort_cleanup()

            duration = time.monotonic() - start
            self._emit(SyncEvents.SYNC_FAILED, {"duration": duration, "error": str(e), "phase": e.phase})
            logger.error(f"Sync failed: {e}")
            return self._outcome(
                success=False,
                phase=SyncPhase.ERROR,
                duration=duration,
                failed_phase=e.phase,
                error=str(e),
            )

        duration = time.monotonic() - start
        outcome = self._outcome(success=True, phase=SyncPhase.COMPLETED, duration=duration)
        self._emit(SyncEvents.SYNC_COMPLETED, {"duration": duration, "counts": outcome.counts.to_dict()})
        logger.info(f"Sync completed in {duration:.2f}s")
        return outcome

    async def _run_phase(self, phase: SyncPhase, func: PhaseFunction) -> Dict[str, Any]:
        """Run one phase between phase:started and phase:completed/failed events.

        Raises:
            SyncOrchestrationError: Wrapping whatever the phase raised
        """
        start = time.monotonic()
        self._emit(SyncEvents.PHASE_STARTED, {"phase": phase.value})
        logger.debug(f"Phase {phase.value} started")

        try:
            result = await func()
        except Exception as e:
            duration = time.monotonic() - start
            self._emit(SyncEvents.PHASE_FAILED, {"phase": phase.value, "duration": duration, "error": str(e)})
            raise SyncOrchestrationError(str(e), phase.value, dict(self.phase_results)) from e

        duration = time.monotonic() - start
        self.phase_results[phase.value] = result
        self._emit(
            SyncEvents.PHASE_COMPLETED,
            {"phase": phase.value, "duration": duration, "result": result},
        )
        logger.debug(f"Phase {phase.value} completed in {duration:.2f}s")
        return result

    async def _validate_configuration(self) -> Dict[str, Any]:
        validation = self.config.validate_configuration()

        if not validation.is_valid:
            if self.config.is_production:
                self._emit(
                    SyncEvents.CONFIG_VALIDATION_FAILED,
                    {"is_valid": False, "missing_fields": validation.missing_fields},
                )
                raise SyncConfigurationError.from_missing_fields(validation.missing_fields)

            logger.warning(
                f"Missing configuration ({', '.join(validation.missing_fields)}), "
                f"running in demo mode"
            )
            self.config = self.config.with_demo_credentials()
            self.demo_mode = True

        self._emit(
            SyncEvents.CONFIG_VALIDATED,
            {
                "is_valid": validation.is_valid,
                "missing_fields": validation.missing_fields,
                "demo_mode": self.demo_mode,
            },
        )
        return {"is_valid": validation.is_valid, "demo_mode": self.demo_mode}

    async def _setup_staging(self) -> Dict[str, Any]:
        staging_path = await self.staging.create()
        file_count = await self.staging.fetch_remote_snapshot()
        return {"staging_path": str(staging_path), "file_count": file_count}

    async def _detect_and_validate(self) -> Dict[str, Any]:
        self.change_set = await self.diff_manager.detect_changes()
        self._emit(
            SyncEvents.CHANGES_DETECTED,
            {
                "additions": list(self.change_set.additions),
                "modifications": list(self.change_set.modifications),
                "deletions": list(self.change_set.deletions),
                "total_changes": self.change_set.total_changes,
            },
        )

        staged = [str(self.staging.staged_file(path)) for path in await self.staging.list_remote()]
        self.validation = await self.feature_processor.validate_feature_files(
            staged, concurrency=self.config.validation_concurrency
        )
        if self.validation.invalid_files:
            logger.warning(f"Found {self.validation.invalid_files} invalid remote feature file(s)")

        return {
            "total_changes": self.change_set.total_changes,
            "valid_files": self.validation.valid_files,
            "invalid_files": self.validation.invalid_files,
        }

    async def _classify_changes(self) -> Dict[str, Any]:
        self.classified = await self.diff_manager.classify_changes(self.change_set)
        self._emit(SyncEvents.CHANGES_CLASSIFIED, self.classified.to_event_data())
        return {
            "simple": len(self.classified.simple),
            "auto_resolved": len(self.classified.auto_resolved),
            "complex": len(self.classified.complex),
            "failed": len(self.classified.failed),
        }

    async def _resolve_interactively(self) -> Dict[str, Any]:
        self.interactive = await self.resolver.resolve_interactively(
            self.classified.complex_filenames, self.interaction
        )
        return {
            "resolved": len(self.interactive.resolved),
            "skipped": len(self.interactive.skipped),
            "failed": len(self.interactive.failed),
        }

    async def _cleanup(self) -> Dict[str, Any]:
        errors = await self._release_resources()
        if errors:
            raise errors[0]
        return {"cleaned": True}

    async def _best_effort_cleanup(self) -> None:
        """Release run resources after a failure, logging rather than raising."""
        await self._release_resources()

    async def _release_resources(self) -> List[Exception]:
        """Attempt every cleanup step, collecting failures instead of stopping.

        Returns:
            Errors in step order (empty when everything was released)
        """
        errors: List[Exception] = []

        try:
            self.cache_manager.clear_all()
        except Exception as e:
            logger.error(f"Cleanup failed to clear caches: {e}")
            errors.append(e)

        try:
            await self.staging.clean()
        except Exception as e:
            logger.error(f"Cleanup failed to remove staging area: {e}")
            errors.append(e)

        try:
            self.interaction.close()
        except Exception as e:
            logger.error(f"Cleanup failed to close interactive session: {e}")
            errors.append(e)

        return errors

    def _outcome(self, success: bool, phase: SyncPhase, duration: float, **kwargs: Any) -> SyncOutcome:
        counts = SyncCounts()
        if self.classified is not None:
            counts.simple = len(self.classified.simple)
            counts.auto_resolved = len(self.classified.auto_resolved)
            counts.complex = len(self.classified.complex)
            counts.failed = len(self.classified.failed)

        deferred = []
        if self.interactive is not None:
            counts.resolved = len(self.interactive.resolved)
            counts.failed += len(self.interactive.failed)
            deferred = list(self.interactive.skipped)
            counts.deferred = len(deferred)

        return SyncOutcome(
            success=success,
            phase=phase,
            counts=counts,
            duration=duration,
            demo_mode=self.demo_mode,
            change_set=self.change_set,
            validation=self.validation,
            interactive=self.interactive,
            deferred_files=deferred,
            **kwargs,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Cache, event and interaction statistics for the last run."""
        stats: Dict[str, Any] = {
            "cache": self.cache_manager.get_stats(),
            "events": [event.name for event in self.events.get_history(limit=50)],
            "phases": dict(self.phase_results),
        }
        interaction_stats = getattr(self.interaction, "get_stats", None)
        if callable(interaction_stats):
            stats["user_interaction"] = interaction_stats()
        return stats

    def _emit(self, event_name: str, data: Dict[str, Any]) -> None:
        self.events.emit(event_name, create_event_data(event_name, data))


def build_orchestrator(
    config: SyncConfiguration,
    interactive: bool = True,
    events: Optional[EventBus] = None,
    console: Optional[Console] = None,
) -> SyncOrchestrator:
    """Wire the production components for one run.

    Args:
        config: Run configuration
        interactive: Prompt for complex conflicts; otherwise defer them
        events: Event bus to share with observers (a new one if None)
        console: Rich console for prompts

    Returns:
        SyncOrchestrator ready to execute()
    """
    events = events or EventBus(config.history_size)
    cache_manager = CacheManager(events, enabled=config.cache_enabled)
    filesystem = LocalFileSystem()

    if config.remote_dir:
        transport = DirectoryTransport(config.remote_dir)
    else:
        transport = DemoTransport(filesystem=filesystem)

    staging = StagingManager(
        Path(config.staging_dir),
        Path(config.features_dir),
        transport,
        filesystem=filesystem,
        events=events,
        wipe_on_fetch_failure=config.wipe_on_fetch_failure,
    )
    merge_runner = GitMergeRunner(cache_manager=cache_manager)
    resolver = ConflictResolver(
        staging,
        merge_runner,
        filesystem=filesystem,
        events=events,
        cache_manager=cache_manager,
        strategies=config.merge_strategies,
    )
    validator = GherkinValidator(cache_manager=cache_manager, events=events, filesystem=filesystem)

    if interactive:
        interaction: UserInteraction = ConsoleUserInteraction(console=console, events=events)
    else:
        interaction = DeferringUserInteraction(events=events)

    return SyncOrchestrator(
        config=config,
        staging=staging,
        diff_manager=DiffManager(staging, resolver, merge_runner, filesystem=filesystem),
        resolver=resolver,
        feature_processor=FeatureProcessor(validator, events=events),
        interaction=interaction,
        cache_manager=cache_manager,
        events=events,
    )
