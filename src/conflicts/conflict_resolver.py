"""Conflict resolution for documents changed on both sides.

Resolution runs in a fixed order for every modified document:

1. Automatic merge attempts with increasingly whitespace-tolerant strategies.
   No common ancestor is tracked, so the merge treats the remote copy as the
   base text and an empty scratch file as the ancestor. Identical content on
   both sides (under the strategy's whitespace rules) merges cleanly. Any
   real difference produces conflict markers.
2. Content analysis: whitespace-only and comments-only differences are
   auto-resolved to the remote text, anything else needs a human.
3. Interactive resolution for the remaining documents.
"""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from src.cache.cache_manager import CacheManager
from src.conflicts.content_analyzer import classify_content, has_conflict_markers
from src.conflicts.merge_runner import MergeRunner
from src.conflicts.models import (
    DEFAULT_MERGE_STRATEGIES,
    ConflictOutcome,
    InteractiveResolutionResult,
    MergeAttempt,
    ResolutionBatch,
    ResolutionChoice,
    ResolutionFailure,
    ResolvedDocument,
)
from src.conflicts.user_interaction import UserInteraction
from src.core.errors import (
    ConflictResolutionError,
    ExternalProcessError,
    FileSystemError,
    UserInteractionError,
)
from src.core.events import EventBus, SyncEvents
from src.core.filesystem import FileSystem, LocalFileSystem
from src.staging.staging_manager import StagingManager

logger = logging.getLogger(__name__)


def build_conflict_block(local_text: str, remote_text: str, filename: str) -> str:
    """Build a standard three-part conflict block for manual editing."""
    return "\n".join([
        f"<<<<<<< local ({filename})",
        local_text.rstrip("\n"),
        "=======",
        remote_text.rstrip("\n"),
        f">>>>>>> remote ({filename})",
        "",
    ])


class ConflictResolver:
    """Classifies and resolves documents that differ between local and remote.

    Attributes:
        staging: Staging manager used to locate local and staged copies
        merge_runner: Merge/diff process collaborator
        strategies: Merge strategies tried in order

    Example:
        >>> resolver = ConflictResolver(staging, GitMergeRunner())
        >>> batch = asyncio.run(resolver.resolve_conflicts(["login.feature"]))
        >>> [outcome.filename for outcome in batch.requires_manual]
        ['login.feature']
    """

    def __init__(
        self,
        staging: StagingManager,
        merge_runner: MergeRunner,
        filesystem: Optional[FileSystem] = None,
        events: Optional[EventBus] = None,
        cache_manager: Optional[CacheManager] = None,
        strategies: Optional[Sequence[str]] = None,
    ):
        self.staging = staging
        self.merge_runner = merge_runner
        self.filesystem = filesystem or LocalFileSystem()
        self.events = events
        self.cache_manager = cache_manager
        self.strategies = list(strategies) if strategies else list(DEFAULT_MERGE_STRATEGIES)

    async def resolve_conflicts(self, modifications: Sequence[str]) -> ResolutionBatch:
        """Resolve every modified document, isolating per-document failures.

        Args:
            modifications: Relative paths present on both sides with differing text

        Returns:
            ResolutionBatch with one entry per document
        """
        batch = ResolutionBatch()
        self._emit(
            SyncEvents.CONFLICTS_DETECTED,
            {"type": "resolution-started", "conflict_count": len(modifications)},
        )

        for filename in modifications:
            try:
                outcome = await self.resolve_document(filename)
            except Exception as e:
                logger.warning(f"Failed to resolve {filename}: {e}")
                batch.failed.append(ResolutionFailure(filename=filename, error=str(e)))
                continue

            if outcome.auto_resolved:
                batch.auto_resolved.append(outcome)
            else:
                batch.requires_manual.append(outcome)

        self._emit(
            SyncEvents.CONFLICTS_RESOLVED,
            {
                "auto_resolved": len(batch.auto_resolved),
                "requires_manual": len(batch.requires_manual),
                "failed": len(batch.failed),
            },
        )
        logger.info(
            f"Conflict resolution: {len(batch.auto_resolved)} auto-resolved, "
            f"{len(batch.requires_manual)} manual, {len(batch.failed)} failed"
        )
        return batch

    async def resolve_document(self, filename: str) -> ConflictOutcome:
        """Try automatic merges, then content analysis, for one document.

        Raises:
            FileSystemError: If either copy cannot be read
        """
        remote_path = self.staging.staged_file(filename)
        local_path = self.staging.local_file(filename)
        remote_text = await self.filesystem.read_text(remote_path)
        local_text = await self.filesystem.read_text(local_path)

        attempts = await self._attempt_merges(remote_path, local_path)
        if attempts and attempts[-1].success:
            strategy = attempts[-1].strategy
            logger.debug(f"{filename}: merged cleanly with {strategy}")
            self._emit(SyncEvents.CONFLICTS_AUTO_RESOLVED, {"filename": filename, "strategy": strategy})
            return ConflictOutcome(
                filename=filename,
                auto_resolved=True,
                strategy=strategy,
                content=remote_text,
                attempts=attempts,
            )

        conflict_type = classify_content(remote_text, local_text)
        if conflict_type.auto_resolvable:
            logger.debug(f"{filename}: auto-resolved as {conflict_type.value}")
            self._emit(
                SyncEvents.CONFLICTS_AUTO_RESOLVED,
                {"filename": filename, "strategy": conflict_type.value},
            )
            return ConflictOutcome(
                filename=filename,
                auto_resolved=True,
                strategy=conflict_type.value,
                content=remote_text,
                conflict_type=conflict_type,
                attempts=attempts,
            )

        self._emit(
            SyncEvents.CONFLICTS_REQUIRE_MANUAL,
            {"filename": filename, "conflict_type": conflict_type.value},
        )
        return ConflictOutcome(
            filename=filename,
            auto_resolved=False,
            conflict_type=conflict_type,
            attempts=attempts,
        )

    async def _attempt_merges(self, remote_path: Path, local_path: Path) -> List[MergeAttempt]:
        """Run strategies in order, stopping at the first clean merge."""
        attempts: List[MergeAttempt] = []
        scratch_dir = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix="feature-sync-merge-"))
        ancestor = scratch_dir / "ancestor.feature"

        try:
            for strategy in self.strategies:
                await self.filesystem.write_text(ancestor, "")
                try:
                    result = await self.merge_runner.merge(
                        str(remote_path), str(local_path), str(ancestor), strategy
                    )
                except ExternalProcessError as e:
                    logger.debug(f"Merge with {strategy} could not run: {e}")
                    attempts.append(MergeAttempt(strategy=strategy, success=False, error=str(e)))
                    continue

                success = not has_conflict_markers(result.stdout)
                attempts.append(MergeAttempt(strategy=strategy, success=success, content=result.stdout))
                if success:
                    break
        finally:
            await asyncio.to_thread(shutil.rmtree, scratch_dir, ignore_errors=True)

        return attempts

    async def resolve_interactively(
        self,
        filenames: Sequence[str],
        interaction: UserInteraction,
    ) -> InteractiveResolutionResult:
        """Ask the interactive collaborator about each document and apply the choice.

        show-diff redisplays the diff and asks again; every other choice ends
        the loop for that document. keep-remote asks for confirmation before
        the local file is overwritten, and a declined confirmation defers the
        document.

        Raises:
            UserInteractionError: If the interactive session is aborted
        """
        result = InteractiveResolutionResult()

        for filename in filenames:
            try:
                diff_text = await self._diff_for(filename)
                choice = await interaction.prompt_for_resolution(filename, diff_text)
                while choice is ResolutionChoice.SHOW_DIFF:
                    await interaction.show_diff(filename, diff_text)
                    choice = await interaction.prompt_for_resolution(filename, diff_text)

                if choice is ResolutionChoice.KEEP_REMOTE and not await interaction.confirm_destructive_operation(
                    "Overwrite local file with the remote version", str(self.staging.local_file(filename))
                ):
                    logger.info(f"Overwrite of {filename} declined, deferring")
                    choice = ResolutionChoice.SKIP

                await self.apply_choice(filename, choice)
            except UserInteractionError:
                raise
            except Exception as e:
                logger.warning(f"Failed to apply resolution for {filename}: {e}")
                result.failed.append(ResolutionFailure(filename=filename, error=str(e)))
                continue

            if choice is ResolutionChoice.SKIP:
                result.skipped.append(filename)
            else:
                result.resolved.append(ResolvedDocument(filename=filename, choice=choice))

        self._emit(
            SyncEvents.CONFLICTS_RESOLVED,
            {
                "type": "interactive",
                "resolved": len(result.resolved),
                "skipped": len(result.skipped),
                "failed": len(result.failed),
            },
        )
        return result

    async def apply_choice(self, filename: str, choice: ResolutionChoice) -> None:
        """Write the outcome of a resolution choice to disk.

        keep-remote overwrites the local file and skip leaves both untouched.
        keep-local and inject-markers write only to the staged copy. The
        staging area is removed during cleanup, so after a full run those two
        choices leave the local file as it was and the remote side unchanged.
        Publishing the kept or marked-up text is a separate step outside this
        engine.
        """
        remote_path = self.staging.staged_file(filename)
        local_path = self.staging.local_file(filename)

        if choice is ResolutionChoice.KEEP_REMOTE:
            remote_text = await self.filesystem.read_text(remote_path)
            await self._write(local_path, remote_text)
        elif choice is ResolutionChoice.KEEP_LOCAL:
            local_text = await self.filesystem.read_text(local_path)
            await self._write(remote_path, local_text)
        elif choice is ResolutionChoice.INJECT_MARKERS:
            remote_text = await self.filesystem.read_text(remote_path)
            local_text = await self.filesystem.read_text(local_path)
            await self._write(remote_path, build_conflict_block(local_text, remote_text, filename))
            logger.info(f"Conflict markers for {filename} were written to the staged copy only")
        elif choice is ResolutionChoice.SKIP:
            logger.info(f"Deferred {filename} to a future run")
            return
        else:
            raise ConflictResolutionError(filename, f"Cannot apply resolution choice {choice.value}")

        logger.info(f"Resolved {filename} with {choice.value}")

    async def has_conflict_markers(self, path) -> bool:
        """Check a file for unresolved conflict markers. Unreadable files have none."""
        try:
            content = await self.filesystem.read_text(path)
        except FileSystemError as e:
            logger.debug(f"Could not read {path} for marker check: {e}")
            return False
        return has_conflict_markers(content)

    async def _diff_for(self, filename: str) -> str:
        try:
            return await self.merge_runner.diff(
                str(self.staging.staged_file(filename)),
                str(self.staging.local_file(filename)),
            )
        except ExternalProcessError as e:
            logger.warning(f"Could not generate diff for {filename}: {e}")
            return f"(diff unavailable: {e})"

    async def _write(self, path: Path, content: str) -> None:
        await self.filesystem.write_text(path, content)
        if self.cache_manager is not None:
            self.cache_manager.invalidate_file(str(path))

    def _emit(self, event_name: str, data) -> None:
        if self.events is not None:
            self.events.emit(event_name, data)
