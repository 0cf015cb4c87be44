"""Change detection and classification between local and staged documents."""

import logging
from typing import Optional

from src.conflicts.conflict_resolver import ConflictResolver
from src.conflicts.merge_runner import MergeRunner
from src.core.errors import FileSystemError
from src.core.filesystem import FileSystem, LocalFileSystem
from src.staging.staging_manager import StagingManager
from src.sync.models import ChangeSet, ClassifiedChanges

logger = logging.getLogger(__name__)


class DiffManager:
    """Computes the ChangeSet and routes modifications to the resolver.

    Example:
        >>> diff_manager = DiffManager(staging, resolver, GitMergeRunner())
        >>> changes = asyncio.run(diff_manager.detect_changes())
        >>> classified = asyncio.run(diff_manager.classify_changes(changes))
    """

    def __init__(
        self,
        staging: StagingManager,
        resolver: ConflictResolver,
        merge_runner: MergeRunner,
        filesystem: Optional[FileSystem] = None,
    ):
        self.staging = staging
        self.resolver = resolver
        self.merge_runner = merge_runner
        self.filesystem = filesystem or LocalFileSystem()

    async def detect_changes(self) -> ChangeSet:
        """Compare local and staged document sets.

        Returns:
            ChangeSet with sorted, mutually exclusive path lists
        """
        local = set(await self.staging.list_local())
        remote = set(await self.staging.list_remote())

        change_set = ChangeSet(
            additions=sorted(remote - local),
            deletions=sorted(local - remote),
        )

        for filename in sorted(local & remote):
            if await self._differs(filename):
                change_set.modifications.append(filename)

        logger.info(
            f"Detected changes: {len(change_set.additions)} addition(s), "
            f"{len(change_set.modifications)} modification(s), "
            f"{len(change_set.deletions)} deletion(s)"
        )
        return change_set

    async def _differs(self, filename: str) -> bool:
        try:
            local_text = await self.filesystem.read_text(self.staging.local_file(filename))
            remote_text = await self.filesystem.read_text(self.staging.staged_file(filename))
        except FileSystemError as e:
            # Treat as modified so resolution reports the failure
            logger.warning(f"Could not compare {filename}, treating as modified: {e}")
            return True
        return local_text.strip() != remote_text.strip()

    async def classify_changes(self, change_set: ChangeSet) -> ClassifiedChanges:
        """Split a ChangeSet into simple, auto-resolved, complex and failed."""
        classified = ClassifiedChanges(simple=[*change_set.additions, *change_set.deletions])

        if change_set.modifications:
            batch = await self.resolver.resolve_conflicts(change_set.modifications)
            classified.auto_resolved = batch.auto_resolved
            classified.complex = batch.requires_manual
            classified.failed = batch.failed

        return classified

    async def show_diff(self, filename: str) -> str:
        """Unified diff from the staged (remote) copy to the local copy."""
        return await self.merge_runner.diff(
            str(self.staging.staged_file(filename)),
            str(self.staging.local_file(filename)),
        )
