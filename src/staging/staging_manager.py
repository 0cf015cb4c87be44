"""Lifecycle of the per-run staging area.

The staging area is an ephemeral local mirror of the remote feature set.
It is recreated empty at the start of every run, filled by a RemoteTransport,
compared against the local features directory, and removed at the end.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from src.core.errors import FileSystemError, StagingAreaError
from src.core.events import EventBus, SyncEvents
from src.core.filesystem import FileSystem, LocalFileSystem
from src.staging.transport import RemoteTransport

logger = logging.getLogger(__name__)


class StagingManager:
    """Creates, fills, lists and removes the staging directory.

    Attributes:
        staging_path: Staging directory (e.g. featureSyncStage/)
        features_path: Local features directory (e.g. features/)
        transport: Source of the remote snapshot
        wipe_on_fetch_failure: Remove a partial download when fetching fails

    Example:
        >>> manager = StagingManager("featureSyncStage", "features", DemoTransport())
        >>> asyncio.run(manager.create())
        >>> asyncio.run(manager.fetch_remote_snapshot())
        >>> asyncio.run(manager.list_remote())
        ['data-integration/data-mapping.feature', 'sample-feature.feature']
    """

    def __init__(
        self,
        staging_path: Union[str, Path],
        features_path: Union[str, Path],
        transport: RemoteTransport,
        filesystem: Optional[FileSystem] = None,
        events: Optional[EventBus] = None,
        wipe_on_fetch_failure: bool = False,
    ):
        self.staging_path = Path(staging_path)
        self.features_path = Path(features_path)
        self.transport = transport
        self.filesystem = filesystem or LocalFileSystem()
        self.events = events
        self.wipe_on_fetch_failure = wipe_on_fetch_failure

    def local_file(self, relative_path: str) -> Path:
        return self.features_path / relative_path

    def staged_file(self, relative_path: str) -> Path:
        return self.staging_path / relative_path

    async def create(self) -> Path:
        """Remove any existing staging directory and recreate it empty.

        Raises:
            StagingAreaError: If the directory cannot be removed or created
        """
        logger.info(f"Creating staging area at {self.staging_path}")
        try:
            await self.filesystem.remove_tree(self.staging_path)
            await self.filesystem.make_dirs(self.staging_path)
        except FileSystemError as e:
            self._emit(SyncEvents.STAGING_ERROR, {"operation": "create", "error": str(e)})
            raise StagingAreaError(str(e), "create", str(self.staging_path)) from e

        self._emit(SyncEvents.STAGING_CREATED, {"staging_path": str(self.staging_path)})
        return self.staging_path

    async def fetch_remote_snapshot(self) -> int:
        """Ask the transport to populate the staging directory.

        On failure the partial download is left in place for inspection unless
        wipe_on_fetch_failure is set.

        Returns:
            Number of files fetched

        Raises:
            StagingAreaError: If the transport fails
        """
        self._emit(SyncEvents.DOWNLOAD_STARTED, {"staging_path": str(self.staging_path)})
        try:
            count = await self.transport.fetch_snapshot(self.staging_path)
        except Exception as e:
            logger.error(f"Failed to fetch remote snapshot: {e}")
            self._emit(SyncEvents.DOWNLOAD_FAILED, {"error": str(e)})
            if self.wipe_on_fetch_failure:
                await self._wipe_partial_download()
            raise StagingAreaError(str(e), "fetch", str(self.staging_path)) from e

        self._emit(
            SyncEvents.DOWNLOAD_COMPLETED,
            {"staging_path": str(self.staging_path), "file_count": count or 0},
        )
        logger.info(f"Fetched {count} remote feature file(s)")
        return count or 0

    async def _wipe_partial_download(self) -> None:
        try:
            await self.filesystem.remove_tree(self.staging_path)
            await self.filesystem.make_dirs(self.staging_path)
        except FileSystemError as e:
            logger.warning(f"Could not wipe partial download: {e}")

    async def list_local(self) -> List[str]:
        """Sorted feature paths relative to the local features directory."""
        return await self._list(self.features_path)

    async def list_remote(self) -> List[str]:
        """Sorted feature paths relative to the staging directory."""
        return await self._list(self.staging_path)

    async def _list(self, root: Path) -> List[str]:
        try:
            return await self.filesystem.list_files(root)
        except FileSystemError as e:
            raise StagingAreaError(str(e), "scan", str(root)) from e

    async def clean(self) -> None:
        """Remove the staging directory. An already absent directory is fine.

        Raises:
            StagingAreaError: If the directory exists but cannot be removed
        """
        try:
            await self.filesystem.remove_tree(self.staging_path)
        except FileSystemError as e:
            self._emit(SyncEvents.STAGING_ERROR, {"operation": "clean", "error": str(e)})
            raise StagingAreaError(str(e), "clean", str(self.staging_path)) from e

        self._emit(SyncEvents.STAGING_CLEANED, {"staging_path": str(self.staging_path)})
        logger.info("Staging area cleaned")

    def _emit(self, event_name: str, data) -> None:
        if self.events is not None:
            self.events.emit(event_name, data)
