"""Remote transports that populate the staging area with a snapshot.

The concrete remote service is abstracted behind RemoteTransport. Two
implementations ship with the tool:
- DirectoryTransport copies a local mirror of the remote feature set
- DemoTransport writes a small fixed set of sample features
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from src.core.filesystem import FEATURE_EXTENSION, FileSystem, LocalFileSystem

logger = logging.getLogger(__name__)

DEMO_FEATURES: Dict[str, str] = {
    "sample-feature.feature": """Feature: Sample Feature from the remote
  As a user
  I want to exercise the sync system
  So that I can verify it works

  Scenario: Sample scenario
    Given I have a sample scenario
    When I run the sync
    Then it should work correctly
""",
    "data-integration/data-mapping.feature": """Feature: Data Mapping (remote version)
  As a developer
  I want to map data from the remote
  So that I can sync with the repository

  Scenario: Map data correctly
    Given I have remote data
    When I map it to the repository format
    Then it should be correctly formatted
""",
}


class RemoteTransport(Protocol):
    """Fetches the remote feature set into a local directory."""

    async def fetch_snapshot(self, dest: Path) -> int:
        """Populate dest with the remote snapshot.

        Returns:
            Number of feature files written
        """
        ...


class DirectoryTransport:
    """Copies feature files from a mirror directory into the staging area.

    Attributes:
        source_dir: Directory holding the remote copy of the features
    """

    def __init__(self, source_dir: Union[str, Path]):
        self.source_dir = Path(source_dir)

    async def fetch_snapshot(self, dest: Path) -> int:
        """Copy every feature file under source_dir into dest.

        Raises:
            FileNotFoundError: If source_dir does not exist
            OSError: If copying fails
        """
        return await asyncio.to_thread(self._copy, Path(dest))

    def _copy(self, dest: Path) -> int:
        if not self.source_dir.is_dir():
            raise FileNotFoundError(f"Remote mirror directory not found: {self.source_dir}")

        count = 0
        for source in sorted(self.source_dir.rglob(f"*{FEATURE_EXTENSION}")):
            if not source.is_file():
                continue
            target = dest / source.relative_to(self.source_dir)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
            count += 1

        logger.debug(f"Copied {count} feature file(s) from {self.source_dir} to {dest}")
        return count


class DemoTransport:
    """Writes sample features, used when no real remote is configured."""

    def __init__(self, features: Optional[Dict[str, str]] = None, filesystem: Optional[FileSystem] = None):
        self.features = DEMO_FEATURES if features is None else features
        self.filesystem = filesystem or LocalFileSystem()

    async def fetch_snapshot(self, dest: Path) -> int:
        for relative_path, content in self.features.items():
            await self.filesystem.write_text(Path(dest) / relative_path, content)
        logger.info(f"Wrote {len(self.features)} demo feature(s) to {dest}")
        return len(self.features)
