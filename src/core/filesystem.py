"""Filesystem collaborator used by staging, diffing and conflict resolution.

All blocking I/O is pushed onto worker threads with asyncio.to_thread so the
event loop is never blocked. Low-level OSError failures are re-raised as
FileSystemError with the operation and path that failed.
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import List, Protocol, Union

from src.core.errors import FileSystemError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

FEATURE_EXTENSION = ".feature"


class FileSystem(Protocol):
    """Asynchronous file operations needed by the sync engine."""

    async def read_text(self, path: PathLike) -> str: ...

    async def write_text(self, path: PathLike, content: str) -> None: ...

    async def exists(self, path: PathLike) -> bool: ...

    async def make_dirs(self, path: PathLike) -> None: ...

    async def remove_tree(self, path: PathLike) -> None: ...

    async def list_files(self, root: PathLike, extension: str = FEATURE_EXTENSION) -> List[str]: ...


class LocalFileSystem:
    """FileSystem implementation backed by the local disk.

    Example:
        >>> fs = LocalFileSystem()
        >>> content = asyncio.run(fs.read_text("features/login.feature"))
    """

    async def read_text(self, path: PathLike) -> str:
        """Read a UTF-8 text file.

        Raises:
            FileSystemError: If the file cannot be read
        """
        try:
            return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        except OSError as e:
            raise FileSystemError("read", str(path), str(e)) from e

    async def write_text(self, path: PathLike, content: str) -> None:
        """Write a UTF-8 text file, creating parent directories as needed.

        Raises:
            FileSystemError: If the file cannot be written
        """
        target = Path(path)
        try:
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_text, content, encoding="utf-8")
        except OSError as e:
            raise FileSystemError("write", str(path), str(e)) from e
        logger.debug(f"Wrote {len(content)} characters to {path}")

    async def exists(self, path: PathLike) -> bool:
        return await asyncio.to_thread(Path(path).exists)

    async def make_dirs(self, path: PathLike) -> None:
        try:
            await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError("mkdir", str(path), str(e)) from e

    async def remove_tree(self, path: PathLike) -> None:
        """Recursively delete a directory. A missing directory is not an error.

        Raises:
            FileSystemError: If the directory exists but cannot be removed
        """
        try:
            await asyncio.to_thread(shutil.rmtree, path)
        except FileNotFoundError:
            logger.debug(f"Directory already absent: {path}")
        except OSError as e:
            raise FileSystemError("remove", str(path), str(e)) from e

    async def list_files(self, root: PathLike, extension: str = FEATURE_EXTENSION) -> List[str]:
        """List files under root recursively.

        Args:
            root: Directory to scan
            extension: File suffix to keep (e.g. ".feature")

        Returns:
            Sorted POSIX paths relative to root. Empty if root does not exist.

        Raises:
            FileSystemError: If the directory exists but cannot be scanned
        """
        return await asyncio.to_thread(self._list_files_sync, Path(root), extension)

    def _list_files_sync(self, root: Path, extension: str) -> List[str]:
        if not root.is_dir():
            return []
        try:
            return sorted(
                path.relative_to(root).as_posix()
                for path in root.rglob(f"*{extension}")
                if path.is_file()
            )
        except OSError as e:
            raise FileSystemError("scan", str(root), str(e)) from e
