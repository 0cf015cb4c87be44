"""Merge/diff process collaborator backed by git.

GitMergeRunner shells out to ``git merge-file`` and ``git diff --no-index``
with asyncio.create_subprocess_exec. Both commands report "differs" or
"conflicts" through a non-zero exit status while still printing usable
output, so only a non-zero exit with empty stdout is treated as an error.

``git merge-file`` has no whitespace options, so each merge strategy is
applied as a normalization of scratch copies before a plain merge runs.
"""

import asyncio
import logging
import re
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from src.cache.cache_manager import CacheManager
from src.conflicts.models import MergeStrategy, ProcessResult
from src.core.errors import ExternalProcessError

logger = logging.getLogger(__name__)

_SPACE_RUN = re.compile(r'[ \t\f\v]+')
_ANY_SPACE = re.compile(r'\s+')


def _ignore_space_change(text: str) -> str:
    return "\n".join(_SPACE_RUN.sub(" ", line).rstrip() for line in text.splitlines())


def _ignore_all_space(text: str) -> str:
    return "\n".join(_ANY_SPACE.sub("", line) for line in text.splitlines())


def _ignore_blank_lines(text: str) -> str:
    return "\n".join(line for line in text.splitlines() if line.strip())


NORMALIZERS: Dict[str, Callable[[str], str]] = {
    MergeStrategy.IGNORE_SPACE_CHANGE.value: _ignore_space_change,
    MergeStrategy.IGNORE_ALL_SPACE.value: _ignore_all_space,
    MergeStrategy.IGNORE_BLANK_LINES.value: _ignore_blank_lines,
}


def normalize_for_strategy(text: str, strategy: str) -> str:
    """Rewrite text so that differences the strategy ignores disappear.

    Raises:
        ValueError: If the strategy is unknown
    """
    try:
        normalizer = NORMALIZERS[strategy]
    except KeyError:
        raise ValueError(f"Unknown merge strategy: {strategy}") from None
    normalized = normalizer(text)
    return normalized + "\n" if normalized else normalized


class MergeRunner(Protocol):
    """Runs three-way merges and unified diffs on files."""

    async def merge(self, base: str, theirs: str, ours: str, strategy: str) -> ProcessResult:
        """Merge ``theirs`` onto ``base``, with ``ours`` in the ancestor slot."""
        ...

    async def diff(self, file_a: str, file_b: str, options: Optional[Sequence[str]] = None) -> str:
        """Return unified diff text (empty when the files are identical)."""
        ...


class GitMergeRunner:
    """MergeRunner implementation using the git executable.

    Attributes:
        git: Path or name of the git executable
        cache_manager: Optional cache for merge and diff results

    Example:
        >>> runner = GitMergeRunner()
        >>> result = asyncio.run(runner.merge("stage/a.feature", "features/a.feature",
        ...                                   "/tmp/empty", "ignore-space-change"))
        >>> "<<<<<<<" in result.stdout
        False
    """

    def __init__(self, git: str = "git", cache_manager: Optional[CacheManager] = None):
        self.git = git
        self.cache_manager = cache_manager

    async def merge(self, base: str, theirs: str, ours: str, strategy: str) -> ProcessResult:
        """Merge two documents under a whitespace strategy.

        The three files are normalized for the strategy into a scratch
        directory and merged there with
        ``git merge-file -p <base> <ours> <theirs>``. git calls these slots
        current, base and other.

        Args:
            base: Remote copy, the synthetic base the result is built on
            theirs: Local copy merged onto ``base``
            ours: File placed in git's common-ancestor slot (an empty
                scratch file when no history is tracked)
            strategy: MergeStrategy value

        Returns:
            ProcessResult. A clean merge carries the original ``base`` text;
            a positive exit code means the normalized output has conflicts.

        Raises:
            ExternalProcessError: If git fails without producing output
            ValueError: If the strategy is unknown
        """
        if self.cache_manager is not None:
            cached = self.cache_manager.merge_cache.get_merge(base, theirs, strategy)
            if cached is not None:
                return cached

        base_text, ancestor_text, theirs_text = [
            await asyncio.to_thread(Path(path).read_text, encoding="utf-8") for path in (base, ours, theirs)
        ]

        scratch_dir = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix="feature-sync-merge-"))
        try:
            scratch = []
            for slot, text in (("current", base_text), ("ancestor", ancestor_text), ("other", theirs_text)):
                path = scratch_dir / f"{slot}.feature"
                await asyncio.to_thread(path.write_text, normalize_for_strategy(text, strategy), encoding="utf-8")
                scratch.append(str(path))

            command = [self.git, "merge-file", "-p", *scratch]
            result = await self._run(command)
        finally:
            await asyncio.to_thread(shutil.rmtree, scratch_dir, ignore_errors=True)

        if result.exit_code == 0:
            logger.debug(f"{base} and {theirs} merge cleanly under {strategy}")
            result = ProcessResult(stdout=base_text, stderr=result.stderr, exit_code=0)

        if self.cache_manager is not None:
            self.cache_manager.merge_cache.cache_merge(base, theirs, strategy, result)
        return result

    async def diff(self, file_a: str, file_b: str, options: Optional[Sequence[str]] = None) -> str:
        """Run ``git diff --no-index --no-color [options] <a> <b>``.

        Raises:
            ExternalProcessError: If git fails (exit status other than 0 or 1)
        """
        options = list(options or [])
        if self.cache_manager is not None:
            cached = self.cache_manager.merge_cache.get_diff(file_a, file_b, options)
            if cached is not None:
                return cached

        command = [self.git, "diff", "--no-index", "--no-color", *options, file_a, file_b]
        result = await self._run(command, ok_codes=(0, 1))

        if self.cache_manager is not None:
            self.cache_manager.merge_cache.cache_diff(file_a, file_b, options, result.stdout)
        return result.stdout

    async def _run(self, command: List[str], ok_codes: Optional[Sequence[int]] = None) -> ProcessResult:
        logger.debug(f"Running: {' '.join(command)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except FileNotFoundError as e:
            raise ExternalProcessError(command, None, "git command not found - ensure git is installed") from e
        except OSError as e:
            raise ExternalProcessError(command, None, str(e)) from e

        result = ProcessResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=process.returncode,
        )

        if result.exit_code == 0:
            return result
        if ok_codes is not None:
            if result.exit_code in ok_codes:
                return result
            raise ExternalProcessError(command, result.exit_code, result.stderr)
        if not result.stdout:
            raise ExternalProcessError(command, result.exit_code, result.stderr)

        logger.debug(f"Command exited {result.exit_code} with usable output")
        return result
