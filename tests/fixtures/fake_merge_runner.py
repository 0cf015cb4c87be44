"""In-memory MergeRunner double used in place of the git executable."""

import difflib
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from src.conflicts.merge_runner import normalize_for_strategy
from src.conflicts.models import ProcessResult
from src.core.errors import ExternalProcessError


class FakeMergeRunner:
    """Mimics GitMergeRunner with an empty ancestor.

    A pair merges cleanly when both texts are equal after the strategy's
    normalization, which is what git merge-file reports for identical sides.
    Any other pair produces a conflict block. Strategies listed in
    ``failing`` raise ExternalProcessError the way a crashing git would.
    """

    def __init__(self, failing: Sequence[str] = (), diff_error: bool = False):
        self.failing = set(failing)
        self.diff_error = diff_error
        self.merge_calls: List[Tuple[str, str, str, str]] = []
        self.diff_calls: List[Tuple[str, str]] = []

    async def merge(self, base: str, theirs: str, ours: str, strategy: str) -> ProcessResult:
        self.merge_calls.append((base, theirs, ours, strategy))
        if strategy in self.failing:
            raise ExternalProcessError(["git", "merge-file", "-p"], 255, "fatal: cannot read scratch copy")

        base_text = Path(base).read_text(encoding="utf-8")
        theirs_text = Path(theirs).read_text(encoding="utf-8")
        if normalize_for_strategy(base_text, strategy) == normalize_for_strategy(theirs_text, strategy):
            return ProcessResult(stdout=base_text)

        merged = f"<<<<<<< {base}\n{base_text}=======\n{theirs_text}>>>>>>> {theirs}\n"
        return ProcessResult(stdout=merged, exit_code=1)

    async def diff(self, file_a: str, file_b: str, options: Optional[Sequence[str]] = None) -> str:
        self.diff_calls.append((file_a, file_b))
        if self.diff_error:
            raise ExternalProcessError(["git", "diff", "--no-index"], 128, "fatal: bad path")

        lines = difflib.unified_diff(
            Path(file_a).read_text(encoding="utf-8").splitlines(keepends=True),
            Path(file_b).read_text(encoding="utf-8").splitlines(keepends=True),
            fromfile=file_a,
            tofile=file_b,
        )
        return "".join(lines)
