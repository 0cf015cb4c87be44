"""Unit tests for conflicts.merge_runner module."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.cache.cache_manager import CacheManager
from src.conflicts.merge_runner import GitMergeRunner, normalize_for_strategy
from src.core.errors import ExternalProcessError

REMOTE = "Feature: Login\n  Scenario: Ok\n    Given a user\n"
LOCAL = "Feature: Login  \n  Scenario:   Ok\n\n    Given a user\n"


def make_process(stdout: str = "", stderr: str = "", returncode: int = 0) -> Mock:
    """Create a fake asyncio subprocess."""
    process = Mock()
    process.communicate = AsyncMock(return_value=(stdout.encode(), stderr.encode()))
    process.returncode = returncode
    return process


@pytest.fixture
def files(tmp_path):
    """Remote, local and empty ancestor files."""
    remote = tmp_path / "remote.feature"
    local = tmp_path / "local.feature"
    ancestor = tmp_path / "ancestor.feature"
    remote.write_text(REMOTE)
    local.write_text(LOCAL)
    ancestor.write_text("")
    return str(remote), str(local), str(ancestor)


class TestNormalizeForStrategy:
    """Test cases for normalize_for_strategy."""

    @pytest.mark.parametrize(
        "strategy, expected",
        [
            ("ignore-space-change", "Feature: Login\n Scenario: Ok\n\n Given a user\n"),
            ("ignore-all-space", "Feature:Login\nScenario:Ok\n\nGivenauser\n"),
            ("ignore-blank-lines", "Feature: Login  \n  Scenario:   Ok\n    Given a user\n"),
        ],
    )
    def test_strategies(self, strategy, expected):
        assert normalize_for_strategy(LOCAL, strategy) == expected

    def test_empty_text_stays_empty(self):
        assert normalize_for_strategy("", "ignore-all-space") == ""

    def test_unknown_strategy_raises(self):
        with pytest.raises(ValueError) as exc_info:
            normalize_for_strategy("x", "patience")

        assert "Unknown merge strategy: patience" in str(exc_info.value)


class TestGitMergeRunner:
    """Test cases for GitMergeRunner."""

    @pytest.fixture
    def runner(self):
        return GitMergeRunner()


class TestMerge(TestGitMergeRunner):
    """Test merge()."""

    @patch("src.conflicts.merge_runner.asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_merges_normalized_scratch_copies(self, mock_exec, runner, files):
        """git sees current, ancestor and other copies rewritten for the strategy."""
        # Arrange
        seen = {}

        def capture(*command, **kwargs):
            seen["command"] = command
            seen["texts"] = [Path(path).read_text() for path in command[3:]]
            return make_process(stdout="normalized merge output")

        mock_exec.side_effect = capture
        remote, local, ancestor = files

        # Act
        result = asyncio.run(runner.merge(remote, local, ancestor, "ignore-space-change"))

        # Assert
        assert list(seen["command"][:3]) == ["git", "merge-file", "-p"]
        assert [Path(path).name for path in seen["command"][3:]] == [
            "current.feature", "ancestor.feature", "other.feature",
        ]
        assert seen["texts"] == [
            "Feature: Login\n Scenario: Ok\n Given a user\n",
            "",
            "Feature: Login\n Scenario: Ok\n\n Given a user\n",
        ]
        assert not Path(seen["command"][3]).parent.exists()
        assert result.stdout == REMOTE
        assert result.exit_code == 0

    @patch("src.conflicts.merge_runner.asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_conflicting_merge_returns_output(self, mock_exec, runner, files):
        """A non-zero exit with output is still a usable result."""
        mock_exec.return_value = make_process(stdout="<<<<<<< a\nx\n=======\ny\n>>>>>>> b\n", returncode=1)

        result = asyncio.run(runner.merge(*files, "ignore-space-change"))

        assert result.exit_code == 1
        assert "<<<<<<<" in result.stdout

    @patch("src.conflicts.merge_runner.asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_failure_without_output_raises(self, mock_exec, runner, files):
        mock_exec.return_value = make_process(stderr="fatal: could not read\n", returncode=255)

        with pytest.raises(ExternalProcessError) as exc_info:
            asyncio.run(runner.merge(*files, "ignore-blank-lines"))

        assert exc_info.value.exit_code == 255
        assert exc_info.value.stderr == "fatal: could not read\n"

    @patch("src.conflicts.merge_runner.asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_missing_git_raises(self, mock_exec, runner, files):
        mock_exec.side_effect = FileNotFoundError("git")

        with pytest.raises(ExternalProcessError) as exc_info:
            asyncio.run(runner.merge(*files, "ignore-all-space"))

        assert exc_info.value.exit_code is None
        assert "git command not found" in str(exc_info.value)

    @patch("src.conflicts.merge_runner.asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_unknown_strategy_does_not_run_git(self, mock_exec, runner, files):
        with pytest.raises(ValueError):
            asyncio.run(runner.merge(*files, "patience"))

        mock_exec.assert_not_called()

    @patch("src.conflicts.merge_runner.asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_merge_result_is_cached(self, mock_exec, files):
        """A second identical merge is served from the merge cache."""
        mock_exec.return_value = make_process(stdout="merged")
        runner = GitMergeRunner(cache_manager=CacheManager())

        asyncio.run(runner.merge(*files, "ignore-all-space"))
        result = asyncio.run(runner.merge(*files, "ignore-all-space"))

        assert result.stdout == REMOTE
        assert mock_exec.await_count == 1


class TestDiff(TestGitMergeRunner):
    """Test diff()."""

    @patch("src.conflicts.merge_runner.asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_differs_exit_code_is_ok(self, mock_exec, runner):
        """git diff exits 1 when files differ."""
        mock_exec.return_value = make_process(stdout="--- a\n+++ b\n", returncode=1)

        diff = asyncio.run(runner.diff("a", "b", ["--stat"]))

        assert diff == "--- a\n+++ b\n"
        assert list(mock_exec.call_args[0]) == ["git", "diff", "--no-index", "--no-color", "--stat", "a", "b"]

    @patch("src.conflicts.merge_runner.asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_identical_files_give_empty_diff(self, mock_exec, runner):
        mock_exec.return_value = make_process(returncode=0)

        assert asyncio.run(runner.diff("a", "b")) == ""

    @patch("src.conflicts.merge_runner.asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_other_exit_codes_raise(self, mock_exec, runner):
        """Exit codes beyond 0 and 1 are errors even with output."""
        mock_exec.return_value = make_process(stdout="partial", stderr="fatal: bad path", returncode=128)

        with pytest.raises(ExternalProcessError):
            asyncio.run(runner.diff("a", "missing"))

    @patch("src.conflicts.merge_runner.asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_diff_is_cached(self, mock_exec):
        mock_exec.return_value = make_process(stdout="diff", returncode=1)
        runner = GitMergeRunner(cache_manager=CacheManager())

        asyncio.run(runner.diff("a", "b"))
        asyncio.run(runner.diff("a", "b"))

        assert mock_exec.await_count == 1
