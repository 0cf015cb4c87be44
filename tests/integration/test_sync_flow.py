"""Integration tests for a full sync run.

The CLI, orchestrator, staging area, validator and resolver run against real
temporary directories. The git collaborator is replaced by FakeMergeRunner
except in the tests marked ``requires_git``.
"""

import asyncio
import shutil
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from src.cli.config import ENV_ACCESS_KEY, ENV_ENVIRONMENT, ENV_PROJECT_ID, ENV_SECRET_KEY, ENV_TOKEN
from src.cli.main import app
from src.cli.models import ExitCode
from src.conflicts.conflict_resolver import ConflictResolver
from src.conflicts.merge_runner import GitMergeRunner
from src.staging.staging_manager import StagingManager
from src.staging.transport import DemoTransport
from tests.fixtures.fake_merge_runner import FakeMergeRunner
from tests.fixtures.sample_features import FEATURE_LOGIN, FEATURE_OUTLINE, FEATURE_RULES

runner = CliRunner()

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

BAR_LOCAL = FEATURE_LOGIN.replace("Rejected login", "Locked account")


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """A project directory with features/ and a remote mirror.

    Remote: foo.feature, bar.feature. Local: bar.feature (edited), baz.feature.
    """
    for name in (ENV_PROJECT_ID, ENV_ACCESS_KEY, ENV_SECRET_KEY, ENV_TOKEN, ENV_ENVIRONMENT):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    mirror = tmp_path / "mirror"
    mirror.mkdir()
    (mirror / "foo.feature").write_text(FEATURE_OUTLINE)
    (mirror / "bar.feature").write_text(FEATURE_LOGIN)

    features = tmp_path / "features"
    features.mkdir()
    (features / "bar.feature").write_text(BAR_LOCAL)
    (features / "baz.feature").write_text(FEATURE_RULES)

    with patch("src.cli.config.load_dotenv"):
        yield tmp_path


@pytest.fixture
def fake_git():
    with patch("src.sync.orchestrator.GitMergeRunner", lambda cache_manager=None: FakeMergeRunner()):
        yield


class TestSyncFlow:
    """Sync runs through the CLI."""

    def test_non_interactive_run_defers_conflict(self, workspace, fake_git):
        """foo is added, baz deleted, bar deferred; local files are untouched."""
        # Act
        result = runner.invoke(app, ["sync", "--remote-dir", "mirror", "--non-interactive"])

        # Assert
        assert result.exit_code == ExitCode.CONFLICTS
        assert "Added/removed: 2 file(s)" in result.output
        assert "Deferred: 1 file(s)" in result.output
        assert "bar.feature" in result.output
        assert "Demo mode" in result.output
        assert (workspace / "features" / "bar.feature").read_text() == BAR_LOCAL
        assert not (workspace / "featureSyncStage").exists()

    def test_interactive_keep_remote(self, workspace, fake_git):
        """Choosing 'r' copies the remote text over the local file."""
        with patch("src.conflicts.user_interaction.Prompt.ask", return_value="r"), patch(
            "src.conflicts.user_interaction.Confirm.ask", return_value=True
        ):
            result = runner.invoke(app, ["sync", "--remote-dir", "mirror"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Resolved interactively: 1 file(s)" in result.output
        assert (workspace / "features" / "bar.feature").read_text() == FEATURE_LOGIN

    def test_interactive_keep_local_is_reported(self, workspace, fake_git):
        """Choosing 'l' keeps the local file and the summary says the remote was not updated."""
        with patch("src.conflicts.user_interaction.Prompt.ask", return_value="l"):
            result = runner.invoke(app, ["sync", "--remote-dir", "mirror"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Local file kept, remote not updated: 1 file(s)" in result.output
        assert "• bar.feature" in result.output
        assert (workspace / "features" / "bar.feature").read_text() == BAR_LOCAL

    def test_whitespace_edit_auto_resolves(self, workspace, fake_git):
        (workspace / "features" / "bar.feature").write_text(FEATURE_LOGIN.replace("    ", "\t"))

        result = runner.invoke(app, ["sync", "--remote-dir", "mirror", "--non-interactive"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Auto-resolved: 1 file(s)" in result.output

    def test_missing_mirror_fails_staging(self, workspace, fake_git):
        result = runner.invoke(app, ["sync", "--remote-dir", "absent", "--non-interactive"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Sync failed in phase staging-setup" in result.output
        assert not (workspace / "featureSyncStage").exists()

    def test_production_without_credentials_fails(self, workspace, fake_git, monkeypatch):
        monkeypatch.setenv(ENV_ENVIRONMENT, "production")

        result = runner.invoke(app, ["sync", "--remote-dir", "mirror", "--non-interactive"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "configuration-validation" in result.output

    def test_yaml_configuration_is_used(self, workspace, fake_git, monkeypatch):
        (workspace / ".feature-sync").mkdir()
        (workspace / ".feature-sync" / "config.yaml").write_text("remote_dir: mirror\nproject_id: QA\n")
        monkeypatch.setenv(ENV_TOKEN, "secret")

        result = runner.invoke(app, ["sync", "--non-interactive"])

        assert result.exit_code == ExitCode.CONFLICTS
        assert "Demo mode" not in result.output


@pytest.mark.requires_git
@requires_git
class TestWithGit:
    """Runs against the real git executable."""

    def test_diff_of_differing_files(self, tmp_path):
        (tmp_path / "a.feature").write_text("Feature: A\n  Scenario: One\n")
        (tmp_path / "b.feature").write_text("Feature: A\n  Scenario: Two\n")

        diff = asyncio.run(GitMergeRunner().diff(str(tmp_path / "a.feature"), str(tmp_path / "b.feature")))

        assert "-  Scenario: One" in diff
        assert "+  Scenario: Two" in diff

    def test_diff_of_identical_files_is_empty(self, tmp_path):
        (tmp_path / "a.feature").write_text("Feature: A\n")
        (tmp_path / "b.feature").write_text("Feature: A\n")

        diff = asyncio.run(GitMergeRunner().diff(str(tmp_path / "a.feature"), str(tmp_path / "b.feature")))

        assert diff == ""

    def test_sync_defers_content_conflict(self, workspace):
        result = runner.invoke(app, ["sync", "--remote-dir", "mirror", "--non-interactive"])

        assert result.exit_code == ExitCode.CONFLICTS
        assert (workspace / "features" / "bar.feature").read_text() == BAR_LOCAL

    def test_trailing_whitespace_merges_cleanly(self, tmp_path):
        """git merge-file reports a clean merge once trailing spaces are normalized."""
        # Arrange
        remote = tmp_path / "remote.feature"
        local = tmp_path / "local.feature"
        ancestor = tmp_path / "ancestor.feature"
        remote.write_text("Feature: Login\n  Scenario: Ok\n    Given a user\n")
        local.write_text("Feature: Login   \n  Scenario: Ok\t\n    Given a user \n")
        ancestor.write_text("")

        # Act
        result = asyncio.run(
            GitMergeRunner().merge(str(remote), str(local), str(ancestor), "ignore-space-change")
        )

        # Assert
        assert result.exit_code == 0
        assert result.stdout == remote.read_text()

    def test_content_change_conflicts(self, tmp_path):
        (tmp_path / "remote.feature").write_text("Feature: Login\n  Scenario: Ok\n")
        (tmp_path / "local.feature").write_text("Feature: Login\n  Scenario: Locked\n")
        (tmp_path / "ancestor.feature").write_text("")

        result = asyncio.run(
            GitMergeRunner().merge(
                str(tmp_path / "remote.feature"),
                str(tmp_path / "local.feature"),
                str(tmp_path / "ancestor.feature"),
                "ignore-all-space",
            )
        )

        assert result.exit_code > 0
        assert "<<<<<<<" in result.stdout

    def test_resolver_records_named_strategy(self, tmp_path):
        """A trailing-whitespace edit is auto-resolved by the first strategy, not by content analysis."""
        # Arrange
        features = tmp_path / "features"
        stage = tmp_path / "featureSyncStage"
        features.mkdir()
        stage.mkdir()
        (stage / "login.feature").write_text(FEATURE_LOGIN)
        (features / "login.feature").write_text(FEATURE_LOGIN.replace("\n", "  \n"))
        resolver = ConflictResolver(StagingManager(stage, features, DemoTransport()), GitMergeRunner())

        # Act
        outcome = asyncio.run(resolver.resolve_document("login.feature"))

        # Assert
        assert outcome.auto_resolved is True
        assert outcome.strategy == "ignore-space-change"
        assert outcome.conflict_type is None
        assert [attempt.success for attempt in outcome.attempts] == [True]
        assert outcome.content == FEATURE_LOGIN
