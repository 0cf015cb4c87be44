"""Unit tests for main CLI entry point (main.py).

Tests the Typer CLI application using CliRunner.
"""

import json
import logging
from unittest.mock import AsyncMock, Mock, patch

import pytest
from typer.testing import CliRunner

from src.cli.config import SyncConfiguration
from src.cli.main import __version__, _configure_logging, app
from src.cli.models import ExitCode
from src.core.errors import SyncConfigurationError
from src.sync.models import ChangeSet, SyncCounts, SyncOutcome, SyncPhase
from tests.fixtures.sample_features import FEATURE_LOGIN, FEATURE_NO_SCENARIOS

runner = CliRunner()


class TestConfigureLogging:
    """Test cases for _configure_logging function."""

    @pytest.mark.parametrize(
        "verbosity, level",
        [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
    )
    def test_verbosity_sets_level(self, verbosity, level):
        _configure_logging(verbosity)

        assert logging.getLogger("src").level == level

    def test_repeated_calls_do_not_stack_handlers(self):
        _configure_logging(1)
        _configure_logging(1)

        assert len(logging.getLogger("src").handlers) == 1

    def test_logdir_adds_timestamped_file(self, tmp_path):
        _configure_logging(1, str(tmp_path / "logs"))

        log_files = list((tmp_path / "logs").glob("feature-sync_*.log"))
        assert len(log_files) == 1
        assert len(logging.getLogger("src").handlers) == 2


class TestVersion:
    """Test the --version flag."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"feature-sync version {__version__}" in result.output


class TestSyncCommand:
    """Test cases for the sync command and the default invocation."""

    @pytest.fixture
    def orchestrator(self):
        orchestrator = Mock()
        orchestrator.execute = AsyncMock(
            return_value=SyncOutcome(success=True, phase=SyncPhase.COMPLETED, change_set=ChangeSet())
        )
        return orchestrator

    @patch("src.cli.main.build_orchestrator")
    @patch("src.cli.main.ConfigLoader.load")
    def test_successful_sync_exits_zero(self, mock_load, mock_build, orchestrator):
        # Arrange
        mock_load.return_value = SyncConfiguration()
        mock_build.return_value = orchestrator

        # Act
        result = runner.invoke(app, ["sync"])

        # Assert
        assert result.exit_code == ExitCode.SUCCESS
        assert "Already in sync" in result.output
        assert mock_build.call_args.kwargs["interactive"] is True

    @patch("src.cli.main.build_orchestrator")
    @patch("src.cli.main.ConfigLoader.load")
    def test_no_subcommand_runs_sync(self, mock_load, mock_build, orchestrator):
        mock_load.return_value = SyncConfiguration()
        mock_build.return_value = orchestrator

        result = runner.invoke(app, [])

        assert result.exit_code == ExitCode.SUCCESS
        mock_load.assert_called_once_with(None)
        orchestrator.execute.assert_awaited_once()

    @patch("src.cli.main.build_orchestrator")
    @patch("src.cli.main.ConfigLoader.load")
    def test_options_override_configuration(self, mock_load, mock_build, orchestrator):
        mock_load.return_value = SyncConfiguration(features_dir="from-config")
        mock_build.return_value = orchestrator

        result = runner.invoke(
            app,
            [
                "sync",
                "--features-dir", "specs",
                "--remote-dir", "mirror",
                "--config", "custom.yaml",
                "--non-interactive",
            ],
        )

        assert result.exit_code == ExitCode.SUCCESS
        mock_load.assert_called_once_with("custom.yaml")
        config = mock_build.call_args.args[0]
        assert config.features_dir == "specs"
        assert config.remote_dir == "mirror"
        assert config.staging_dir == "featureSyncStage"
        assert mock_build.call_args.kwargs["interactive"] is False

    @patch("src.cli.main.build_orchestrator")
    @patch("src.cli.main.ConfigLoader.load")
    def test_deferred_conflicts_exit_two(self, mock_load, mock_build, orchestrator):
        mock_load.return_value = SyncConfiguration()
        mock_build.return_value = orchestrator
        orchestrator.execute.return_value = SyncOutcome(
            success=True,
            phase=SyncPhase.COMPLETED,
            counts=SyncCounts(complex=1, deferred=1),
            deferred_files=["bar.feature"],
        )

        result = runner.invoke(app, ["sync", "--non-interactive"])

        assert result.exit_code == ExitCode.CONFLICTS
        assert "bar.feature" in result.output

    @patch("src.cli.main.build_orchestrator")
    @patch("src.cli.main.ConfigLoader.load")
    def test_failed_sync_exits_one(self, mock_load, mock_build, orchestrator):
        mock_load.return_value = SyncConfiguration()
        mock_build.return_value = orchestrator
        orchestrator.execute.return_value = SyncOutcome(
            success=False,
            phase=SyncPhase.ERROR,
            failed_phase="staging-setup",
            error="remote went away",
        )

        result = runner.invoke(app, ["sync"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Sync failed in phase staging-setup" in result.output

    @patch("src.cli.main.build_orchestrator")
    @patch("src.cli.main.ConfigLoader.load")
    def test_configuration_error_exits_one(self, mock_load, mock_build):
        mock_load.side_effect = SyncConfigurationError("Invalid YAML syntax in config.yaml")

        result = runner.invoke(app, ["sync"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Configuration error: Invalid YAML syntax" in result.output
        mock_build.assert_not_called()


class TestValidateCommand:
    """Test cases for the validate command."""

    @pytest.fixture
    def features(self, tmp_path):
        path = tmp_path / "features"
        path.mkdir()
        (path / "login.feature").write_text(FEATURE_LOGIN)
        return path

    def test_valid_files_exit_zero(self, features):
        result = runner.invoke(app, ["validate", str(features)])

        assert result.exit_code == ExitCode.SUCCESS
        assert "FEATURE VALIDATION REPORT" in result.output

    def test_invalid_files_exit_three(self, features):
        (features / "empty.feature").write_text(FEATURE_NO_SCENARIOS)

        result = runner.invoke(app, ["validate", str(features)])

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "Feature must contain at least one scenario" in result.output

    def test_single_file_target(self, features):
        result = runner.invoke(app, ["validate", str(features / "login.feature"), "--format", "JSON"])

        assert result.exit_code == ExitCode.SUCCESS
        assert json.loads(result.output)["total_files"] == 1

    def test_missing_directory_exits_one(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "absent")])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Features directory not found" in result.output

    def test_no_feature_files(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path)])

        assert result.exit_code == ExitCode.SUCCESS
        assert "No feature files found" in result.output

    def test_csv_format(self, features):
        result = runner.invoke(app, ["validate", str(features), "-f", "csv"])

        assert result.exit_code == ExitCode.SUCCESS
        assert result.output.startswith('"File Path","Valid"')
