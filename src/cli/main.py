"""Main CLI entry point for the feature-sync command.

This module provides the Typer application behind the feature-sync
command-line tool. Running it without a subcommand performs a sync with the
default options.
"""

import asyncio
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer

from src.cache.cache_manager import CacheManager
from src.cli.config import ConfigLoader
from src.cli.errors import CLIError, FeaturesDirectoryNotFoundError
from src.cli.models import ExitCode, ReportFormat
from src.cli.output import OutputHandler
from src.core.errors import FileSystemError, SyncConfigurationError
from src.core.events import EventBus
from src.gherkin.feature_processor import FeatureProcessor
from src.gherkin.models import BatchValidationResult
from src.gherkin.validator import GherkinValidator
from src.sync.orchestrator import build_orchestrator

__version__ = "0.1.0"

app = typer.Typer(
    name="feature-sync",
    help="""Sync Gherkin feature files between a local directory and a remote test-management system.

QUICK START:
  feature-sync                          # Run a sync with default settings
  feature-sync sync --non-interactive   # Defer complex conflicts instead of prompting
  feature-sync validate features/       # Validate feature files""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=False,
)

# Module logger
logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:  # verbosity >= 2
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)

    # Repeated invocations in one process must not stack handlers
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter("%(asctime)s [%(levelname)8s] %(message)s", datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"feature-sync_{timestamp}.log"

        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt=date_format
        )
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _run_sync(
    features_dir: Optional[str],
    staging_dir: Optional[str],
    remote_dir: Optional[str],
    config_path: Optional[str],
    non_interactive: bool,
    logdir: Optional[str],
    verbosity: int,
    no_color: bool,
) -> None:
    """Run a sync and exit with a code reflecting its outcome."""
    _configure_logging(verbosity, logdir)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    try:
        config = ConfigLoader.load(config_path)
    except SyncConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        output.error(f"Configuration error: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    overrides = {
        "features_dir": features_dir,
        "staging_dir": staging_dir,
        "remote_dir": remote_dir,
    }
    config = replace(config, **{key: value for key, value in overrides.items() if value is not None})
    logger.debug(f"Configuration: {config.redacted()}")

    events = EventBus(config.history_size)
    output.attach_event_logging(events)
    orchestrator = build_orchestrator(
        config,
        interactive=not non_interactive,
        events=events,
        console=output.console,
    )

    outcome = asyncio.run(orchestrator.execute())
    output.print_sync_summary(outcome)

    if not outcome.success:
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    if outcome.deferred_files:
        raise typer.Exit(ExitCode.CONFLICTS)
    raise typer.Exit(ExitCode.SUCCESS)


async def _collect_feature_files(processor: FeatureProcessor, targets: List[str]) -> List[str]:
    files: List[str] = []
    for target in targets:
        path = Path(target)
        if path.is_file():
            files.append(target)
            continue
        try:
            files.extend(await processor.scan_for_feature_files(target))
        except FileSystemError as e:
            raise FeaturesDirectoryNotFoundError(target) from e
    return files


async def _validate(processor: FeatureProcessor, targets: List[str], concurrency: int) -> BatchValidationResult:
    files = await _collect_feature_files(processor, targets)
    return await processor.validate_feature_files(files, concurrency=concurrency)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
) -> None:
    """Sync Gherkin feature files with a remote test-management system."""
    if version:
        typer.echo(f"feature-sync version {__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        _run_sync(None, None, None, None, False, None, 0, False)


@app.command("sync")
def sync_command(
    features_dir: Optional[str] = typer.Option(
        None,
        "--features-dir",
        help="Local features directory (default: features)",
        metavar="DIR",
    ),
    staging_dir: Optional[str] = typer.Option(
        None,
        "--staging-dir",
        help="Staging directory for the remote snapshot (default: featureSyncStage)",
        metavar="DIR",
    ),
    remote_dir: Optional[str] = typer.Option(
        None,
        "--remote-dir",
        help="Directory mirroring the remote feature set (demo data if omitted)",
        metavar="DIR",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Configuration file (default: .feature-sync/config.yaml)",
        metavar="FILE",
    ),
    non_interactive: bool = typer.Option(
        False,
        "--non-interactive",
        help="Defer complex conflicts to a future run instead of prompting",
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Directory for log files (creates timestamped log file)",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
) -> None:
    """Sync local feature files with the remote feature set.

    \b
    EXIT CODES:
      0  Sync completed
      1  Configuration, staging or other failure
      2  Complex conflicts were deferred to a future run
    """
    _run_sync(
        features_dir,
        staging_dir,
        remote_dir,
        config_path,
        non_interactive,
        logdir,
        verbosity,
        no_color,
    )


@app.command("validate")
def validate_command(
    targets: Optional[List[str]] = typer.Argument(
        None,
        help="Feature files or directories to validate (default: features)",
    ),
    report_format: ReportFormat = typer.Option(
        ReportFormat.TEXT,
        "--format",
        "-f",
        help="Report format",
        case_sensitive=False,
    ),
    concurrency: int = typer.Option(
        5,
        "--concurrency",
        min=1,
        help="Maximum files validated at the same time",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
) -> None:
    """Validate Gherkin syntax and report errors and warnings.

    \b
    EXIT CODES:
      0  All files are valid
      1  A target could not be read
      3  One or more files are invalid
    """
    _configure_logging(verbosity)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    events = EventBus()
    output.attach_event_logging(events)
    validator = GherkinValidator(cache_manager=CacheManager(events), events=events)
    processor = FeatureProcessor(validator, events=events)

    try:
        results = asyncio.run(_validate(processor, targets or ["features"], concurrency))
    except CLIError as e:
        logger.error(str(e))
        output.error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if results.total_files == 0:
        output.warning("No feature files found")
        raise typer.Exit(ExitCode.SUCCESS)

    output.print(processor.generate_report(results, report_format.value))

    if results.invalid_files > 0:
        raise typer.Exit(ExitCode.VALIDATION_ERROR)
    raise typer.Exit(ExitCode.SUCCESS)


def main() -> None:
    """Main entry point for the CLI application.

    This function is called when the module is executed directly or
    when the console script is invoked.
    """
    app()


# Allow running as: python -m src.cli.main
if __name__ == "__main__":
    main()
