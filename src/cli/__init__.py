"""Command-line interface for feature file sync.

This package provides the `feature-sync` CLI tool: configuration loading,
terminal output, exit codes and the Typer application in src.cli.main.
"""

from .config import ConfigLoader, ConfigValidation, SyncConfiguration
from .errors import CLIError, FeaturesDirectoryNotFoundError
from .models import ExitCode, ReportFormat
from .output import OutputHandler

__all__ = [
    'ConfigLoader',
    'ConfigValidation',
    'SyncConfiguration',
    'CLIError',
    'FeaturesDirectoryNotFoundError',
    'ExitCode',
    'ReportFormat',
    'OutputHandler',
]
