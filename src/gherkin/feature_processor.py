"""Batch validation of feature files and report generation.

Files are validated in chunks run concurrently with asyncio.gather; a
failure for one file is recorded against that file and never aborts the
batch. Reports can be rendered as text, CSV or JSON.
"""

import asyncio
import csv
import io
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from src.core.errors import FileSystemError
from src.core.events import EventBus, SyncEvents
from src.core.filesystem import FEATURE_EXTENSION
from src.gherkin.models import BatchValidationResult, ValidationResult
from src.gherkin.validator import GherkinValidator

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5
REPORT_FORMATS = ("text", "csv", "json")


def _chunk(items: Sequence[str], size: int) -> List[Sequence[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class FeatureProcessor:
    """Validates many feature files and summarises the results.

    Example:
        >>> processor = FeatureProcessor(GherkinValidator())
        >>> paths = asyncio.run(processor.scan_for_feature_files("features"))
        >>> results = asyncio.run(processor.validate_feature_files(paths))
        >>> print(processor.generate_report(results, "text"))
    """

    def __init__(self, validator: Optional[GherkinValidator] = None, events: Optional[EventBus] = None):
        self.validator = validator or GherkinValidator(events=events)
        self.events = events

    async def validate_feature_files(
        self,
        paths: Sequence[str],
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> BatchValidationResult:
        """Validate files in chunks of at most ``concurrency``.

        Args:
            paths: Feature file paths
            concurrency: Maximum files validated at the same time

        Returns:
            BatchValidationResult with per-file results in submission order
        """
        paths = list(paths)
        results = BatchValidationResult(total_files=len(paths))
        tags = set()
        languages = set()

        self._emit(SyncEvents.VALIDATION_STARTED, {"type": "batch", "file_count": len(paths)})

        for chunk in _chunk(paths, max(1, concurrency)):
            outcomes = await asyncio.gather(
                *(self.validator.validate_file(path) for path in chunk),
                return_exceptions=True,
            )

            for path, outcome in zip(chunk, outcomes):
                if isinstance(outcome, BaseException):
                    logger.warning(f"Failed to validate {path}: {outcome}")
                    file_result = ValidationResult(is_valid=False, errors=[str(outcome)], file_path=path)
                else:
                    file_result = outcome
                    file_result.file_path = path

                results.files.append(file_result)
                if file_result.is_valid:
                    results.valid_files += 1
                else:
                    results.invalid_files += 1
                results.total_errors += len(file_result.errors)
                results.total_warnings += len(file_result.warnings)

                metadata = file_result.metadata
                if metadata is not None:
                    results.summary.features += 1
                    results.summary.scenarios += len(metadata.scenarios)
                    languages.add(metadata.language)
                    tags.update(metadata.all_tags)

            processed = len(results.files)
            self._emit(
                SyncEvents.PROGRESS_UPDATE,
                {
                    "phase": "validation",
                    "progress": round(processed / len(paths) * 100),
                    "message": f"Processed {processed}/{len(paths)} files",
                },
            )

        results.summary.tags = sorted(tags)
        results.summary.languages = sorted(languages)

        self._emit(
            SyncEvents.VALIDATION_COMPLETED,
            {
                "type": "batch",
                "total_files": results.total_files,
                "valid_files": results.valid_files,
                "invalid_files": results.invalid_files,
                "total_errors": results.total_errors,
                "total_warnings": results.total_warnings,
            },
        )
        logger.info(
            f"Validated {results.total_files} file(s): "
            f"{results.valid_files} valid, {results.invalid_files} invalid"
        )
        return results

    async def scan_for_feature_files(self, directory: str, recursive: bool = True) -> List[str]:
        """Find feature files under a directory.

        Returns:
            Sorted paths (joined onto ``directory``)

        Raises:
            FileSystemError: If the directory does not exist or cannot be read
        """
        root = Path(directory)

        def scan() -> List[str]:
            pattern = f"**/*{FEATURE_EXTENSION}" if recursive else f"*{FEATURE_EXTENSION}"
            return sorted(str(path) for path in root.glob(pattern) if path.is_file())

        if not root.is_dir():
            raise FileSystemError("scan", directory, "Directory does not exist")
        try:
            files = await asyncio.to_thread(scan)
        except OSError as e:
            raise FileSystemError("scan", directory, str(e)) from e

        self._emit(
            SyncEvents.VALIDATION_STARTED,
            {"type": "scan", "directory": directory, "file_count": len(files)},
        )
        return files

    @staticmethod
    def filter_feature_files(
        results: Iterable[ValidationResult],
        tags: Optional[List[str]] = None,
        min_scenarios: Optional[int] = None,
        valid_only: bool = False,
    ) -> List[ValidationResult]:
        """Filter per-file results.

        Args:
            results: Per-file validation results
            tags: Keep files carrying every one of these tags
            min_scenarios: Keep files with at least this many scenarios
            valid_only: Keep only valid files
        """
        filtered = []
        for result in results:
            if valid_only and not result.is_valid:
                continue
            metadata = result.metadata
            if tags and metadata is not None:
                file_tags = set(metadata.all_tags)
                if not all(tag in file_tags for tag in tags):
                    continue
            if min_scenarios and metadata is not None:
                if len(metadata.scenarios) < min_scenarios:
                    continue
            filtered.append(result)
        return filtered

    def generate_report(self, results: BatchValidationResult, fmt: str = "text") -> str:
        """Render a batch result.

        Args:
            results: Batch validation result
            fmt: One of "text", "csv", "json"

        Raises:
            ValueError: If fmt is not a supported format
        """
        if fmt == "json":
            return json.dumps(results.to_dict(), indent=2)
        if fmt == "csv":
            return self._csv_report(results)
        if fmt == "text":
            return self._text_report(results)
        raise ValueError(f"Unsupported report format: {fmt}. Expected one of {', '.join(REPORT_FORMATS)}")

    @staticmethod
    def _text_report(results: BatchValidationResult) -> str:
        lines = [
            "=" * 60,
            "FEATURE VALIDATION REPORT",
            "=" * 60,
            "",
            f"Total Files: {results.total_files}",
            f"Valid Files: {results.valid_files}",
            f"Invalid Files: {results.invalid_files}",
            f"Total Errors: {results.total_errors}",
            f"Total Warnings: {results.total_warnings}",
            "",
            f"Features: {results.summary.features}",
            f"Scenarios: {results.summary.scenarios}",
            f"Languages: {', '.join(results.summary.languages)}",
            f"Common Tags: {', '.join(results.summary.tags[:10])}",
            "",
        ]

        invalid = [result for result in results.files if not result.is_valid]
        if invalid:
            lines.append("INVALID FILES:")
            lines.append("-" * 40)
            for result in invalid:
                lines.append("")
                lines.append(str(result.file_path))
                lines.extend(f"  ERROR: {error}" for error in result.errors)
                lines.extend(f"  WARNING: {warning}" for warning in result.warnings)

        return "\n".join(lines)

    @staticmethod
    def _csv_report(results: BatchValidationResult) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(["File Path", "Valid", "Errors", "Warnings", "Scenarios", "Tags"])
        for result in results.files:
            metadata = result.metadata
            writer.writerow([
                result.file_path,
                "Yes" if result.is_valid else "No",
                len(result.errors),
                len(result.warnings),
                len(metadata.scenarios) if metadata else 0,
                ";".join(metadata.all_tags) if metadata else "",
            ])
        return buffer.getvalue().rstrip("\n")

    def _emit(self, event_name: str, data) -> None:
        if self.events is not None:
            self.events.emit(event_name, data)
