"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output.
Uses Rich for spinners, colored output and formatted summaries, and renders
sync lifecycle events from the EventBus. Supports verbosity levels and the
--no-color flag.
"""

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.spinner import Spinner

from src.core.events import EventBus, SyncEvent, SyncEvents


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.attach_event_logging(events)
        >>> handler.success("Operation completed")
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
        """
        self.verbosity = verbosity
        self.console = Console(
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        """Display success message in green."""
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def error(self, message: str) -> None:
        """Display error message in red."""
        self.console.print(f"[red]✗[/red] {escape(message)}", style="red")

    def warning(self, message: str) -> None:
        """Display warning message in yellow."""
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(escape(message))

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def print(self, message: str) -> None:
        """Display message without markup processing.

        Args:
            message: Message to display (reports, CSV and JSON are printed as-is)
        """
        self.console.print(message, markup=False, highlight=False, soft_wrap=True)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner for single operations.

        Example:
            >>> with handler.spinner("Validating features..."):
            ...     # Do work
            ...     pass
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10, transient=True):
            yield

    def attach_event_logging(self, events: EventBus) -> List[Callable[[], None]]:
        """Render progress, phase, cache and conflict events as they happen.

        Args:
            events: Event bus of the current run

        Returns:
            Unsubscribe callables, one per subscription
        """
        handlers = {
            SyncEvents.PROGRESS_UPDATE: self._on_progress,
            SyncEvents.PHASE_STARTED: self._on_phase_started,
            SyncEvents.PHASE_COMPLETED: self._on_phase_completed,
            SyncEvents.PHASE_FAILED: self._on_phase_failed,
            SyncEvents.CACHE_HIT: self._on_cache_hit,
            SyncEvents.CONFLICTS_AUTO_RESOLVED: self._on_auto_resolved,
            SyncEvents.CONFLICTS_REQUIRE_MANUAL: self._on_require_manual,
        }
        return [events.on(name, handler) for name, handler in handlers.items()]

    def _on_progress(self, data: Dict[str, Any], event: SyncEvent) -> None:
        self.info(f"{data.get('message', '')} ({data.get('progress', 0)}%)")

    def _on_phase_started(self, data: Dict[str, Any], event: SyncEvent) -> None:
        self.info(f"→ {data.get('phase')}")

    def _on_phase_completed(self, data: Dict[str, Any], event: SyncEvent) -> None:
        self.debug(f"Phase {data.get('phase')} completed in {data.get('duration', 0.0):.2f}s")

    def _on_phase_failed(self, data: Dict[str, Any], event: SyncEvent) -> None:
        self.error(
            f"Phase {data.get('phase')} failed after {data.get('duration', 0.0):.2f}s: {data.get('error')}"
        )

    def _on_cache_hit(self, data: Dict[str, Any], event: SyncEvent) -> None:
        self.debug(f"Cache hit: {data.get('cache')} {data.get('key')}")

    def _on_auto_resolved(self, data: Dict[str, Any], event: SyncEvent) -> None:
        self.info(f"Auto-resolved {data.get('filename')} ({data.get('strategy')})")

    def _on_require_manual(self, data: Dict[str, Any], event: SyncEvent) -> None:
        self.warning(f"{data.get('filename')} needs manual resolution ({data.get('conflict_type')})")

    def print_sync_summary(self, outcome: Any) -> None:
        """Display sync summary with color coding.

        Args:
            outcome: SyncOutcome returned by SyncOrchestrator.execute()
        """
        counts = outcome.counts
        self.console.print("\n[bold]Sync Summary:[/bold]")

        if outcome.demo_mode:
            self.console.print("  [yellow]Demo mode: no remote credentials configured[/yellow]")

        if counts.simple > 0:
            self.console.print(f"  [blue]±[/blue] Added/removed: {counts.simple} file(s)")

        if counts.auto_resolved > 0:
            self.console.print(f"  [green]✓[/green] Auto-resolved: {counts.auto_resolved} file(s)")

        if counts.resolved > 0:
            self.console.print(f"  [green]✓[/green] Resolved interactively: {counts.resolved} file(s)")
            staged_only = outcome.interactive.staged_only if outcome.interactive is not None else []
            if staged_only:
                self.console.print(
                    f"  [dim]Local file kept, remote not updated: {len(staged_only)} file(s)[/dim]"
                )
                for filename in staged_only:
                    self.console.print(f"      • {escape(filename)}")

        if counts.deferred > 0:
            self.console.print(f"  [yellow]⊘[/yellow] Deferred: {counts.deferred} file(s)")
            for filename in outcome.deferred_files:
                self.console.print(f"      • {escape(filename)}")

        if counts.failed > 0:
            self.console.print(f"  [red]✗[/red] Failed: {counts.failed} file(s)")

        validation = outcome.validation
        if validation is not None and validation.invalid_files > 0:
            self.console.print(f"  [red]✗[/red] Invalid remote features: {validation.invalid_files} file(s)")

        # Overall status
        if not outcome.success:
            self.console.print(
                f"\n[red]Sync failed in phase {escape(str(outcome.failed_phase))}: {escape(str(outcome.error))}[/red]"
            )
        elif counts.deferred > 0:
            self.console.print("\n[yellow]Sync completed with deferred conflicts[/yellow]")
        elif outcome.change_set is not None and outcome.change_set.is_empty:
            self.console.print("\n[green]Already in sync. No changes detected.[/green]")
        else:
            self.console.print(f"\n[green]Sync completed successfully in {outcome.duration:.2f}s[/green]")
