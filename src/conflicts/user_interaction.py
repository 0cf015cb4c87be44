"""Interactive collaborators that ask a human how to resolve a conflict.

ConsoleUserInteraction renders a conflict summary and diff preview with rich
and reads the choice from the terminal. Blocking prompts run through
asyncio.to_thread so the event loop stays responsive. DeferringUserInteraction
answers "skip" for every document and is used for non-interactive runs.
"""

import asyncio
import logging
from collections import Counter
from pathlib import PurePosixPath
from typing import Any, Dict, Optional, Protocol

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.rule import Rule

from src.conflicts.models import ResolutionChoice
from src.core.errors import UserInteractionError
from src.core.events import EventBus, SyncEvents

logger = logging.getLogger(__name__)

PREVIEW_LINES = 20
DIFF_SIZE_BUCKET = 10

CHOICE_KEYS: Dict[str, ResolutionChoice] = {
    "r": ResolutionChoice.KEEP_REMOTE,
    "l": ResolutionChoice.KEEP_LOCAL,
    "m": ResolutionChoice.INJECT_MARKERS,
    "s": ResolutionChoice.SKIP,
    "d": ResolutionChoice.SHOW_DIFF,
}

CHOICE_LABELS: Dict[ResolutionChoice, str] = {
    ResolutionChoice.KEEP_REMOTE: "Use the remote version",
    ResolutionChoice.KEEP_LOCAL: "Use the local version",
    ResolutionChoice.INJECT_MARKERS: "Manual resolution (write conflict markers to the staged copy)",
    ResolutionChoice.SKIP: "Skip this file",
    ResolutionChoice.SHOW_DIFF: "Show detailed diff",
}


class UserInteraction(Protocol):
    """Asks for a ResolutionChoice per conflicting document."""

    async def prompt_for_resolution(self, filename: str, diff_text: str) -> ResolutionChoice: ...

    async def show_diff(self, filename: str, diff_text: str) -> None: ...

    async def confirm_destructive_operation(self, operation: str, details: Any) -> bool: ...

    def close(self) -> None: ...


def _count_diff_lines(diff_text: str):
    lines = diff_text.splitlines()
    added = sum(1 for line in lines if line.startswith("+") and not line.startswith("+++"))
    removed = sum(1 for line in lines if line.startswith("-") and not line.startswith("---"))
    return added, removed


class ConsoleUserInteraction:
    """Terminal prompts using rich.

    Choices are remembered per (file extension, diff size bucket of 10 lines)
    so a similar conflict later in the same run reuses the earlier answer.

    Example:
        >>> interaction = ConsoleUserInteraction()
        >>> choice = asyncio.run(interaction.prompt_for_resolution("login.feature", diff))
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        events: Optional[EventBus] = None,
        remember_choices: bool = True,
    ):
        self.console = console or Console()
        self.events = events
        self.remember_choices = remember_choices
        self._responses: Dict[str, ResolutionChoice] = {}
        self._closed = False

    async def prompt_for_resolution(self, filename: str, diff_text: str) -> ResolutionChoice:
        """Ask how to resolve one document.

        Raises:
            UserInteractionError: If the session is closed or input is aborted
        """
        if self._closed:
            raise UserInteractionError("Interactive session is closed", "conflict-resolution")

        self._emit(SyncEvents.USER_PROMPT_STARTED, {"filename": filename, "type": "conflict-resolution"})

        remembered = self.get_remembered_choice(filename, diff_text)
        if remembered is not None:
            self.console.print(f"\n[cyan]Using previous choice for similar conflict:[/cyan] {remembered.value}")
            self._emit(SyncEvents.USER_CHOICE_MADE, {"filename": filename, "choice": remembered.value})
            return remembered

        self.display_conflict_info(filename, diff_text)

        try:
            key = await asyncio.to_thread(
                Prompt.ask,
                "How would you like to resolve this conflict?",
                choices=list(CHOICE_KEYS),
                console=self.console,
            )
        except (EOFError, KeyboardInterrupt) as e:
            self._emit(SyncEvents.USER_INTERACTION_CANCELLED, {"filename": filename, "error": str(e) or type(e).__name__})
            raise UserInteractionError(f"Conflict resolution aborted for {filename}", "conflict-resolution") from e

        choice = CHOICE_KEYS[key.strip().lower()]
        if choice is not ResolutionChoice.SHOW_DIFF:
            self.remember_choice(filename, diff_text, choice)

        self._emit(SyncEvents.USER_CHOICE_MADE, {"filename": filename, "choice": choice.value})
        return choice

    def display_conflict_info(self, filename: str, diff_text: str) -> None:
        """Print a conflict summary with a coloured preview of the diff."""
        added, removed = _count_diff_lines(diff_text)
        lines = diff_text.splitlines()

        self.console.print(Rule(f"[bold red]Conflict detected: {filename}[/bold red]"))
        self.console.print(f"  Lines added:   {added}")
        self.console.print(f"  Lines removed: {removed}")
        self.console.print("\n[bold]Diff preview:[/bold]")
        for line in lines[:PREVIEW_LINES]:
            self.console.print(self._style_line(line), highlight=False)
        if len(lines) > PREVIEW_LINES:
            self.console.print(f"[dim]... ({len(lines) - PREVIEW_LINES} more lines)[/dim]")

        self.console.print()
        for key, choice in CHOICE_KEYS.items():
            self.console.print(f"  [bold]\\[{key}][/bold] {CHOICE_LABELS[choice]}")

    async def show_diff(self, filename: str, diff_text: str) -> None:
        self.console.print(Rule(f"Detailed diff: {filename}"))
        for line in diff_text.splitlines():
            self.console.print(self._style_line(line), highlight=False)
        self.console.print(Rule())

    async def confirm_destructive_operation(self, operation: str, details: Any) -> bool:
        """Ask for explicit confirmation before an irreversible action."""
        self.console.print(f"\n[bold yellow]Destructive operation:[/bold yellow] {operation}")
        self.console.print(f"Details: {details}")
        self.console.print("This action cannot be undone.")
        try:
            return await asyncio.to_thread(
                Confirm.ask, "Are you sure you want to continue?", console=self.console, default=False
            )
        except (EOFError, KeyboardInterrupt) as e:
            raise UserInteractionError(f"Confirmation aborted for {operation}", "confirmation") from e

    @staticmethod
    def _bucket_key(filename: str, diff_text: str) -> str:
        extension = PurePosixPath(filename).suffix.lstrip(".") or filename
        size = len(diff_text.split("\n"))
        return f"{extension}-{(size // DIFF_SIZE_BUCKET) * DIFF_SIZE_BUCKET}"

    def get_remembered_choice(self, filename: str, diff_text: str) -> Optional[ResolutionChoice]:
        if not self.remember_choices:
            return None
        return self._responses.get(self._bucket_key(filename, diff_text))

    def remember_choice(self, filename: str, diff_text: str, choice: ResolutionChoice) -> None:
        if self.remember_choices:
            self._responses[self._bucket_key(filename, diff_text)] = choice

    def clear_remembered_choices(self) -> None:
        self._responses.clear()

    def get_stats(self) -> Dict[str, Any]:
        counts = Counter(choice.value for choice in self._responses.values())
        return {"cached_responses": len(self._responses), "response_types": dict(counts)}

    def close(self) -> None:
        self._closed = True

    @staticmethod
    def _style_line(line: str) -> str:
        escaped = escape(line)
        if line.startswith("+"):
            return f"[green]{escaped}[/green]"
        if line.startswith("-"):
            return f"[red]{escaped}[/red]"
        return escaped

    def _emit(self, event_name: str, data) -> None:
        if self.events is not None:
            self.events.emit(event_name, data)


class DeferringUserInteraction:
    """Non-interactive collaborator: every conflict is deferred."""

    def __init__(self, events: Optional[EventBus] = None):
        self.events = events

    async def prompt_for_resolution(self, filename: str, diff_text: str) -> ResolutionChoice:
        logger.info(f"Deferring conflict in {filename} (non-interactive run)")
        if self.events is not None:
            self.events.emit(SyncEvents.USER_CHOICE_MADE, {"filename": filename, "choice": ResolutionChoice.SKIP.value})
        return ResolutionChoice.SKIP

    async def show_diff(self, filename: str, diff_text: str) -> None:
        logger.debug(f"Diff for {filename}:\n{diff_text}")

    async def confirm_destructive_operation(self, operation: str, details: Any) -> bool:
        logger.info(f"Declining '{operation}' for {details} (non-interactive run)")
        return False

    def close(self) -> None:
        pass
