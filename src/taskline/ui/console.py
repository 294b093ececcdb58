"""Console output formatting utilities for taskline."""

from __future__ import annotations

import shlex
import sys
from typing import Mapping, Optional, Sequence


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, quiet: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
            quiet: If True, suppress progress lines (errors are still shown)
        """
        self.debug = debug
        self.quiet = quiet

    def _out(self, text: str) -> None:
        """Print a progress line unless quiet mode is on."""
        if not self.quiet:
            print(text, flush=True)

    def print_task_start(self, name: str, description: str | None = None) -> None:
        """
        Print task start message.

        Args:
            name: Task name
            description: Optional task description from the task file
        """
        if description:
            self._out(f"\nTASK: {name} ({description})")
        else:
            self._out(f"\nTASK: {name}")

    def print_command(self, argv: Sequence[str], dry_run: bool = False) -> None:
        """
        Print the command line about to be run.

        Args:
            argv: Fully resolved argument list
            dry_run: If True, the command is only shown, never run
        """
        prefix = "WOULD RUN" if dry_run else "RUN"
        self._out(f"{prefix}: {shlex.join(argv)}")

    def print_task_done(self, name: str, duration: float) -> None:
        """Print task completion message with its wall-clock duration."""
        self._out(f"DONE: {name} ({duration:.1f}s)")

    def print_pipeline_started(self, pipeline: str, event: str, branch: str, step_count: int) -> None:
        """
        Print pipeline start information.

        Args:
            pipeline: Pipeline name
            event: Trigger event ("push" or "pull_request")
            branch: Target branch of the trigger
            step_count: Number of steps that will run
        """
        self._out("\nPIPELINE STARTED")
        self._out(f"Pipeline: {pipeline}")
        self._out(f"Trigger: {event} -> {branch}")
        self._out(f"Steps: {step_count}")

    def print_step(self, name: str, kind: str) -> None:
        """Print step start message."""
        self._out(f"\nSTEP: {name} [{kind}]")

    def print_skipped(self, name: str, reason: str) -> None:
        """
        Print skipped message for a step or a whole pipeline.

        Args:
            name: Step or pipeline name
            reason: Why nothing ran
        """
        self._out(f"SKIPPED: {name} ({reason})")

    def print_results(self, results: Mapping[str, str]) -> None:
        """Print final results summary."""
        self._out("\n" + "=" * 40)
        self._out("RESULTS")
        self._out("=" * 40)
        for name, status in results.items():
            status_display = status.upper() if status != "ok" else "SUCCESS"
            self._out(f"  {name}: {status_display}")

    def print_table(self, rows: Sequence[tuple[str, str]]) -> None:
        """
        Print two aligned columns. Shown even in quiet mode.

        Args:
            rows: (key, value) pairs, printed in order
        """
        if not rows:
            return
        width = max(len(k) for k, _ in rows)
        for key, value in rows:
            print(f"{key.ljust(width)}  {value}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(exc)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
