"""Console output formatting utilities for matrixci."""

from __future__ import annotations

import sys
import threading
from typing import Iterable, Optional

from ..model import JobInstance, JobResult, PipelineResult, StepResult, StepStatus


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, stream=None):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including step output and stack traces
            stream: Where regular output goes (defaults to sys.stdout at write time)
        """
        self.debug = debug
        self._stream = stream
        # Job instances report from worker threads; keep lines whole.
        self._lock = threading.Lock()

    def _out(self, *lines: str, err: bool = False) -> None:
        target = sys.stderr if err else (self._stream or sys.stdout)
        with self._lock:
            for line in lines:
                print(line, file=target)

    def print_header(self, title: str) -> None:
        """Print a section header."""
        self._out(f"\n{title}", "-" * len(title))

    def print_run_started(
        self,
        pipeline: str,
        workflow: str,
        instance_count: int,
        workers: Optional[int] = None,
    ) -> None:
        """Print run start information."""
        self._out(
            "\nRUN STARTED",
            f"Pipeline: {pipeline}",
            f"Workflow: {workflow}",
            f"Job instances: {instance_count}",
            f"Workers: {workers if workers else 'unbounded'}",
            "",
        )

    def print_plan(self, instances: Iterable[JobInstance]) -> None:
        """Print the expanded job instances in dispatch order."""
        for inst in instances:
            self._out(f"  {inst.index + 1:>3}. {inst.label}")

    def print_job_start(self, instance: JobInstance) -> None:
        self._out(f"[{instance.label}] JOB STARTED")

    def print_step(self, instance: JobInstance, name: str) -> None:
        self._out(f"[{instance.label}] ▶ {name}")

    def print_step_result(self, instance: JobInstance, result: StepResult) -> None:
        if result.status is StepStatus.SUCCESS:
            self._out(f"[{instance.label}] ✓ {result.name}")
            return
        if result.status is StepStatus.SKIPPED:
            self._out(f"[{instance.label}] ⏭ {result.name} (skipped)")
            return

        lines = [f"[{instance.label}] ✗ {result.name} ({result.error_kind or 'failure'})"]
        if self.debug:
            lines.extend(f"[{instance.label}]   {line}" for line in result.output.splitlines())
        else:
            # Show first line of output for non-debug mode
            first = result.output.strip().split("\n")[0] if result.output.strip() else ""
            if first:
                lines.append(f"[{instance.label}]   {first}")
        self._out(*lines)

    def print_job_result(self, result: JobResult) -> None:
        self._out(f"[{result.instance.label}] JOB {result.status.value.upper()}")

    def print_results(self, result: PipelineResult) -> None:
        """Print final results summary."""
        lines = ["", "=" * 40, "RESULTS", "=" * 40]
        for job in result.jobs:
            lines.append(f"  {job.instance.label}: {job.status.value.upper()}")
            if job.status.value != "success":
                for step in job.steps:
                    lines.append(f"      {step.name}: {step.status.value}")
        lines.append("-" * 40)
        lines.append(f"PIPELINE: {result.status.value.upper()}")
        self._out(*lines)

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
        lines = [f"\nERROR: {title}", message]
        if details:
            lines.extend(f"  {detail}" for detail in details)
        if suggestion:
            lines.append(f"\n{suggestion}")
        self._out(*lines, err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            with self._lock:
                traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        else:
            self._out(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)


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
