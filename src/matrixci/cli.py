# cli.py
from __future__ import annotations

import json
import signal
import sys
import threading
from contextlib import contextmanager
from pathlib import Path

import click

from matrixci.actions import LocalStepRunner
from matrixci.config import DEFAULT_WORKFLOW, DEFAULT_YAML_NAMES, Settings
from matrixci.errors import CancelledError, ConfigError, PipelineFailed
from matrixci.loader import load_workflow
from matrixci.matrix import plan
from matrixci.model import Pipeline
from matrixci.runner import run_pipeline
from matrixci.ui.console import Console, get_console, set_console

EXIT_CONFIG_ERROR = 2


def find_workflow_files(directory: Path = Path(".")) -> list[Path]:
    """
    Find all workflow files in a directory.

    Returns:
        List of Path objects for workflow files
    """
    found: list[Path] = []
    for name in (DEFAULT_WORKFLOW, *DEFAULT_YAML_NAMES):
        candidate = directory / name
        if candidate.exists():
            found.append(candidate)

    # Look for other *_workflow.py files
    for path in directory.glob("*_workflow.py"):
        if path.name != DEFAULT_WORKFLOW:
            found.append(path)

    return sorted(found)


def discover_workflow(workflow_arg: str | None) -> Path:
    """
    Discover workflow file from argument or default.

    Raises:
        SystemExit: If workflow cannot be found or multiple workflows exist
    """
    console = get_console()

    # If workflow is explicitly provided, use it
    if workflow_arg:
        workflow_path = Path(workflow_arg)
        if not workflow_path.exists() and not workflow_path.suffix:
            workflow_path = Path(str(workflow_path) + ".py")
        if not workflow_path.exists():
            console.print_error(
                "Workflow file not found",
                f"Could not find workflow file: {workflow_arg}",
                suggestion="Create a workflow file or specify a different path:\n  matrixci run --workflow ci.yml",
            )
            sys.exit(1)
        return workflow_path

    workflow_files = find_workflow_files()

    if len(workflow_files) == 0:
        console.print_error(
            "No workflow file found",
            "Could not find any workflow files.",
            details=[
                "Looked for:",
                f"  {DEFAULT_WORKFLOW}",
                *(f"  {n}" for n in DEFAULT_YAML_NAMES),
                "  *_workflow.py",
            ],
            suggestion="Create a workflow file:\n  matrixci.yml\n\nOr specify a workflow explicitly:\n  matrixci run --workflow ci.yml",
        )
        sys.exit(1)

    if len(workflow_files) > 1:
        file_list = "\n".join(f"  {f}" for f in workflow_files)
        console.print_error(
            "Multiple workflow files found",
            "Found multiple workflow files. Please specify which one to use:",
            details=[file_list],
            suggestion=f"Specify a workflow explicitly:\n  matrixci run --workflow {workflow_files[0]}",
        )
        sys.exit(1)

    return workflow_files[0]


def _load(workflow: str | None) -> tuple[Path, Pipeline]:
    console = get_console()
    workflow_path = discover_workflow(workflow)
    try:
        return workflow_path, load_workflow(workflow_path)
    except ConfigError as e:
        console.print_error(
            "Invalid workflow",
            f"Could not load workflow from {workflow_path}",
            details=str(e).splitlines(),
        )
        sys.exit(EXIT_CONFIG_ERROR)


@contextmanager
def _cancel_on_signals(cancel: threading.Event):
    """SIGINT / SIGTERM cancel the run instead of killing it mid-step."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum, frame):
        get_console().print_info(f"\nReceived signal {signum}, cancelling after current steps...")
        cancel.set()

    previous = {sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show step output and stack traces)",
)
@click.pass_context
def cli(ctx, debug):
    """matrixci: expand a build matrix, run each instance's steps fail-fast, aggregate."""
    try:
        settings = Settings.from_env().override(debug=debug or None)
    except ConfigError as e:
        Console().print_error("Invalid configuration", str(e))
        sys.exit(EXIT_CONFIG_ERROR)

    set_console(Console(debug=settings.debug))
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command()
@click.option(
    "--workflow",
    default=None,
    help=f"Workflow file path (defaults to {DEFAULT_WORKFLOW} or matrixci.yml if present)",
)
@click.option("--workers", default=None, type=click.IntRange(min=1), help="Max concurrent job instances (default: unbounded)")
@click.option("--workdir", default=None, type=click.Path(file_okay=False, path_type=Path), help="Directory steps run in")
@click.option("--timeout", default=None, type=click.FloatRange(min=0, min_open=True), help="Default per-step timeout in seconds")
@click.option("--json-report", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Write the full result as JSON")
@click.pass_context
def run(ctx, workflow, workers, workdir, timeout, json_report):
    """Run a matrixci workflow."""
    console = get_console()
    settings: Settings = ctx.obj["settings"].override(workers=workers, workdir=workdir, timeout=timeout)

    workflow_path, pipeline = _load(workflow)

    try:
        instances = plan(pipeline)
        console.print_run_started(
            pipeline=pipeline.name,
            workflow=workflow_path.name,
            instance_count=len(instances),
            workers=settings.workers,
        )

        runner = LocalStepRunner(workdir=settings.workdir, timeout=settings.timeout)
        cancel = threading.Event()
        with _cancel_on_signals(cancel):
            result = run_pipeline(pipeline, runner, max_workers=settings.workers, cancel=cancel)

        console.print_results(result)

        if json_report:
            json_report.parent.mkdir(parents=True, exist_ok=True)
            json_report.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
            console.print_info(f"Report written to {json_report}")

        result.raise_for_status()

    except ConfigError as e:
        console.print_error("Invalid workflow", str(e))
        sys.exit(EXIT_CONFIG_ERROR)
    except CancelledError as e:
        console.print_info(f"\n{e.message}")
        sys.exit(result.exit_code)
    except PipelineFailed as e:
        console.print_error("Pipeline failed", e.message, details=[f"failed: {e.details['failed']}"])
        sys.exit(result.exit_code)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command(name="plan")
@click.option("--workflow", default=None, help="Workflow file path")
def plan_cmd(workflow):
    """Print the expanded job instances in dispatch order."""
    console = get_console()
    _path, pipeline = _load(workflow)
    instances = plan(pipeline)
    console.print_header(f"{pipeline.name}: {len(instances)} job instance(s)")
    console.print_plan(instances)


@cli.command()
@click.option("--workflow", default=None, help="Workflow file path")
def validate(workflow):
    """Validate a workflow without running it."""
    console = get_console()
    workflow_path, pipeline = _load(workflow)
    instances = plan(pipeline)
    console.print_info(
        f"{workflow_path.name}: OK ({len(pipeline.jobs)} job(s), {len(instances)} instance(s))"
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
