# executor.py
from __future__ import annotations

import threading
import time
from dataclasses import replace
from typing import List, Mapping, Optional, Protocol

from .matrix import render, render_params
from .model import (
    JobDefinition,
    JobInstance,
    JobResult,
    JobStatus,
    Step,
    StepResult,
    StepStatus,
    transition,
)
from .ui.console import get_console


class StepRunner(Protocol):
    """
    Executes one action with its (already interpolated) params.

    Must return a StepResult; Success or Failure. Anything that cannot run
    at all should come back as a Failure with error_kind="runner_error".
    """

    def run(self, action: str, params: Mapping[str, str]) -> StepResult:
        ...


def _skipped(step: Step, instance: JobInstance) -> StepResult:
    return StepResult(name=render(step.name, instance), action=step.action, status=StepStatus.SKIPPED)


def _invoke(runner: StepRunner, step: Step, instance: JobInstance) -> StepResult:
    """Call the runner once; a runner that raises is reported as a runner_error failure."""
    name = render(step.name, instance)
    started = time.monotonic()
    try:
        result = runner.run(step.action, render_params(step.params, instance))
    except Exception as e:
        return StepResult(
            name=name,
            action=step.action,
            status=StepStatus.FAILURE,
            output=f"{type(e).__name__}: {e}",
            error_kind="runner_error",
            duration=time.monotonic() - started,
        )

    # Runners don't know which step they ran; stamp it here.
    return replace(
        result,
        name=name,
        action=step.action,
        duration=result.duration or (time.monotonic() - started),
    )


def execute_job(
    instance: JobInstance,
    definition: JobDefinition,
    runner: StepRunner,
    cancel: Optional[threading.Event] = None,
) -> JobResult:
    """
    Run one job instance's steps in declared order.

    State machine: pending -> running -> {success | failure | cancelled}.

    - fail_fast: the first failing step turns every later step into Skipped
      (the runner is never called for them).
    - continue_on_error steps may fail without aborting or failing the job.
    - cancel is checked before every step; once set, the job stops after the
      step currently running and reports Cancelled.
    """
    console = get_console()
    state = JobStatus.PENDING
    results: List[StepResult] = []
    failed = False

    if cancel is not None and cancel.is_set():
        state = transition(state, JobStatus.CANCELLED)
        job_result = JobResult(
            instance=instance,
            status=state,
            steps=tuple(_skipped(s, instance) for s in definition.steps),
        )
        console.print_job_result(job_result)
        return job_result

    state = transition(state, JobStatus.RUNNING)
    console.print_job_start(instance)

    for step in definition.steps:
        if failed and definition.fail_fast:
            results.append(_skipped(step, instance))
            continue
        if cancel is not None and cancel.is_set():
            state = transition(state, JobStatus.CANCELLED)
            break

        console.print_step(instance, render(step.name, instance))
        result = _invoke(runner, step, instance)
        results.append(result)
        console.print_step_result(instance, result)

        if result.status is StepStatus.FAILURE and not step.continue_on_error:
            failed = True

    # Whatever didn't get a result (cancellation) is recorded as Skipped.
    for step in definition.steps[len(results):]:
        results.append(_skipped(step, instance))

    if state is JobStatus.RUNNING:
        state = transition(state, JobStatus.FAILURE if failed else JobStatus.SUCCESS)

    job_result = JobResult(instance=instance, status=state, steps=tuple(results))
    console.print_job_result(job_result)
    return job_result
