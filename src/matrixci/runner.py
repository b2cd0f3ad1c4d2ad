# runner.py
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, Iterator, Optional

from .errors import ConfigError
from .executor import StepRunner, execute_job
from .matrix import expand_pipeline, render, validate_pipeline
from .model import (
    JobInstance,
    JobResult,
    JobStatus,
    Pipeline,
    PipelineResult,
    PipelineStatus,
    StepResult,
    StepStatus,
)
from .ui.console import get_console


def aggregate(name: str, results: Iterable[JobResult]) -> PipelineResult:
    """
    Fold job results into the pipeline outcome.

    cancelled if any instance was cancelled, else failure if any failed,
    else success. Results are ordered by expansion index.
    """
    ordered = tuple(sorted(results, key=lambda r: r.instance.index))
    statuses = {r.status for r in ordered}

    if JobStatus.CANCELLED in statuses:
        status = PipelineStatus.CANCELLED
    elif JobStatus.FAILURE in statuses:
        status = PipelineStatus.FAILURE
    else:
        status = PipelineStatus.SUCCESS

    return PipelineResult(name=name, status=status, jobs=ordered)


def _never_started(instance: JobInstance, pipeline: Pipeline, status: JobStatus) -> JobResult:
    definition = next(j for j in pipeline.jobs if j.name == instance.job)
    return JobResult(
        instance=instance,
        status=status,
        steps=tuple(
            StepResult(name=render(s.name, instance), action=s.action, status=StepStatus.SKIPPED)
            for s in definition.steps
        ),
    )


def run_pipeline(
    pipeline: Pipeline,
    runner: StepRunner,
    *,
    max_workers: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
) -> PipelineResult:
    """
    Scheduler + orchestrator:

    - Validates the whole pipeline before anything runs (ConfigError).
    - Expands every job's matrix and dispatches each instance to execute_job
      on a thread pool, at most `max_workers` at a time (None = unbounded).
    - Waits for every instance; a failing instance never cancels its siblings.
    - If `cancel` gets set: nothing new is dispatched, undispatched instances
      are reported Cancelled and running ones stop after their current step.
    """
    validate_pipeline(pipeline)
    if max_workers is not None and max_workers < 1:
        raise ConfigError(f"max_workers must be >= 1, got {max_workers}")

    console = get_console()
    definitions = {job.name: job for job in pipeline.jobs}
    cancel = cancel if cancel is not None else threading.Event()

    instances: Iterator[JobInstance] = expand_pipeline(pipeline)
    if max_workers is None:
        # Unbounded fan-out: one worker per instance.
        materialized = list(instances)
        workers = max(1, len(materialized))
        instances = iter(materialized)
    else:
        workers = max_workers

    results: Dict[int, JobResult] = {}
    in_flight: Dict[Future, JobInstance] = {}

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="matrixci") as pool:
        while True:
            # fill every free slot from the (lazy) instance stream
            while len(in_flight) < workers and not cancel.is_set():
                instance = next(instances, None)
                if instance is None:
                    break
                fut = pool.submit(execute_job, instance, definitions[instance.job], runner, cancel)
                in_flight[fut] = instance

            if not in_flight:
                break

            # wait for one completion, then loop to refill the pool
            fut = next(as_completed(list(in_flight.keys())))
            instance = in_flight.pop(fut)

            try:
                results[instance.index] = fut.result()
            except Exception as e:
                # execute_job contains step errors itself; this is a bug in the
                # executor or console, keep the report complete anyway.
                console.print_exception(e)
                results[instance.index] = _never_started(instance, pipeline, JobStatus.FAILURE)

    for instance in instances:
        results[instance.index] = _never_started(instance, pipeline, JobStatus.CANCELLED)

    return aggregate(pipeline.name, results.values())
