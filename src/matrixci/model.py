# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import CancelledError, PipelineFailed


@dataclass(frozen=True)
class Axis:
    """One dimension of build variation, e.g. os: [ubuntu-latest, windows-latest]."""
    name: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class Matrix:
    """
    A set of axes plus optional exclude entries.

    Each exclude entry is a partial assignment (axis name -> value); any
    combination matching all of its pairs is dropped from the expansion.
    """
    axes: Tuple[Axis, ...] = ()
    exclude: Tuple[Mapping[str, str], ...] = ()

    @property
    def axis_names(self) -> Tuple[str, ...]:
        return tuple(a.name for a in self.axes)


@dataclass(frozen=True)
class Step:
    """A single action inside a CI job."""
    name: str
    action: str
    params: Mapping[str, str] = field(default_factory=dict)
    continue_on_error: bool = False


@dataclass(frozen=True)
class JobDefinition:
    """
    Ordered steps shared by every instance of the job's matrix.

    fail_fast=True aborts the remaining steps of an instance on its first
    failing step; fail_fast=False keeps running them and reports Failure at the end.
    """
    name: str
    steps: Tuple[Step, ...]
    matrix: Matrix = field(default_factory=Matrix)
    fail_fast: bool = True


@dataclass(frozen=True)
class Pipeline:
    name: str
    jobs: Tuple[JobDefinition, ...]


@dataclass(frozen=True)
class JobInstance:
    """One concrete combination of axis values for one job."""
    job: str
    assignment: Tuple[Tuple[str, str], ...]
    index: int = 0

    @property
    def values(self) -> Tuple[str, ...]:
        return tuple(v for _, v in self.assignment)

    @property
    def key(self) -> Tuple[str, ...]:
        return (self.job, *self.values)

    @property
    def label(self) -> str:
        if not self.assignment:
            return self.job
        return f"{self.job} ({', '.join(self.values)})"

    def as_dict(self) -> Dict[str, str]:
        return dict(self.assignment)


# ----------------------------------------------------------------------
# Statuses
# ----------------------------------------------------------------------

class StepStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.SUCCESS, JobStatus.FAILURE, JobStatus.CANCELLED)


_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.RUNNING, JobStatus.CANCELLED},
    JobStatus.RUNNING: {JobStatus.SUCCESS, JobStatus.FAILURE, JobStatus.CANCELLED},
}


def transition(current: JobStatus, target: JobStatus) -> JobStatus:
    """Move a job instance to `target`, refusing anything that leaves a terminal state."""
    if target not in _TRANSITIONS.get(current, set()):
        raise RuntimeError(f"illegal job transition: {current.value} -> {target.value}")
    return target


class PipelineStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


EXIT_CODES = {
    PipelineStatus.SUCCESS: 0,
    PipelineStatus.FAILURE: 1,
    PipelineStatus.CANCELLED: 130,
}


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class StepResult:
    name: str
    action: str
    status: StepStatus
    output: str = ""
    error_kind: Optional[str] = None  # "step_failure" | "runner_error"
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is StepStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "action": self.action,
            "status": self.status.value,
            "output": self.output,
            "error_kind": self.error_kind,
            "duration": round(self.duration, 3),
        }


@dataclass(frozen=True)
class JobResult:
    instance: JobInstance
    status: JobStatus
    steps: Tuple[StepResult, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job": self.instance.job,
            "label": self.instance.label,
            "matrix": self.instance.as_dict(),
            "status": self.status.value,
            "steps": [s.to_dict() for s in self.steps],
        }


@dataclass(frozen=True)
class PipelineResult:
    name: str
    status: PipelineStatus
    jobs: Tuple[JobResult, ...]

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.status]

    @property
    def cancelled(self) -> bool:
        return self.status is PipelineStatus.CANCELLED

    def raise_for_status(self) -> None:
        if self.cancelled:
            cancelled = [j.instance.label for j in self.jobs if j.status is JobStatus.CANCELLED]
            raise CancelledError(
                message=f"pipeline {self.name!r} was cancelled",
                details={"cancelled": ", ".join(cancelled)},
            )
        if self.status is PipelineStatus.FAILURE:
            failed = [j.instance.label for j in self.jobs if j.status is JobStatus.FAILURE]
            raise PipelineFailed(
                message=f"pipeline {self.name!r} failed",
                details={"failed": ", ".join(failed)},
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pipeline": self.name,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "cancelled": self.cancelled,
            "jobs": [j.to_dict() for j in self.jobs],
        }
