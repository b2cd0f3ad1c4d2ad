# matrix.py
from __future__ import annotations

import itertools
import re
from typing import Dict, Iterable, Iterator, List, Mapping

from .errors import ConfigError
from .model import JobDefinition, JobInstance, Matrix, Pipeline


# ${{ matrix.os }}  /  ${{matrix.rust}}
_MATRIX_REF = re.compile(r"\$\{\{\s*matrix\.([A-Za-z0-9_-]+)\s*\}\}")


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------

def validate_matrix(matrix: Matrix, job: str | None = None) -> None:
    """
    Reject matrices that cannot be expanded.

    Raises ConfigError for:
      - duplicate axis names
      - an axis with zero values
      - duplicate values inside one axis
      - exclude entries naming unknown axes or values
    """
    seen: set[str] = set()
    for axis in matrix.axes:
        if axis.name in seen:
            raise ConfigError(f"Duplicate matrix axis: {axis.name!r}", job=job)
        seen.add(axis.name)

        if not axis.values:
            raise ConfigError(f"Matrix axis {axis.name!r} has no values", job=job)

        if len(set(axis.values)) != len(axis.values):
            dupes = sorted({v for v in axis.values if axis.values.count(v) > 1})
            raise ConfigError(
                f"Matrix axis {axis.name!r} has duplicate values",
                job=job,
                details={"duplicates": dupes},
            )

    values_by_axis = {a.name: set(a.values) for a in matrix.axes}
    for entry in matrix.exclude:
        if not entry:
            raise ConfigError("Empty matrix exclude entry", job=job)
        for name, value in entry.items():
            if name not in values_by_axis:
                raise ConfigError(f"Matrix exclude names unknown axis {name!r}", job=job)
            if value not in values_by_axis[name]:
                raise ConfigError(
                    f"Matrix exclude value {value!r} is not a value of axis {name!r}",
                    job=job,
                )


def check_references(job: JobDefinition) -> None:
    """Every ${{ matrix.X }} in step names and params must name a declared axis."""
    declared = set(job.matrix.axis_names)
    for step in job.steps:
        for text in (step.name, *step.params.values()):
            for ref in _MATRIX_REF.findall(text):
                if ref not in declared:
                    raise ConfigError(
                        f"Unknown matrix reference 'matrix.{ref}'",
                        job=job.name,
                        step=step.name,
                        details={"declared": sorted(declared)},
                    )


def validate_job(job: JobDefinition) -> None:
    if not job.steps:
        raise ConfigError(f"Job {job.name!r} has no steps", job=job.name)
    validate_matrix(job.matrix, job=job.name)
    if job.matrix.exclude and count(job) == 0:
        raise ConfigError(f"Matrix of job {job.name!r} excludes every combination", job=job.name)
    check_references(job)


def validate_pipeline(pipeline: Pipeline) -> None:
    if not pipeline.jobs:
        raise ConfigError(f"Pipeline {pipeline.name!r} defines no jobs")

    names = [j.name for j in pipeline.jobs]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise ConfigError("Duplicate job names found", details={"duplicates": dupes})

    for job in pipeline.jobs:
        validate_job(job)


# ----------------------------------------------------------------------
# Expansion
# ----------------------------------------------------------------------

def _excluded(assignment: Dict[str, str], exclude: Iterable[Mapping[str, str]]) -> bool:
    return any(all(assignment.get(k) == v for k, v in entry.items()) for entry in exclude)


def expand(job: JobDefinition, start: int = 0) -> Iterator[JobInstance]:
    """
    Lazily yield the job's instances, one per combination of axis values.

    Order is lexicographic over axis declaration order, then value order
    (the last axis varies fastest). Each call restarts the sequence.
    """
    validate_matrix(job.matrix, job=job.name)

    names = job.matrix.axis_names
    index = start
    for combo in itertools.product(*(a.values for a in job.matrix.axes)):
        assignment = dict(zip(names, combo))
        if _excluded(assignment, job.matrix.exclude):
            continue
        yield JobInstance(job=job.name, assignment=tuple(zip(names, combo)), index=index)
        index += 1


def expand_pipeline(pipeline: Pipeline) -> Iterator[JobInstance]:
    """Chain every job's expansion in declaration order; indices run across jobs."""
    index = 0
    for job in pipeline.jobs:
        for instance in expand(job, start=index):
            yield instance
            index = instance.index + 1


def count(job: JobDefinition) -> int:
    if not job.matrix.exclude:
        total = 1
        for axis in job.matrix.axes:
            total *= len(axis.values)
        return total
    return sum(1 for _ in expand(job))


# ----------------------------------------------------------------------
# Interpolation
# ----------------------------------------------------------------------

def render(text: str, instance: JobInstance) -> str:
    values = instance.as_dict()
    return _MATRIX_REF.sub(lambda m: values.get(m.group(1), m.group(0)), text)


def render_params(params: Mapping[str, str], instance: JobInstance) -> Dict[str, str]:
    return {k: render(v, instance) for k, v in params.items()}


def plan(pipeline: Pipeline) -> List[JobInstance]:
    """Validated, fully materialized expansion (for `matrixci plan` and reports)."""
    validate_pipeline(pipeline)
    return list(expand_pipeline(pipeline))
