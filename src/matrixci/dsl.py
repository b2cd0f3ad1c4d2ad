# src/matrixci/dsl.py
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence

from .errors import ConfigError
from .model import Axis, JobDefinition, Matrix, Pipeline, Step


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def step(name: str, action: str, *, continue_on_error: bool = False, **params: Any) -> Step:
    """
    Create a step running `action`.

        step("Format", "cargo", command="fmt", args="--all -- --check")
    """
    return Step(
        name=name,
        action=action,
        params={k: str(v) for k, v in params.items()},
        continue_on_error=continue_on_error,
    )


def sh(name: str, cmd: str, *, cwd: str | None = None, continue_on_error: bool = False) -> Step:
    """Create a shell step."""
    params = {"run": cmd}
    if cwd is not None:
        params["cwd"] = cwd
    return Step(name=name, action="run", params=params, continue_on_error=continue_on_error)


# ---------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------

def matrix(
    exclude: Optional[Sequence[Mapping[str, Any]]] = None,
    **axes: Iterable[Any],
) -> Matrix:
    """
    Axes in keyword order.

        matrix(os=["ubuntu-latest", "windows-latest"], rust=["stable", "nightly"])
    """
    return Matrix(
        axes=tuple(Axis(name=k, values=tuple(str(v) for v in values)) for k, values in axes.items()),
        exclude=tuple({k: str(v) for k, v in e.items()} for e in (exclude or [])),
    )


# ---------------------------------------------------------------------
# Functional Job helper
# ---------------------------------------------------------------------

def job(
    name: str,
    *steps: Step,  # allow: job("x", sh(...), sh(...))
    matrix: Optional[Matrix] = None,
    fail_fast: bool = True,
) -> JobDefinition:
    if not steps:
        raise ConfigError(f"job({name!r}) must have at least one step", job=name)

    return JobDefinition(
        name=name,
        steps=tuple(steps),
        matrix=matrix if matrix is not None else Matrix(),
        fail_fast=fail_fast,
    )


# ---------------------------------------------------------------------
# Workflow helper (single-file story)
# ---------------------------------------------------------------------

def wf(*jobs: JobDefinition, name: str = "workflow") -> Pipeline:
    """
    Workflow definition helper. Use this name so you can define your own
    def workflow(): return wf(job(...), job(...)).

    Users can write:
        from matrixci import wf, job, sh

        def workflow():
            return wf(
                job(...),
                job(...),
            )

    Or use JOBS directly:
        JOBS = [job(...), job(...)]
    """
    return Pipeline(name=name, jobs=tuple(jobs))
