# schema.py
"""
Pydantic schemas for declarative pipeline documents.

The accepted shape is the GitHub Actions subset matrixci understands:

    name: Continuous integration
    jobs:
      check:
        name: Check and Lint
        strategy:
          matrix:
            os: [ubuntu-latest, windows-latest]
            rust: [stable, nightly]
            exclude:
              - {os: windows-latest, rust: nightly}
        steps:
          - uses: actions/checkout@v2
          - uses: actions-rs/cargo@v1
            with: {command: fmt, args: --all -- --check}
          - name: Tests
            run: cargo test

Unknown keys (on, runs-on, env, ...) are accepted and ignored.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import ConfigError
from .model import Axis, JobDefinition, Matrix, Pipeline, Step


def stringify(value: Any) -> str:
    """YAML scalars -> step param strings."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(v) for v in value)
    return str(value)


class _Doc(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class StepDoc(_Doc):
    name: Optional[str] = None
    uses: Optional[str] = None
    run: Optional[str] = None
    with_: Dict[str, Any] = Field(default_factory=dict, alias="with")
    working_directory: Optional[str] = Field(default=None, alias="working-directory")
    continue_on_error: bool = Field(default=False, alias="continue-on-error")

    @model_validator(mode="after")
    def _uses_or_run(self) -> "StepDoc":
        # A blank `run:` counts as missing.
        if bool(self.uses) == bool(self.run and self.run.strip()):
            raise ValueError("a step needs exactly one of 'uses' or 'run'")
        return self

    def to_step(self) -> Step:
        if not self.uses:
            params = {"run": self.run}
            if self.working_directory:
                params["cwd"] = self.working_directory
            params.update({k: stringify(v) for k, v in self.with_.items()})
            return Step(
                name=self.name or self.run.strip().splitlines()[0],
                action="run",
                params=params,
                continue_on_error=self.continue_on_error,
            )

        return Step(
            name=self.name or self.uses,
            action=self.uses,
            params={k: stringify(v) for k, v in self.with_.items()},
            continue_on_error=self.continue_on_error,
        )


class StrategyDoc(_Doc):
    matrix: Dict[str, Any] = Field(default_factory=dict)
    # Accepted for compatibility; instances never cancel each other.
    fail_fast: Optional[bool] = Field(default=None, alias="fail-fast")

    def to_matrix(self, job: str) -> Matrix:
        axes: List[Axis] = []
        exclude: List[Dict[str, str]] = []

        for key, value in self.matrix.items():
            if key == "include":
                raise ConfigError("matrix 'include' is not supported", job=job)
            if key == "exclude":
                if not isinstance(value, list) or not all(isinstance(e, dict) for e in value):
                    raise ConfigError("matrix 'exclude' must be a list of mappings", job=job)
                exclude.extend({str(k): stringify(v) for k, v in e.items()} for e in value)
                continue
            if not isinstance(value, list):
                raise ConfigError(f"matrix axis {key!r} must be a list", job=job)
            axes.append(Axis(name=str(key), values=tuple(stringify(v) for v in value)))

        return Matrix(axes=tuple(axes), exclude=tuple(exclude))


class JobOptionsDoc(_Doc):
    fail_fast: bool = Field(default=True, alias="fail-fast")


class JobDoc(_Doc):
    name: Optional[str] = None
    strategy: StrategyDoc = Field(default_factory=StrategyDoc)
    steps: List[StepDoc] = Field(default_factory=list)
    matrixci: JobOptionsDoc = Field(default_factory=JobOptionsDoc)

    def to_job(self, job_id: str) -> JobDefinition:
        return JobDefinition(
            name=job_id,
            steps=tuple(s.to_step() for s in self.steps),
            matrix=self.strategy.to_matrix(job_id),
            fail_fast=self.matrixci.fail_fast,
        )


class WorkflowDoc(_Doc):
    name: Optional[str] = None
    jobs: Dict[str, JobDoc] = Field(default_factory=dict)

    def to_pipeline(self, default_name: str) -> Pipeline:
        return Pipeline(
            name=self.name or default_name,
            jobs=tuple(doc.to_job(job_id) for job_id, doc in self.jobs.items()),
        )
