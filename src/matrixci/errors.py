# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional


@dataclass
class CIError(Exception):
    """
    Structured CI error with enough context for:
      - clean CLI output
      - JSON reports
      - debugging without full tracebacks
    """
    message: str
    job: Optional[str] = None
    step: Optional[str] = None
    details: dict = field(default_factory=dict)

    kind: ClassVar[str] = "ci_error"

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        if self.job:
            lines.append(f"job={self.job}")
        if self.step:
            lines.append(f"step={self.step}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


class ConfigError(CIError):
    """Malformed matrix, job definition or pipeline document. Fatal before any step runs."""
    kind = "config_error"


@dataclass
class StepFailure(CIError):
    """An action ran and reported an unsuccessful outcome."""
    exit_code: Optional[int] = None
    output: str = ""

    kind: ClassVar[str] = "step_failure"


class RunnerError(CIError):
    """The action itself could not be invoked (unknown action, missing tool, broken env)."""
    kind = "runner_error"


class PipelineFailed(CIError):
    kind = "pipeline_failed"


class CancelledError(CIError):
    """The run was cancelled before every job instance finished."""
    kind = "cancelled"
