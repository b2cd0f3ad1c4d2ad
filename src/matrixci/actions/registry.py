# actions/registry.py
from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from ..errors import RunnerError, StepFailure
from ..model import StepResult, StepStatus


@dataclass(frozen=True)
class ActionContext:
    """What a local action needs besides its params."""
    workdir: Path
    timeout: Optional[float] = None


# handler(params, ctx) -> captured output; raises StepFailure / RunnerError
Handler = Callable[[Mapping[str, str], ActionContext], str]


def normalize(action: str) -> str:
    """
    GitHub-style identifiers resolve by their last path segment:
        actions/checkout@v2   -> checkout
        actions-rs/cargo@v1   -> cargo
    """
    return action.split("@", 1)[0].rstrip("/").split("/")[-1]


class ActionRegistry:
    def __init__(self) -> None:
        self._handlers: Dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        if name in self._handlers:
            raise ValueError(f"Action already registered: {name!r}")
        self._handlers[name] = handler

    def action(self, name: str) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""
        def deco(fn: Handler) -> Handler:
            self.register(name, fn)
            return fn
        return deco

    def names(self) -> List[str]:
        return sorted(self._handlers)

    def resolve(self, action: str) -> Handler:
        handler = self._handlers.get(action) or self._handlers.get(normalize(action))
        if handler is None:
            raise RunnerError(
                f"Unknown action {action!r}",
                details={"known": ", ".join(self.names())},
            )
        return handler


class LocalStepRunner:
    """
    Step runner that executes actions in-process / as local subprocesses.

    Handler exceptions are turned into Failure results:
      - StepFailure  -> error_kind="step_failure", output = captured output
      - RunnerError  -> error_kind="runner_error", output = the error text
    """

    def __init__(
        self,
        registry: Optional[ActionRegistry] = None,
        workdir: str | Path = ".",
        timeout: Optional[float] = None,
    ):
        if registry is None:
            from .builtin import default_registry
            registry = default_registry()
        self.registry = registry
        self.context = ActionContext(workdir=Path(workdir).resolve(), timeout=timeout)

    def run(self, action: str, params: Mapping[str, str]) -> StepResult:
        started = time.monotonic()

        def done(status: StepStatus, output: str, kind: Optional[str] = None) -> StepResult:
            return StepResult(
                name=action,
                action=action,
                status=status,
                output=output,
                error_kind=kind,
                duration=time.monotonic() - started,
            )

        try:
            handler = self.registry.resolve(action)
            output = handler(params, self.context)
        except StepFailure as e:
            return done(StepStatus.FAILURE, e.output or str(e), StepFailure.kind)
        except RunnerError as e:
            return done(StepStatus.FAILURE, str(e), RunnerError.kind)

        return done(StepStatus.SUCCESS, output or "")
