import io
import threading

import pytest

from matrixci.dsl import job, matrix, step
from matrixci.model import StepResult, StepStatus
from matrixci.ui import console as console_mod
from matrixci.ui.console import Console

CELL = "${{ matrix.os }}/${{ matrix.toolchain }}"
STEP_NAMES = ["checkout", "install", "check", "fmt", "clippy"]


class FakeRunner:
    """
    Scripted step runner.

    Every step in the test jobs carries a `cell` param rendered from the
    matrix, so the runner can tell instances apart:
      fail      {(action, cell)} -> Failure result
      raise_on  {(action, cell)} -> raises RuntimeError
      on_call   callback(action, cell) before the outcome is decided
    """

    def __init__(self, fail=(), raise_on=(), on_call=None):
        self.fail = set(fail)
        self.raise_on = set(raise_on)
        self.on_call = on_call
        self.calls = []
        self._lock = threading.Lock()

    def run(self, action, params):
        cell = params.get("cell", "")
        with self._lock:
            self.calls.append((action, cell))
        if self.on_call is not None:
            self.on_call(action, cell)
        if (action, cell) in self.raise_on:
            raise RuntimeError(f"{action} exploded")
        if (action, cell) in self.fail:
            return StepResult(
                name=action,
                action=action,
                status=StepStatus.FAILURE,
                output=f"{action} failed on {cell}",
                error_kind="step_failure",
            )
        return StepResult(name=action, action=action, status=StepStatus.SUCCESS, output="ok")

    def calls_for(self, cell):
        return [a for a, c in self.calls if c == cell]


@pytest.fixture(autouse=True)
def quiet_console():
    """Send console output to a buffer instead of the test log."""
    previous = console_mod._console
    buffer = io.StringIO()
    console_mod.set_console(Console(stream=buffer))
    yield buffer
    console_mod._console = previous


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def ci_job():
    """os x toolchain, five linear verification steps."""
    return job(
        "check",
        *(step(name, name, cell=CELL) for name in STEP_NAMES),
        matrix=matrix(os=["A", "B"], toolchain=["stable", "nightly"]),
    )
