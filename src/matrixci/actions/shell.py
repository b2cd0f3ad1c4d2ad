# actions/shell.py
from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Mapping, Optional, Union

from ..errors import RunnerError, StepFailure
from .registry import ActionContext

# Keep reports readable: only the tail of long output is kept.
OUTPUT_LIMIT = 4000


def _tail(text: str) -> str:
    return text[-OUTPUT_LIMIT:]


def resolve_cwd(ctx: ActionContext, cwd: Optional[str]) -> Path:
    path = (ctx.workdir / (cwd or ".")).resolve()
    if not path.exists():
        raise RunnerError(f"cwd not found: {path}", details={"workdir": str(ctx.workdir)})
    return path


def step_timeout(params: Mapping[str, str], ctx: ActionContext) -> Optional[float]:
    raw = params.get("timeout")
    if raw is None or raw == "":
        return ctx.timeout
    try:
        return float(raw)
    except ValueError:
        raise RunnerError(f"timeout must be a number of seconds, got {raw!r}")


def execute(
    cmd: Union[str, List[str]],
    ctx: ActionContext,
    *,
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
) -> str:
    """
    Run a command under the workdir and return its combined output.

    A string runs through the shell, a list does not.
    Non-zero exit -> StepFailure; cannot start / timed out -> RunnerError.
    """
    shell = isinstance(cmd, str)
    display = cmd if shell else " ".join(cmd)

    try:
        proc = subprocess.run(
            cmd,
            shell=shell,
            cwd=str(resolve_cwd(ctx, cwd)),
            text=True,
            capture_output=True,  # so you can show output on failure
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise RunnerError(f"command not found: {display}", details={"error": str(e)})
    except subprocess.TimeoutExpired:
        raise RunnerError(f"timed out after {timeout}s: {display}")

    output = _tail((proc.stdout or "") + (proc.stderr or ""))
    if proc.returncode != 0:
        raise StepFailure(
            f"'{display}' failed (exit={proc.returncode})",
            exit_code=proc.returncode,
            output=output,
            details={"cmd": display},
        )
    return output


def run_shell(params: Mapping[str, str], ctx: ActionContext) -> str:
    """`run` action: params run (required), cwd, timeout."""
    cmd = params.get("run")
    if not cmd:
        raise RunnerError("run action requires a 'run' parameter")
    return execute(cmd, ctx, cwd=params.get("cwd"), timeout=step_timeout(params, ctx))
