# actions/tools.py
from __future__ import annotations

import re
import shlex
import subprocess
from typing import List, Mapping, Optional

from ..errors import RunnerError
from .registry import ActionContext
from .shell import execute, step_timeout


TOOL_HINTS = {
    "npm": "Install Node.js (includes npm) or fix PATH.",
    "node": "Install Node.js or fix PATH.",
    "pytest": "Install pytest (e.g., pip install pytest).",
    "ruff": "Install ruff (e.g., pip install ruff).",
    "docker": "Install Docker and ensure the daemon is running.",
    "python3": "Install Python 3 or fix PATH (python3).",
    "cargo": "Install Rust via rustup (https://rustup.rs) or fix PATH.",
    "rustup": "Install rustup (https://rustup.rs) or fix PATH.",
    "git": "Install Git or fix PATH.",
}


def _split_list(value: Optional[str]) -> List[str]:
    """'src/, tests/' or 'src/ tests/' -> ['src/', 'tests/']"""
    if not value:
        return []
    return [part for part in re.split(r"[,\s]+", value) if part]


def check_tool(tool: str, timeout: Optional[float] = None) -> str:
    """Return the first line of `<tool> --version`, or raise RunnerError with an install hint."""
    try:
        proc = subprocess.run(
            [tool, "--version"],
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise RunnerError(
            f"{tool} --version timed out after {timeout}s",
            details={"tool": tool},
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        hint = TOOL_HINTS.get(tool, f"Install {tool} or fix PATH.")
        raise RunnerError(
            f"{tool} is not available",
            details={"hint": hint, "tool": tool},
        )
    lines = (proc.stdout or proc.stderr or "").strip().splitlines()
    return lines[0] if lines else tool


def setup_tool(params: Mapping[str, str], ctx: ActionContext, *, default_tool: Optional[str] = None) -> str:
    """
    `tool` / `toolchain` action: make sure a tool is on PATH.

    Provisioning is not done here; a missing tool is a runner error.
    """
    tool = params.get("tool") or default_tool
    if not tool:
        raise RunnerError("tool action requires a 'tool' parameter")
    version = check_tool(tool, timeout=step_timeout(params, ctx))
    channel = params.get("toolchain")
    if channel:
        return f"{version} (requested toolchain: {channel})"
    return version


def run_lint(params: Mapping[str, str], ctx: ActionContext) -> str:
    """`lint` action: params tool (required), args, files, cwd."""
    tool = params.get("tool")
    if not tool:
        raise RunnerError("lint action requires a 'tool' parameter")

    check_tool(tool, timeout=step_timeout(params, ctx))

    cmd_parts = [tool]
    if params.get("args"):
        # Split args string into list, handling quoted strings
        cmd_parts.extend(shlex.split(params["args"]))

    files = _split_list(params.get("files"))
    cmd_parts.extend(files or ["."])

    return execute(cmd_parts, ctx, cwd=params.get("cwd"), timeout=step_timeout(params, ctx))


def run_command(params: Mapping[str, str], ctx: ActionContext, *, program: Optional[str] = None) -> str:
    """
    `command` / `cargo` action: `<program> <command> <args...>`.

        uses: actions-rs/cargo@v1
        with: {command: clippy, args: --workspace -- -D warnings}
    """
    program = params.get("program") or program
    if not program:
        raise RunnerError("command action requires a 'program' parameter")
    command = params.get("command")
    if not command:
        raise RunnerError(f"{program} action requires a 'command' parameter")

    argv = [program, command, *shlex.split(params.get("args", ""))]
    try:
        return execute(argv, ctx, cwd=params.get("cwd"), timeout=step_timeout(params, ctx))
    except RunnerError as e:
        e.details.setdefault("hint", TOOL_HINTS.get(program, f"Install {program} or fix PATH."))
        raise
