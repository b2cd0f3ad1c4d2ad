# actions/builtin.py
from __future__ import annotations

from functools import partial

from .checkout import checkout
from .registry import ActionRegistry
from .shell import run_shell
from .tools import run_command, run_lint, setup_tool


def default_registry() -> ActionRegistry:
    """
    Built-in local actions.

        run        shell command            (steps[].run)
        checkout   verify git work tree     (actions/checkout@v2)
        tool       require a tool on PATH
        toolchain  require rustup           (actions-rs/toolchain@v1)
        lint       linter over files
        command    <program> <command> <args>
        cargo      cargo <command> <args>   (actions-rs/cargo@v1)
    """
    registry = ActionRegistry()
    registry.register("run", run_shell)
    registry.register("checkout", checkout)
    registry.register("tool", setup_tool)
    registry.register("toolchain", partial(setup_tool, default_tool="rustup"))
    registry.register("lint", run_lint)
    registry.register("command", run_command)
    registry.register("cargo", partial(run_command, program="cargo"))
    return registry
