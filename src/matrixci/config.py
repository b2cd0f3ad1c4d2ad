"""
Runtime settings for matrixci.

Read from environment variables; CLI flags override them.

    MATRIXCI_WORKERS   max concurrent job instances (unset = unbounded)
    MATRIXCI_WORKDIR   directory steps run in (default: .)
    MATRIXCI_TIMEOUT   default per-step timeout in seconds (unset = none)
    MATRIXCI_DEBUG     1/true/yes to enable debug output
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigError

ENV_PREFIX = "MATRIXCI_"
DEFAULT_WORKFLOW = "matrixci_workflow.py"
DEFAULT_YAML_NAMES = ("matrixci.yml", "matrixci.yaml")


@dataclass(frozen=True)
class Settings:
    workers: Optional[int] = None
    workdir: Path = Path(".")
    timeout: Optional[float] = None
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value and value.strip() else None

        workers = get("WORKERS")
        timeout = get("TIMEOUT")
        return cls(
            workers=_positive_int("WORKERS", workers) if workers else None,
            workdir=Path(get("WORKDIR") or "."),
            timeout=_positive_float("TIMEOUT", timeout) if timeout else None,
            debug=(get("DEBUG") or "").lower() in ("1", "true", "yes", "on"),
        )

    def override(self, **changes) -> "Settings":
        """Apply CLI flags; None means 'not given'."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")
    if value < 1:
        raise ConfigError(f"{ENV_PREFIX}{name} must be >= 1, got {value}")
    return value


def _positive_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{ENV_PREFIX}{name} must be > 0, got {value}")
    return value
