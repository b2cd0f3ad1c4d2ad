# actions/checkout.py
from __future__ import annotations

import subprocess
from typing import Mapping

from ..errors import RunnerError
from ..git_facts.git import get_current_ref, head_sha, is_dirty, is_work_tree
from .registry import ActionContext
from .shell import resolve_cwd


def checkout(params: Mapping[str, str], ctx: ActionContext) -> str:
    """
    Local `checkout`: the sources are already on disk, so this only checks
    that the workdir (or params['path'] under it) is a git work tree and
    reports what is checked out.
    """
    path = resolve_cwd(ctx, params.get("path"))
    try:
        if not is_work_tree(path):
            raise RunnerError(f"not a git work tree: {path}")
        sha = head_sha(path)
        ref = get_current_ref(path)
        dirty = is_dirty(path)
    except FileNotFoundError:
        raise RunnerError("git command not found", details={"hint": "Install Git or fix PATH."})
    except subprocess.CalledProcessError as e:
        raise RunnerError(f"git failed: {(e.stderr or '').strip() or e}")

    return f"{ref} @ {sha}{' (dirty)' if dirty else ''}"
