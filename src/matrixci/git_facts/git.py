# git.py
# Small, focused wrapper around the Git CLI.
# The checkout action goes through here so nothing else calls
# subprocess("git ...") directly.

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional


def _git(args: list[str], cwd: Optional[str | Path] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    Args:
        args: List of git arguments (e.g. ["status", "--porcelain"])
        cwd: Optional working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        subprocess.CalledProcessError: git exited non-zero
        FileNotFoundError: git is not installed
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=str(cwd) if cwd is not None else None,
        text=True,
        stderr=subprocess.PIPE,
    )
    return out.strip()


def is_work_tree(cwd: Optional[str | Path] = None) -> bool:
    """True if `cwd` is inside a git work tree."""
    try:
        return _git(["rev-parse", "--is-inside-work-tree"], cwd=cwd) == "true"
    except subprocess.CalledProcessError:
        return False


def head_sha(cwd: Optional[str | Path] = None) -> str:
    """Full commit SHA of HEAD."""
    return _git(["rev-parse", "HEAD"], cwd=cwd)


def is_dirty(cwd: Optional[str | Path] = None) -> bool:
    """
    Check whether the working tree has uncommitted changes
    (modified, staged or untracked files).
    """
    # Any porcelain output at all means the tree is not clean.
    return _git(["status", "--porcelain"], cwd=cwd) != ""


def get_current_ref(cwd: Optional[str | Path] = None) -> str:
    """Current branch name, or the HEAD sha when detached."""
    ref = _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)
    if ref == "HEAD":
        return head_sha(cwd)
    return ref
