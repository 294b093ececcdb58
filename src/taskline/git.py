# git.py
# Small wrapper around the Git CLI, used by the CLI to work out which
# branch a local pipeline run should pretend to be triggered on.

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional


def _git(args: list[str], cwd: Optional[str | Path] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    Args:
        args: List of git arguments (e.g. ["rev-parse", "HEAD"])
        cwd: Optional working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        subprocess.CalledProcessError: git exited non-zero (e.g. not a repo)
        FileNotFoundError: git is not installed
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=cwd,
        text=True,
        stderr=subprocess.DEVNULL,
    )
    return out.strip()


def head_sha(cwd: Optional[str | Path] = None) -> str:
    """
    Return the full SHA hash of the current HEAD commit.

    Args:
        cwd: Optional directory inside the repository.

    Returns:
        Full commit SHA as a string.
    """
    return _git(["rev-parse", "HEAD"], cwd=cwd)


def current_branch(cwd: Optional[str | Path] = None) -> str:
    """
    Return the name of the checked-out branch.

    This is what `taskline pipeline` matches against a pipeline's trigger
    table when no --branch is given.

    Args:
        cwd: Optional directory inside the repository.

    Returns:
        Branch name, or the HEAD commit SHA on a detached HEAD
        (where git itself only prints "HEAD").
    """
    branch = _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)
    if branch == "HEAD":
        return head_sha(cwd=cwd)
    return branch
