# src/taskline/dsl.py
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .model import Pipeline, PipelineStep


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def checkout(
    name: str = "Checkout",
    *,
    ref: str | None = None,
    repository: str | None = None,
    path: str | None = None,
) -> PipelineStep:
    """Check out sources (no-op for the current working tree without a ref)."""
    return PipelineStep(
        name=name,
        kind="checkout",
        parameters={"ref": ref, "repository": repository, "path": path},
    )


def toolchain_install(
    toolchain: str,
    name: str | None = None,
    *,
    components: Optional[Sequence[str]] = None,
    profile: str = "minimal",
    default: bool = False,
) -> PipelineStep:
    return PipelineStep(
        name=name or f"Install {toolchain} toolchain",
        kind="toolchain-install",
        parameters={
            "toolchain": toolchain,
            "components": list(components or []),
            "profile": profile,
            "default": default,
        },
    )


def tool_install(
    tool: str,
    name: str | None = None,
    *,
    version: str | None = None,
    check: str | Sequence[str] | None = None,
    locked: bool = True,
) -> PipelineStep:
    """Install a cargo tool; `check` is a command whose success means 'already installed'."""
    return PipelineStep(
        name=name or f"Install {tool}",
        kind="tool-install",
        parameters={"tool": tool, "version": version, "check": check, "locked": locked},
    )


def invoke(
    task: str | None = None,
    name: str | None = None,
    *,
    makefile: str | None = None,
    env: Optional[Dict[str, str]] = None,
) -> PipelineStep:
    """Run a task from the task file (the file's default task when `task` is None)."""
    params: Dict[str, str | None] = {"task": task}
    if makefile:
        params["makefile"] = makefile
    return PipelineStep(
        name=name or (task or "default task").capitalize(),
        kind="task-invocation",
        parameters=params,
        # force values to str, same as the process environment
        env={k: str(v) for k, v in (env or {}).items()},
    )


def report(
    command: str | Sequence[str],
    name: str = "Generate report",
    *,
    directory: str,
    file: str | None = None,
    env: Optional[Dict[str, str]] = None,
) -> PipelineStep:
    return PipelineStep(
        name=name,
        kind="report-generation",
        parameters={"command": command, "directory": directory, "file": file},
        env={k: str(v) for k, v in (env or {}).items()},
    )


def upload(
    command: str | Sequence[str],
    name: str = "Upload report",
    *,
    directory: str | None = None,
    file: str | None = None,
    env: Optional[Dict[str, str]] = None,
) -> PipelineStep:
    return PipelineStep(
        name=name,
        kind="report-upload",
        parameters={"command": command, "directory": directory, "file": file},
        env={k: str(v) for k, v in (env or {}).items()},
    )


# ---------------------------------------------------------------------
# Pipeline helper
# ---------------------------------------------------------------------

def pipeline(
    name: str,
    *steps: PipelineStep,
    on: Optional[Dict[str, List[str]]] = None,
    env: Optional[Dict[str, str]] = None,
) -> Pipeline:
    """
    Pipeline definition helper.

    Users can write:
        from taskline.dsl import pipeline, checkout, invoke

        def workflow():
            return pipeline(
                "ci",
                checkout(),
                invoke("test"),
                on={"push": ["master"]},
            )
    """
    if not steps:
        raise ValueError(f"pipeline({name!r}) must have at least one step")

    names = [s.name for s in steps]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise ValueError(f"Duplicate step names found: {dupes}")

    return Pipeline(
        name=name,
        steps=list(steps),
        on={event: list(branches) for event, branches in (on or {}).items()},
        env={k: str(v) for k, v in (env or {}).items()},
    )
