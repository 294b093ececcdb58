# step_workflows/source.py
from __future__ import annotations

from ..model import PipelineStep
from .common import StepContext, run_command


def run_checkout(step: PipelineStep, ctx: StepContext) -> str:
    """
    Check out the sources.

    With `repository` set the repo is cloned into `path`; otherwise the
    current working tree is used and only `ref` (if any) is fetched and
    checked out. Nothing to do when neither is given.
    """
    params = step.parameters
    repository = params.get("repository")
    ref = params.get("ref")

    if repository:
        path = params.get("path") or "."
        run_command(ctx, step, ["git", "clone", repository, path])
        if ref:
            run_command(ctx, step, ["git", "-C", path, "checkout", ref])
        return "ok"

    if not ref:
        ctx.console.print_skipped(step.name, "working tree already checked out")
        return "skipped"

    run_command(ctx, step, ["git", "fetch", "origin", ref])
    run_command(ctx, step, ["git", "checkout", ref])
    return "ok"
