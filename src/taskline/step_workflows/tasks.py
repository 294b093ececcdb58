# step_workflows/tasks.py
from __future__ import annotations

from ..config import DEFAULT_TASK_FILE
from ..env import EnvResolver
from ..executor import TaskExecutor
from ..model import PipelineStep
from ..store import TaskStore
from .common import StepContext


def run_task_invocation(step: PipelineStep, ctx: StepContext) -> str:
    """
    Run one named task from the task file.

    The step's env (plus pipeline env and earlier exports) becomes the
    ambient environment the task file's variables resolve against.
    """
    params = step.parameters
    makefile = ctx.cwd / params.get("makefile", DEFAULT_TASK_FILE)
    cfg = ctx.load_tasks(makefile)

    store = TaskStore(cfg.tasks)
    resolver = EnvResolver(
        cfg.variables,
        ctx.environment,
        strict=cfg.strict_env or ctx.strict_env,
    ).with_overrides({**ctx.exports, **step.env})
    executor = TaskExecutor(
        store,
        resolver,
        runner=ctx.runner,
        cwd=cfg.root,
        dry_run=ctx.dry_run,
        console=ctx.console,
    )
    result = executor.run(params.get("task") or cfg.default_task)
    return result.status
