# step_workflows/common.py
from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Sequence

from ..config import TaskConfig, load_config
from ..env import EnvResolver, Environment
from ..errors import StepFailure
from ..executor import CommandRunner
from ..model import PipelineStep
from ..ui.console import Console


@dataclass
class StepContext:
    """
    Shared state for one pipeline run.

    `exports` carries values produced by earlier steps (e.g. the report
    directory) into the environment seen by later steps.
    """
    runner: CommandRunner
    environment: Environment
    console: Console
    cwd: Path = Path(".")
    dry_run: bool = False
    strict_env: bool = False
    load_tasks: Callable[[Path], TaskConfig] = load_config
    exports: Dict[str, str] = field(default_factory=dict)

    def step_environment(self, step: PipelineStep) -> Environment:
        return self.environment.overlay(self.exports).overlay(step.env)

    def resolver(self, step: PipelineStep) -> EnvResolver:
        return EnvResolver((), self.step_environment(step), strict=self.strict_env)


def to_argv(cmd: str | Sequence[str]) -> List[str]:
    """Accept either a shell-like string or an argv list."""
    if isinstance(cmd, str):
        return shlex.split(cmd)
    return [str(c) for c in cmd]


def run_command(ctx: StepContext, step: PipelineStep, cmd: str | Sequence[str]) -> int:
    """
    Run one external command for `step`, with ${NAME} placeholders expanded.

    Raises StepFailure on a non-zero exit or when the command cannot start.
    """
    resolver = ctx.resolver(step)
    argv = [resolver.expand(a) for a in to_argv(cmd)]
    if not argv:
        raise StepFailure(step=step.name, kind=step.kind, cmd="", message="empty command")

    ctx.console.print_command(argv, dry_run=ctx.dry_run)
    if ctx.dry_run:
        return 0

    try:
        code = ctx.runner(argv, env=resolver.environment.to_dict(), cwd=ctx.cwd)
    except OSError as e:
        raise StepFailure(
            step=step.name,
            kind=step.kind,
            cmd=shlex.join(argv),
            message=f"could not start: {e}",
        ) from e

    if code != 0:
        raise StepFailure(step=step.name, kind=step.kind, cmd=shlex.join(argv), exit_code=code)
    return code


def command_succeeds(ctx: StepContext, step: PipelineStep, cmd: str | Sequence[str]) -> bool:
    """True if `cmd` runs and exits zero. Never raises."""
    if ctx.dry_run:
        return False
    argv = [ctx.resolver(step).expand(a) for a in to_argv(cmd)]
    try:
        return ctx.runner(argv, env=ctx.step_environment(step).to_dict(), cwd=ctx.cwd) == 0
    except OSError:
        return False
