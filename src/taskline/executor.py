# executor.py
from __future__ import annotations

import subprocess
import time
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

from .env import EnvResolver
from .errors import CyclicTaskReference, TaskFailed
from .model import ExecutionResult, TaskDefinition
from .store import TaskStore
from .ui.console import Console, get_console


class CommandRunner(Protocol):
    def __call__(self, argv: Sequence[str], *, env: Mapping[str, str], cwd: Path) -> int: ...


class SubprocessRunner:
    """
    Runs a command and blocks until it exits.

    Output is streamed straight to the terminal, not captured.
    Raises OSError when the command cannot be started.
    """

    def __call__(self, argv: Sequence[str], *, env: Mapping[str, str], cwd: Path) -> int:
        proc = subprocess.run(
            list(argv),
            shell=False,
            cwd=str(cwd),
            env=dict(env),
        )
        return proc.returncode


class TaskExecutor:
    """
    Runs tasks from a TaskStore.

    Composite tasks run their sub-tasks in order and stop at the first failure;
    the failure propagates to the caller unchanged.
    """

    def __init__(
        self,
        store: TaskStore,
        resolver: EnvResolver,
        *,
        runner: Optional[CommandRunner] = None,
        cwd: str | Path = ".",
        dry_run: bool = False,
        console: Optional[Console] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.runner = runner or SubprocessRunner()
        self.cwd = Path(cwd)
        self.dry_run = dry_run
        self.console = console or get_console()
        self._stack: List[str] = []

    def run(self, name: str) -> ExecutionResult:
        task = self.store.get(name)

        if name in self._stack:
            path = self._stack[self._stack.index(name):] + [name]
            raise CyclicTaskReference(path)

        self._stack.append(name)
        try:
            return self._run_task(task)
        finally:
            self._stack.pop()

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _run_task(self, task: TaskDefinition) -> ExecutionResult:
        started = time.monotonic()
        children: List[ExecutionResult] = []

        for dep in task.dependencies:
            children.append(self.run(dep))

        if task.is_composite:
            self.console.print_task_start(task.name, task.description)
            for sub in task.sub_tasks:
                children.append(self.run(sub))
            status, exit_code = ("dry-run" if self.dry_run else "ok"), 0
        else:
            status, exit_code = self._run_command(task)

        return ExecutionResult(
            name=task.name,
            status=status,
            exit_code=exit_code,
            duration=time.monotonic() - started,
            children=children,
        )

    def resolve_argv(self, task: TaskDefinition) -> List[str]:
        """Command line for a command task, placeholders expanded."""
        expand = self.resolver.expand
        argv = [expand(task.command or "")] + [expand(a) for a in task.args]
        if task.toolchain:
            argv = ["rustup", "run", expand(task.toolchain)] + argv
        return argv

    def resolve_env(self, task: TaskDefinition) -> Dict[str, str]:
        extra = {k: self.resolver.expand(v) for k, v in task.env}
        return self.resolver.process_env(extra)

    def _run_command(self, task: TaskDefinition) -> tuple[str, int]:
        argv = self.resolve_argv(task)
        env = self.resolve_env(task)
        cwd = self.cwd / task.cwd if task.cwd else self.cwd

        self.console.print_task_start(task.name, task.description)
        self.console.print_command(argv, dry_run=self.dry_run)
        if self.dry_run:
            return "dry-run", 0

        started = time.monotonic()
        try:
            code = self.runner(argv, env=env, cwd=cwd)
        except OSError as e:
            raise TaskFailed(task.name, invocation_error=str(e), argv=argv) from e

        if code != 0:
            raise TaskFailed(task.name, exit_status=code, argv=argv)

        self.console.print_task_done(task.name, time.monotonic() - started)
        return "ok", code
