# pipeline.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import Callable, Dict, Optional

from .env import Environment
from .errors import ConfigError, TasklineError
from .executor import CommandRunner, SubprocessRunner
from .model import Pipeline, PipelineResult, PipelineStep, Trigger
from .step_workflows.common import StepContext
from .step_workflows.coverage import run_report_generation, run_report_upload
from .step_workflows.source import run_checkout
from .step_workflows.tasks import run_task_invocation
from .step_workflows.toolchain import run_tool_install, run_toolchain_install
from .ui.console import Console, get_console

DEFAULT_WORKFLOW_FILE = "ci_workflow.py"

StepHandler = Callable[[PipelineStep, StepContext], str]

HANDLERS: Dict[str, StepHandler] = {
    "checkout": run_checkout,
    "toolchain-install": run_toolchain_install,
    "tool-install": run_tool_install,
    "task-invocation": run_task_invocation,
    "report-generation": run_report_generation,
    "report-upload": run_report_upload,
}


# ----------------------------------------------------------------------
# Workflow loading (local file)
# ----------------------------------------------------------------------

def load_pipeline(path: str | Path = DEFAULT_WORKFLOW_FILE) -> Pipeline:
    """
    Load a pipeline from a python file path.

    The file must define either:
      - workflow() -> Pipeline
      - PIPELINE = Pipeline(...)
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise ConfigError(f"Workflow file not found: {wf_path}")
    if wf_path.suffix != ".py":
        raise ConfigError(f"Workflow must be a .py file, got: {wf_path.name}")

    module_name = f"taskline_workflow_{wf_path.stem}"
    try:
        globals_dict = runpy.run_path(str(wf_path), run_name=module_name)

        found = None
        if "workflow" in globals_dict and callable(globals_dict["workflow"]):
            found = globals_dict["workflow"]()
        elif "PIPELINE" in globals_dict:
            found = globals_dict["PIPELINE"]
    except (ValueError, TypeError, SyntaxError) as e:
        # bad step kinds, duplicate step names, empty pipelines, syntax errors
        raise ConfigError(f"Invalid workflow: {e}", source=wf_path.name) from e

    if not isinstance(found, Pipeline):
        raise ConfigError(
            "Workflow must return/define a Pipeline. "
            "Define workflow() -> Pipeline or PIPELINE = pipeline(...).",
            source=wf_path.name,
        )
    return found


# ----------------------------------------------------------------------
# Driver
# ----------------------------------------------------------------------

class PipelineDriver:
    """
    Runs pipeline steps strictly in order.

    The first failing step halts the run; completed steps are left as they are.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        *,
        environment: Optional[Environment] = None,
        runner: Optional[CommandRunner] = None,
        cwd: str | Path = ".",
        dry_run: bool = False,
        strict_env: bool = False,
        console: Optional[Console] = None,
        handlers: Optional[Dict[str, StepHandler]] = None,
    ):
        self.pipeline = pipeline
        self.environment = environment if environment is not None else Environment()
        self.runner = runner or SubprocessRunner()
        self.cwd = Path(cwd)
        self.dry_run = dry_run
        self.strict_env = strict_env
        self.console = console or get_console()
        self.handlers = dict(HANDLERS if handlers is None else handlers)

    def _context(self) -> StepContext:
        return StepContext(
            runner=self.runner,
            environment=self.environment.overlay(self.pipeline.env),
            console=self.console,
            cwd=self.cwd,
            dry_run=self.dry_run,
            strict_env=self.strict_env,
        )

    def run(self, trigger: Trigger) -> PipelineResult:
        p = self.pipeline
        if not p.matches(trigger):
            self.console.print_skipped(p.name, f"no trigger for {trigger.event} on {trigger.branch}")
            return PipelineResult(pipeline=p.name, status="skipped")

        self.console.print_pipeline_started(p.name, trigger.event, trigger.branch, len(p.steps))

        # one context per run, discarded afterwards
        ctx = self._context()
        results: Dict[str, str] = {s.name: "not-run" for s in p.steps}

        for step in p.steps:
            self.console.print_step(step.name, step.kind)
            handler = self.handlers.get(step.kind)
            try:
                if handler is None:
                    raise ConfigError(f"No handler for step kind {step.kind!r}")
                results[step.name] = handler(step, ctx)
            except TasklineError as e:
                results[step.name] = "failed"
                self.console.print_exception(e)
                return PipelineResult(pipeline=p.name, status="failed", steps=results, error=str(e))

        return PipelineResult(pipeline=p.name, status="success", steps=results)
