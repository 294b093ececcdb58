# step_workflows/coverage.py
from __future__ import annotations

from pathlib import Path

from ..errors import StepFailure
from ..model import PipelineStep
from .common import StepContext, run_command

REPORT_DIR_VAR = "TASKLINE_REPORT_DIR"
REPORT_FILE_VAR = "TASKLINE_REPORT_FILE"


def run_report_generation(step: PipelineStep, ctx: StepContext) -> str:
    """
    Run the report command and check the report landed where promised.

    The report's format is the generator's business; only its location is
    checked. On success the location is exported to later steps as
    TASKLINE_REPORT_DIR / TASKLINE_REPORT_FILE.
    """
    params = step.parameters
    directory = ctx.cwd / params["directory"]
    report_file = params.get("file")

    if not ctx.dry_run:
        directory.mkdir(parents=True, exist_ok=True)

    run_command(ctx, step, params["command"])

    target = directory / report_file if report_file else directory
    if not ctx.dry_run:
        if report_file:
            missing = not target.exists()
        else:
            # the directory was created above, so only its contents prove a report
            missing = not directory.is_dir() or not any(directory.iterdir())
        if missing:
            raise StepFailure(
                step=step.name,
                kind=step.kind,
                cmd=str(params["command"]),
                message=f"report not found at {target}",
            )

    ctx.exports[REPORT_DIR_VAR] = str(directory)
    if report_file:
        ctx.exports[REPORT_FILE_VAR] = str(target)
    return "ok"


def run_report_upload(step: PipelineStep, ctx: StepContext) -> str:
    """
    Hand the report to the external upload command.

    `file`/`directory` default to what the last report-generation step
    exported; the command sees them as ${TASKLINE_REPORT_FILE} and
    ${TASKLINE_REPORT_DIR}.
    """
    params = step.parameters
    if params.get("directory"):
        ctx.exports[REPORT_DIR_VAR] = str(ctx.cwd / params["directory"])
    if params.get("file"):
        ctx.exports[REPORT_FILE_VAR] = str(ctx.cwd / params["file"])

    if REPORT_DIR_VAR not in ctx.exports and REPORT_FILE_VAR not in ctx.exports:
        raise StepFailure(
            step=step.name,
            kind=step.kind,
            cmd=str(params["command"]),
            message="no report to upload (run a report-generation step first or set 'directory')",
        )

    report = Path(ctx.exports.get(REPORT_FILE_VAR) or ctx.exports[REPORT_DIR_VAR])
    if not ctx.dry_run and not report.exists():
        raise StepFailure(
            step=step.name,
            kind=step.kind,
            cmd=str(params["command"]),
            message=f"report not found at {report}",
        )

    run_command(ctx, step, params["command"])
    return "ok"
