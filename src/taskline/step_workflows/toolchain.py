# step_workflows/toolchain.py
from __future__ import annotations

from ..model import PipelineStep
from .common import StepContext, command_succeeds, run_command


def run_toolchain_install(step: PipelineStep, ctx: StepContext) -> str:
    """Install a rustup toolchain (and optional components)."""
    params = step.parameters
    toolchain = params["toolchain"]
    profile = params.get("profile", "minimal")

    run_command(ctx, step, ["rustup", "toolchain", "install", toolchain, "--profile", profile])

    components = list(params.get("components") or [])
    if components:
        run_command(ctx, step, ["rustup", "component", "add", "--toolchain", toolchain, *components])

    if params.get("default"):
        run_command(ctx, step, ["rustup", "default", toolchain])
    return "ok"


def run_tool_install(step: PipelineStep, ctx: StepContext) -> str:
    """
    Install a cargo tool unless its `check` command already succeeds.
    """
    params = step.parameters
    tool = params["tool"]
    check = params.get("check")

    if check and command_succeeds(ctx, step, check):
        ctx.console.print_skipped(step.name, f"{tool} already installed")
        return "skipped"

    cmd = ["cargo", "install", tool]
    if params.get("version"):
        cmd += ["--version", str(params["version"])]
    if params.get("locked", True):
        cmd.append("--locked")
    run_command(ctx, step, cmd)
    return "ok"
