# cli.py
from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import click

from taskline.config import DEFAULT_TASK_FILE, TaskConfig, load_config
from taskline.dag import check_acyclic, execution_plan
from taskline.env import EnvResolver, Environment
from taskline.errors import ConfigError, TasklineError, UnknownTask
from taskline.executor import TaskExecutor
from taskline.git import current_branch
from taskline.model import Trigger
from taskline.pipeline import DEFAULT_WORKFLOW_FILE, PipelineDriver, load_pipeline
from taskline.store import TaskStore
from taskline.ui.console import Console, get_console, set_console


def parse_env_overrides(pairs: tuple[str, ...]) -> dict[str, str]:
    """Turn ("KEY=VALUE", ...) into a dict; KEY without '=' is an error."""
    out: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        out[key] = value
    return out


def _load(makefile: str, env_pairs: tuple[str, ...], strict_env: bool) -> tuple[TaskConfig, TaskStore, EnvResolver]:
    cfg = load_config(makefile)
    store = TaskStore(cfg.tasks)
    check_acyclic(store)
    # the only place the process environment is read
    environment = Environment(os.environ).overlay(parse_env_overrides(env_pairs))
    resolver = EnvResolver(cfg.variables, environment, strict=strict_env or cfg.strict_env)
    return cfg, store, resolver


def _fail(e: BaseException) -> None:
    console = get_console()
    if isinstance(e, UnknownTask):
        console.print_error(
            "Unknown task",
            str(e),
            suggestion="List available tasks:\n  taskline list",
        )
    elif isinstance(e, ConfigError):
        console.print_error("Invalid configuration", str(e))
    else:
        console.print_exception(e)
    sys.exit(1)


makefile_option = click.option(
    "--makefile",
    default=DEFAULT_TASK_FILE,
    show_default=True,
    help="Task file path",
)
env_option = click.option(
    "-e",
    "--env",
    "env_pairs",
    multiple=True,
    metavar="KEY=VALUE",
    help="Set an environment value before resolution (repeatable)",
)
strict_option = click.option(
    "--strict-env/--no-strict-env",
    default=False,
    help="Reject values that are not listed in a variable's mapping table",
)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.option("--quiet", "-q", is_flag=True, default=False, help="Only print errors")
@click.pass_context
def cli(ctx, debug, quiet):
    """taskline: declarative task runner and CI pipeline driver."""
    console = Console(debug=debug, quiet=quiet)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("task", required=False)
@makefile_option
@env_option
@strict_option
@click.option("--dry-run", is_flag=True, default=False, help="Print commands instead of running them")
@click.pass_context
def run(ctx, task, makefile, env_pairs, strict_env, dry_run):
    """Run TASK (or the task file's default task)."""
    console = get_console()
    try:
        cfg, store, resolver = _load(makefile, env_pairs, strict_env)
        name = task or cfg.default_task
        executor = TaskExecutor(store, resolver, cwd=cfg.root, dry_run=dry_run, console=console)
        result = executor.run(name)
        console.print_results({r.name: r.status for r in result.flatten()})
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except TasklineError as e:
        _fail(e)


@cli.command(name="list")
@makefile_option
@click.pass_context
def list_tasks(ctx, makefile):
    """List the tasks declared in the task file."""
    console = get_console()
    try:
        cfg = load_config(makefile)
        store = TaskStore(cfg.tasks)
    except TasklineError as e:
        _fail(e)
        return

    rows = []
    for t in store:
        if t.is_composite:
            summary = "runs: " + ", ".join(t.sub_tasks)
        else:
            summary = " ".join([t.command or "", *t.args])
        if t.description:
            summary = f"{t.description} ({summary})"
        marker = " *" if t.name == cfg.default_task else ""
        rows.append((t.name + marker, summary))
    console.print_table(rows)


@cli.command()
@click.argument("task")
@makefile_option
@click.pass_context
def plan(ctx, task, makefile):
    """Print the command tasks TASK would run, in order."""
    try:
        cfg = load_config(makefile)
        store = TaskStore(cfg.tasks)
        for idx, name in enumerate(execution_plan(store, task), start=1):
            click.echo(f"{idx}. {name}")
    except TasklineError as e:
        _fail(e)


@cli.command(name="env")
@makefile_option
@env_option
@strict_option
@click.pass_context
def show_env(ctx, makefile, env_pairs, strict_env):
    """Print every declared variable with its resolved value."""
    console = get_console()
    try:
        _cfg, _store, resolver = _load(makefile, env_pairs, strict_env)
        console.print_table([(k, v) for k, v in resolver.resolve_all().items()])
    except TasklineError as e:
        _fail(e)


@cli.command()
@click.option(
    "--workflow",
    default=DEFAULT_WORKFLOW_FILE,
    show_default=True,
    help="Pipeline workflow file path",
)
@click.option(
    "--event",
    type=click.Choice(["push", "pull_request"]),
    default="push",
    show_default=True,
    help="Trigger event to simulate",
)
@click.option("--branch", default=None, help="Target branch (defaults to the current git branch)")
@env_option
@strict_option
@click.option("--dry-run", is_flag=True, default=False, help="Print commands instead of running them")
@click.pass_context
def pipeline(ctx, workflow, event, branch, env_pairs, strict_env, dry_run):
    """Run a CI pipeline locally for one trigger event."""
    console = get_console()

    if not branch:
        try:
            branch = current_branch()
            console.print_debug(f"Using git branch: {branch}")
        except (subprocess.CalledProcessError, FileNotFoundError):
            console.print_error(
                "Could not determine branch",
                "No --branch specified and git could not report the current branch.",
                suggestion="Specify the branch explicitly:\n  taskline pipeline --branch master",
            )
            sys.exit(1)

    try:
        pl = load_pipeline(workflow)
        environment = Environment(os.environ).overlay(parse_env_overrides(env_pairs))
        driver = PipelineDriver(
            pl,
            environment=environment,
            cwd=Path(workflow).resolve().parent,
            dry_run=dry_run,
            strict_env=strict_env,
            console=console,
        )
        result = driver.run(Trigger(event=event, branch=branch))
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except TasklineError as e:
        _fail(e)
        return

    if result.steps:
        console.print_results(result.steps)
    if not result.ok:
        sys.exit(1)


if __name__ == "__main__":
    cli()
