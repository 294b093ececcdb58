# config.py
"""
Task file loading.

The task file is a cargo-make style TOML document:

    [config]
    default_task = "test"

    [env]
    TOOLCHAIN = { source = "${TOOLCHAIN}", default_value = "stable", mapping = { "nightly" = "nightly" } }
    PROFILE = "debug"

    [tasks.test]
    command = "cargo"
    args = ["test", "--features", "${FEATURES}"]

    [tasks.ci]
    run_task = { name = ["fmt", "test"] }

Raw TOML is validated with pydantic, then converted into the frozen model
dataclasses the rest of the package works with.
"""
from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigError
from .model import EnvironmentVariable, TaskDefinition

DEFAULT_TASK_FILE = "Makefile.toml"


# -------------------- Schemas --------------------

class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class EnvEntry(_Strict):
    source: Optional[str] = None
    default_value: str = ""
    mapping: Optional[Dict[str, str]] = None


class RunTask(_Strict):
    name: Union[str, List[str]]

    def names(self) -> list[str]:
        return [self.name] if isinstance(self.name, str) else list(self.name)


class TaskEntry(_Strict):
    description: Optional[str] = None
    command: Optional[str] = None
    args: List[str] = Field(default_factory=list)
    toolchain: Optional[str] = None
    run_task: Optional[Union[str, RunTask]] = None
    dependencies: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    cwd: Optional[str] = None

    @model_validator(mode="after")
    def _command_xor_run_task(self) -> "TaskEntry":
        has_command = self.command is not None
        has_sub = bool(self.sub_task_names())
        if has_command and has_sub:
            raise ValueError("a task cannot have both 'command' and 'run_task'")
        if not has_command and not has_sub:
            raise ValueError("a task needs either 'command' or a non-empty 'run_task'")
        if has_sub and (self.args or self.toolchain):
            raise ValueError("'args' and 'toolchain' only apply to tasks with a 'command'")
        return self

    def sub_task_names(self) -> list[str]:
        if self.run_task is None:
            return []
        if isinstance(self.run_task, str):
            return [self.run_task]
        return self.run_task.names()


class Settings(_Strict):
    default_task: str = "default"
    strict_env: bool = False


class TaskFile(_Strict):
    config: Settings = Field(default_factory=Settings)
    env: Dict[str, Union[str, EnvEntry]] = Field(default_factory=dict)
    tasks: Dict[str, TaskEntry] = Field(default_factory=dict)


# -------------------- Loaded config --------------------

@dataclass(frozen=True)
class TaskConfig:
    """Everything a task file declares, in model form."""
    variables: tuple[EnvironmentVariable, ...]
    tasks: tuple[TaskDefinition, ...]
    default_task: str = "default"
    strict_env: bool = False
    root: Path = Path(".")


def _to_variable(name: str, entry: Union[str, EnvEntry]) -> EnvironmentVariable:
    if isinstance(entry, str):
        return EnvironmentVariable(name=name, source=entry)
    mapping = tuple(entry.mapping.items()) if entry.mapping is not None else None
    return EnvironmentVariable(
        name=name,
        source=entry.source,
        default=entry.default_value,
        mapping=mapping,
    )


def _to_task(name: str, entry: TaskEntry) -> TaskDefinition:
    return TaskDefinition(
        name=name,
        command=entry.command,
        args=tuple(entry.args),
        toolchain=entry.toolchain,
        sub_tasks=tuple(entry.sub_task_names()),
        dependencies=tuple(entry.dependencies),
        env=tuple(entry.env.items()),
        cwd=entry.cwd,
        description=entry.description,
    )


def _format_validation_error(e: ValidationError) -> str:
    lines = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"])
        lines.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(lines)


def parse_config(data: dict, *, source: str | None = None, root: Path = Path(".")) -> TaskConfig:
    try:
        doc = TaskFile.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_validation_error(e), source=source) from e

    return TaskConfig(
        variables=tuple(_to_variable(n, e) for n, e in doc.env.items()),
        tasks=tuple(_to_task(n, t) for n, t in doc.tasks.items()),
        default_task=doc.config.default_task,
        strict_env=doc.config.strict_env,
        root=root,
    )


def loads_config(text: str, *, source: str | None = None, root: Path = Path(".")) -> TaskConfig:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML: {e}", source=source) from e
    return parse_config(data, source=source, root=root)


def load_config(path: str | Path = DEFAULT_TASK_FILE) -> TaskConfig:
    """Load and validate a task file from disk."""
    cfg_path = Path(path).expanduser().resolve()
    if not cfg_path.exists():
        raise ConfigError(f"Task file not found: {cfg_path}")
    return loads_config(
        cfg_path.read_text(encoding="utf-8"),
        source=cfg_path.name,
        root=cfg_path.parent,
    )
