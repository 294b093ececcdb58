# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigError


@dataclass(frozen=True)
class EnvironmentVariable:
    """
    A configuration value derived from the environment.

    Resolution order: expand `source` -> `default` if empty -> `mapping` lookup.
    """
    name: str
    source: str | None = None
    default: str = ""
    # ordered (raw, canonical) pairs
    mapping: Optional[Tuple[Tuple[str, str], ...]] = None

    @property
    def allowed(self) -> list[str]:
        return [raw for raw, _ in self.mapping or ()]


@dataclass(frozen=True)
class TaskDefinition:
    """
    A named task: either a direct command or an ordered list of sub-tasks.

    `dependencies` always run before the task body.
    """
    name: str
    command: str | None = None
    args: Tuple[str, ...] = ()
    toolchain: str | None = None
    sub_tasks: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    env: Tuple[Tuple[str, str], ...] = ()
    cwd: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if self.command is not None and self.sub_tasks:
            raise ConfigError(f"Task '{self.name}' cannot have both a command and sub-tasks")
        if not self.command and not self.sub_tasks:
            raise ConfigError(f"Task '{self.name}' needs either a command or a non-empty sub-task list")

    @property
    def is_composite(self) -> bool:
        return bool(self.sub_tasks)

    @property
    def references(self) -> Tuple[str, ...]:
        """Every task name this task runs, in execution order."""
        return self.dependencies + self.sub_tasks


STEP_KINDS = (
    "checkout",
    "toolchain-install",
    "tool-install",
    "task-invocation",
    "report-generation",
    "report-upload",
)


@dataclass(frozen=True)
class PipelineStep:
    """A single external step inside a CI pipeline."""
    name: str
    kind: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    env: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.kind not in STEP_KINDS:
            raise ValueError(f"Unknown step kind {self.kind!r} (expected one of {list(STEP_KINDS)})")


@dataclass(frozen=True)
class Trigger:
    event: str  # "push" | "pull_request"
    branch: str


@dataclass
class Pipeline:
    name: str
    steps: List[PipelineStep]
    on: Dict[str, List[str]] = field(default_factory=dict)
    env: Dict[str, str] = field(default_factory=dict)

    def matches(self, trigger: Trigger) -> bool:
        # no trigger table -> run on anything
        if not self.on:
            return True
        return trigger.branch in self.on.get(trigger.event, [])


@dataclass
class ExecutionResult:
    """Outcome of running one task (and, for composites, its children)."""
    name: str
    status: str  # "ok" | "dry-run"
    exit_code: int = 0
    duration: float = 0.0
    children: List["ExecutionResult"] = field(default_factory=list)

    def flatten(self) -> list["ExecutionResult"]:
        out = [self]
        for child in self.children:
            out.extend(child.flatten())
        return out


@dataclass
class PipelineResult:
    pipeline: str
    status: str  # "success" | "failed" | "skipped"
    steps: Dict[str, str] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"
