# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


class TasklineError(Exception):
    """Base class for every error taskline raises on purpose."""


@dataclass
class ConfigError(TasklineError):
    """The task file (or a workflow file) is malformed."""
    message: str
    source: str | None = None

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


@dataclass
class UnknownTask(TasklineError):
    name: str
    known: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        msg = f"Unknown task '{self.name}'"
        if self.known:
            msg += f". Known tasks: {sorted(self.known)}"
        return msg


@dataclass
class UnresolvedMapping(TasklineError):
    """Raised in strict mode when a value is not a key of the variable's mapping."""
    variable: str
    value: str
    allowed: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"Environment variable {self.variable}={self.value!r} "
            f"is not one of {self.allowed}"
        )


@dataclass
class CyclicTaskReference(TasklineError):
    path: list[str]

    def __str__(self) -> str:
        return "Cyclic task reference: " + " -> ".join(self.path)


@dataclass
class TaskFailed(TasklineError):
    """
    A task's command exited non-zero or could not be started.

    Exactly one of exit_status / invocation_error is set.
    """
    name: str
    exit_status: int | None = None
    invocation_error: str | None = None
    argv: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        if self.invocation_error is not None:
            reason = f"could not start: {self.invocation_error}"
        else:
            reason = f"exit={self.exit_status}"
        msg = f"[{self.name}] task failed ({reason})"
        if self.argv:
            msg += ": " + " ".join(self.argv)
        return msg


@dataclass
class StepFailure(TasklineError):
    """A pipeline step's external command failed."""
    step: str
    kind: str
    cmd: str
    exit_code: int | None = None
    message: str | None = None

    def __str__(self) -> str:
        detail = self.message or f"exit={self.exit_code}"
        return f"[{self.kind}] step '{self.step}' failed ({detail}): {self.cmd}"
