# store.py
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Iterator, List

from .errors import ConfigError, UnknownTask
from .model import TaskDefinition


class TaskStore:
    """Read-only mapping of task name -> TaskDefinition, populated once."""

    def __init__(self, tasks: Iterable[TaskDefinition]):
        by_name: dict[str, TaskDefinition] = {}
        for t in tasks:
            if t.name in by_name:
                raise ConfigError(f"Duplicate task name: {t.name}")
            by_name[t.name] = t

        for t in by_name.values():
            for ref in t.references:
                if ref not in by_name:
                    raise ConfigError(
                        f"Task '{t.name}' references missing task '{ref}'. "
                        f"Known tasks: {sorted(by_name)}"
                    )

        self._tasks = MappingProxyType(by_name)

    def get(self, name: str) -> TaskDefinition:
        try:
            return self._tasks[name]
        except KeyError:
            raise UnknownTask(name, list(self._tasks)) from None

    def names(self) -> List[str]:
        return list(self._tasks)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __iter__(self) -> Iterator[TaskDefinition]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)
