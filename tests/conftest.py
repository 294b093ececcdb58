from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import pytest

from taskline.config import loads_config
from taskline.env import EnvResolver, Environment
from taskline.store import TaskStore
from taskline.ui.console import Console, set_console

ROOT = Path(__file__).resolve().parents[1]


class FakeRunner:
    """
    Records every command instead of running it.

    `fail_on` maps an argv element to the exit code returned when it appears;
    `missing` lists programs that raise FileNotFoundError.
    """

    def __init__(self, fail_on: Dict[str, int] | None = None, missing: Sequence[str] = ()):
        self.fail_on = dict(fail_on or {})
        self.missing = set(missing)
        self.calls: List[dict] = []

    def __call__(self, argv: Sequence[str], *, env: Mapping[str, str], cwd: Path) -> int:
        argv = list(argv)
        self.calls.append({"argv": argv, "env": dict(env), "cwd": Path(cwd)})
        if argv[0] in self.missing:
            raise FileNotFoundError(2, "No such file or directory", argv[0])
        for token, code in self.fail_on.items():
            if token in argv:
                return code
        return 0

    @property
    def argvs(self) -> List[List[str]]:
        return [c["argv"] for c in self.calls]


@pytest.fixture()
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture(autouse=True)
def quiet_console() -> Console:
    console = Console(quiet=True)
    set_console(console)
    return console


@pytest.fixture()
def makefile_text() -> str:
    return (ROOT / "Makefile.toml").read_text(encoding="utf-8")


@pytest.fixture()
def shipped_config(makefile_text):
    return loads_config(makefile_text, source="Makefile.toml", root=ROOT)


def make_resolver(cfg, values: Mapping[str, str] | None = None, strict: bool = False) -> EnvResolver:
    return EnvResolver(cfg.variables, Environment(values or {}), strict=strict)


def make_store(cfg) -> TaskStore:
    return TaskStore(cfg.tasks)
