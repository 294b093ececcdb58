from __future__ import annotations

import pytest

from taskline.dag import build_graph, check_acyclic, execution_plan, find_cycle
from taskline.errors import ConfigError, CyclicTaskReference, UnknownTask
from taskline.model import TaskDefinition
from taskline.store import TaskStore

from conftest import make_store


def _cmd(name: str, *deps: str) -> TaskDefinition:
    return TaskDefinition(name=name, command="echo", args=(name,), dependencies=deps)


def _group(name: str, *subs: str) -> TaskDefinition:
    return TaskDefinition(name=name, sub_tasks=subs)


def test_get_returns_definition(shipped_config) -> None:
    store = make_store(shipped_config)
    assert store.get("clippy").toolchain == "stable"
    assert "test-all" in store
    assert len(store) == 8


def test_get_unknown_task(shipped_config) -> None:
    store = make_store(shipped_config)
    with pytest.raises(UnknownTask) as info:
        store.get("deploy")
    assert info.value.name == "deploy"
    assert "test" in info.value.known


def test_duplicate_names_rejected() -> None:
    with pytest.raises(ConfigError, match="Duplicate"):
        TaskStore([_cmd("a"), _cmd("a")])


def test_missing_reference_rejected() -> None:
    with pytest.raises(ConfigError, match="missing task 'ghost'"):
        TaskStore([_group("all", "a", "ghost"), _cmd("a")])


def test_graph_keeps_declaration_order() -> None:
    store = TaskStore([_cmd("a"), _cmd("b", "a"), _group("all", "b", "a")])
    assert build_graph(store) == {"a": [], "b": ["a"], "all": ["b", "a"]}


def test_find_cycle_direct_and_indirect() -> None:
    graph = {"a": ["b"], "b": ["c"], "c": ["a"], "d": ["d"], "e": []}
    assert find_cycle(graph, "a") == ["a", "b", "c", "a"]
    assert find_cycle(graph, "d") == ["d", "d"]
    assert find_cycle(graph, "e") is None


def test_check_acyclic_reports_cycle() -> None:
    store = TaskStore([_group("a", "b"), _group("b", "a")])
    with pytest.raises(CyclicTaskReference) as info:
        check_acyclic(store)
    assert info.value.path == ["a", "b", "a"]


def test_shipped_store_is_acyclic(shipped_config) -> None:
    check_acyclic(make_store(shipped_config))


def test_execution_plan(shipped_config) -> None:
    store = make_store(shipped_config)
    assert execution_plan(store, "test-all") == ["fmt", "clippy", "test"]
    assert execution_plan(store, "doc") == ["doc"]


def test_execution_plan_with_dependencies() -> None:
    store = TaskStore([_cmd("fetch"), _cmd("build", "fetch"), _group("ci", "build", "fetch")])
    assert execution_plan(store, "ci") == ["fetch", "build", "fetch"]


def test_execution_plan_unknown_task() -> None:
    with pytest.raises(UnknownTask):
        execution_plan(TaskStore([_cmd("a")]), "b")


def test_task_without_command_or_sub_tasks_rejected() -> None:
    with pytest.raises(ConfigError, match="needs either"):
        TaskDefinition(name="empty")
    with pytest.raises(ConfigError, match="needs either"):
        TaskDefinition(name="blank", command="")


def test_task_with_command_and_sub_tasks_rejected() -> None:
    with pytest.raises(ConfigError, match="both"):
        TaskDefinition(name="mixed", command="rm", args=("-rf", "x"), sub_tasks=("leaf",))
