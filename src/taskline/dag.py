# dag.py
from __future__ import annotations

from typing import Dict, List, Optional

from .errors import CyclicTaskReference
from .store import TaskStore


def build_graph(store: TaskStore) -> Dict[str, List[str]]:
    """
    Build the task reference graph.

    Edge task -> ref means `ref` runs as part of `task`. Edges keep
    declaration order (dependencies first, then sub-tasks), which is the
    order the executor follows.
    """
    return {t.name: list(t.references) for t in store}


def find_cycle(graph: Dict[str, List[str]], start: str) -> Optional[List[str]]:
    """
    Return a cycle reachable from `start` as a path (first == last), or None.
    """
    path: List[str] = []
    on_path: set[str] = set()
    done: set[str] = set()

    def visit(node: str) -> Optional[List[str]]:
        if node in on_path:
            return path[path.index(node):] + [node]
        if node in done:
            return None
        path.append(node)
        on_path.add(node)
        for child in graph.get(node, []):
            cycle = visit(child)
            if cycle:
                return cycle
        path.pop()
        on_path.discard(node)
        done.add(node)
        return None

    return visit(start)


def check_acyclic(store: TaskStore) -> None:
    """Raise CyclicTaskReference for the first cycle found anywhere in the store."""
    graph = build_graph(store)
    for name in graph:
        cycle = find_cycle(graph, name)
        if cycle:
            raise CyclicTaskReference(cycle)


def execution_plan(store: TaskStore, name: str) -> List[str]:
    """
    Ordered list of command tasks that running `name` would execute.

    A task reached twice through different parents appears twice, matching
    the executor (no de-duplication).
    """
    graph = build_graph(store)
    store.get(name)  # UnknownTask before anything else
    cycle = find_cycle(graph, name)
    if cycle:
        raise CyclicTaskReference(cycle)

    plan: List[str] = []

    def walk(node: str) -> None:
        task = store.get(node)
        for ref in task.dependencies:
            walk(ref)
        if task.is_composite:
            for ref in task.sub_tasks:
                walk(ref)
        else:
            plan.append(node)

    walk(name)
    return plan
