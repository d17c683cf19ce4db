"""Dependency graph helpers shared by the unit catalog and the planner."""

from __future__ import annotations

import heapq
from typing import Iterable, Mapping, Sequence

from stackweave.core.errors import CycleDetected


def topological_sort(nodes: Sequence[str], dependencies: Mapping[str, Iterable[str]]) -> list[str]:
    """
    Order nodes so every node comes after all of its dependencies.

    Kahn's algorithm. Among nodes whose dependencies are all satisfied, the one
    listed first in ``nodes`` is emitted first, so the result is a pure
    function of its inputs.

    Dependencies that are not in ``nodes`` are ignored; callers restrict the
    graph before sorting.

    Raises:
        CycleDetected: listing the nodes that could not be ordered
    """
    rank = {name: idx for idx, name in enumerate(nodes)}
    remaining: dict[str, int] = {}
    dependents: dict[str, list[str]] = {name: [] for name in nodes}

    for name in nodes:
        deps = {d for d in dependencies.get(name, ()) if d in rank}
        remaining[name] = len(deps)
        for dep in deps:
            dependents[dep].append(name)

    ready = [rank[name] for name in nodes if remaining[name] == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        name = nodes[heapq.heappop(ready)]
        order.append(name)
        for child in dependents[name]:
            remaining[child] -= 1
            if remaining[child] == 0:
                heapq.heappush(ready, rank[child])

    if len(order) != len(nodes):
        stuck = [name for name in nodes if remaining[name] > 0]
        raise CycleDetected(stuck)

    return order


def ancestors(name: str, dependencies: Mapping[str, Iterable[str]]) -> set[str]:
    """Return every node reachable from ``name`` by following dependencies."""
    seen: set[str] = set()
    stack = list(dependencies.get(name, ()))
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        stack.extend(dependencies.get(current, ()))
    return seen
