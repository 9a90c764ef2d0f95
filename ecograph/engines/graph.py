"""Dependency graph and deterministic topological order (Kahn's algorithm)."""

from __future__ import annotations

import heapq
from collections.abc import Mapping
from dataclasses import dataclass, field

import structlog

from ecograph.exceptions import GraphError
from ecograph.models.record import ModuleRecord

log = structlog.get_logger("ecograph.engine")


@dataclass
class DependencyGraph:
    """Edge A → B means B depends on A, so A is installed first."""

    nodes: list[str] = field(default_factory=list)
    dependents: dict[str, list[str]] = field(default_factory=dict)
    in_degree: dict[str, int] = field(default_factory=dict)
    ignored: dict[str, list[str]] = field(default_factory=dict)

    @property
    def edge_count(self) -> int:
        return sum(len(v) for v in self.dependents.values())


@dataclass
class SortResult:
    order: list[str]
    cyclic: list[str] = field(default_factory=list)

    @property
    def has_cycle(self) -> bool:
        return bool(self.cyclic)


def build_graph(dataset: Mapping[str, ModuleRecord]) -> DependencyGraph:
    """Build the graph from the working dataset.

    Dependencies on names outside the dataset add no edge and no in-degree;
    they are kept in ``ignored`` for reporting. Raises GraphError when the
    dataset is not shaped like name → record of that name.
    """
    graph = DependencyGraph()
    for name, record in dataset.items():
        if not isinstance(record, ModuleRecord):
            raise GraphError(f"dataset entry {name!r} is not a module record")
        if record.name != name:
            raise GraphError(f"dataset key {name!r} holds record for {record.name!r}")
        graph.nodes.append(name)
        graph.dependents.setdefault(name, [])
        graph.in_degree.setdefault(name, 0)

    for name in graph.nodes:
        seen: set[str] = set()
        for dep in dataset[name].dependencies:
            if dep == name or dep in seen:
                continue
            seen.add(dep)
            if dep not in dataset:
                graph.ignored.setdefault(name, []).append(dep)
                continue
            graph.dependents[dep].append(name)
            graph.in_degree[name] += 1
    return graph


def topo_sort(graph: DependencyGraph) -> SortResult:
    """Kahn's algorithm with a lexicographically ordered ready tier.

    The ready tier is a min-heap, so every dequeue takes the smallest ready
    name, the same as re-sorting the tier whenever it changes. Nodes left
    unvisited (on or behind a cycle) are appended in sorted order.
    """
    in_degree = dict(graph.in_degree)
    ready = [n for n, d in in_degree.items() if d == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        node = heapq.heappop(ready)
        order.append(node)
        for dependent in graph.dependents.get(node, ()):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, dependent)

    if len(order) > len(graph.nodes):
        raise GraphError("topological sort visited more nodes than the graph holds")

    cyclic: list[str] = []
    if len(order) < len(graph.nodes):
        visited = set(order)
        cyclic = sorted(n for n in graph.nodes if n not in visited)
        log.warning(
            "graph.cycle_detected",
            unresolved_count=len(cyclic),
            nodes=cyclic[:50],
        )
        order.extend(cyclic)
    return SortResult(order=order, cyclic=cyclic)


def build_order(dataset: Mapping[str, ModuleRecord]) -> SortResult:
    graph = build_graph(dataset)
    result = topo_sort(graph)
    log.info(
        "graph.sorted",
        nodes=len(graph.nodes),
        edges=graph.edge_count,
        external_deps=sum(len(v) for v in graph.ignored.values()),
        cyclic=len(result.cyclic),
    )
    return result
