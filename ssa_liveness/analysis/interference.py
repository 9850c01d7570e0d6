from __future__ import annotations

from dataclasses import dataclass, field

from ..intermediate_representation.ir import Function, Name, sorted_names
from .live_variables import LivenessResult, def_set


@dataclass
class InterferenceGraph:
    """Undirected graph of values whose live ranges overlap."""

    nodes: list[Name] = field(default_factory=list)
    index: dict[Name, int] = field(default_factory=dict)
    adjacency: list[set[int]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, name: Name) -> bool:
        return name in self.index

    def add_node(self, name: Name) -> int:
        """Return the handle for ``name``, inserting it on first sight."""
        handle = self.index.get(name)
        if handle is None:
            handle = len(self.nodes)
            self.index[name] = handle
            self.nodes.append(name)
            self.adjacency.append(set())
        return handle

    def add_edge(self, a: Name, b: Name) -> None:
        first = self.add_node(a)
        second = self.add_node(b)
        if first == second:
            return
        self.adjacency[first].add(second)
        self.adjacency[second].add(first)

    def handle(self, name: Name) -> int:
        return self.index[name]

    def neighbors(self, name: Name) -> list[Name]:
        return sorted_names(self.nodes[h] for h in self.adjacency[self.index[name]])

    def degree(self, name: Name) -> int:
        return len(self.adjacency[self.index[name]])

    def interferes(self, a: Name, b: Name) -> bool:
        if a not in self.index or b not in self.index:
            return False
        return self.index[b] in self.adjacency[self.index[a]]

    def edges(self) -> list[tuple[Name, Name]]:
        """Each undirected edge once, lower handle first."""
        return [
            (self.nodes[a], self.nodes[b])
            for a, neighbours in enumerate(self.adjacency)
            for b in sorted(neighbours)
            if a < b
        ]


def build_interference(function: Function, liveness: LivenessResult) -> InterferenceGraph:
    """Connect every definition to each other value live right after it."""
    if liveness.function != function:
        raise ValueError(f"liveness result does not belong to function {function.name}")
    graph = InterferenceGraph()
    for inst, row in zip(liveness.instructions, liveness.rows):
        for defined in def_set(inst):
            graph.add_node(defined)
            for live in row.live_out:
                graph.add_edge(defined, live)
        for live in row.live_out:
            graph.add_node(live)
    return graph
