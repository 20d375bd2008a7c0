"""Deterministic category inheritance graph utilities."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from heapq import heapify, heappop, heappush
from typing import TYPE_CHECKING, cast

from ontosync.constants import INHERITANCE_GRAPH_SCHEMA_VERSION
from ontosync.domain.errors import CycleError

if TYPE_CHECKING:
    from ontosync.domain.models import Category


class InheritanceGraph:
    """Name-keyed graph of ``parent -> child`` inheritance edges."""

    __slots__ = ("_nodes", "_children", "_parents")

    def __init__(
        self,
        nodes: Iterable[str] | None = None,
        edges: Iterable[tuple[str, str]] | None = None,
    ) -> None:
        self._nodes: set[str] = set()
        self._children: dict[str, set[str]] = {}
        self._parents: dict[str, set[str]] = {}

        if nodes is not None:
            for name in nodes:
                self.add_node(name)

        if edges is not None:
            for parent, child in edges:
                self.add_edge(parent, child)

    @classmethod
    def from_categories(
        cls,
        categories: Mapping[str, Category],
        *,
        include_missing: bool = False,
    ) -> InheritanceGraph:
        """
        Build the graph from category declarations.

        Parents that are not defined are skipped unless ``include_missing`` is
        set, in which case they become nodes of their own.
        """
        graph = cls(nodes=categories)
        for name in sorted(categories):
            for parent in categories[name].parents:
                if parent not in categories and not include_missing:
                    continue
                graph.add_edge(parent, name)
        return graph

    @property
    def nodes(self) -> tuple[str, ...]:
        """All category names in deterministic order."""
        return tuple(sorted(self._nodes))

    @property
    def edges(self) -> tuple[tuple[str, str], ...]:
        """All edges as ``(parent, child)`` pairs in deterministic order."""
        ordered_edges: list[tuple[str, str]] = []
        for parent in sorted(self._nodes):
            for child in sorted(self._children[parent]):
                ordered_edges.append((parent, child))
        return tuple(ordered_edges)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def add_node(self, name: str) -> None:
        """Add a node if it does not already exist."""
        self._validate_name(name)
        if name in self._nodes:
            return

        self._nodes.add(name)
        self._children[name] = set()
        self._parents[name] = set()

    def add_edge(self, parent: str, child: str) -> None:
        """Add an inheritance edge: ``child`` inherits from ``parent``."""
        self._validate_name(parent)
        self._validate_name(child)

        if parent not in self._nodes:
            self.add_node(parent)
        if child not in self._nodes:
            self.add_node(child)

        if child in self._children[parent]:
            return

        self._children[parent].add(child)
        self._parents[child].add(parent)

    def topological_sort(self) -> tuple[str, ...]:
        """Return parents before children, ties by name, or raise ``CycleError``."""
        indegree: dict[str, int] = {node: len(self._parents[node]) for node in self._nodes}
        ready: list[str] = [node for node, degree in indegree.items() if degree == 0]
        heapify(ready)

        order: list[str] = []
        while ready:
            node = heappop(ready)
            order.append(node)

            for child in sorted(self._children[node]):
                indegree[child] -= 1
                if indegree[child] == 0:
                    heappush(ready, child)

        if len(order) != len(self._nodes):
            raise CycleError(self.detect_cycles())

        return tuple(order)

    def detect_cycles(self) -> tuple[tuple[str, ...], ...]:
        """
        Detect inheritance loops.

        Paths follow parent links and are closed, e.g. ``("A", "B", "A")``
        when ``A`` inherits from ``B`` and ``B`` inherits from ``A``.
        """
        state: dict[str, int] = {}
        stack: list[str] = []
        stack_index: dict[str, int] = {}
        cycles: dict[tuple[str, ...], None] = {}

        for start in sorted(self._nodes):
            if state.get(start, 0) != 0:
                continue

            state[start] = 1
            stack.append(start)
            stack_index[start] = len(stack) - 1
            frames: list[tuple[str, Iterator[str]]] = [(start, iter(sorted(self._parents[start])))]

            while frames:
                node, parent_iter = frames[-1]

                try:
                    parent = next(parent_iter)
                except StopIteration:
                    frames.pop()
                    state[node] = 2
                    stack.pop()
                    del stack_index[node]
                    continue

                parent_state = state.get(parent, 0)
                if parent_state == 0:
                    state[parent] = 1
                    stack_index[parent] = len(stack)
                    stack.append(parent)
                    frames.append((parent, iter(sorted(self._parents[parent]))))
                    continue

                if parent_state == 1:
                    start_index = stack_index[parent]
                    cycle = tuple(stack[start_index:] + [parent])
                    cycles[canonicalize_cycle(cycle)] = None

        return tuple(sorted(cycles))

    def parents(self, name: str) -> tuple[str, ...]:
        self._assert_node_exists(name)
        return tuple(sorted(self._parents[name]))

    def children(self, name: str) -> tuple[str, ...]:
        self._assert_node_exists(name)
        return tuple(sorted(self._children[name]))

    def ancestors(self, name: str) -> tuple[str, ...]:
        """Return every transitive parent of ``name``."""
        return self._transitive_closure(name, upstream=True)

    def descendants(self, name: str) -> tuple[str, ...]:
        """Return every transitive child of ``name``."""
        return self._transitive_closure(name, upstream=False)

    def roots(self) -> tuple[str, ...]:
        return tuple(node for node in sorted(self._nodes) if not self._parents[node])

    def serialize(self) -> dict[str, object]:
        """Serialize graph to a stable JSON-friendly mapping."""
        nodes = sorted(self._nodes)
        edges: list[list[str]] = []
        for parent in nodes:
            for child in sorted(self._children[parent]):
                edges.append([parent, child])

        return {
            "schema_version": INHERITANCE_GRAPH_SCHEMA_VERSION,
            "nodes": nodes,
            "edges": edges,
        }

    @classmethod
    def deserialize(cls, payload: Mapping[str, object]) -> InheritanceGraph:
        """Deserialize from :meth:`serialize` output."""
        version = payload.get("schema_version", INHERITANCE_GRAPH_SCHEMA_VERSION)
        if version != INHERITANCE_GRAPH_SCHEMA_VERSION:
            raise ValueError(f"unsupported inheritance graph schema version: {version!r}")
        nodes = cls._parse_nodes(payload.get("nodes", ()))
        edges = cls._parse_edges(payload.get("edges", ()))

        graph = cls(nodes=nodes)
        for parent, child in edges:
            graph.add_edge(parent, child)
        return graph

    def _transitive_closure(self, name: str, *, upstream: bool) -> tuple[str, ...]:
        self._assert_node_exists(name)

        adjacency = self._parents if upstream else self._children
        visited: set[str] = set()
        pending: list[str] = list(adjacency[name])

        while pending:
            node = pending.pop()
            if node in visited:
                continue

            visited.add(node)
            for neighbor in adjacency[node]:
                if neighbor not in visited:
                    pending.append(neighbor)

        visited.discard(name)
        return tuple(sorted(visited))

    @staticmethod
    def _parse_nodes(raw_nodes: object) -> tuple[str, ...]:
        if not isinstance(raw_nodes, Sequence) or isinstance(raw_nodes, (str, bytes, bytearray)):
            raise TypeError("'nodes' must be a sequence of strings.")

        nodes: list[str] = []
        seen: set[str] = set()
        for index, raw_node in enumerate(raw_nodes):
            if not isinstance(raw_node, str):
                raise TypeError(f"'nodes[{index}]' must be a string.")
            InheritanceGraph._validate_name(raw_node)
            if raw_node in seen:
                raise ValueError(f"Duplicate node '{raw_node}' in 'nodes'.")
            seen.add(raw_node)
            nodes.append(raw_node)
        return tuple(nodes)

    @staticmethod
    def _parse_edges(raw_edges: object) -> tuple[tuple[str, str], ...]:
        if not isinstance(raw_edges, Sequence) or isinstance(raw_edges, (str, bytes, bytearray)):
            raise TypeError("'edges' must be a sequence of [parent, child] pairs.")

        edges: list[tuple[str, str]] = []
        for index, raw_edge in enumerate(raw_edges):
            if not isinstance(raw_edge, Sequence) or isinstance(raw_edge, (str, bytes, bytearray)):
                raise TypeError(f"'edges[{index}]' must be a sequence of two strings.")
            pair = cast("Sequence[object]", raw_edge)
            if len(pair) != 2:
                raise ValueError(f"'edges[{index}]' must contain exactly two category names.")

            parent_raw = pair[0]
            child_raw = pair[1]
            if not isinstance(parent_raw, str) or not isinstance(child_raw, str):
                raise TypeError(f"'edges[{index}]' must contain only strings.")

            InheritanceGraph._validate_name(parent_raw)
            InheritanceGraph._validate_name(child_raw)
            edges.append((parent_raw, child_raw))

        return tuple(edges)

    @staticmethod
    def _validate_name(name: str) -> None:
        if not name:
            raise ValueError("Category name must be non-empty.")

    def _assert_node_exists(self, name: str) -> None:
        if name not in self._nodes:
            raise KeyError(f"Unknown category: {name}")


def canonicalize_cycle(cycle: Sequence[str]) -> tuple[str, ...]:
    """Rotate a closed path so it starts at its smallest name."""
    if len(cycle) < 2:
        raise ValueError("Cycle path must contain at least two nodes.")

    core = tuple(cycle[:-1])
    if len(core) == 1:
        return (core[0], core[0])

    best = core
    for offset in range(1, len(core)):
        rotated = core[offset:] + core[:offset]
        if rotated < best:
            best = rotated

    return best + (best[0],)


__all__ = ["InheritanceGraph", "canonicalize_cycle"]
