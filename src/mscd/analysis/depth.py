"""Composition depth computation and aggregation.

depth(n) is 0 for a record with no entity-typed fields and otherwise
``1 + max(depth(child))`` over its outgoing edges. Composition graphs may
be cyclic (``struct Node { next: Option<Box<Node>> }``), so an edge back to
a record already on the current path contributes 0 instead of recursing.

The graph is evaluated per strongly connected component, sinks first, so
every edge leaving a component points at a final value. Inside a cyclic
component the depth of a record is the longest simple path through the
component plus the deepest edge leaving it from the path's last record.
This value depends only on the graph, not on field order or on which record
is visited first: a two-node cycle A <-> B gives depth 1 to both records,
and a record pointing into that cycle gets 2.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from pathlib import PurePosixPath

from loguru import logger

from .graph import DependencyGraph
from .models import DepthResult, RecordType

ROOT_DIRECTORY = "."


def directories_of(file_path: str) -> list[str]:
    """Every directory containing ``file_path``, innermost first, ending at ".".

    Examples:
        >>> directories_of("net/http/client.rs")
        ['net/http', 'net', '.']

        >>> directories_of("lib.rs")
        ['.']
    """
    return [str(parent) for parent in PurePosixPath(file_path).parents]


class DepthEngine:
    """Computes per-entity depth over a DependencyGraph and aggregates it."""

    def __init__(self, graph: DependencyGraph) -> None:
        self.graph = graph
        self._components: list[list[int]] | None = None

    def entity_depths(self) -> dict[str, int]:
        """Depth of every node, keyed by identity in sorted order."""
        edges = self.graph.edges
        depth: dict[int, int] = {}

        for component in self.components():
            members = set(component)
            # Deepest edge leaving the component from each member
            exits = {
                node: max(
                    (1 + depth[child] for child in edges[node] if child not in members),
                    default=0,
                )
                for node in component
            }
            if len(component) == 1:
                depth[component[0]] = exits[component[0]]
                continue
            for node in component:
                depth[node] = self._longest_within(node, members, exits)

        return {identity: depth[node] for node, identity in enumerate(self.graph.identities)}

    def _longest_within(self, start: int, members: set[int], exits: dict[int, int]) -> int:
        """Longest simple path from ``start`` inside one component, plus its exit."""
        edges = self.graph.edges
        best = exits[start]
        on_path = {start}
        stack: list[tuple[int, Iterator[int]]] = [(start, iter(edges[start]))]

        while stack:
            node, children = stack[-1]
            for child in children:
                if child in members and child not in on_path:
                    on_path.add(child)
                    stack.append((child, iter(edges[child])))
                    best = max(best, len(stack) - 1 + exits[child])
                    break
            else:
                stack.pop()
                on_path.discard(node)
        return best

    def components(self) -> list[list[int]]:
        """Strongly connected components in reverse topological order.

        Iterative Tarjan; a component is emitted only after every component
        reachable from it.
        """
        if self._components is not None:
            return self._components

        edges = self.graph.edges
        index: dict[int, int] = {}
        lowlink: dict[int, int] = {}
        on_stack: set[int] = set()
        component_stack: list[int] = []
        components: list[list[int]] = []
        counter = 0

        for start in range(len(edges)):
            if start in index:
                continue
            work = [(start, 0)]
            while work:
                node, edge = work.pop()
                if edge == 0:
                    index[node] = lowlink[node] = counter
                    counter += 1
                    component_stack.append(node)
                    on_stack.add(node)

                descended = False
                for i in range(edge, len(edges[node])):
                    child = edges[node][i]
                    if child not in index:
                        work.append((node, i + 1))
                        work.append((child, 0))
                        descended = True
                        break
                    if child in on_stack:
                        lowlink[node] = min(lowlink[node], index[child])
                if descended:
                    continue

                if lowlink[node] == index[node]:
                    component = []
                    while True:
                        member = component_stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    components.append(sorted(component))

                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])

        self._components = components
        return components

    def cyclic_entities(self) -> frozenset[str]:
        """Records on a structural cycle (including self-loops).

        A component of two or more nodes is a cycle, a single node only when
        it has a self-loop.
        """
        edges = self.graph.edges
        return frozenset(
            self.graph.identities[node]
            for component in self.components()
            for node in component
            if len(component) > 1 or node in edges[node]
        )

    def compute(
        self, records: Mapping[str, RecordType], files: Iterable[str]
    ) -> DepthResult:
        """Compute entity depths and aggregate them per file and directory.

        Args:
            records: Every record, keyed by identity
            files: Relative paths of every analyzed file; files declaring no
                record have depth 0

        Returns:
            DepthResult at every granularity
        """
        entity_depths = self.entity_depths()

        file_depths: dict[str, int] = {path: 0 for path in sorted(files)}
        for identity, record in records.items():
            depth = entity_depths.get(identity, 0)
            file_depths[record.file_path] = max(file_depths.get(record.file_path, 0), depth)

        directory_depths: dict[str, int] = {}
        for path, depth in file_depths.items():
            for directory in directories_of(path):
                directory_depths[directory] = max(directory_depths.get(directory, 0), depth)
        if not directory_depths:
            directory_depths[ROOT_DIRECTORY] = 0

        cyclic = self.cyclic_entities()
        if cyclic:
            logger.info(
                f"{len(cyclic)} structs sit on structural cycles; "
                "back edges contribute 0 to their depth"
            )

        return DepthResult(
            entity_depths=entity_depths,
            file_depths=dict(sorted(file_depths.items())),
            directory_depths=dict(sorted(directory_depths.items())),
            global_depth=max(entity_depths.values(), default=0),
            entity_count=len(entity_depths),
            cyclic_entities=cyclic,
        )
