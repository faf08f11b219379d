"""Dependency graph between records, stored as an integer-indexed arena."""

from __future__ import annotations

from collections.abc import Mapping

from loguru import logger

from .models import FieldResolution


class DependencyGraph:
    """Directed "is composed of" graph over record identities.

    Nodes are numbered in sorted identity order; ``edges[i]`` holds the
    distinct successors of node ``i`` in first-seen field order. A record
    that contains itself through an indirection wrapper has a self-edge.
    """

    def __init__(self, identities: list[str]) -> None:
        self.identities = sorted(identities)
        self.ids = {identity: i for i, identity in enumerate(self.identities)}
        self.edges: list[list[int]] = [[] for _ in self.identities]

    @classmethod
    def build(
        cls, resolutions: Mapping[str, tuple[FieldResolution, ...]]
    ) -> DependencyGraph:
        """Build the graph from per-record field resolutions.

        Args:
            resolutions: Field resolutions keyed by record identity

        Returns:
            Graph with one edge per distinct entity target
        """
        graph = cls(list(resolutions))
        for identity, fields in resolutions.items():
            for resolution in fields:
                for target in resolution.targets:
                    if target.identity is not None:
                        graph.add_edge(identity, target.identity)

        logger.debug(
            f"Dependency graph: {len(graph)} nodes, {graph.edge_count} edges, "
            f"{len(graph.self_loops())} self-loops"
        )
        return graph

    def __len__(self) -> int:
        return len(self.identities)

    @property
    def edge_count(self) -> int:
        return sum(len(successors) for successors in self.edges)

    def add_edge(self, source: str, target: str) -> None:
        """Add ``source -> target`` unless it already exists.

        Targets that are not nodes of the graph are ignored.
        """
        if source not in self.ids or target not in self.ids:
            return
        successors = self.edges[self.ids[source]]
        target_id = self.ids[target]
        if target_id not in successors:
            successors.append(target_id)

    def successors(self, identity: str) -> list[str]:
        return [self.identities[i] for i in self.edges[self.ids[identity]]]

    def self_loops(self) -> list[str]:
        return [self.identities[i] for i, successors in enumerate(self.edges) if i in successors]
