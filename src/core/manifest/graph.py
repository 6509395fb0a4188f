"""Service dependency graph and rollout ordering."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger

from .errors import DependencyCycleError
from .models import Manifest


@dataclass
class DependencyGraph:
    """Directed graph: an edge ``a -> b`` means ``a`` depends on ``b``.

    Dependencies on services outside the graph are kept in ``external`` and
    do not constrain the order.
    """

    nodes: list[str] = field(default_factory=list)
    edges: dict[str, list[str]] = field(default_factory=dict)
    external: dict[str, list[str]] = field(default_factory=dict)

    def dependencies_of(self, service: str) -> list[str]:
        return list(self.edges.get(service, []))

    def _find_cycle(self, remaining: set[str]) -> list[str]:
        # every node left after Kahn has an unresolved dependency inside ``remaining``
        start = min(remaining)
        path: list[str] = []
        seen: dict[str, int] = {}
        node = start
        while node not in seen:
            seen[node] = len(path)
            path.append(node)
            node = min(d for d in self.edges[node] if d in remaining)
        return path[seen[node] :] + [node]

    def batches(self) -> list[list[str]]:
        """Group services into layers; a layer only depends on earlier layers.

        Raises:
            DependencyCycleError: If the graph has a cycle
        """
        pending = {n: len(self.edges.get(n, [])) for n in self.nodes}
        dependents: dict[str, list[str]] = {n: [] for n in self.nodes}
        for node, deps in self.edges.items():
            for dep in deps:
                dependents[dep].append(node)

        layers: list[list[str]] = []
        ready = sorted(n for n, count in pending.items() if count == 0)
        while ready:
            layers.append(ready)
            following: list[str] = []
            for node in ready:
                for child in dependents[node]:
                    pending[child] -= 1
                    if pending[child] == 0:
                        following.append(child)
            ready = sorted(following)

        placed = sum(len(layer) for layer in layers)
        if placed != len(self.nodes):
            placed_nodes = {n for layer in layers for n in layer}
            raise DependencyCycleError(self._find_cycle(set(self.nodes) - placed_nodes))
        return layers

    def rollout_order(self) -> list[str]:
        """Deterministic topological order, dependencies first.

        Raises:
            DependencyCycleError: If the graph has a cycle
        """
        return [service for layer in self.batches() for service in layer]


def build(manifests: Iterable[Manifest]) -> DependencyGraph:
    """One node per manifest, one edge per declared dependency."""
    graph = DependencyGraph()
    manifest_list = list(manifests)
    names = {m.name for m in manifest_list}
    for manifest in manifest_list:
        if manifest.name in graph.edges:
            logger.warning(f"Duplicate manifest {manifest.name} in dependency graph")
            continue
        graph.nodes.append(manifest.name)
        internal: list[str] = []
        external: list[str] = []
        for dep in manifest.dependencies:
            target = internal if dep.name in names else external
            if dep.name not in target:
                target.append(dep.name)
        graph.edges[manifest.name] = internal
        if external:
            graph.external[manifest.name] = external
    logger.debug(f"Built dependency graph with {len(graph.nodes)} services")
    return graph
