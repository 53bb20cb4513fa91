"""DependencyGraph wrapper around networkx for entity-type dependencies."""

from typing import Any, Iterator

import networkx as nx

from .edge_types import EdgeType


class DependencyGraph:
    """A graph of entity types and the order they must be created in.

    Wraps a networkx DiGraph. An edge ``a -> b`` means instances of ``a``
    must exist before instances of ``b`` (``b`` depends on ``a``).
    """

    def __init__(self):
        """Initialize an empty dependency graph."""
        self._graph = nx.DiGraph()

    # -------------------------------------------------------------------------
    # Node and edge management
    # -------------------------------------------------------------------------

    def add_entity(self, name: str, **attrs: Any) -> str:
        """Add an entity type node to the graph.

        Args:
            name: The entity type name.
            **attrs: Additional attributes for the node.

        Returns:
            The node ID.
        """
        self._graph.add_node(name, **attrs)
        return name

    def add_dependency(self, dependency: str, dependent: str, edge_type: EdgeType) -> bool:
        """Add a dependency edge between two known entity types.

        Self edges are dropped, and a repeated edge keeps its first type.

        Args:
            dependency: The entity type that must exist first.
            dependent: The entity type that depends on it.
            edge_type: Whether the edge comes from a parent rule or a link.

        Returns:
            True if a new edge was added.
        """
        if dependency == dependent:
            return False
        if not (self._graph.has_node(dependency) and self._graph.has_node(dependent)):
            return False
        if self._graph.has_edge(dependency, dependent):
            return False

        self._graph.add_edge(dependency, dependent, edge_type=edge_type)
        return True

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def has_entity(self, name: str) -> bool:
        return self._graph.has_node(name)

    def get_entity_names(self) -> list[str]:
        """Get all entity type names, sorted."""
        return sorted(self._graph.nodes)

    def dependencies_of(self, name: str) -> list[str]:
        """Get the direct dependencies of an entity type, sorted."""
        if not self._graph.has_node(name):
            return []
        return sorted(self._graph.predecessors(name))

    def dependents_of(self, name: str) -> list[str]:
        """Get the entity types that directly depend on ``name``, sorted."""
        if not self._graph.has_node(name):
            return []
        return sorted(self._graph.successors(name))

    def iter_dependencies(self) -> Iterator[tuple[str, str, EdgeType]]:
        """Iterate over all edges, sorted by (dependency, dependent).

        Yields:
            Tuples of (dependency, dependent, edge_type).
        """
        for source, target in sorted(self._graph.edges):
            yield source, target, self._graph.edges[source, target]["edge_type"]

    def edge_pairs(self) -> list[tuple[str, str]]:
        """Get all edges as sorted (dependency, dependent) pairs."""
        return sorted(self._graph.edges)

    def find_cycle(self, among: list[str] | None = None) -> list[str]:
        """Find one dependency cycle, optionally restricted to some nodes.

        Returns:
            The node names along the cycle, or an empty list if acyclic.
        """
        graph = self._graph if among is None else self._graph.subgraph(among)
        try:
            edges = nx.find_cycle(graph)
        except nx.NetworkXNoCycle:
            return []
        return [source for source, _ in edges]
