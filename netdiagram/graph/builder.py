"""Builder for converting an EntitySchema to a DependencyGraph."""

from typing import Iterable

from ..schema.models import EntitySchema
from .dependency_graph import DependencyGraph
from .edge_types import EdgeType


def build_dependency_graph(
    schema: EntitySchema, nodes: Iterable[str] | None = None
) -> DependencyGraph:
    """Build a DependencyGraph restricted to a set of entity types.

    Parent rules add ``parent -> child`` edges and links add
    ``target -> linking type`` edges. Edges to types outside ``nodes`` are
    ignored.

    Args:
        schema: The parsed entity schema.
        nodes: Entity types to include. Defaults to every declared type.

    Returns:
        A DependencyGraph for those types.
    """
    graph = DependencyGraph()

    included = set(schema.entities) if nodes is None else set(nodes)
    for entity_name in sorted(included):
        if entity_name in schema.entities:
            graph.add_entity(entity_name)

    # Parent dependencies: parent entity must exist before child.
    for entity_name, entity in schema.entities.items():
        if not graph.has_entity(entity_name):
            continue
        for parent_entity in entity.parent_entity_types():
            graph.add_dependency(parent_entity, entity_name, EdgeType.PARENT)

    # Link dependencies: link target should exist before the linking type.
    for entity_name, entity in schema.entities.items():
        if not graph.has_entity(entity_name):
            continue
        for link in entity.links.values():
            graph.add_dependency(link.entity, entity_name, EdgeType.LINK)

    return graph
