"""Graph layer: entity-type dependency graphs and their analysis."""

from .edge_types import EdgeType
from .dependency_graph import DependencyGraph
from .builder import build_dependency_graph
from .errors import DependencyCycleError
from .analyzer import (
    CategoryAnalysis,
    ModelAnalysis,
    analyze_global,
    analyze_schema,
    closure_with_dependencies,
    compute_entity_roots,
    topo_sort_deterministic,
)

__all__ = [
    "EdgeType",
    "DependencyGraph",
    "build_dependency_graph",
    "DependencyCycleError",
    "CategoryAnalysis",
    "ModelAnalysis",
    "analyze_global",
    "analyze_schema",
    "closure_with_dependencies",
    "compute_entity_roots",
    "topo_sort_deterministic",
]
