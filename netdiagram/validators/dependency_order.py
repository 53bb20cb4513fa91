"""Dependency order validator."""

from ..graph.analyzer import analyze_global, analyze_schema
from ..graph.errors import DependencyCycleError
from ..schema.models import EntitySchema
from .base import ValidationResult


def check_dependency_order(schema: EntitySchema) -> ValidationResult:
    """Check that the entity types can be ordered, per root and overall.

    The overall order is only checked once every root orders cleanly, so a
    cycle inside one root is reported once.

    Args:
        schema: The parsed entity schema.

    Returns:
        ValidationResult with an error naming the types caught in a cycle.
    """
    result = ValidationResult()

    try:
        analyze_schema(schema)
        analyze_global(schema)
    except DependencyCycleError as e:
        result.add_error(
            code="DEPENDENCY_CYCLE",
            message=str(e),
            root=None if e.is_global else e.root_key,
            scope="global" if e.is_global else "root",
            nodes=e.nodes,
            cycle=e.cycle,
        )

    return result
