"""Unrooted entity detection validator."""

from ..graph.analyzer import compute_entity_roots
from ..schema.models import EntitySchema
from .base import ValidationResult


def check_unrooted_entities(schema: EntitySchema) -> ValidationResult:
    """Check for entity types that can never be placed in a diagram.

    An unrooted entity type reaches no root scope, neither directly nor
    through its parent entity types. Objects of that type have nowhere to go.

    Args:
        schema: The parsed entity schema.

    Returns:
        ValidationResult with warnings for unrooted entity types.
    """
    result = ValidationResult()

    roots_by_entity = compute_entity_roots(schema)
    for entity_name in sorted(roots_by_entity):
        entity = schema.entities[entity_name]
        # Unconstrained types may be placed anywhere.
        if not entity.parent.allowed:
            continue
        if not roots_by_entity[entity_name]:
            result.add_warning(
                code="UNROOTED_ENTITY",
                message=f"Entity '{entity_name}' cannot reach any root",
                entity=entity_name,
            )

    return result
