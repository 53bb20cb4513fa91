"""Reference integrity validator."""

from ..schema.models import EntitySchema
from .base import ValidationResult


def check_reference_integrity(schema: EntitySchema) -> ValidationResult:
    """Check that all references in the entity schema resolve.

    This validator checks:
    - Allowed-parent rules name declared roots or entity types
    - Entity parent rules name a CSV field
    - Link targets are declared entity types

    Args:
        schema: The parsed entity schema.

    Returns:
        ValidationResult with errors for broken references.
    """
    result = ValidationResult()

    root_keys = set(schema.get_root_keys())
    entity_names = set(schema.get_all_entity_names())

    for entity_name, entity in schema.entities.items():
        for rule in entity.parent.allowed:
            if rule.root and rule.root not in root_keys:
                result.add_error(
                    code="UNDEFINED_ROOT_REF",
                    message=f"Allowed parent references undefined root '{rule.root}'",
                    entity=entity_name,
                    referenced_root=rule.root,
                )
            if rule.entity and rule.entity not in entity_names:
                result.add_error(
                    code="UNDEFINED_ENTITY_REF",
                    message=f"Allowed parent references undefined entity '{rule.entity}'",
                    entity=entity_name,
                    referenced_entity=rule.entity,
                )
            if rule.entity and not rule.field:
                result.add_error(
                    code="MISSING_PARENT_FIELD",
                    message=f"Allowed parent '{rule.entity}' has no 'field'",
                    entity=entity_name,
                    referenced_entity=rule.entity,
                )

        for link_name, link in entity.links.items():
            if link.entity not in entity_names:
                result.add_error(
                    code="UNDEFINED_LINK_TARGET",
                    message=f"Link '{link_name}' references undefined entity '{link.entity}'",
                    entity=entity_name,
                    attribute=link.field,
                    referenced_entity=link.entity,
                )

    return result
