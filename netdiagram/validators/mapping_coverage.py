"""Checks that the document mapping covers the entity schema."""

from ..schema.models import DocumentMapping, EntitySchema
from .base import ValidationResult


def check_mapping_coverage(schema: EntitySchema, mapping: DocumentMapping) -> ValidationResult:
    """Check that every entity type and root can be rendered.

    Args:
        schema: The parsed entity schema.
        mapping: The parsed document mapping.

    Returns:
        ValidationResult with errors for unrenderable types and roots, and
        warnings for mapping entries the schema does not declare.
    """
    result = ValidationResult()

    for entity_name in schema.get_all_entity_names():
        if entity_name not in mapping.entities:
            result.add_error(
                code="UNMAPPED_ENTITY",
                message=f"Entity '{entity_name}' has no Mermaid mapping",
                entity=entity_name,
            )

    for root_key in schema.get_root_keys():
        if root_key not in mapping.roots:
            result.add_error(
                code="UNMAPPED_ROOT",
                message=f"Root '{root_key}' has no Mermaid root block",
                root=root_key,
            )

    for entity_name in mapping.entities:
        if schema.get_entity(entity_name) is None:
            result.add_warning(
                code="UNKNOWN_MAPPED_ENTITY",
                message=f"Mapping for '{entity_name}' matches no entity in the model",
                entity=entity_name,
            )

    if mapping.connections is not None and mapping.connections.root not in mapping.roots:
        result.add_error(
            code="UNMAPPED_CONNECTIONS_ROOT",
            message=f"Connections region is placed in unmapped root '{mapping.connections.root}'",
            root=mapping.connections.root,
        )

    return result
