"""Validation runner that orchestrates all validators."""

from pathlib import Path

from ..schema.loader import read_config_dir
from ..schema.models import DocumentMapping, EntitySchema
from .base import ValidationResult
from .dependency_order import check_dependency_order
from .mapping_coverage import check_mapping_coverage
from .reference_integrity import check_reference_integrity
from .unrooted import check_unrooted_entities


def run_validators(schema: EntitySchema, mapping: DocumentMapping) -> ValidationResult:
    """Run all validators on a configuration.

    Args:
        schema: The parsed entity schema.
        mapping: The parsed document mapping.

    Returns:
        Combined ValidationResult from all validators.
    """
    result = ValidationResult()

    # Run reference integrity first (most fundamental)
    references = check_reference_integrity(schema)
    result.merge(references)

    result.merge(check_mapping_coverage(schema, mapping))

    # Ordering only makes sense once every reference resolves
    if references.is_valid:
        result.merge(check_unrooted_entities(schema))
        result.merge(check_dependency_order(schema))

    return result


def validate_config_dir(path: str | Path) -> ValidationResult:
    """Load and validate a configuration directory.

    Args:
        path: Directory holding the configuration YAML files.

    Returns:
        ValidationResult from all validators.

    Raises:
        SchemaLoadError: If a file cannot be loaded.
        SchemaValidationError: If a file fails schema validation.
    """
    config = read_config_dir(path)
    return run_validators(config.schema, config.mapping)
