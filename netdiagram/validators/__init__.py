"""Validators for cross-reference checks of a loaded configuration."""

from .base import Severity, ValidationIssue, ValidationResult
from .dependency_order import check_dependency_order
from .mapping_coverage import check_mapping_coverage
from .reference_integrity import check_reference_integrity
from .unrooted import check_unrooted_entities
from .runner import run_validators, validate_config_dir

__all__ = [
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "check_dependency_order",
    "check_mapping_coverage",
    "check_reference_integrity",
    "check_unrooted_entities",
    "run_validators",
    "validate_config_dir",
]
