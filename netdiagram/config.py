"""Startup loading of the configuration directory."""

import logging
from pathlib import Path

from .schema.errors import SchemaValidationError
from .schema.loader import LoadedConfig, read_config_dir
from .validators.runner import run_validators

logger = logging.getLogger(__name__)


def load_config(config_dir: str | Path) -> LoadedConfig:
    """Load, parse and cross-check the configuration files.

    Warnings are logged; any error aborts loading.

    Raises:
        SchemaLoadError: If a file cannot be read.
        SchemaValidationError: If a file is malformed or the files disagree.
    """
    config = read_config_dir(config_dir)
    result = run_validators(config.schema, config.mapping)

    for issue in result.warnings:
        logger.warning("%s", issue)

    if result.has_errors:
        errors = [
            {
                "code": issue.code,
                "msg": issue.message,
                "entity": issue.entity,
                "attribute": issue.attribute,
                "root": issue.root,
            }
            for issue in result.errors
        ]
        raise SchemaValidationError(
            f"Configuration in {config_dir} failed validation with {len(errors)} error(s)",
            errors,
        )

    logger.info(
        "Loaded configuration from %s (%d entities, %d roots)",
        config_dir,
        len(config.schema.entities),
        len(config.schema.roots),
    )
    return config
