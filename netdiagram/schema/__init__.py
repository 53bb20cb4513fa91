"""Schema layer for parsing and validating the YAML configuration."""

from .errors import ConfigurationError, SchemaLoadError, SchemaValidationError
from .models import (
    AttributeDefinition,
    DocumentMapping,
    EntityBlock,
    EntitySchema,
    EntityType,
    Link,
    MermaidStyles,
    ParentRule,
    ParentSpec,
)
from .loader import (
    LoadedConfig,
    load_yaml,
    parse_mapping,
    parse_mapping_from_string,
    parse_schema,
    parse_schema_from_string,
    parse_styles,
    parse_styles_from_string,
    read_config_dir,
)

__all__ = [
    "ConfigurationError",
    "SchemaLoadError",
    "SchemaValidationError",
    "AttributeDefinition",
    "DocumentMapping",
    "EntityBlock",
    "EntitySchema",
    "EntityType",
    "Link",
    "MermaidStyles",
    "ParentRule",
    "ParentSpec",
    "LoadedConfig",
    "load_yaml",
    "parse_mapping",
    "parse_mapping_from_string",
    "parse_schema",
    "parse_schema_from_string",
    "parse_styles",
    "parse_styles_from_string",
    "read_config_dir",
]
