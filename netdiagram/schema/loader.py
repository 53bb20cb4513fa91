"""YAML loading and parsing for the configuration files."""

from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .errors import SchemaLoadError, SchemaValidationError
from .models import DocumentMapping, EntitySchema, MermaidStyles

MODEL_FILENAME = "netbox-model.yaml"
MAPPING_FILENAME = "netbox-to-mermaid.yaml"
STYLES_FILENAME = "mermaid-styles.yaml"

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class LoadedConfig:
    """The three configuration documents, loaded together."""

    schema: EntitySchema
    mapping: DocumentMapping
    styles: MermaidStyles


def load_yaml(path: str | Path) -> dict:
    """Load a YAML file and return the raw data.

    Args:
        path: Path to the YAML file.

    Returns:
        The parsed YAML data as a dictionary.

    Raises:
        SchemaLoadError: If the file cannot be read or parsed.
    """
    path = Path(path)

    if not path.exists():
        raise SchemaLoadError(f"File not found: {path}", str(path))

    if not path.is_file():
        raise SchemaLoadError(f"Not a file: {path}", str(path))

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SchemaLoadError(f"Invalid YAML: {e}", str(path)) from e
    except OSError as e:
        raise SchemaLoadError(f"Cannot read file: {e}", str(path)) from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise SchemaLoadError(
            f"Expected YAML mapping at root, got {type(data).__name__}", str(path)
        )

    return data


def _load_yaml_string(yaml_string: str) -> dict:
    try:
        data = yaml.safe_load(yaml_string)
    except yaml.YAMLError as e:
        raise SchemaLoadError(f"Invalid YAML: {e}") from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise SchemaLoadError(f"Expected YAML mapping at root, got {type(data).__name__}")

    return data


def parse_schema(path: str | Path) -> EntitySchema:
    """Load and parse an entity schema file.

    Raises:
        SchemaLoadError: If the file cannot be read or parsed.
        SchemaValidationError: If the data fails validation.
    """
    return _parse_data(EntitySchema, load_yaml(path), "Entity schema")


def parse_schema_from_string(yaml_string: str) -> EntitySchema:
    """Parse a YAML string into an EntitySchema."""
    return _parse_data(EntitySchema, _load_yaml_string(yaml_string), "Entity schema")


def parse_mapping(path: str | Path) -> DocumentMapping:
    """Load and parse a document mapping file."""
    return _parse_data(DocumentMapping, load_yaml(path), "Document mapping")


def parse_mapping_from_string(yaml_string: str) -> DocumentMapping:
    """Parse a YAML string into a DocumentMapping."""
    return _parse_data(DocumentMapping, _load_yaml_string(yaml_string), "Document mapping")


def parse_styles(path: str | Path) -> MermaidStyles:
    """Load and parse a styles file. A missing file yields empty styles."""
    path = Path(path)
    if not path.exists():
        return MermaidStyles()
    return _parse_data(MermaidStyles, load_yaml(path), "Styles")


def parse_styles_from_string(yaml_string: str) -> MermaidStyles:
    """Parse a YAML string into MermaidStyles."""
    return _parse_data(MermaidStyles, _load_yaml_string(yaml_string), "Styles")


def read_config_dir(config_dir: str | Path) -> LoadedConfig:
    """Parse the three configuration files of a directory.

    Cross-reference checks are not run here; see ``netdiagram.config``.

    Raises:
        SchemaLoadError: If a required file is missing or unreadable.
        SchemaValidationError: If a file fails validation.
    """
    config_dir = Path(config_dir)
    if not config_dir.is_dir():
        raise SchemaLoadError(f"Not a directory: {config_dir}", str(config_dir))

    return LoadedConfig(
        schema=parse_schema(config_dir / MODEL_FILENAME),
        mapping=parse_mapping(config_dir / MAPPING_FILENAME),
        styles=parse_styles(config_dir / STYLES_FILENAME),
    )


def _parse_data(model_cls: type[ModelT], data: dict, what: str) -> ModelT:
    """Validate raw data against a pydantic model.

    Raises:
        SchemaValidationError: If the data fails validation.
    """
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        errors = [
            {
                "loc": ".".join(str(x) for x in err["loc"]),
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        raise SchemaValidationError(
            f"{what} validation failed with {len(errors)} error(s)", errors
        ) from e
