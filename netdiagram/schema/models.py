"""Pydantic models for the entity schema, document mapping and styles."""

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

AttributeType = Literal["string", "integer", "number", "boolean"]


# -----------------------------------------------------------------------------
# Entity schema (netbox-model.yaml)
# -----------------------------------------------------------------------------


class AttributeDefinition(BaseModel):
    """Validation rules for one attribute of an entity type."""

    model_config = ConfigDict(populate_by_name=True)

    type: AttributeType = "string"
    required: bool = False
    nullable: bool = False
    max_length: int | None = Field(default=None, alias="maxLength", ge=0)
    pattern: str | None = None
    values: list[str | int | float | bool] | None = Field(default=None, alias="value")
    labels: list[str] | None = Field(default=None, alias="label")
    minimum: int | float | None = None
    maximum: int | float | None = None
    description: str | None = None

    @model_validator(mode="after")
    def check_constraints(self) -> "AttributeDefinition":
        """Reject patterns that do not compile and inconsistent bounds/enums."""
        if self.pattern is not None:
            if not self.pattern:
                raise ValueError("pattern must be a non-empty string")
            try:
                re.compile(self.pattern)
            except re.error as e:
                raise ValueError(f"invalid pattern regex '{self.pattern}': {e}") from e

        if (
            self.minimum is not None
            and self.maximum is not None
            and self.minimum > self.maximum
        ):
            raise ValueError("minimum > maximum")

        if self.labels is not None and self.values is None:
            raise ValueError("'label' given without 'value'")

        if self.values is not None:
            if not self.values:
                raise ValueError("'value' must be a non-empty list")
            if self.labels is not None and len(self.labels) != len(self.values):
                raise ValueError("label/value length mismatch")

        return self


class ParentRule(BaseModel):
    """One allowed parent: a root scope, or a parent entity type."""

    root: str | None = None
    entity: str | None = None
    field: str | None = None

    @model_validator(mode="after")
    def check_shape(self) -> "ParentRule":
        """Exactly one of root/entity must be set."""
        if bool(self.root) == bool(self.entity):
            raise ValueError("allowed parent must name exactly one of 'root' or 'entity'")
        return self


class ParentSpec(BaseModel):
    """Parent constraints for an entity type."""

    required: bool = False
    allowed: list[ParentRule] = Field(default_factory=list)


class Link(BaseModel):
    """A named cross-entity link (rendered as a CSV column)."""

    entity: str
    field: str
    required: bool = False


class EntityType(BaseModel):
    """An entity type declared in the schema."""

    name: str = ""  # Will be set from the key
    meta: dict[str, Any] = Field(default_factory=dict)
    parent: ParentSpec = Field(default_factory=ParentSpec)
    links: dict[str, Link] = Field(default_factory=dict)
    attributes: dict[str, AttributeDefinition] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def normalize_entity(cls, data: Any) -> Any:
        """Normalize shorthand parent lists and empty sections."""
        if not isinstance(data, dict):
            return data

        # parent: [{root: x}] -> parent: {allowed: [{root: x}]}
        parent = data.get("parent")
        if isinstance(parent, list):
            data["parent"] = {"allowed": parent}
        elif parent is None:
            data.pop("parent", None)

        for section in ("meta", "links"):
            if data.get(section, {}) is None:
                data[section] = {}

        # attributes: [name, slug] -> {name: {}, slug: {}}
        attributes = data.get("attributes")
        if attributes is None:
            data["attributes"] = {}
        elif isinstance(attributes, list):
            data["attributes"] = {str(a): {} for a in attributes}
        elif isinstance(attributes, dict):
            data["attributes"] = {
                key: ({} if value is None else value) for key, value in attributes.items()
            }

        return data

    def parent_entity_types(self) -> list[str]:
        """Parent entity types in declaration order."""
        return [rule.entity for rule in self.parent.allowed if rule.entity]

    def root_keys(self) -> list[str]:
        """Root scopes this type may attach to directly."""
        return [rule.root for rule in self.parent.allowed if rule.root]


class RootSpec(BaseModel):
    """A top-level root scope."""

    description: str | None = None


class EntitySchema(BaseModel):
    """Root model for netbox-model.yaml."""

    version: int | str = 1
    roots: dict[str, RootSpec]
    entities: dict[str, EntityType]

    @model_validator(mode="before")
    @classmethod
    def normalize_schema(cls, data: Any) -> Any:
        """Set entity names from keys and accept empty root entries."""
        if not isinstance(data, dict):
            return data

        roots = data.get("roots")
        if isinstance(roots, list):
            data["roots"] = {str(r): {} for r in roots}
        elif isinstance(roots, dict):
            data["roots"] = {k: ({} if v is None else v) for k, v in roots.items()}

        entities = data.get("entities")
        if isinstance(entities, dict):
            for name, entity_data in list(entities.items()):
                if entity_data is None:
                    entities[name] = entity_data = {}
                if isinstance(entity_data, dict):
                    entity_data["name"] = name

        return data

    def get_entity(self, name: str) -> EntityType | None:
        """Get an entity type by name."""
        return self.entities.get(name)

    def get_all_entity_names(self) -> list[str]:
        """Get all entity type names in declaration order."""
        return list(self.entities.keys())

    def get_root_keys(self) -> list[str]:
        """Get all declared root keys in declaration order."""
        return list(self.roots.keys())


# -----------------------------------------------------------------------------
# Document mapping (netbox-to-mermaid.yaml)
# -----------------------------------------------------------------------------


class AnchorSettings(BaseModel):
    start: str = "%% BEGIN"
    end: str = "%% END"


class MappingGlobals(BaseModel):
    """Global formatting for the generated document."""

    indentation: str = "  "
    line_separator: str = "\n"
    insert_marker: str = "%% INSERT"
    anchors: AnchorSettings = Field(default_factory=AnchorSettings)


class RootBlock(BaseModel):
    type: Literal["subgraph"] = "subgraph"
    id: str
    label: str = ""


class RootMapping(BaseModel):
    mermaid: RootBlock


class EntityBlock(BaseModel):
    """How one entity type is rendered."""

    kind: Literal["structural", "node"] = "node"
    type: Literal["subgraph", "node"] | None = None
    id: str
    label: str = "{{ object.name }}"
    shape: str | None = None

    @model_validator(mode="after")
    def check_kind(self) -> "EntityBlock":
        """Structural blocks are subgraphs, leaf blocks are nodes."""
        expected = "subgraph" if self.kind == "structural" else "node"
        if self.type is None:
            self.type = expected
        elif self.type != expected:
            raise ValueError(f"kind '{self.kind}' requires type '{expected}'")
        return self

    @property
    def is_structural(self) -> bool:
        return self.kind == "structural"


class EntityMapping(BaseModel):
    mermaid: EntityBlock


class ConnectionsMapping(BaseModel):
    """The nested connections region inside one root."""

    root: str = "infrastructure"
    id: str = "connections"
    label: str = "*Connections*"


class AttributeBlock(BaseModel):
    id: str = "attr_{{ object.mermaidId }}"
    template: str = '{{ id }}@{ shape: comment, label: "{{ label }}" }'


class AttributeMapping(BaseModel):
    mermaid: AttributeBlock | None = None


class OthersMapping(BaseModel):
    attributes: AttributeMapping | None = None


class DocumentMapping(BaseModel):
    """Root model for netbox-to-mermaid.yaml."""

    version: int | str = 1
    kind: str = "netbox-to-mermaid"
    globals: MappingGlobals = Field(default_factory=MappingGlobals)
    roots: dict[str, RootMapping]
    entities: dict[str, EntityMapping]
    connections: ConnectionsMapping | None = Field(default_factory=ConnectionsMapping)
    others: OthersMapping = Field(default_factory=OthersMapping)

    @model_validator(mode="before")
    @classmethod
    def normalize_mapping(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("globals", {}) is None:
            data["globals"] = {}
        return data

    @property
    def attribute_block(self) -> AttributeBlock | None:
        """The attribute-summary block config, if enabled."""
        if self.others.attributes is None:
            return None
        return self.others.attributes.mermaid


# -----------------------------------------------------------------------------
# Styles (mermaid-styles.yaml)
# -----------------------------------------------------------------------------


class Frontmatter(BaseModel):
    title: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class StyleEntry(BaseModel):
    style: dict[str, Any] = Field(default_factory=dict)
    # Attribute-node style overrides for attributes rendered under an entity.
    attributes: dict[str, Any] = Field(default_factory=dict)


class Theme(BaseModel):
    roots: dict[str, StyleEntry] = Field(default_factory=dict)
    entities: dict[str, StyleEntry] = Field(default_factory=dict)
    statuses: dict[str, StyleEntry] = Field(default_factory=dict)


class MermaidStyles(BaseModel):
    """Root model for mermaid-styles.yaml."""

    version: int | str = 1
    kind: str = "mermaid-styles"
    frontmatter: Frontmatter | None = None
    themes: dict[str, Theme] = Field(default_factory=dict)

    def get_theme(self, name: str) -> Theme:
        """Get a theme by name, or an empty one."""
        return self.themes.get(name) or Theme()
