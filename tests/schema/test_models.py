"""Tests for schema models."""

import pytest
from pydantic import ValidationError

from netdiagram.schema.models import (
    AttributeDefinition,
    DocumentMapping,
    EntityBlock,
    EntitySchema,
    EntityType,
    MermaidStyles,
    ParentRule,
)


class TestAttributeDefinition:
    def test_defaults(self):
        definition = AttributeDefinition()
        assert definition.type == "string"
        assert definition.required is False
        assert definition.max_length is None

    def test_yaml_aliases(self):
        definition = AttributeDefinition.model_validate(
            {"maxLength": 10, "value": ["a", "b"], "label": ["A", "B"]}
        )
        assert definition.max_length == 10
        assert definition.values == ["a", "b"]
        assert definition.labels == ["A", "B"]

    def test_invalid_pattern(self):
        with pytest.raises(ValidationError) as exc_info:
            AttributeDefinition(pattern="[unclosed")
        assert "invalid pattern" in str(exc_info.value)

    def test_minimum_above_maximum(self):
        with pytest.raises(ValidationError):
            AttributeDefinition(type="integer", minimum=10, maximum=1)

    def test_label_value_length_mismatch(self):
        with pytest.raises(ValidationError):
            AttributeDefinition.model_validate({"value": ["a", "b"], "label": ["A"]})

    def test_label_without_value(self):
        with pytest.raises(ValidationError):
            AttributeDefinition.model_validate({"label": ["A"]})

    def test_empty_value_list(self):
        with pytest.raises(ValidationError):
            AttributeDefinition.model_validate({"value": []})

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            AttributeDefinition(type="date")


class TestParentRule:
    def test_root_rule(self):
        assert ParentRule(root="definitions").root == "definitions"

    def test_both_root_and_entity(self):
        with pytest.raises(ValidationError):
            ParentRule(root="definitions", entity="region")

    def test_neither_root_nor_entity(self):
        with pytest.raises(ValidationError):
            ParentRule(field="region")


class TestEntityType:
    def test_parent_list_shorthand(self):
        entity = EntityType.model_validate({"parent": [{"root": "infrastructure"}]})
        assert entity.root_keys() == ["infrastructure"]
        assert entity.parent.required is False

    def test_attribute_list_shorthand(self):
        entity = EntityType.model_validate({"attributes": ["name", "slug"]})
        assert list(entity.attributes) == ["name", "slug"]

    def test_parent_entity_types_in_declaration_order(self):
        entity = EntityType.model_validate(
            {
                "parent": {
                    "allowed": [
                        {"entity": "rack", "field": "rack"},
                        {"root": "infrastructure"},
                        {"entity": "site", "field": "site"},
                    ]
                }
            }
        )
        assert entity.parent_entity_types() == ["rack", "site"]


class TestEntitySchema:
    def test_names_come_from_keys(self, schema):
        assert schema.get_entity("site").name == "site"

    def test_null_entries_are_accepted(self):
        schema = EntitySchema.model_validate(
            {"roots": {"definitions": None}, "entities": {"tenant": None}}
        )
        assert schema.get_root_keys() == ["definitions"]
        assert schema.get_all_entity_names() == ["tenant"]

    def test_attribute_order_is_declaration_order(self, schema):
        assert list(schema.get_entity("site").attributes) == ["name", "slug", "status"]


class TestDocumentMapping:
    def test_defaults(self, mapping):
        assert mapping.globals.indentation == "  "
        assert mapping.globals.anchors.start == "%% BEGIN"
        assert mapping.globals.insert_marker == "%% INSERT"
        assert mapping.connections.root == "infrastructure"

    def test_connections_can_be_disabled(self):
        mapping = DocumentMapping.model_validate(
            {"roots": {}, "entities": {}, "connections": None}
        )
        assert mapping.connections is None

    def test_structural_kind_implies_subgraph(self):
        block = EntityBlock(kind="structural", id="x")
        assert block.type == "subgraph"
        assert block.is_structural

    def test_kind_type_mismatch(self):
        with pytest.raises(ValidationError):
            EntityBlock(kind="node", type="subgraph", id="x")

    def test_attribute_block_disabled_by_default(self):
        mapping = DocumentMapping.model_validate({"roots": {}, "entities": {}})
        assert mapping.attribute_block is None


class TestMermaidStyles:
    def test_unknown_theme_is_empty(self):
        theme = MermaidStyles().get_theme("dark")
        assert theme.entities == {}
