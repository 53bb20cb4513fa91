"""Tests for per-root dependency analysis."""

import pytest

from netdiagram.errors import ValidationError
from netdiagram.graph.analyzer import (
    GLOBAL_ROOT_KEY,
    ModelAnalysis,
    analyze_schema,
    closure_with_dependencies,
    compute_entity_roots,
    title_case_category,
    topo_sort_deterministic,
)
from netdiagram.graph.errors import DependencyCycleError
from netdiagram.schema.errors import ConfigurationError
from netdiagram.schema.loader import parse_schema_from_string

CYCLIC_SCHEMA = """
roots: {infrastructure: {}}
entities:
  a:
    parent: [{root: infrastructure}, {entity: b, field: b}]
  b:
    parent: [{entity: a, field: a}]
"""


class TestTopoSort:
    def test_ties_break_lexicographically(self):
        ordered, cycle = topo_sort_deterministic(["c", "b", "a"], [])

        assert ordered == ["a", "b", "c"]
        assert cycle == []

    def test_dependencies_come_first(self):
        ordered, _ = topo_sort_deterministic(
            ["rack", "site", "region"], [("region", "site"), ("site", "rack")]
        )

        assert ordered == ["region", "site", "rack"]

    def test_freed_node_sorted_into_ready_list(self):
        ordered, _ = topo_sort_deterministic(
            ["a", "b", "c", "z"], [("z", "b")]
        )

        assert ordered == ["a", "c", "z", "b"]

    def test_cycle_reports_unresolved_nodes(self):
        ordered, cycle = topo_sort_deterministic(
            ["a", "b", "c"], [("a", "b"), ("b", "a")]
        )

        assert ordered == []
        assert cycle == ["a", "b"]

    def test_edges_to_unknown_nodes_ignored(self):
        ordered, _ = topo_sort_deterministic(["a"], [("x", "a"), ("a", "y")])

        assert ordered == ["a"]

    def test_same_input_same_output(self):
        edges = [("region", "site"), ("tenant", "site"), ("site", "rack")]
        nodes = ["tenant", "rack", "site", "region"]

        assert topo_sort_deterministic(nodes, edges) == topo_sort_deterministic(
            list(reversed(nodes)), list(reversed(edges))
        )


class TestComputeEntityRoots:
    def test_roots_propagate_through_parents(self, schema):
        roots = compute_entity_roots(schema)

        assert roots["region"] == {"infrastructure"}
        assert roots["site"] == {"infrastructure"}
        assert roots["rack"] == {"infrastructure"}
        assert roots["tenant"] == {"definitions"}

    def test_entity_under_two_parents_gets_both_roots(self):
        schema = parse_schema_from_string(
            """
roots: {definitions: {}, infrastructure: {}}
entities:
  tenant:
    parent: [{root: definitions}]
  site:
    parent: [{root: infrastructure}]
  contact:
    parent: [{entity: tenant, field: tenant}, {entity: site, field: site}]
"""
        )
        roots = compute_entity_roots(schema)

        assert roots["contact"] == {"definitions", "infrastructure"}

    def test_propagation_limit(self, schema, monkeypatch):
        import netdiagram.graph.analyzer as analyzer

        # One pass allowed; region -> site propagation needs a second.
        monkeypatch.setattr(analyzer, "_PROPAGATION_SLACK", -len(schema.entities))

        with pytest.raises(ConfigurationError) as exc_info:
            compute_entity_roots(schema)

        assert "safety limit" in str(exc_info.value)


class TestAnalyzeSchema:
    def test_per_root_order(self, schema):
        analyses = analyze_schema(schema)

        assert list(analyses) == ["definitions", "infrastructure"]
        assert analyses["infrastructure"].ordered == ("region", "site", "rack")
        assert analyses["definitions"].ordered == ("tenant",)

    def test_dependencies_restricted_to_root(self, schema):
        infra = analyze_schema(schema)["infrastructure"]

        # tenant lives under another root, so the site -> tenant link drops out
        assert infra.dependencies["site"] == ("region",)

    def test_every_dependency_precedes_its_dependent(self, schema):
        for category in analyze_schema(schema).values():
            position = {t: i for i, t in enumerate(category.ordered)}
            for dependent, deps in category.dependencies.items():
                for dep in deps:
                    assert position[dep] < position[dependent]

    def test_cycle_names_both_nodes(self):
        schema = parse_schema_from_string(CYCLIC_SCHEMA)

        with pytest.raises(DependencyCycleError) as exc_info:
            analyze_schema(schema)

        assert exc_info.value.root_key == "infrastructure"
        assert exc_info.value.nodes == ["a", "b"]
        assert "a, b" in str(exc_info.value)


class TestClosure:
    def test_closure_includes_transitive_dependencies(self, schema):
        infra = analyze_schema(schema)["infrastructure"]

        assert closure_with_dependencies(infra, ["rack"]) == {"rack", "site", "region"}

    def test_unknown_seeds_ignored(self, schema):
        infra = analyze_schema(schema)["infrastructure"]

        assert closure_with_dependencies(infra, ["tenant", "", "region"]) == {"region"}


class TestModelAnalysis:
    def test_categories(self, analysis):
        assert analysis.allowed_categories() == ["Definitions", "Infrastructure"]

    def test_title_case(self):
        assert title_case_category("data_center") == "Data Center"
        assert title_case_category("cross-connect") == "Cross Connect"

    def test_global_order(self, analysis):
        assert analysis.global_analysis.root_key == GLOBAL_ROOT_KEY
        assert analysis.global_ordered_types() == ["region", "tenant", "site", "rack"]

    def test_global_needed_crosses_roots(self, analysis):
        assert analysis.global_needed_types(["site"]) == {"site", "region", "tenant"}

    def test_filtered_ordered_types(self, analysis):
        assert analysis.filtered_ordered_types("infrastructure", ["site"]) == [
            "region",
            "site",
        ]

    @pytest.mark.parametrize("value", ["Infrastructure", "infrastructure", "  INFRASTRUCTURE "])
    def test_resolve_root_key(self, analysis, value):
        assert analysis.resolve_root_key(value) == "infrastructure"

    def test_resolve_unknown(self, analysis):
        assert analysis.resolve_root_key("Circuits") is None

    def test_unknown_root_key(self, analysis):
        with pytest.raises(KeyError):
            analysis.analysis("circuits")

    def test_require_root_key_missing(self, analysis):
        with pytest.raises(ValidationError) as exc_info:
            analysis.require_root_key(None)

        assert str(exc_info.value) == (
            "Category is required. Allowed categories: Definitions, Infrastructure"
        )

    def test_require_root_key_invalid(self, analysis):
        with pytest.raises(ValidationError) as exc_info:
            analysis.require_root_key("Circuits")

        assert "Invalid category 'Circuits'" in str(exc_info.value)

    def test_example_config_order(self, netbox_config_dir):
        from netdiagram.config import load_config

        analysis = ModelAnalysis.from_schema(load_config(netbox_config_dir).schema)

        assert analysis.global_ordered_types() == [
            "region",
            "tenant",
            "site",
            "rack",
            "device",
            "vlan",
        ]
        assert analysis.ordered_types("infrastructure") == ["region", "site", "rack", "device"]
        assert analysis.ordered_types("definitions") == ["tenant", "vlan"]


class TestCrossRootCycle:
    SCHEMA = """
roots: {definitions: {}, infrastructure: {}}
entities:
  tenant:
    parent: [{root: definitions}]
    links:
      region: {entity: region, field: home_region}
  region:
    parent: [{root: infrastructure}]
    links:
      tenant: {entity: tenant, field: owner}
"""

    def test_each_root_orders_cleanly(self):
        analyses = analyze_schema(parse_schema_from_string(self.SCHEMA))

        assert analyses["definitions"].ordered == ("tenant",)
        assert analyses["infrastructure"].ordered == ("region",)

    def test_model_analysis_rejects_it(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            ModelAnalysis.from_schema(parse_schema_from_string(self.SCHEMA))

        assert exc_info.value.is_global
        assert exc_info.value.nodes == ["region", "tenant"]
        assert "across roots" in str(exc_info.value)
