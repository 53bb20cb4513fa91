"""Tests for the command orchestrator."""

import pytest

from netdiagram.commands.models import Command
from netdiagram.commands.orchestrator import CommandOrchestrator
from netdiagram.domain.models import EntityRef, RootRef
from netdiagram.errors import (
    ConsistencyError,
    DocumentIntegrityError,
    NotFoundError,
    ValidationError,
)


def create(orchestrator, diagram_id, entity, parent, **attributes):
    result = orchestrator.apply(
        diagram_id,
        {"command": "create", "entity": entity, "parent": parent, "attributes": attributes},
    )
    return result.data["id"]


@pytest.fixture
def tree(orchestrator, diagram_id):
    """region r -> site s -> rack k, plus a tenant."""
    r = create(orchestrator, diagram_id, "region", {"root": "infrastructure"}, name="EU")
    s = create(orchestrator, diagram_id, "site", {"entity": "region", "id": r}, name="AMS")
    k = create(orchestrator, diagram_id, "rack", {"entity": "site", "id": s}, name="R1")
    t = create(orchestrator, diagram_id, "tenant", {"root": "definitions"}, name="Acme")
    return {"region": r, "site": s, "rack": k, "tenant": t}


class TestCommandParsing:
    def test_unknown_command(self):
        with pytest.raises(ValidationError) as exc_info:
            Command.parse({"command": "rename"})
        assert str(exc_info.value).startswith("Invalid command:")

    def test_unknown_field(self):
        with pytest.raises(ValidationError):
            Command.parse({"command": "create", "entity": "site", "colour": "red"})

    def test_is_mutation(self):
        assert Command.parse({"command": "move"}).is_mutation
        assert not Command.parse({"command": "list-types"}).is_mutation


class TestCreate:
    def test_creates_object_and_block(self, orchestrator, domain_store, diagrams, diagram_id):
        object_id = create(orchestrator, diagram_id, "region", {"root": "infrastructure"}, name="EU")

        state = domain_store.load(diagram_id)
        assert [(o.id, o.entity, o.parent) for o in state.objects] == [
            (object_id, "region", RootRef("infrastructure"))
        ]
        content = diagrams.get(diagram_id).content
        assert f"  %% BEGIN region_{object_id}\n  subgraph region_{object_id}[EU]\n" in content

    def test_result_carries_updated_document(self, orchestrator, diagram_id):
        result = orchestrator.apply(
            diagram_id,
            {
                "command": "create",
                "entity": "tenant",
                "parent": {"root": "definitions"},
                "attributes": {"name": "Acme"},
            },
        )

        assert result.diagram_id == diagram_id
        assert result.name == "Test Diagram"
        assert f'tenant_{result.data["id"]}["Acme"]' in result.content

    def test_nested_create(self, orchestrator, diagrams, diagram_id, tree):
        content = diagrams.get(diagram_id).content

        assert f"      %% BEGIN rack_{tree['rack']}\n" in content

    def test_missing_required_attribute(self, orchestrator, domain_store, diagrams, diagram_id):
        before = diagrams.get(diagram_id).content

        with pytest.raises(ValidationError) as exc_info:
            orchestrator.apply(
                diagram_id,
                {"command": "create", "entity": "region", "parent": {"root": "infrastructure"}},
            )

        assert "'name'" in str(exc_info.value)
        assert domain_store.load(diagram_id).objects == []
        assert diagrams.get(diagram_id).content == before

    def test_unknown_entity(self, orchestrator, diagram_id):
        with pytest.raises(ValidationError) as exc_info:
            create(orchestrator, diagram_id, "device", {"root": "infrastructure"}, name="x")
        assert str(exc_info.value) == "Unknown entity 'device'"

    def test_parent_required(self, orchestrator, diagram_id):
        with pytest.raises(ValidationError) as exc_info:
            orchestrator.apply(
                diagram_id, {"command": "create", "entity": "region", "attributes": {"name": "EU"}}
            )
        assert "Parent is required for entity 'region'" in str(exc_info.value)

    def test_disallowed_parent(self, orchestrator, diagram_id):
        with pytest.raises(ValidationError) as exc_info:
            create(orchestrator, diagram_id, "region", {"root": "definitions"}, name="EU")
        assert str(exc_info.value) == "Parent not allowed for 'region'"

    def test_undeclared_root(self, orchestrator, diagram_id):
        with pytest.raises(ValidationError) as exc_info:
            create(orchestrator, diagram_id, "region", {"root": "circuits"}, name="EU")
        assert "Invalid parent.root 'circuits'" in str(exc_info.value)

    def test_ambiguous_parent(self, orchestrator, diagram_id):
        with pytest.raises(ValidationError):
            create(
                orchestrator,
                diagram_id,
                "region",
                {"root": "infrastructure", "entity": "region", "id": "x"},
                name="EU",
            )

    def test_parent_must_exist(self, orchestrator, diagram_id):
        with pytest.raises(NotFoundError):
            create(orchestrator, diagram_id, "site", {"entity": "region", "id": "nope"}, name="AMS")

    def test_unknown_diagram(self, orchestrator):
        with pytest.raises(NotFoundError):
            create(orchestrator, "abcdefghij012345", "region", {"root": "infrastructure"}, name="EU")

    def test_malformed_diagram_id(self, orchestrator):
        with pytest.raises(ValidationError):
            orchestrator.apply("../etc", {"command": "list-types", "category": "Infrastructure"})


class TestUpdate:
    def test_merges_attributes(self, orchestrator, domain_store, diagram_id, tree):
        orchestrator.apply(
            diagram_id,
            {
                "command": "update",
                "entity": "site",
                "id": tree["site"],
                "attributes": {"status": "active"},
            },
        )

        obj = domain_store.load(diagram_id).get(tree["site"])
        assert obj.attributes == {"name": "AMS", "status": "active"}

    def test_document_unchanged_by_default(self, orchestrator, diagrams, diagram_id, tree):
        before = diagrams.get(diagram_id).content

        result = orchestrator.apply(
            diagram_id,
            {"command": "update", "entity": "region", "id": tree["region"], "attributes": {"name": "Europe"}},
        )

        assert result.content == before
        assert diagrams.get(diagram_id).content == before

    def test_rerender_on_update(
        self, config, analysis, domain_store, diagrams, mutator, diagram_id, tree
    ):
        orchestrator = CommandOrchestrator(
            config, analysis, domain_store, diagrams, mutator, rerender_on_update=True
        )

        result = orchestrator.apply(
            diagram_id,
            {"command": "update", "entity": "region", "id": tree["region"], "attributes": {"name": "Europe"}},
        )

        assert f"subgraph region_{tree['region']}[Europe]" in result.content
        # children survive the re-render
        assert f"%% BEGIN rack_{tree['rack']}" in result.content

    def test_invalid_update_leaves_state(self, orchestrator, domain_store, diagram_id, tree):
        with pytest.raises(ValidationError) as exc_info:
            orchestrator.apply(
                diagram_id,
                {"command": "update", "entity": "site", "id": tree["site"], "attributes": {"status": "gone"}},
            )

        assert "must be one of [planned, active]" in str(exc_info.value)
        assert "status" not in domain_store.load(diagram_id).get(tree["site"]).attributes

    def test_parent_change_rejected(self, orchestrator, diagram_id, tree):
        with pytest.raises(ValidationError) as exc_info:
            orchestrator.apply(
                diagram_id,
                {
                    "command": "update",
                    "entity": "rack",
                    "id": tree["rack"],
                    "parent": {"entity": "site", "id": tree["site"]},
                },
            )
        assert "use move" in str(exc_info.value)

    def test_missing_id(self, orchestrator, diagram_id):
        with pytest.raises(ValidationError) as exc_info:
            orchestrator.apply(diagram_id, {"command": "update", "entity": "site"})
        assert str(exc_info.value) == "Missing id for update"

    def test_unknown_object(self, orchestrator, diagram_id):
        with pytest.raises(NotFoundError) as exc_info:
            orchestrator.apply(diagram_id, {"command": "update", "entity": "site", "id": "nope"})
        assert "Object 'site:nope' not found" in str(exc_info.value)


class TestDelete:
    def test_cascades_to_descendants(self, orchestrator, domain_store, diagrams, diagram_id, tree):
        result = orchestrator.apply(
            diagram_id, {"command": "delete", "entity": "site", "id": tree["site"]}
        )

        assert result.data["removed"] == sorted([tree["site"], tree["rack"]])
        remaining = {o.id for o in domain_store.load(diagram_id).objects}
        assert remaining == {tree["region"], tree["tenant"]}
        content = diagrams.get(diagram_id).content
        assert f"site_{tree['site']}" not in content
        assert f"rack_{tree['rack']}" not in content

    def test_delete_everything_restores_empty_document(
        self, orchestrator, mutator, diagrams, diagram_id, tree
    ):
        orchestrator.apply(diagram_id, {"command": "delete", "entity": "region", "id": tree["region"]})
        orchestrator.apply(diagram_id, {"command": "delete", "entity": "tenant", "id": tree["tenant"]})

        assert diagrams.get(diagram_id).content == mutator.initial_document("Test Diagram")

    def test_missing_block_raises_integrity_error(self, orchestrator, diagrams, diagram_id, tree):
        content = diagrams.get(diagram_id).content
        diagrams.update_content(
            diagram_id, content.replace(f"%% END tenant_{tree['tenant']}", "")
        )

        with pytest.raises(DocumentIntegrityError):
            orchestrator.apply(
                diagram_id, {"command": "delete", "entity": "tenant", "id": tree["tenant"]}
            )


class TestMove:
    def test_move_keeps_document_id(self, orchestrator, domain_store, diagrams, diagram_id, tree):
        s2 = create(
            orchestrator, diagram_id, "site", {"entity": "region", "id": tree["region"]}, name="FRA"
        )

        orchestrator.apply(
            diagram_id,
            {"command": "move", "entity": "rack", "id": tree["rack"], "parent": {"entity": "site", "id": s2}},
        )

        obj = domain_store.load(diagram_id).get(tree["rack"])
        assert obj.parent == EntityRef("site", s2)
        content = diagrams.get(diagram_id).content
        assert content.count(f"%% BEGIN rack_{tree['rack']}") == 1
        # the rack now sits inside the second site's region
        site2_start = content.index(f"%% BEGIN site_{s2}")
        site2_end = content.index(f"%% END site_{s2}")
        assert site2_start < content.index(f"%% BEGIN rack_{tree['rack']}") < site2_end

    def test_move_leaves_other_blocks_untouched(self, orchestrator, diagrams, diagram_id, tree):
        s2 = create(
            orchestrator, diagram_id, "site", {"entity": "region", "id": tree["region"]}, name="FRA"
        )
        before = diagrams.get(diagram_id).content

        orchestrator.apply(
            diagram_id,
            {"command": "move", "entity": "rack", "id": tree["rack"], "parent": {"entity": "site", "id": s2}},
        )

        after = diagrams.get(diagram_id).content
        head = f"%% BEGIN site_{tree['site']}"
        tail = f"%% END site_{s2}"
        assert after[: after.index(head)] == before[: before.index(head)]
        assert after[after.index(tail) :] == before[before.index(tail) :]
        tenant_block = f"%% BEGIN tenant_{tree['tenant']}"
        assert tenant_block in after
        assert after.count(f'tenant_{tree["tenant"]}["Acme"]') == 1

    def test_move_carries_subtree(self, orchestrator, diagrams, diagram_id, tree):
        r2 = create(orchestrator, diagram_id, "region", {"root": "infrastructure"}, name="US")

        orchestrator.apply(
            diagram_id,
            {"command": "move", "entity": "site", "id": tree["site"], "parent": {"entity": "region", "id": r2}},
        )

        content = diagrams.get(diagram_id).content
        region2_end = content.index(f"%% END region_{r2}")
        assert content.index(f"%% BEGIN rack_{tree['rack']}") < region2_end
        assert content.index(f"%% BEGIN rack_{tree['rack']}") > content.index(f"%% BEGIN region_{r2}")

    def test_move_under_descendant_rejected(self, orchestrator, diagram_id, tree):
        with pytest.raises(ValidationError):
            orchestrator.apply(
                diagram_id,
                {
                    "command": "move",
                    "entity": "site",
                    "id": tree["site"],
                    "parent": {"entity": "site", "id": tree["site"]},
                },
            )

    def test_move_to_disallowed_parent(self, orchestrator, diagram_id, tree):
        with pytest.raises(ValidationError):
            orchestrator.apply(
                diagram_id,
                {"command": "move", "entity": "rack", "id": tree["rack"], "parent": {"root": "infrastructure"}},
            )


class TestQueries:
    def test_list_types(self, orchestrator, diagram_id, tree):
        result = orchestrator.apply(diagram_id, {"command": "list-types", "category": "infrastructure"})

        assert result.data == {"category": "Infrastructure", "types": ["region", "site", "rack"]}

    def test_list_types_trims_to_present(self, orchestrator, diagram_id):
        create(orchestrator, diagram_id, "region", {"root": "infrastructure"}, name="EU")

        result = orchestrator.apply(diagram_id, {"command": "list-types", "category": "Infrastructure"})

        assert result.data["types"] == ["region"]

    def test_list_types_requires_category(self, orchestrator, diagram_id):
        with pytest.raises(ValidationError) as exc_info:
            orchestrator.apply(diagram_id, {"command": "list-types"})
        assert "Allowed categories: Definitions, Infrastructure" in str(exc_info.value)

    def test_list_elements(self, orchestrator, diagram_id, tree):
        result = orchestrator.apply(diagram_id, {"command": "list-elements", "entity": "site"})

        assert [e["id"] for e in result.data["elements"]] == [tree["site"]]
        assert result.data["elements"][0]["parent"] == {"entity": "region", "id": tree["region"]}

    def test_get_element(self, orchestrator, diagram_id, tree):
        result = orchestrator.apply(
            diagram_id, {"command": "get-element", "entity": "tenant", "id": tree["tenant"]}
        )

        assert result.data["element"]["attributes"] == {"name": "Acme"}


class TestDiagramLifecycle:
    def test_delete_diagram_drops_state(self, orchestrator, domain_store, diagrams, diagram_id, tree):
        orchestrator.delete_diagram(diagram_id)

        with pytest.raises(NotFoundError):
            diagrams.get(diagram_id)
        assert domain_store.load(diagram_id).objects == []

    def test_corrupt_state_fails_loudly(self, orchestrator, domain_store, diagram_id):
        domain_store._write(
            diagram_id,
            {"objects": [{"id": "a", "entity": "region", "parent": {"root": "x", "entity": "y"}}]},
        )

        with pytest.raises(ConsistencyError):
            orchestrator.apply(diagram_id, {"command": "list-elements", "entity": "region"})


class TestSelfNestingTypes:
    @pytest.fixture
    def services(self):
        from netdiagram.domain.store import InMemoryDomainStore
        from netdiagram.document.repository import InMemoryDiagramRepository
        from netdiagram.schema.loader import (
            LoadedConfig,
            parse_mapping_from_string,
            parse_schema_from_string,
        )
        from netdiagram.schema.models import MermaidStyles
        from netdiagram.services import build_services

        schema = parse_schema_from_string(
            """
roots: {infrastructure: {}}
entities:
  location:
    parent:
      required: true
      allowed:
        - root: infrastructure
        - entity: location
          field: parent
    attributes:
      name: {required: true}
"""
        )
        mapping = parse_mapping_from_string(
            """
roots:
  infrastructure:
    mermaid: {id: infrastructure, label: Infrastructure}
entities:
  location:
    mermaid: {kind: structural, id: "loc_{{ object.id }}"}
"""
        )
        config = LoadedConfig(schema=schema, mapping=mapping, styles=MermaidStyles())
        return build_services(config, InMemoryDomainStore(schema.get_root_keys()), InMemoryDiagramRepository())

    def test_move_under_own_descendant_rejected(self, services):
        orchestrator = services.orchestrator
        diagram_id = orchestrator.create_diagram("Locations").id
        outer = create(orchestrator, diagram_id, "location", {"root": "infrastructure"}, name="Campus")
        inner = create(orchestrator, diagram_id, "location", {"entity": "location", "id": outer}, name="Hall")

        with pytest.raises(ValidationError) as exc_info:
            orchestrator.apply(
                diagram_id,
                {"command": "move", "entity": "location", "id": outer, "parent": {"entity": "location", "id": inner}},
            )

        assert "under itself or one of its descendants" in str(exc_info.value)
