"""Shared fixtures for tests."""

from pathlib import Path

import pytest

from netdiagram.commands.orchestrator import CommandOrchestrator
from netdiagram.document.mutator import AnchoredDocumentMutator
from netdiagram.document.repository import InMemoryDiagramRepository
from netdiagram.domain.store import InMemoryDomainStore
from netdiagram.export.csv_projector import CsvProjector
from netdiagram.graph.analyzer import ModelAnalysis
from netdiagram.schema.loader import (
    LoadedConfig,
    parse_mapping_from_string,
    parse_schema_from_string,
    parse_styles_from_string,
)


@pytest.fixture
def examples_dir() -> Path:
    """Return the path to the examples directory."""
    return Path(__file__).parent.parent / "examples"


@pytest.fixture
def netbox_config_dir(examples_dir) -> Path:
    return examples_dir / "netbox"


@pytest.fixture
def schema_yaml() -> str:
    """Return a small schema: region -> site -> rack, plus tenants."""
    return """
version: 1
roots:
  definitions: {}
  infrastructure: {}
entities:
  tenant:
    parent:
      required: true
      allowed:
        - root: definitions
    attributes:
      name:
        required: true
      slug: {}
  region:
    parent:
      required: true
      allowed:
        - root: infrastructure
    attributes:
      name:
        required: true
  site:
    parent:
      required: true
      allowed:
        - entity: region
          field: region
    links:
      tenant:
        entity: tenant
        field: tenant
    attributes:
      name:
        required: true
      slug:
        pattern: "^[a-z0-9-]+$"
      status:
        value: [planned, active]
  rack:
    parent:
      required: true
      allowed:
        - entity: site
          field: site
    attributes:
      name:
        required: true
      u_height:
        type: integer
        minimum: 1
        maximum: 60
"""


@pytest.fixture
def mapping_yaml() -> str:
    return """
version: 1
roots:
  definitions:
    mermaid: {id: definitions, label: Definitions}
  infrastructure:
    mermaid: {id: infrastructure, label: Infrastructure}
entities:
  tenant:
    mermaid: {kind: node, id: "tenant_{{ object.id }}"}
  region:
    mermaid: {kind: structural, id: "region_{{ object.id }}"}
  site:
    mermaid: {kind: structural, id: "site_{{ object.id }}"}
  rack:
    mermaid: {kind: structural, id: "rack_{{ object.id }}"}
others:
  attributes:
    mermaid: {}
"""


@pytest.fixture
def styles_yaml() -> str:
    return """
themes:
  light:
    roots:
      infrastructure:
        style: {fill: "#eef"}
    entities:
      site:
        style: {fill: "#efe"}
    statuses:
      planned:
        style: {stroke-dasharray: "5 5"}
"""


@pytest.fixture
def schema(schema_yaml):
    return parse_schema_from_string(schema_yaml)


@pytest.fixture
def mapping(mapping_yaml):
    return parse_mapping_from_string(mapping_yaml)


@pytest.fixture
def styles(styles_yaml):
    return parse_styles_from_string(styles_yaml)


@pytest.fixture
def config(schema, mapping, styles) -> LoadedConfig:
    return LoadedConfig(schema=schema, mapping=mapping, styles=styles)


@pytest.fixture
def analysis(schema) -> ModelAnalysis:
    return ModelAnalysis.from_schema(schema)


@pytest.fixture
def mutator(schema, mapping, styles) -> AnchoredDocumentMutator:
    return AnchoredDocumentMutator(schema, mapping, styles)


@pytest.fixture
def domain_store(schema) -> InMemoryDomainStore:
    return InMemoryDomainStore(roots=schema.get_root_keys())


@pytest.fixture
def diagrams() -> InMemoryDiagramRepository:
    return InMemoryDiagramRepository()


@pytest.fixture
def orchestrator(config, analysis, domain_store, diagrams, mutator) -> CommandOrchestrator:
    return CommandOrchestrator(config, analysis, domain_store, diagrams, mutator)


@pytest.fixture
def projector(config, analysis, domain_store, diagrams) -> CsvProjector:
    return CsvProjector(config, analysis, domain_store, diagrams)


@pytest.fixture
def diagram_id(orchestrator) -> str:
    """Return the id of a freshly created, empty diagram."""
    return orchestrator.create_diagram("Test Diagram").id
