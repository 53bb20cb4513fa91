"""Wiring of the long-lived service objects."""

from dataclasses import dataclass
from pathlib import Path

from .commands.orchestrator import CommandOrchestrator
from .config import load_config
from .document.mutator import AnchoredDocumentMutator
from .document.repository import DiagramRepository, FileDiagramRepository
from .domain.locks import DiagramLocks
from .domain.store import DomainStore, FileDomainStore
from .export.csv_projector import CsvProjector
from .graph.analyzer import ModelAnalysis
from .schema.loader import LoadedConfig
from .settings import Settings


@dataclass(frozen=True)
class Services:
    config: LoadedConfig
    analysis: ModelAnalysis
    domain_store: DomainStore
    diagrams: DiagramRepository
    orchestrator: CommandOrchestrator
    csv: CsvProjector


def build_services(
    config: LoadedConfig,
    domain_store: DomainStore,
    diagrams: DiagramRepository,
    rerender_on_update: bool = False,
) -> Services:
    """Analyze the configuration and wire the services around the stores.

    Raises:
        ConfigurationError: If the schema cannot be analyzed.
    """
    analysis = ModelAnalysis.from_schema(config.schema)
    mutator = AnchoredDocumentMutator(config.schema, config.mapping, config.styles)
    orchestrator = CommandOrchestrator(
        config,
        analysis,
        domain_store,
        diagrams,
        mutator,
        locks=DiagramLocks(),
        rerender_on_update=rerender_on_update,
    )
    return Services(
        config=config,
        analysis=analysis,
        domain_store=domain_store,
        diagrams=diagrams,
        orchestrator=orchestrator,
        csv=CsvProjector(config, analysis, domain_store, diagrams),
    )


def build_file_services(settings: Settings) -> Services:
    """Load configuration and use flat-file stores under the data directory."""
    config = load_config(settings.config_dir)
    data_dir = Path(settings.data_dir)
    return build_services(
        config,
        FileDomainStore(data_dir, roots=config.schema.get_root_keys()),
        FileDiagramRepository(data_dir),
        rerender_on_update=settings.rerender_on_update,
    )
