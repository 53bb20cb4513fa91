"""Per-root dependency analysis of the entity schema.

The analysis is a pure function of the schema. It is computed once at
startup and never mutated afterwards, so it can be shared between threads
without locking.
"""

import bisect
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

from ..errors import ValidationError
from ..schema.errors import ConfigurationError
from ..schema.models import EntitySchema
from .builder import build_dependency_graph
from .errors import GLOBAL_ROOT_KEY, DependencyCycleError

logger = logging.getLogger(__name__)


# Extra root-propagation passes allowed beyond one per entity type.
_PROPAGATION_SLACK = 5


@dataclass(frozen=True)
class CategoryAnalysis:
    """Dependency analysis of the entity types reachable from one root."""

    root_key: str
    nodes: tuple[str, ...]
    ordered: tuple[str, ...]
    # dependent -> sorted dependencies (subset of `nodes`)
    dependencies: Mapping[str, tuple[str, ...]]


@dataclass(frozen=True)
class Category:
    root_key: str
    name: str


def title_case_category(root_key: str) -> str:
    """Format a root key as a category name, e.g. ``data_center`` -> ``Data Center``."""
    words = root_key.replace("-", " ").replace("_", " ").split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def normalize_category_input(value: str) -> str:
    return value.strip().lower()


def compute_entity_roots(schema: EntitySchema) -> dict[str, set[str]]:
    """Compute every root scope each entity type can end up under.

    Direct root attachments come from allowed-parent rules. They are then
    propagated through parent-entity rules until nothing changes: if A may
    be placed under P, A can reach every root P can reach.

    Raises:
        ConfigurationError: If propagation does not settle within the pass
            limit.
    """
    roots_by_entity: dict[str, set[str]] = {
        name: set(entity.root_keys()) for name, entity in schema.entities.items()
    }

    max_passes = max(1, len(schema.entities) + _PROPAGATION_SLACK)
    passes = 0
    changed = True

    while changed:
        passes += 1
        if passes > max_passes:
            raise ConfigurationError(
                "Root propagation exceeded safety limit (possible cycle)"
            )

        changed = False
        for name, entity in schema.entities.items():
            child_roots = roots_by_entity[name]
            for parent_entity in entity.parent_entity_types():
                parent_roots = roots_by_entity.get(parent_entity)
                if not parent_roots:
                    continue
                before = len(child_roots)
                child_roots.update(parent_roots)
                if len(child_roots) != before:
                    changed = True

    return roots_by_entity


def topo_sort_deterministic(
    nodes: Iterable[str], edges: Iterable[tuple[str, str]]
) -> tuple[list[str], list[str]]:
    """Topologically sort nodes, breaking ties lexicographically.

    Kahn's algorithm: the smallest ready node is always emitted next, and
    newly freed nodes are inserted into the sorted ready list, so the output
    depends only on node names and edges.

    Args:
        nodes: The nodes to order.
        edges: (dependency, dependent) pairs. Edges touching unknown nodes
            are ignored and duplicates count once.

    Returns:
        ``(ordered, cycle_nodes)``. When a cycle prevents a full ordering,
        ``ordered`` is empty and ``cycle_nodes`` lists, sorted, every node
        left with unresolved dependencies.
    """
    node_list = list(dict.fromkeys(nodes))
    indegree = {n: 0 for n in node_list}
    outgoing: dict[str, set[str]] = {n: set() for n in node_list}

    for source, target in edges:
        if source not in indegree or target not in indegree:
            continue
        if target in outgoing[source]:
            continue
        outgoing[source].add(target)
        indegree[target] += 1

    ready = sorted(n for n in node_list if indegree[n] == 0)
    ordered: list[str] = []

    while ready:
        node = ready.pop(0)
        ordered.append(node)

        for dependent in sorted(outgoing[node]):
            indegree[dependent] -= 1
            if indegree[dependent] == 0:
                bisect.insort(ready, dependent)

    if len(ordered) != len(node_list):
        return [], sorted(n for n in node_list if indegree[n] > 0)

    return ordered, []


def _analyze_nodes(schema: EntitySchema, root_key: str, nodes: list[str]) -> CategoryAnalysis:
    graph = build_dependency_graph(schema, nodes)

    ordered, cycle_nodes = topo_sort_deterministic(nodes, graph.edge_pairs())
    if cycle_nodes:
        raise DependencyCycleError(root_key, cycle_nodes, graph.find_cycle(cycle_nodes))

    dependencies = {n: tuple(graph.dependencies_of(n)) for n in nodes}

    return CategoryAnalysis(
        root_key=root_key,
        nodes=tuple(nodes),
        ordered=tuple(ordered),
        dependencies=MappingProxyType(dependencies),
    )


def analyze_schema(schema: EntitySchema) -> dict[str, CategoryAnalysis]:
    """Analyze each declared root scope.

    Returns:
        Root key -> CategoryAnalysis, with root keys in sorted order.

    Raises:
        DependencyCycleError: If any root contains a dependency cycle. The
            whole analysis fails, not just the affected root.
        ConfigurationError: If root propagation does not settle.
    """
    roots_by_entity = compute_entity_roots(schema)

    result: dict[str, CategoryAnalysis] = {}
    for root_key in sorted(schema.roots):
        nodes = sorted(
            name for name in schema.entities if root_key in roots_by_entity[name]
        )
        result[root_key] = _analyze_nodes(schema, root_key, nodes)

    return result


def analyze_global(schema: EntitySchema) -> CategoryAnalysis:
    """Analyze all entity types together, regardless of root."""
    return _analyze_nodes(schema, GLOBAL_ROOT_KEY, sorted(schema.entities))


def closure_with_dependencies(
    analysis: CategoryAnalysis, seed_types: Iterable[str]
) -> set[str]:
    """Get the seed types plus everything they transitively depend on.

    Seeds that are not part of the analysis are ignored.
    """
    needed: set[str] = set()
    stack: list[str] = []

    for seed in seed_types:
        if not seed or seed not in analysis.dependencies:
            continue
        if seed not in needed:
            needed.add(seed)
            stack.append(seed)

    while stack:
        current = stack.pop()
        for dependency in analysis.dependencies.get(current, ()):
            if dependency not in needed:
                needed.add(dependency)
                stack.append(dependency)

    return needed


class ModelAnalysis:
    """Immutable, shareable view over the per-root analyses.

    Build it once with :meth:`from_schema`. To reload configuration, build a
    new instance and swap the reference; never update one in place.
    """

    def __init__(
        self,
        analyses: Mapping[str, CategoryAnalysis],
        global_analysis: CategoryAnalysis,
    ):
        self._analyses = MappingProxyType(dict(analyses))
        self._global = global_analysis
        self._categories = tuple(
            Category(root_key=key, name=title_case_category(key))
            for key in sorted(self._analyses)
        )

    @classmethod
    def from_schema(cls, schema: EntitySchema) -> "ModelAnalysis":
        """Run the full analysis of a schema.

        Raises:
            ConfigurationError: If the schema cannot be ordered.
        """
        analysis = cls(analyze_schema(schema), analyze_global(schema))

        summary = ", ".join(
            f"{c.name}={len(analysis.ordered_types(c.root_key))}"
            for c in analysis.categories
        )
        logger.info(
            "Model analysis ready (categories: %d; %s)", len(analysis.categories), summary
        )
        return analysis

    @property
    def categories(self) -> tuple[Category, ...]:
        return self._categories

    @property
    def analyses(self) -> Mapping[str, CategoryAnalysis]:
        return self._analyses

    def allowed_categories(self) -> list[str]:
        """Get all category names, sorted by root key."""
        return [c.name for c in self._categories]

    def category_name(self, root_key: str) -> str:
        for category in self._categories:
            if category.root_key == root_key:
                return category.name
        return title_case_category(root_key)

    def resolve_root_key(self, category: str) -> str | None:
        """Resolve a category name (e.g. ``Definitions``) or raw root key.

        Matching is case-insensitive. Returns None for unknown categories.
        """
        wanted = normalize_category_input(category)
        for c in self._categories:
            if wanted in (normalize_category_input(c.name), normalize_category_input(c.root_key)):
                return c.root_key
        return None

    def analysis(self, root_key: str) -> CategoryAnalysis:
        """Get the analysis for a root key.

        Raises:
            KeyError: If the root key is unknown.
        """
        try:
            return self._analyses[root_key]
        except KeyError:
            raise KeyError(f"Unknown root key '{root_key}'") from None

    def ordered_types(self, root_key: str) -> list[str]:
        return list(self.analysis(root_key).ordered)

    def needed_types(self, root_key: str, seed_types: Iterable[str]) -> set[str]:
        return closure_with_dependencies(self.analysis(root_key), seed_types)

    def filtered_ordered_types(self, root_key: str, present_types: Iterable[str]) -> list[str]:
        """Ordered types of a root trimmed to what the present types need."""
        needed = self.needed_types(root_key, present_types)
        return [t for t in self.ordered_types(root_key) if t in needed]

    @property
    def global_analysis(self) -> CategoryAnalysis:
        return self._global

    def global_ordered_types(self) -> list[str]:
        return list(self._global.ordered)

    def global_needed_types(self, seed_types: Iterable[str]) -> set[str]:
        return closure_with_dependencies(self._global, seed_types)

    def require_root_key(self, category: str | None) -> str:
        """Resolve a category, failing with the list of allowed categories.

        Raises:
            ValidationError: If the category is missing or unknown.
        """
        allowed = ", ".join(self.allowed_categories())
        if not isinstance(category, str) or not category.strip():
            raise ValidationError(f"Category is required. Allowed categories: {allowed}")

        root_key = self.resolve_root_key(category)
        if root_key is None:
            raise ValidationError(
                f"Invalid category '{category}'. Allowed categories: {allowed}"
            )
        return root_key
