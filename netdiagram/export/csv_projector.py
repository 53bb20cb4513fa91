"""CSV projection of a diagram's domain objects, one CSV per entity type.

Column layout and row order depend only on the schema and the objects, so
the same diagram always exports byte-identical CSV.
"""

import json
import logging
import re
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Iterable, Mapping

from ..document.repository import DiagramRepository
from ..domain.attributes import scalar_to_string
from ..domain.models import DomainObject, EntityRef
from ..domain.store import DomainStore
from ..errors import ValidationError
from ..graph.analyzer import ModelAnalysis
from ..schema.loader import LoadedConfig
from ..schema.models import EntitySchema

logger = logging.getLogger(__name__)

TYPE_RE = re.compile(r"[0-9a-zA-Z_-]{1,64}")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^0-9a-zA-Z _.-]+")
_NEEDS_QUOTING = re.compile(r'[\r\n,"]')


# -----------------------------------------------------------------------------
# Cell rendering
# -----------------------------------------------------------------------------


def csv_escape_cell(value: str) -> str:
    """Escape one CSV cell.

    Internal quotes are doubled, and the cell is quoted when it contains a
    comma, a quote or a line break.
    """
    escaped = value.replace('"', '""')
    if _NEEDS_QUOTING.search(value):
        return f'"{escaped}"'
    return escaped


def stable_stringify(value: Any) -> str:
    """Render a structured value with sorted keys so output never varies."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return scalar_to_string(value)
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(stable_stringify(v) for v in value) + "]"
    if isinstance(value, Mapping):
        parts = [
            f"{json.dumps(str(k))}:{json.dumps(stable_stringify(value[k]))}"
            for k in sorted(value, key=str)
        ]
        return "{" + ",".join(parts) + "}"
    return str(value)


def display_value(obj: DomainObject) -> str:
    """First non-blank of the ``name`` and ``slug`` attributes, else the id."""
    for key in ("name", "slug"):
        value = obj.attributes.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return obj.id


def best_reference_value(obj: DomainObject | None, fallback: str = "") -> str:
    return display_value(obj) if obj is not None else fallback


def resolve_reference(value: Any, objects_by_id: Mapping[str, DomainObject]) -> str:
    """Resolve a reference-like attribute to the referent's display value.

    A bare id or an ``{"id": ...}`` mapping is looked up in the diagram;
    unresolved references keep their raw id.
    """
    if value is None:
        return ""

    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return ""
        return best_reference_value(objects_by_id.get(trimmed), trimmed)

    if isinstance(value, Mapping) and isinstance(value.get("id"), str):
        return best_reference_value(objects_by_id.get(value["id"]), value["id"])

    return stable_stringify(value)


# -----------------------------------------------------------------------------
# Per-type CSV
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CsvEntitySchema:
    columns: tuple[str, ...]
    # parent entity type -> the column holding it
    parent_entity_to_field: Mapping[str, str] = field(default_factory=dict)


def build_entity_csv_schema(schema: EntitySchema, entity: str) -> CsvEntitySchema:
    """Derive the columns of an entity type's CSV.

    Parent fields come first, then link fields, then declared attributes,
    each in declaration order. Repeated names keep their first position.
    """
    entity_type = schema.get_entity(entity)
    if entity_type is None:
        return CsvEntitySchema(columns=("id",))

    parent_fields: list[str] = []
    parent_entity_to_field: dict[str, str] = {}
    for rule in entity_type.parent.allowed:
        if not rule.entity or not rule.field:
            continue
        if rule.field not in parent_fields:
            parent_fields.append(rule.field)
        parent_entity_to_field.setdefault(rule.entity, rule.field)

    link_fields = [link.field for link in entity_type.links.values() if link.field]

    candidates = [*parent_fields, *link_fields, *entity_type.attributes]
    columns = list(dict.fromkeys(c for c in candidates if c))
    if not columns:
        columns = ["id"]

    return CsvEntitySchema(columns=tuple(columns), parent_entity_to_field=parent_entity_to_field)


def _row_sort_key(obj: DomainObject) -> tuple[str, str]:
    return (display_value(obj), obj.id)


def render_entity_csv(
    schema: EntitySchema,
    entity: str,
    objects: Iterable[DomainObject],
    objects_by_id: Mapping[str, DomainObject],
) -> str:
    """Render the CSV text of one entity type, header included."""
    csv_schema = build_entity_csv_schema(schema, entity)
    parent_fields = set(csv_schema.parent_entity_to_field.values())

    lines = [",".join(csv_schema.columns)]
    for obj in sorted(objects, key=_row_sort_key):
        row = []
        for column in csv_schema.columns:
            if column in parent_fields:
                cell = ""
                parent = obj.parent
                if (
                    isinstance(parent, EntityRef)
                    and csv_schema.parent_entity_to_field.get(parent.entity) == column
                ):
                    cell = best_reference_value(objects_by_id.get(parent.id), parent.id)
                row.append(csv_escape_cell(cell))
                continue

            if column == "id" and column not in obj.attributes:
                row.append(csv_escape_cell(obj.id))
                continue

            row.append(csv_escape_cell(resolve_reference(obj.attributes.get(column), objects_by_id)))
        lines.append(",".join(row))

    return "\n".join(lines) + "\n"


def sanitize_filename_part(value: str) -> str:
    """Keep letters, digits, space, dash, underscore and dot."""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", value).strip()
    return cleaned or "diagram"


# -----------------------------------------------------------------------------
# Diagram datasets
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CsvElement:
    type: str
    csv_content: str


@dataclass(frozen=True)
class CsvDataset:
    diagram_id: str
    diagram_name: str
    elements: tuple[CsvElement, ...]

    def filename_for(self, element: CsvElement) -> str:
        return f"{sanitize_filename_part(self.diagram_name)}_{element.type}.csv"

    @property
    def archive_filename(self) -> str:
        return f"{sanitize_filename_part(self.diagram_name)}.zip"


@dataclass(frozen=True)
class OrderedTypes:
    diagram_id: str
    category: str
    types: tuple[str, ...]


class CsvProjector:
    """Builds CSV exports of diagrams."""

    def __init__(
        self,
        config: LoadedConfig,
        analysis: ModelAnalysis,
        domain_store: DomainStore,
        diagrams: DiagramRepository,
    ):
        self.config = config
        self.analysis = analysis
        self.domain_store = domain_store
        self.diagrams = diagrams

    def list_ordered_types(self, diagram_id: str, category: str | None) -> OrderedTypes:
        """Get a category's types needed by the objects present in a diagram.

        Raises:
            ValidationError: If the category is missing or unknown.
            NotFoundError: If the diagram does not exist.
        """
        root_key = self.analysis.require_root_key(category)
        diagram = self.diagrams.get(diagram_id)
        state = self.domain_store.load(diagram.id)

        types = self.analysis.filtered_ordered_types(root_key, state.present_types())
        return OrderedTypes(
            diagram_id=diagram.id,
            category=self.analysis.category_name(root_key),
            types=tuple(types),
        )

    def generate_dataset(self, diagram_id: str) -> CsvDataset:
        """Render every type present in a diagram plus its prerequisites.

        Types are in global dependency order. A needed type without objects
        still gets its header row.
        """
        diagram = self.diagrams.get(diagram_id)
        state = self.domain_store.load(diagram.id)
        schema = self.config.schema

        objects_by_id = state.index()
        present = state.present_types()
        needed = self.analysis.global_needed_types(present) | present

        elements = tuple(
            CsvElement(
                type=type_,
                csv_content=render_entity_csv(
                    schema,
                    type_,
                    [o for o in state.objects if o.entity == type_],
                    objects_by_id,
                ),
            )
            for type_ in self.analysis.global_ordered_types()
            if type_ in needed and type_ in schema.entities
        )

        for element in elements:
            if not TYPE_RE.fullmatch(element.type):
                raise ValidationError(f"CSV type '{element.type}' is invalid")

        if not elements:
            logger.warning("CSV dataset for diagram '%s' is empty", diagram.id)
        else:
            logger.info(
                "Generated CSV dataset for diagram '%s' (%d files)", diagram.id, len(elements)
            )

        return CsvDataset(diagram_id=diagram.id, diagram_name=diagram.name, elements=elements)

    def get_element(self, diagram_id: str, type_: str) -> tuple[CsvDataset, CsvElement]:
        """Get one type's CSV.

        Raises:
            ValidationError: If the type is malformed or not in the dataset.
        """
        if not isinstance(type_, str) or not TYPE_RE.fullmatch(type_):
            raise ValidationError("Invalid type")

        dataset = self.generate_dataset(diagram_id)
        for element in dataset.elements:
            if element.type == type_:
                return dataset, element

        allowed = ", ".join(sorted(e.type for e in dataset.elements))
        raise ValidationError(
            f"Invalid type '{type_}'. Allowed types for this diagram: {allowed}"
        )

    def write_archive(self, diagram_id: str, target: str | Path | IO[bytes]) -> CsvDataset:
        """Write a ZIP with one ``<diagram>_<type>.csv`` per dataset element."""
        dataset = self.generate_dataset(diagram_id)
        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for element in dataset.elements:
                archive.writestr(dataset.filename_for(element), element.csv_content)
        return dataset
