"""CSV export of diagram domain state."""

from .csv_projector import (
    CsvDataset,
    CsvElement,
    CsvEntitySchema,
    CsvProjector,
    OrderedTypes,
    build_entity_csv_schema,
    csv_escape_cell,
    render_entity_csv,
    resolve_reference,
    sanitize_filename_part,
)

__all__ = [
    "CsvDataset",
    "CsvElement",
    "CsvEntitySchema",
    "CsvProjector",
    "OrderedTypes",
    "build_entity_csv_schema",
    "csv_escape_cell",
    "render_entity_csv",
    "resolve_reference",
    "sanitize_filename_part",
]
