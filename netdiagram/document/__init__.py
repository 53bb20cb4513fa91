"""Generated Mermaid documents: rendering, anchored splicing and storage."""

from .mutator import (
    AnchoredDocumentMutator,
    RenderedBlock,
    apply_template,
    indent_block,
    render_style_line,
)
from .repository import (
    Diagram,
    DiagramRepository,
    FileDiagramRepository,
    InMemoryDiagramRepository,
)

__all__ = [
    "AnchoredDocumentMutator",
    "RenderedBlock",
    "apply_template",
    "indent_block",
    "render_style_line",
    "Diagram",
    "DiagramRepository",
    "FileDiagramRepository",
    "InMemoryDiagramRepository",
]
