"""Rendering of domain objects to Mermaid blocks and anchored text splicing.

The generated document is never parsed. Every domain object owns one region
delimited by whole-line anchors::

    %% BEGIN <document id>
    ...
    %% END <document id>

and every structural region carries one insertion marker
(``%% INSERT <document id>``) where child regions are spliced in. Inserting
and removing whole regions is all the editing the commands need.
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping

import yaml

from ..domain.attributes import scalar_to_string
from ..domain.models import DomainObject, ParentRef, RootRef
from ..errors import DocumentIntegrityError
from ..schema.errors import ConfigurationError
from ..schema.models import DocumentMapping, EntitySchema, MermaidStyles, Theme

DEFAULT_THEME = "light"
DEFAULT_LABEL_TEMPLATE = "{{ object.name }}"
FLOWCHART_HEADER = "flowchart TB"

_TEMPLATE_VAR_RE = re.compile(r"\{\{\s*([^}]+?)\s*\}\}")


@dataclass(frozen=True)
class RenderedBlock:
    document_id: str
    text: str


def apply_template(template: str, context: Mapping[str, Any]) -> str:
    """Substitute ``{{ a.b.c }}`` placeholders with values from ``context``.

    Unresolved placeholders become empty strings.
    """

    def lookup(match: re.Match) -> str:
        current: Any = context
        for part in match.group(1).strip().split("."):
            current = current.get(part) if isinstance(current, Mapping) else None
        return "" if current is None else scalar_to_string(current)

    return _TEMPLATE_VAR_RE.sub(lookup, template)


def indent_block(block: str, indent: str, nl: str = "\n") -> str:
    """Prefix every non-empty line of ``block`` with ``indent``."""
    if not indent:
        return block
    return nl.join(f"{indent}{line}" if line else line for line in block.split(nl))


def _leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


def escape_quotes(value: str) -> str:
    return value.replace('"', '\\"')


def render_style_line(document_id: str, style: Mapping[str, Any] | None) -> str | None:
    """Render ``style <id> k:v,k:v``, or None when there is nothing to style."""
    if not style:
        return None
    parts = [
        f"{key}:{scalar_to_string(value)}"
        for key, value in style.items()
        if value is not None and scalar_to_string(value) != ""
    ]
    if not parts:
        return None
    return f"style {document_id} {','.join(parts)}"


class AnchoredDocumentMutator:
    """Renders domain objects and splices them into Mermaid documents.

    Args:
        schema: The entity schema (attribute order for summaries).
        mapping: How entity types and roots are rendered.
        styles: Style themes and frontmatter.
        theme: The theme used for generated style lines.
    """

    def __init__(
        self,
        schema: EntitySchema,
        mapping: DocumentMapping,
        styles: MermaidStyles | None = None,
        theme: str = DEFAULT_THEME,
    ):
        self.schema = schema
        self.mapping = mapping
        self.styles = styles or MermaidStyles()
        self.theme_name = theme

    @property
    def indent(self) -> str:
        return self.mapping.globals.indentation

    @property
    def nl(self) -> str:
        return self.mapping.globals.line_separator

    @property
    def theme(self) -> Theme:
        return self.styles.get_theme(self.theme_name)

    # -------------------------------------------------------------------------
    # Markers
    # -------------------------------------------------------------------------

    def anchor_start(self, document_id: str) -> str:
        return f"{self.mapping.globals.anchors.start} {document_id}"

    def anchor_end(self, document_id: str) -> str:
        return f"{self.mapping.globals.anchors.end} {document_id}"

    def insert_marker(self, document_id: str) -> str:
        return f"{self.mapping.globals.insert_marker} {document_id}"

    # -------------------------------------------------------------------------
    # Document ids
    # -------------------------------------------------------------------------

    def resolve_document_id(self, entity: str, object_id: str) -> str:
        """Derive the document id of an object from its type and id only.

        Raises:
            ConfigurationError: If the entity type has no mapping.
        """
        entity_mapping = self.mapping.entities.get(entity)
        if entity_mapping is None:
            raise ConfigurationError(f"No Mermaid mapping for entity '{entity}'")
        return apply_template(
            entity_mapping.mermaid.id, {"object": {"id": object_id, "entity": entity}}
        )

    def root_document_id(self, root_key: str) -> str:
        root_mapping = self.mapping.roots.get(root_key)
        if root_mapping is None:
            raise ConfigurationError(f"Missing root mapping '{root_key}'")
        return root_mapping.mermaid.id

    def parent_document_id(self, parent: ParentRef) -> str:
        """Get the document id whose insertion marker receives a child."""
        if isinstance(parent, RootRef):
            return self.root_document_id(parent.root)
        return self.resolve_document_id(parent.entity, parent.id)

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def render_entity_block(self, obj: DomainObject) -> RenderedBlock:
        """Render an object to its anchored block (not yet indented).

        Raises:
            ConfigurationError: If the entity type is unmapped or undeclared.
        """
        entity_type = self.schema.get_entity(obj.entity)
        if entity_type is None:
            raise ConfigurationError(f"No model entry for entity '{obj.entity}'")

        document_id = self.resolve_document_id(obj.entity, obj.id)
        block = self.mapping.entities[obj.entity].mermaid

        attributes = obj.attributes
        object_ctx = {
            **attributes,
            "id": obj.id,
            "entity": obj.entity,
            "mermaidId": document_id,
        }
        label = apply_template(block.label or DEFAULT_LABEL_TEMPLATE, {"object": object_ctx})

        if not block.is_structural:
            if block.shape:
                node = f'{document_id}@{{ shape: {block.shape}, label: "{escape_quotes(label)}" }}'
            else:
                node = f'{document_id}["{escape_quotes(label)}"]'
            lines = [self.anchor_start(document_id), node]
            style_line = render_style_line(document_id, self._entity_style(obj.entity, attributes))
            if style_line:
                lines.append(style_line)
            lines.append(self.anchor_end(document_id))
            return RenderedBlock(document_id, self.nl.join(lines))

        lines = [self.anchor_start(document_id), f"subgraph {document_id}[{label}]"]

        attr_document_id = None
        summary = self._render_attribute_summary(obj, entity_type.attributes, object_ctx)
        if summary is not None:
            attr_document_id, rendered = summary
            lines.append(indent_block(rendered.rstrip(), self.indent, self.nl))

        # The blank line keeps the first child's insert/remove byte-exact.
        lines.append("")
        lines.append(f"{self.indent}{self.insert_marker(document_id)}")
        lines.append("end")

        style_line = render_style_line(document_id, self._entity_style(obj.entity, attributes))
        if style_line:
            lines.append(style_line)
        if attr_document_id:
            attr_style_line = render_style_line(
                attr_document_id, self._attribute_style(obj.entity)
            )
            if attr_style_line:
                lines.append(attr_style_line)

        lines.append(self.anchor_end(document_id))
        return RenderedBlock(document_id, self.nl.join(lines))

    def _render_attribute_summary(
        self,
        obj: DomainObject,
        definitions: Mapping[str, Any],
        object_ctx: Mapping[str, Any],
    ) -> tuple[str, str] | None:
        attr_block = self.mapping.attribute_block
        if attr_block is None:
            return None

        attr_lines = [
            f"{field}: {scalar_to_string(obj.attributes[field])}"
            for field in definitions
            if obj.attributes.get(field) is not None
        ]
        if not attr_lines:
            return None

        ctx = {
            "object": {
                "mermaidId": object_ctx["mermaidId"],
                "id": obj.id,
                "name": obj.attributes.get("name") or "",
                "entity": obj.entity,
            }
        }
        attr_document_id = apply_template(attr_block.id, ctx)
        rendered = apply_template(
            attr_block.template,
            {
                **ctx,
                "id": attr_document_id,
                "label": escape_quotes(self.nl.join(attr_lines)),
            },
        )
        return attr_document_id, rendered

    def _entity_style(self, entity: str, attributes: Mapping[str, Any]) -> dict[str, Any]:
        theme = self.theme
        style = dict(theme.entities[entity].style) if entity in theme.entities else {}
        status = attributes.get("status")
        if isinstance(status, str) and status in theme.statuses:
            style.update(theme.statuses[status].style)
        return style

    def _attribute_style(self, entity: str) -> dict[str, Any]:
        theme = self.theme
        style = dict(theme.entities["attribute"].style) if "attribute" in theme.entities else {}
        if entity in theme.entities:
            style.update(theme.entities[entity].attributes)
        return style

    def initial_document(self, diagram_name: str) -> str:
        """Render an empty diagram: frontmatter, header and the root regions."""
        nl = self.nl
        parts = []

        frontmatter = self._render_frontmatter(diagram_name)
        if frontmatter:
            parts.append(frontmatter)
        parts.append(FLOWCHART_HEADER)

        for root_key in self.mapping.roots:
            parts.append("")
            parts.append(self._render_root_block(root_key))

        parts.append("")
        return nl.join(parts)

    def _render_root_block(self, root_key: str) -> str:
        root = self.mapping.roots[root_key].mermaid
        indent, nl = self.indent, self.nl

        lines = [
            self.anchor_start(root.id),
            f"subgraph {root.id}[{root.label}]",
            "",
            f"{indent}{self.insert_marker(root.id)}",
        ]

        connections = self.mapping.connections
        if connections is not None and connections.root == root_key:
            nested = nl.join(
                [
                    self.anchor_start(connections.id),
                    f"subgraph {connections.id}[{connections.label}]",
                    "",
                    f"{indent}{self.insert_marker(connections.id)}",
                    "end",
                    self.anchor_end(connections.id),
                ]
            )
            lines.append(indent_block(nested, indent, nl))

        lines.append("end")
        lines.append(self.anchor_end(root.id))

        root_style = self.theme.roots.get(root_key)
        style_line = render_style_line(root.id, root_style.style if root_style else None)
        if style_line:
            lines.append(style_line)

        return nl.join(lines)

    def _render_frontmatter(self, diagram_name: str) -> str:
        frontmatter = self.styles.frontmatter
        if frontmatter is None:
            return ""

        title = diagram_name
        if frontmatter.title:
            title = apply_template(frontmatter.title, {"diagram": {"name": diagram_name}}).strip()
            title = title or diagram_name

        data: dict[str, Any] = {"title": title}
        if frontmatter.config:
            data["config"] = frontmatter.config
        dumped = yaml.safe_dump(
            data, sort_keys=False, default_flow_style=False, allow_unicode=True
        )
        return self.nl.join(["---", *dumped.rstrip("\n").split("\n"), "---"])

    # -------------------------------------------------------------------------
    # Splicing
    # -------------------------------------------------------------------------

    @staticmethod
    def _marker_pattern(marker: str) -> re.Pattern:
        return re.compile(rf"^[ \t]*{re.escape(marker)}[ \t]*(?=\r?$)", re.MULTILINE)

    def _find_unique(self, content: str, marker: str, document_id: str) -> re.Match | None:
        matches = list(self._marker_pattern(marker).finditer(content))
        if len(matches) > 1:
            raise DocumentIntegrityError(
                f"Marker '{marker}' appears {len(matches)} times", document_id=document_id
            )
        return matches[0] if matches else None

    def _locate_block(self, content: str, document_id: str) -> tuple[re.Match, re.Match]:
        start = self._find_unique(content, self.anchor_start(document_id), document_id)
        end = self._find_unique(content, self.anchor_end(document_id), document_id)
        if start is None or end is None or end.start() < start.end():
            raise DocumentIntegrityError(
                f"Anchored block '{document_id}' not found", document_id=document_id
            )
        return start, end

    def has_block(self, content: str, document_id: str) -> bool:
        start = self._find_unique(content, self.anchor_start(document_id), document_id)
        return start is not None

    def insert_block(self, content: str, parent_document_id: str, block: RenderedBlock) -> str:
        """Splice a block in front of a parent's insertion marker.

        The block takes the marker's indentation. One blank separator line is
        added when the line above the marker is not already blank.

        Raises:
            DocumentIntegrityError: If the marker is missing or duplicated.
        """
        marker = self._find_unique(content, self.insert_marker(parent_document_id), parent_document_id)
        if marker is None:
            raise DocumentIntegrityError(
                f"Insertion marker not found for parent '{parent_document_id}'",
                document_id=parent_document_id,
            )

        line_start = marker.start()
        indentation = _leading_whitespace(marker.group(0))
        before, after = content[:line_start], content[line_start:]

        spacer = ""
        if before:
            previous_line = before[:-1].rsplit("\n", 1)[-1] if before.endswith("\n") else before
            if previous_line.strip():
                spacer = self.nl

        return f"{before}{spacer}{indent_block(block.text, indentation, self.nl)}{self.nl}{after}"

    def remove_block(self, content: str, document_id: str) -> str:
        """Cut an anchored region, anchors and one trailing newline included.

        Raises:
            DocumentIntegrityError: If the anchors are missing, duplicated or
                out of order.
        """
        start, end = self._locate_block(content, document_id)
        remainder = content[end.end():]
        if remainder.startswith("\r\n"):
            remainder = remainder[2:]
        elif remainder.startswith("\n"):
            remainder = remainder[1:]
        return content[: start.start()] + remainder

    def replace_block(self, content: str, document_id: str, block: RenderedBlock) -> str:
        """Swap an anchored region in place, keeping its indentation.

        Raises:
            DocumentIntegrityError: If the anchors are missing or out of order.
        """
        start, end = self._locate_block(content, document_id)
        indentation = _leading_whitespace(start.group(0))
        replacement = indent_block(block.text, indentation, self.nl)
        return content[: start.start()] + replacement + content[end.end():]
