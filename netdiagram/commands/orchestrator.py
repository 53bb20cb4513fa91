"""Applies commands to a diagram's domain state and document together.

Every mutation follows the same sequence: validate the command, compute and
save the new domain state, then splice the document and save it. The two
saves are not transactional. If the document step fails after the store was
saved, the representations disagree until a later structural command on the
same object brings them back in line.
"""

import logging
from typing import Any

from ..document.mutator import AnchoredDocumentMutator, RenderedBlock
from ..document.repository import Diagram, DiagramRepository
from ..domain.attributes import validate_entity_attributes
from ..domain.locks import DiagramLocks
from ..domain.models import (
    DiagramDomainState,
    DomainObject,
    EntityRef,
    ParentRef,
    RootRef,
)
from ..domain.store import DomainStore
from ..errors import NotFoundError, ValidationError
from ..graph.analyzer import ModelAnalysis
from ..schema.loader import LoadedConfig
from ..schema.models import EntityType
from .models import Command, CommandResult, ParentInput

logger = logging.getLogger(__name__)


class CommandOrchestrator:
    """Entry point for diagram commands.

    Args:
        config: The loaded configuration.
        analysis: The model analysis (for ``list-types``).
        domain_store: Per-diagram domain state.
        diagrams: Diagram documents.
        mutator: Renders and splices document blocks.
        locks: Serializes commands per diagram.
        rerender_on_update: Re-render the object's block after ``update``.
            Off by default, so an updated label stays stale on the document
            until the object is moved.
    """

    def __init__(
        self,
        config: LoadedConfig,
        analysis: ModelAnalysis,
        domain_store: DomainStore,
        diagrams: DiagramRepository,
        mutator: AnchoredDocumentMutator,
        locks: DiagramLocks | None = None,
        rerender_on_update: bool = False,
    ):
        self.config = config
        self.analysis = analysis
        self.domain_store = domain_store
        self.diagrams = diagrams
        self.mutator = mutator
        self.locks = locks or DiagramLocks()
        self.rerender_on_update = rerender_on_update

    @property
    def schema(self):
        return self.config.schema

    # -------------------------------------------------------------------------
    # Diagrams
    # -------------------------------------------------------------------------

    def create_diagram(self, name: str) -> Diagram:
        """Create a diagram holding only the root regions."""
        return self.diagrams.create(name, self.mutator.initial_document(name.strip()))

    def delete_diagram(self, diagram_id: str) -> None:
        """Delete a diagram's document and its domain state.

        Raises:
            NotFoundError: If the diagram does not exist.
        """
        with self.locks.hold(diagram_id):
            self.diagrams.delete(diagram_id)
            self.domain_store.delete(diagram_id)
        self.locks.discard(diagram_id)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def apply(self, diagram_id: str, command: Command | dict[str, Any]) -> CommandResult:
        """Apply one command to a diagram.

        Raises:
            ValidationError: If the command is invalid. Nothing is modified.
            NotFoundError: If the diagram or a referenced object is absent.
            ConsistencyError: If the stored domain state is corrupt.
            DocumentIntegrityError: If the document's markers are damaged.
        """
        if not isinstance(command, Command):
            command = Command.parse(command)

        handlers = {
            "create": self._apply_create,
            "update": self._apply_update,
            "delete": self._apply_delete,
            "move": self._apply_move,
            "list-types": self._list_types,
            "list-elements": self._list_elements,
            "get-element": self._get_element,
        }
        handler = handlers[command.command]

        # Existence check before taking the lock, so unknown ids never get one.
        self.diagrams.get(diagram_id)

        with self.locks.hold(diagram_id):
            diagram = self.diagrams.get(diagram_id)
            result = handler(diagram, command)

        if command.is_mutation:
            logger.info(
                "Applied %s %s '%s' to diagram '%s'",
                command.command,
                command.entity,
                (result.data or {}).get("id", command.id),
                diagram_id,
            )
        return result

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def _apply_create(self, diagram: Diagram, command: Command) -> CommandResult:
        entity_type = self._require_entity(command.entity)
        parent = self._parse_parent(command.entity, command.parent)
        self._check_parent_allowed(entity_type, parent)
        attributes = dict(command.attributes or {})
        validate_entity_attributes(command.entity, attributes, entity_type.attributes)

        state = self.domain_store.load(diagram.id)
        self._check_parent_exists(state, parent)

        obj = DomainObject(
            id=self._fresh_object_id(state),
            entity=command.entity,
            parent=parent,
            attributes=attributes,
        )
        state.objects.append(obj)
        self.domain_store.save(diagram.id, state)

        block = self.mutator.render_entity_block(obj)
        content = self.mutator.insert_block(
            diagram.content, self.mutator.parent_document_id(parent), block
        )
        return self._save_document(diagram, content, {"id": obj.id})

    def _apply_update(self, diagram: Diagram, command: Command) -> CommandResult:
        entity_type = self._require_entity(command.entity)
        object_id = self._require_id(command)
        if command.parent is not None:
            raise ValidationError("Parent cannot be changed by update; use move")

        state = self.domain_store.load(diagram.id)
        obj = self._require_object(state, command.entity, object_id)

        merged = {**obj.attributes, **(command.attributes or {})}
        validate_entity_attributes(command.entity, merged, entity_type.attributes)
        obj.attributes = merged
        self.domain_store.save(diagram.id, state)

        if not self.rerender_on_update:
            return CommandResult(diagram.id, diagram.name, diagram.content, {"id": obj.id})

        content = self.mutator.replace_block(
            diagram.content,
            self.mutator.resolve_document_id(obj.entity, obj.id),
            self._render_subtree(state, obj),
        )
        return self._save_document(diagram, content, {"id": obj.id})

    def _apply_delete(self, diagram: Diagram, command: Command) -> CommandResult:
        object_id = self._require_id(command)

        state = self.domain_store.load(diagram.id)
        obj = self._require_object(state, command.entity, object_id)

        # Nested blocks live inside the removed region, so the store drops them too.
        removed = {obj.id} | state.descendant_ids(obj)
        state.objects = [o for o in state.objects if o.id not in removed]
        self.domain_store.save(diagram.id, state)

        content = self.mutator.remove_block(
            diagram.content, self.mutator.resolve_document_id(obj.entity, obj.id)
        )
        return self._save_document(diagram, content, {"id": obj.id, "removed": sorted(removed)})

    def _apply_move(self, diagram: Diagram, command: Command) -> CommandResult:
        entity_type = self._require_entity(command.entity)
        object_id = self._require_id(command)
        parent = self._parse_parent(command.entity, command.parent)
        self._check_parent_allowed(entity_type, parent)

        state = self.domain_store.load(diagram.id)
        obj = self._require_object(state, command.entity, object_id)
        self._check_parent_exists(state, parent)
        if isinstance(parent, EntityRef):
            if parent.id == obj.id or parent.id in state.descendant_ids(obj):
                raise ValidationError(
                    f"Cannot move '{obj.entity}:{obj.id}' under itself or one of its descendants"
                )

        obj.parent = parent
        self.domain_store.save(diagram.id, state)

        document_id = self.mutator.resolve_document_id(obj.entity, obj.id)
        without = self.mutator.remove_block(diagram.content, document_id)
        content = self.mutator.insert_block(
            without, self.mutator.parent_document_id(parent), self._render_subtree(state, obj)
        )
        return self._save_document(diagram, content, {"id": obj.id})

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _list_types(self, diagram: Diagram, command: Command) -> CommandResult:
        root_key = self.analysis.require_root_key(command.category or command.entity)
        state = self.domain_store.load(diagram.id)
        types = self.analysis.filtered_ordered_types(root_key, state.present_types())
        data = {"category": self.analysis.category_name(root_key), "types": types}
        return CommandResult(diagram.id, diagram.name, diagram.content, data)

    def _list_elements(self, diagram: Diagram, command: Command) -> CommandResult:
        self._require_entity(command.entity)
        state = self.domain_store.load(diagram.id)
        elements = sorted(
            (o for o in state.objects if o.entity == command.entity), key=lambda o: o.id
        )
        data = {"elements": [o.to_dict() for o in elements]}
        return CommandResult(diagram.id, diagram.name, diagram.content, data)

    def _get_element(self, diagram: Diagram, command: Command) -> CommandResult:
        object_id = self._require_id(command)
        state = self.domain_store.load(diagram.id)
        obj = self._require_object(state, command.entity, object_id)
        return CommandResult(diagram.id, diagram.name, diagram.content, {"element": obj.to_dict()})

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_entity(self, entity: str) -> EntityType:
        entity_type = self.schema.get_entity(entity)
        if entity_type is None:
            raise ValidationError(f"Unknown entity '{entity}'")
        return entity_type

    @staticmethod
    def _require_id(command: Command) -> str:
        if not command.id or not command.id.strip():
            raise ValidationError(f"Missing id for {command.command}")
        return command.id.strip()

    @staticmethod
    def _require_object(state: DiagramDomainState, entity: str, object_id: str) -> DomainObject:
        obj = state.find(entity, object_id)
        if obj is None:
            raise NotFoundError(
                f"Object '{entity}:{object_id}' not found in diagram domain state"
            )
        return obj

    def _parse_parent(self, entity: str, parent: ParentInput | None) -> ParentRef:
        if parent is None:
            raise ValidationError(f"Parent is required for entity '{entity}'")

        root = (parent.root or "").strip()
        parent_entity = (parent.entity or "").strip()
        parent_id = (parent.id or "").strip()

        if root and (parent_entity or parent_id):
            raise ValidationError("Parent cannot combine root with entity/id")

        if root:
            if root not in self.schema.roots:
                raise ValidationError(f"Invalid parent.root '{root}'")
            return RootRef(root)

        if parent_entity and parent_id:
            return EntityRef(parent_entity, parent_id)

        raise ValidationError(
            f"Parent for entity '{entity}' must be {{root}} or {{entity, id}}"
        )

    @staticmethod
    def _check_parent_allowed(entity_type: EntityType, parent: ParentRef) -> None:
        allowed = entity_type.parent.allowed
        if not allowed:
            return

        for rule in allowed:
            if isinstance(parent, RootRef) and rule.root == parent.root:
                return
            if isinstance(parent, EntityRef) and rule.entity == parent.entity:
                return

        raise ValidationError(f"Parent not allowed for '{entity_type.name}'")

    @staticmethod
    def _check_parent_exists(state: DiagramDomainState, parent: ParentRef) -> None:
        if isinstance(parent, EntityRef) and state.find(parent.entity, parent.id) is None:
            raise NotFoundError(
                f"Parent object '{parent.entity}:{parent.id}' not found in diagram domain state"
            )

    def _fresh_object_id(self, state: DiagramDomainState) -> str:
        object_id = self.domain_store.generate_object_id()
        while state.get(object_id) is not None:
            object_id = self.domain_store.generate_object_id()
        return object_id

    def _render_subtree(self, state: DiagramDomainState, obj: DomainObject) -> RenderedBlock:
        """Render an object with its descendants nested in store order."""
        root_block = self.mutator.render_entity_block(obj)
        text = root_block.text

        pending = [obj]
        while pending:
            current = pending.pop(0)
            for child in state.children_of(current.ref):
                text = self.mutator.insert_block(
                    text,
                    self.mutator.resolve_document_id(current.entity, current.id),
                    self.mutator.render_entity_block(child),
                )
                pending.append(child)

        return RenderedBlock(root_block.document_id, text)

    def _save_document(
        self, diagram: Diagram, content: str, data: dict[str, Any] | None = None
    ) -> CommandResult:
        updated = self.diagrams.update_content(diagram.id, content)
        return CommandResult(updated.id, updated.name, updated.content, data)
