"""Per-diagram domain state stores.

Stores persist :class:`DiagramDomainState` as plain JSON-compatible data.
Every load re-validates the parent references; a single malformed object
makes the whole diagram's state unusable.
"""

import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Collection

from ..errors import ConsistencyError
from ..fsutils import atomic_write_json
from ..ids import assert_diagram_id, generate_object_id
from .models import STATE_VERSION, DiagramDomainState, DomainObject, parse_parent_ref

logger = logging.getLogger(__name__)


class DomainStore(ABC):
    """Load/save contract for per-diagram domain state.

    Args:
        roots: Declared root keys. Root references naming anything else are
            rejected on load and save. ``None`` accepts any root.
    """

    def __init__(self, roots: Collection[str] | None = None):
        self._roots = frozenset(roots) if roots is not None else None

    @abstractmethod
    def _read(self, diagram_id: str) -> dict[str, Any] | None:
        """Return the stored payload, or None if nothing was stored."""

    @abstractmethod
    def _write(self, diagram_id: str, payload: dict[str, Any]) -> None:
        """Replace the stored payload in one step."""

    @abstractmethod
    def delete(self, diagram_id: str) -> None:
        """Drop the diagram's state. Deleting unknown state is a no-op."""

    def load(self, diagram_id: str) -> DiagramDomainState:
        """Load the state of a diagram; unseen diagrams start empty.

        Raises:
            ConsistencyError: If the stored state is corrupt.
        """
        payload = self._read(diagram_id)
        if payload is None:
            return DiagramDomainState()

        try:
            return self._deserialize(diagram_id, payload)
        except ConsistencyError as e:
            logger.error(
                "Failed to load domain state for diagram '%s': %s",
                diagram_id,
                e,
                exc_info=True,
            )
            raise ConsistencyError(
                f"Corrupt diagram domain state: {e}", diagram_id=diagram_id
            ) from e

    def save(self, diagram_id: str, state: DiagramDomainState) -> None:
        """Persist the state of a diagram.

        Raises:
            ConsistencyError: If an object has no id/entity or a bad parent.
        """
        objects = []
        for obj in state.objects:
            if not obj.id or not obj.entity:
                raise ConsistencyError("Invalid domain object", diagram_id=diagram_id)
            ctx = {"diagram_id": diagram_id, "object_id": obj.id, "entity": obj.entity}
            parse_parent_ref(obj.parent, self._roots, ctx)
            objects.append(obj.to_dict())

        self._write(diagram_id, {"version": STATE_VERSION, "objects": objects})

    def generate_object_id(self) -> str:
        return generate_object_id()

    def _deserialize(self, diagram_id: str, payload: Any) -> DiagramDomainState:
        if not isinstance(payload, dict):
            raise ConsistencyError("expected an object at the top level")

        raw_objects = payload.get("objects")
        if not isinstance(raw_objects, list):
            raw_objects = []

        objects = []
        for raw in raw_objects:
            if not isinstance(raw, dict):
                raise ConsistencyError("domain object is not an object")
            object_id = raw.get("id")
            entity = raw.get("entity")
            if not isinstance(object_id, str) or not isinstance(entity, str):
                raise ConsistencyError("domain object without string id/entity")

            ctx = {"diagram_id": diagram_id, "object_id": object_id, "entity": entity}
            parent = parse_parent_ref(raw.get("parent"), self._roots, ctx)
            attributes = raw.get("attributes")
            if not isinstance(attributes, dict):
                attributes = {}

            objects.append(DomainObject(object_id, entity, parent, dict(attributes)))

        return DiagramDomainState(version=STATE_VERSION, objects=objects)


class InMemoryDomainStore(DomainStore):
    """Domain store kept in a dict. Payloads are copied in and out."""

    def __init__(self, roots: Collection[str] | None = None):
        super().__init__(roots)
        self._payloads: dict[str, dict[str, Any]] = {}

    def _read(self, diagram_id: str) -> dict[str, Any] | None:
        payload = self._payloads.get(diagram_id)
        return copy.deepcopy(payload) if payload is not None else None

    def _write(self, diagram_id: str, payload: dict[str, Any]) -> None:
        self._payloads[diagram_id] = copy.deepcopy(payload)

    def delete(self, diagram_id: str) -> None:
        self._payloads.pop(diagram_id, None)


class FileDomainStore(DomainStore):
    """Domain store writing one ``<diagram>.domain.json`` file per diagram."""

    SUFFIX = ".domain.json"

    def __init__(self, directory: str | Path, roots: Collection[str] | None = None):
        super().__init__(roots)
        self.directory = Path(directory)

    def _path(self, diagram_id: str) -> Path:
        assert_diagram_id(diagram_id)
        return self.directory / f"{diagram_id}{self.SUFFIX}"

    def _read(self, diagram_id: str) -> dict[str, Any] | None:
        path = self._path(diagram_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConsistencyError(
                f"Corrupt diagram domain state: invalid JSON in {path.name}: {e}",
                diagram_id=diagram_id,
            ) from e

    def _write(self, diagram_id: str, payload: dict[str, Any]) -> None:
        atomic_write_json(self._path(diagram_id), payload)

    def delete(self, diagram_id: str) -> None:
        self._path(diagram_id).unlink(missing_ok=True)
