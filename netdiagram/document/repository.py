"""Diagram document repositories."""

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from pathlib import Path

from ..errors import ConsistencyError, NotFoundError, ValidationError
from ..fsutils import atomic_write_json
from ..ids import assert_diagram_id, generate_diagram_id

logger = logging.getLogger(__name__)

_MAX_ID_ATTEMPTS = 10


@dataclass(frozen=True)
class Diagram:
    id: str
    name: str
    content: str


class DiagramRepository(ABC):
    """Stores diagram names and document text by diagram id."""

    @abstractmethod
    def _load(self, diagram_id: str) -> Diagram | None: ...

    @abstractmethod
    def _store(self, diagram: Diagram) -> None: ...

    @abstractmethod
    def _remove(self, diagram_id: str) -> bool: ...

    @abstractmethod
    def _all(self) -> list[Diagram]: ...

    def list(self) -> list[Diagram]:
        """Get all diagrams, sorted by name then id."""
        return sorted(self._all(), key=lambda d: (d.name, d.id))

    def get(self, diagram_id: str) -> Diagram:
        """Get a diagram.

        Raises:
            ValidationError: If the id is malformed.
            NotFoundError: If no such diagram exists.
        """
        assert_diagram_id(diagram_id)
        diagram = self._load(diagram_id)
        if diagram is None:
            raise NotFoundError(f"Diagram '{diagram_id}' not found")
        return diagram

    def create(self, name: str, content: str) -> Diagram:
        """Create a diagram under a fresh id.

        Raises:
            ValidationError: If the name is blank.
        """
        name = name.strip()
        if not name:
            raise ValidationError("Diagram name must not be empty")

        for _ in range(_MAX_ID_ATTEMPTS):
            diagram_id = generate_diagram_id()
            if self._load(diagram_id) is None:
                break
        else:
            raise ValidationError("Failed to generate a unique diagram id")

        diagram = Diagram(id=diagram_id, name=name, content=content)
        self._store(diagram)
        logger.info("Created diagram '%s'", diagram_id)
        return diagram

    def update_content(self, diagram_id: str, content: str) -> Diagram:
        """Replace a diagram's document text.

        Raises:
            NotFoundError: If no such diagram exists.
        """
        diagram = self.get(diagram_id)
        updated = Diagram(id=diagram.id, name=diagram.name, content=content)
        self._store(updated)
        logger.info("Updated content for diagram '%s'", diagram_id)
        return updated

    def delete(self, diagram_id: str) -> None:
        """Delete a diagram.

        Raises:
            NotFoundError: If no such diagram exists.
        """
        assert_diagram_id(diagram_id)
        if not self._remove(diagram_id):
            raise NotFoundError(f"Diagram '{diagram_id}' not found")
        logger.info("Deleted diagram '%s'", diagram_id)


class InMemoryDiagramRepository(DiagramRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._diagrams: dict[str, Diagram] = {}

    def _load(self, diagram_id: str) -> Diagram | None:
        with self._lock:
            return self._diagrams.get(diagram_id)

    def _store(self, diagram: Diagram) -> None:
        with self._lock:
            self._diagrams[diagram.id] = diagram

    def _remove(self, diagram_id: str) -> bool:
        with self._lock:
            return self._diagrams.pop(diagram_id, None) is not None

    def _all(self) -> list[Diagram]:
        with self._lock:
            return list(self._diagrams.values())


class FileDiagramRepository(DiagramRepository):
    """Writes one ``<id>.json`` file per diagram."""

    SUFFIX = ".json"

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, diagram_id: str) -> Path:
        return self.directory / f"{diagram_id}{self.SUFFIX}"

    def _read(self, path: Path) -> Diagram:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return Diagram(id=data["id"], name=data["name"], content=data["content"])
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise ConsistencyError(f"Corrupt diagram file {path.name}: {e}") from e

    def _load(self, diagram_id: str) -> Diagram | None:
        path = self._path(diagram_id)
        if not path.exists():
            return None
        return self._read(path)

    def _store(self, diagram: Diagram) -> None:
        atomic_write_json(self._path(diagram.id), asdict(diagram))

    def _remove(self, diagram_id: str) -> bool:
        path = self._path(diagram_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def _all(self) -> list[Diagram]:
        if not self.directory.is_dir():
            return []
        diagrams = []
        for path in sorted(self.directory.glob(f"*{self.SUFFIX}")):
            # <id>.domain.json files belong to the domain store
            if path.name.endswith(".domain.json"):
                continue
            diagrams.append(self._read(path))
        return diagrams
