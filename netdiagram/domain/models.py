"""Domain object types and parent-reference parsing."""

from dataclasses import dataclass, field
from typing import Any, Collection, Iterator, Union

from ..errors import ConsistencyError

STATE_VERSION = 1


@dataclass(frozen=True)
class RootRef:
    """Parent reference to a root scope."""

    root: str


@dataclass(frozen=True)
class EntityRef:
    """Parent reference to another domain object."""

    entity: str
    id: str


ParentRef = Union[RootRef, EntityRef]


def _where(ctx: dict[str, str] | None) -> str:
    if not ctx:
        return ""
    where = f" for '{ctx.get('entity', '?')}:{ctx.get('object_id', '?')}'"
    if ctx.get("diagram_id"):
        where += f" in diagram '{ctx['diagram_id']}'"
    return where


def parse_parent_ref(
    value: Any,
    roots: Collection[str] | None = None,
    ctx: dict[str, str] | None = None,
) -> ParentRef:
    """Parse a serialized parent reference.

    A reference is either ``{"root": ...}`` or ``{"entity": ..., "id": ...}``.
    Anything else, including a mix of both shapes, is rejected rather than
    guessed at.

    Args:
        value: The raw value, usually a dict from JSON.
        roots: Declared root keys. When given, root references must name one.
        ctx: Optional ``diagram_id``/``object_id``/``entity`` for messages.

    Returns:
        A RootRef or an EntityRef.

    Raises:
        ConsistencyError: If the value is not a well-formed reference.
    """
    where = _where(ctx)

    if isinstance(value, (RootRef, EntityRef)):
        value = parent_ref_to_dict(value)

    if not isinstance(value, dict):
        raise ConsistencyError(f"Invalid parent{where} (expected an object)")

    has_root = "root" in value
    has_entity = "entity" in value
    has_id = "id" in value

    if has_root and (has_entity or has_id):
        raise ConsistencyError(
            f"Invalid parent{where} (cannot combine root with entity/id)"
        )

    if has_root:
        root = value["root"].strip() if isinstance(value["root"], str) else ""
        if not root or (roots is not None and root not in roots):
            raise ConsistencyError(f"Invalid parent.root '{value['root']}'{where}")
        return RootRef(root)

    if has_entity or has_id:
        entity = value.get("entity")
        object_id = value.get("id")
        entity = entity.strip() if isinstance(entity, str) else ""
        object_id = object_id.strip() if isinstance(object_id, str) else ""
        if not entity or not object_id:
            raise ConsistencyError(
                f"Invalid parent{where} (expected non-empty entity and id)"
            )
        return EntityRef(entity, object_id)

    raise ConsistencyError(
        f"Invalid parent{where} (expected root or entity/id reference)"
    )


def parent_ref_to_dict(ref: ParentRef) -> dict[str, str]:
    if isinstance(ref, RootRef):
        return {"root": ref.root}
    return {"entity": ref.entity, "id": ref.id}


@dataclass
class DomainObject:
    """One instance of an entity type within a diagram."""

    id: str
    entity: str
    parent: ParentRef
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def ref(self) -> EntityRef:
        """An EntityRef pointing at this object."""
        return EntityRef(self.entity, self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "entity": self.entity,
            "parent": parent_ref_to_dict(self.parent),
            "attributes": dict(self.attributes),
        }


@dataclass
class DiagramDomainState:
    """The structured state of one diagram."""

    version: int = STATE_VERSION
    objects: list[DomainObject] = field(default_factory=list)

    def find(self, entity: str, object_id: str) -> DomainObject | None:
        """Find an object by entity type and id."""
        for obj in self.objects:
            if obj.id == object_id and obj.entity == entity:
                return obj
        return None

    def get(self, object_id: str) -> DomainObject | None:
        for obj in self.objects:
            if obj.id == object_id:
                return obj
        return None

    def index(self) -> dict[str, DomainObject]:
        """Map object ids to objects."""
        return {obj.id: obj for obj in self.objects}

    def present_types(self) -> set[str]:
        return {obj.entity for obj in self.objects if obj.entity}

    def children_of(self, ref: EntityRef) -> Iterator[DomainObject]:
        """Iterate over the objects whose parent is ``ref``."""
        for obj in self.objects:
            if obj.parent == ref:
                yield obj

    def descendant_ids(self, obj: DomainObject) -> set[str]:
        """Get the ids of every object nested below ``obj``."""
        found: set[str] = set()
        stack = [obj]
        while stack:
            current = stack.pop()
            for child in self.children_of(current.ref):
                if child.id not in found:
                    found.add(child.id)
                    stack.append(child)
        return found

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "objects": [obj.to_dict() for obj in self.objects],
        }
