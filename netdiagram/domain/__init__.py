"""Structured per-diagram domain state."""

from .models import (
    DiagramDomainState,
    DomainObject,
    EntityRef,
    ParentRef,
    RootRef,
    parent_ref_to_dict,
    parse_parent_ref,
)
from .attributes import validate_entity_attributes
from .store import DomainStore, FileDomainStore, InMemoryDomainStore
from .locks import DiagramLocks

__all__ = [
    "DiagramDomainState",
    "DomainObject",
    "EntityRef",
    "ParentRef",
    "RootRef",
    "parent_ref_to_dict",
    "parse_parent_ref",
    "validate_entity_attributes",
    "DomainStore",
    "FileDomainStore",
    "InMemoryDomainStore",
    "DiagramLocks",
]
