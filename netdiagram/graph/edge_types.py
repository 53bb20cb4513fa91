"""Edge type definitions for the dependency graph."""

from enum import Enum


class EdgeType(str, Enum):
    """Why one entity type must exist before another."""

    PARENT = "parent"  # parent entity type -> child entity type
    LINK = "link"  # link target -> linking entity type
