"""Command and result models for diagram edits and queries."""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError

CommandName = Literal[
    "create", "update", "delete", "move", "list-types", "list-elements", "get-element"
]

MUTATING_COMMANDS = frozenset({"create", "update", "delete", "move"})


class ParentInput(BaseModel):
    """Parent reference as given in a command: ``{root}`` or ``{entity, id}``."""

    model_config = ConfigDict(extra="forbid")

    root: str | None = None
    entity: str | None = None
    id: str | None = None


class Command(BaseModel):
    """One command against a diagram."""

    model_config = ConfigDict(extra="forbid")

    command: CommandName
    entity: str = ""
    id: str | None = None
    parent: ParentInput | None = None
    attributes: dict[str, Any] | None = None
    # list-types only; falls back to `entity`
    category: str | None = None

    @classmethod
    def parse(cls, data: Any) -> "Command":
        """Validate raw command data.

        Raises:
            ValidationError: If the data is not a well-formed command.
        """
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(x) for x in err['loc']) or 'command'}: {err['msg']}"
                for err in e.errors()
            )
            raise ValidationError(f"Invalid command: {problems}") from e

    @property
    def is_mutation(self) -> bool:
        return self.command in MUTATING_COMMANDS


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a command.

    Mutations return the updated document in ``content``; queries return the
    current document and put their answer in ``data``.
    """

    diagram_id: str
    name: str
    content: str
    data: dict[str, Any] | None = None
