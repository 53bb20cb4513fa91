"""Issue collection for configuration checks."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """How bad a configuration issue is.

    Errors abort loading; warnings are logged and loading continues.
    """

    ERROR = "error"
    WARNING = "warning"


@dataclass
class ValidationIssue:
    """One problem found in the configuration files.

    ``entity``/``attribute`` point into the entity schema, ``root`` at a root
    scope. Anything else a check wants to report goes in ``details``.
    """

    code: str
    message: str
    severity: Severity
    entity: str | None = None
    attribute: str | None = None
    root: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def location(self) -> str:
        """``entity.attribute``, ``root:<key>``, or an empty string."""
        if self.entity:
            return f"{self.entity}.{self.attribute}" if self.attribute else self.entity
        if self.root:
            return f"root:{self.root}"
        return ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "entity": self.entity,
            "attribute": self.attribute,
            "root": self.root,
            "details": self.details,
        }

    def __str__(self) -> str:
        where = f" [{self.location}]" if self.location else ""
        return f"{self.severity.value.upper()}: {self.code}{where} - {self.message}"


@dataclass
class ValidationResult:
    """Issues collected by one or more checks."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def is_valid(self) -> bool:
        """True when nothing blocks loading the configuration."""
        return not self.has_errors

    def _add(
        self,
        severity: Severity,
        code: str,
        message: str,
        entity: str | None,
        attribute: str | None,
        root: str | None,
        details: dict[str, Any],
    ) -> None:
        self.issues.append(
            ValidationIssue(
                code=code,
                message=message,
                severity=severity,
                entity=entity,
                attribute=attribute,
                root=root,
                details=details,
            )
        )

    def add_error(
        self,
        code: str,
        message: str,
        entity: str | None = None,
        attribute: str | None = None,
        root: str | None = None,
        **details: Any,
    ) -> None:
        self._add(Severity.ERROR, code, message, entity, attribute, root, details)

    def add_warning(
        self,
        code: str,
        message: str,
        entity: str | None = None,
        attribute: str | None = None,
        root: str | None = None,
        **details: Any,
    ) -> None:
        self._add(Severity.WARNING, code, message, entity, attribute, root, details)

    def merge(self, other: "ValidationResult") -> None:
        """Append another result's issues to this one."""
        self.issues.extend(other.issues)
