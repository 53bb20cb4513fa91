"""Attribute validation driven by the entity schema's attribute definitions."""

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping

from ..errors import ValidationError
from ..schema.models import AttributeDefinition

DEFAULT_MAX_LENGTH = 100

# Plain decimal literals only; no digit separators, inf or nan.
NUMBER_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


@dataclass(frozen=True)
class CoercedValue:
    raw: Any
    raw_string: str
    value: str | int | float | bool


def scalar_to_string(value: Any) -> str:
    """Render a scalar the way it is written in JSON (``true``, ``3``, ``2.5``)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _coerce(entity: str, key: str, type_: str, raw: Any) -> CoercedValue:
    raw_string = raw.strip() if isinstance(raw, str) else scalar_to_string(raw)

    if type_ == "string":
        if isinstance(raw, str):
            return CoercedValue(raw, raw_string, raw)
        if isinstance(raw, (bool, int, float)):
            return CoercedValue(raw, raw_string, scalar_to_string(raw))
        raise ValidationError(f"Invalid attribute '{key}' for '{entity}': expected string")

    if type_ == "boolean":
        if isinstance(raw, bool):
            return CoercedValue(raw, raw_string, raw)
        if isinstance(raw, str) and raw_string.lower() in ("true", "false"):
            return CoercedValue(raw, raw_string.lower(), raw_string.lower() == "true")
        raise ValidationError(
            f"Invalid attribute '{key}' for '{entity}': expected boolean (true/false)"
        )

    # number / integer; bools are never numbers
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise ValidationError(f"Invalid attribute '{key}' for '{entity}': expected {type_}")

    if isinstance(raw, str):
        if not NUMBER_RE.fullmatch(raw_string):
            raise ValidationError(
                f"Invalid attribute '{key}' for '{entity}': expected {type_}"
            )
        num: int | float = float(raw_string)
    else:
        num = raw

    if not math.isfinite(num):
        raise ValidationError(f"Invalid attribute '{key}' for '{entity}': expected {type_}")

    if type_ == "integer":
        if isinstance(num, float):
            if not num.is_integer():
                raise ValidationError(
                    f"Invalid attribute '{key}' for '{entity}': expected integer"
                )
            num = int(num)

    return CoercedValue(raw, raw_string, num)


def _in_allowed(type_: str, allowed: list, value: Any) -> bool:
    if type_ == "string":
        return any(scalar_to_string(v) == value for v in allowed)
    if type_ == "boolean":
        return any(isinstance(v, bool) and v == value for v in allowed)
    return any(not isinstance(v, bool) and v == value for v in allowed)


def validate_entity_attributes(
    entity: str,
    attrs: Mapping[str, Any],
    definitions: Mapping[str, AttributeDefinition] | None,
) -> None:
    """Validate an attribute map against the schema's definitions.

    Only declared attributes are checked; undeclared keys pass through
    untouched.

    Args:
        entity: Entity type name, used in messages.
        attrs: The object's attributes.
        definitions: The entity type's attribute definitions.

    Raises:
        ValidationError: On the first attribute that fails a check.
    """
    for key, definition in (definitions or {}).items():
        raw = attrs.get(key)

        if is_empty_value(raw):
            if definition.nullable:
                continue
            if definition.required:
                raise ValidationError(f"Missing required attribute '{key}' for '{entity}'")
            continue

        type_ = definition.type
        coerced = _coerce(entity, key, type_, raw)

        if type_ == "string":
            max_length = (
                definition.max_length
                if definition.max_length is not None
                else DEFAULT_MAX_LENGTH
            )
            if len(str(coerced.value)) > max_length:
                raise ValidationError(
                    f"Invalid attribute '{key}' for '{entity}': exceeds maxLength {max_length}"
                )

        if definition.pattern:
            # Numbers are matched in the form they were given.
            if type_ in ("number", "integer"):
                tested = coerced.raw_string
            else:
                tested = scalar_to_string(coerced.value)
            if not re.search(definition.pattern, tested):
                raise ValidationError(
                    f"Invalid attribute '{key}' for '{entity}': "
                    f"does not match pattern {definition.pattern}"
                )

        if definition.values is not None:
            if not _in_allowed(type_, definition.values, coerced.value):
                allowed = ", ".join(scalar_to_string(v) for v in definition.values)
                raise ValidationError(
                    f"Invalid attribute '{key}' for '{entity}': must be one of [{allowed}]"
                )

        if type_ in ("number", "integer"):
            if definition.minimum is not None and coerced.value < definition.minimum:
                raise ValidationError(
                    f"Invalid attribute '{key}' for '{entity}': must be >= {definition.minimum}"
                )
            if definition.maximum is not None and coerced.value > definition.maximum:
                raise ValidationError(
                    f"Invalid attribute '{key}' for '{entity}': must be <= {definition.maximum}"
                )
