"""Identifier generation and checks for diagrams and domain objects."""

import re
import secrets
import string

from .errors import ValidationError

DIAGRAM_ID_LENGTH = 16
DIAGRAM_ID_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase + "_"
DIAGRAM_ID_RE = re.compile(r"[0-9a-zA-Z_]{16}")


def generate_diagram_id(length: int = DIAGRAM_ID_LENGTH) -> str:
    """Generate a random id over the 63-character diagram id alphabet.

    Bytes at or above the largest multiple of the alphabet size are
    rejected, so every character is equally likely.
    """
    size = len(DIAGRAM_ID_ALPHABET)
    max_unbiased = (256 // size) * size

    chars: list[str] = []
    while len(chars) < length:
        for byte in secrets.token_bytes(32):
            if byte >= max_unbiased:
                continue
            chars.append(DIAGRAM_ID_ALPHABET[byte % size])
            if len(chars) == length:
                break
    return "".join(chars)


def assert_diagram_id(diagram_id: str) -> None:
    """Reject ids that could not have been generated (and path tricks).

    Raises:
        ValidationError: If the id is malformed.
    """
    if not isinstance(diagram_id, str) or not DIAGRAM_ID_RE.fullmatch(diagram_id):
        raise ValidationError(
            f"Invalid diagram id. Expected {DIAGRAM_ID_LENGTH} chars of [0-9a-zA-Z_]"
        )


def generate_object_id() -> str:
    """Generate a short, URL-friendly object id (12 hex chars)."""
    return secrets.token_hex(6)
