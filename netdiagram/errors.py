"""Per-request exceptions.

These are recoverable at the request boundary, unlike configuration errors
(see ``netdiagram.schema.errors``), which abort startup.
"""


class DiagramError(Exception):
    """Base exception for errors raised while serving one request."""


class ValidationError(DiagramError):
    """Raised when a command or its payload is invalid.

    Store and document are left unmodified.
    """


class NotFoundError(DiagramError):
    """Raised when a referenced diagram or domain object does not exist."""


class ConsistencyError(DiagramError):
    """Raised when persisted domain state is corrupt.

    The whole diagram's domain state is treated as unusable.
    """

    def __init__(self, message: str, diagram_id: str | None = None):
        self.diagram_id = diagram_id
        super().__init__(message)


class DocumentIntegrityError(DiagramError):
    """Raised when anchor or insertion markers are missing or out of order.

    Signals that the domain store and the document have diverged.
    """

    def __init__(self, message: str, document_id: str | None = None):
        self.document_id = document_id
        super().__init__(message)
