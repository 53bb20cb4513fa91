"""Analysis exceptions."""

from ..schema.errors import ConfigurationError

# Root key used for the analysis spanning every root.
GLOBAL_ROOT_KEY = "*"


class DependencyCycleError(ConfigurationError):
    """Raised when entity types depend on each other cyclically.

    ``root_key`` is the root the cycle was found in, or ``GLOBAL_ROOT_KEY``
    for a cycle that only closes across roots.
    """

    def __init__(self, root_key: str, nodes: list[str], cycle: list[str] | None = None):
        self.root_key = root_key
        self.nodes = nodes
        self.cycle = cycle or []
        message = f"Dependency cycle detected {self.scope}: {', '.join(nodes)}"
        if self.cycle:
            message += f" (cycle: {' -> '.join(self.cycle + self.cycle[:1])})"
        super().__init__(message)

    @property
    def is_global(self) -> bool:
        return self.root_key == GLOBAL_ROOT_KEY

    @property
    def scope(self) -> str:
        return "across roots" if self.is_global else f"for root '{self.root_key}'"
