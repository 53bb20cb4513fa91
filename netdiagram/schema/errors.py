"""Configuration-related exceptions.

Every exception here is fatal at startup: a malformed configuration has no
degraded mode.
"""


class ConfigurationError(Exception):
    """Raised when the configuration cannot be used."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        self.errors = errors or []
        super().__init__(message)


class SchemaLoadError(ConfigurationError):
    """Raised when a YAML file cannot be loaded."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class SchemaValidationError(ConfigurationError):
    """Raised when a configuration file fails schema validation."""
