class ConfigError(RuntimeError):
    """Configuration is missing or malformed."""


class StartupError(RuntimeError):
    """The schema initializer failed and startup is set to fail fast."""


class MessageValidationError(ValueError):
    """A required request field is missing or empty."""

    def __init__(self, message: str = 'The "text" field is required.') -> None:
        super().__init__(message)
        self.message = message


class StorageError(Exception):
    """
    Any failure talking to the database.

    `message` is the generic text returned to callers; the underlying
    driver error stays on `__cause__` and in the server logs.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
