"""Exceptions raised by the core layer.

The CLI turns these into user-facing messages and exit codes.
"""


class StateError(ValueError):
    """Raised when a desired-state document is invalid."""


class RegistryConfigError(RuntimeError):
    """Raised when registry connection settings are missing or invalid."""


class RegistryError(RuntimeError):
    """
    Raised when the schema registry answers with an error.

    Attributes:
        status_code: HTTP status code of the failed response.
        error_code: Registry-specific error code (e.g. 40401), if present.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
