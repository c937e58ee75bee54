"""
Custom exceptions for the Management API layer.

Exception Hierarchy:
    SpacemigError (base)
    ├── TransportError (non-2xx response or network failure)
    └── ConfigurationError (missing credentials or space id)

A slug lookup that finds nothing is not an error: it returns None.

Example:
    >>> from spacemig.core.api.exceptions import TransportError
    >>> try:
    ...     raise TransportError("Failed to create story", status_code=422)
    ... except TransportError as e:
    ...     print(e.status_code)
    422
"""


class SpacemigError(Exception):
    """
    Base exception for all spacemig errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        """
        Initialize an error with message and context.

        Args:
            message: Human-readable error message
            **context: Additional context as keyword arguments
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class TransportError(SpacemigError):
    """
    Exception raised when a remote call fails.

    Covers both non-2xx responses (``status_code`` is set) and network
    level failures such as timeouts or refused connections
    (``status_code`` is None).

    Attributes:
        status_code: HTTP status code, if a response was received
        method: HTTP method of the failed request
        url: URL of the failed request
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        method: str | None = None,
        url: str | None = None,
        **context: object,
    ) -> None:
        super().__init__(message, status_code=status_code, method=method, url=url, **context)
        self.status_code = status_code
        self.method = method
        self.url = url

    def __str__(self) -> str:
        """Return string representation with status code when known."""
        if self.status_code is not None:
            return f"{self.status_code} - {self.message}"
        return self.message


class ConfigurationError(SpacemigError):
    """
    Exception raised when an operation cannot start.

    Raised for missing credentials or space ids, always before any remote
    call is attempted. This is the only error allowed to reject a whole
    copy or sync call.
    """


__all__ = [
    "ConfigurationError",
    "SpacemigError",
    "TransportError",
]
