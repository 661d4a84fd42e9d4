"""Error taxonomy shared by the services and the HTTP layer.

Each error carries the HTTP status code it maps to, so the application
exception handler can render it without knowing the concrete type.
"""

import math


class MediaApiError(Exception):
    """Base class for errors reported to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MediaApiError):
    """Request input the caller must correct (bad content type, too large)."""

    status_code = 400


class MethodNotAllowedError(MediaApiError):
    """HTTP method not supported by the endpoint."""

    status_code = 405

    def __init__(self, message: str = "Method not allowed") -> None:
        super().__init__(message)


class RateLimitError(MediaApiError):
    """Caller submitted again before the cooldown window elapsed."""

    status_code = 429

    def __init__(self, retry_after: float) -> None:
        super().__init__(
            f"Too many requests. Please wait {math.ceil(retry_after)} seconds before posting again."
        )
        self.retry_after = retry_after


class StorageError(MediaApiError):
    """The blob store could not be reached or rejected the operation."""

    status_code = 500
