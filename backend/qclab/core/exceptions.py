"""Service-layer exceptions mapped to HTTP responses by the error handlers."""

from fastapi import status


class ServiceError(Exception):
    """Base class for expected, client-visible failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "SERVICE_ERROR"

    def __init__(self, message: str, details: dict | list | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class UnauthorizedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized", details: dict | list | None = None) -> None:
        super().__init__(message, details)


class PermissionDeniedError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden", details: dict | list | None = None) -> None:
        super().__init__(message, details)


class ValidationFailed(ServiceError, ValueError):
    """Missing or malformed input detected before touching the database."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class UpstreamError(ServiceError):
    """The backing store rejected or failed an operation.

    ``details`` carries the store's own message; nothing else leaks.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "UPSTREAM_ERROR"
