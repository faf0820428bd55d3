from __future__ import annotations

from fastapi import HTTPException, status

from apps.api.core.errors import (
    ConcurrencyConflictError,
    InvalidRequestError,
    InvalidStatusTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    StorageError,
)

_STATUS_BY_ERROR: tuple[tuple[type[ServiceError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (InvalidRequestError, status.HTTP_400_BAD_REQUEST),
    (InvalidStatusTransitionError, status.HTTP_409_CONFLICT),
    (ConcurrencyConflictError, status.HTTP_409_CONFLICT),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_error(exc: ServiceError) -> HTTPException:
    """Translate a service error into the response the caller sees."""

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            headers = {"Retry-After": "1"} if status_code == status.HTTP_503_SERVICE_UNAVAILABLE else None
            return HTTPException(status_code=status_code, detail=str(exc), headers=headers)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
