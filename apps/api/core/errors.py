"""Domain errors raised by the service layer and mapped to HTTP at the routes."""

from __future__ import annotations


class ServiceError(RuntimeError):
    """Base error for complaint desk service issues."""


class NotFoundError(ServiceError):
    """Raised when a referenced record does not exist."""


class ComplaintNotFoundError(NotFoundError):
    """Raised when an operation targets a non-existent complaint."""


class UserNotFoundError(NotFoundError):
    """Raised when a referenced user does not exist."""


class DepartmentNotFoundError(NotFoundError):
    """Raised when a referenced department does not exist."""


class NatureTypeNotFoundError(NotFoundError):
    """Raised when a referenced nature type does not exist."""


class PermissionDeniedError(ServiceError):
    """Raised when the acting user lacks rights for the requested operation."""


class InvalidRequestError(ServiceError):
    """Raised when a request is missing data or references unusable records."""


class AssigneeNotEligibleError(InvalidRequestError):
    """Raised when a reassignment target is inactive or outside the allowed set."""


class DuplicateRecordError(InvalidRequestError):
    """Raised when a unique directory field is already taken."""


class InvalidStatusTransitionError(ServiceError):
    """Raised when attempting to move to a status the state machine forbids."""


class StatusUnchangedError(InvalidStatusTransitionError):
    """Raised when the requested status equals the current one."""


class ConcurrencyConflictError(ServiceError):
    """Raised when the stored complaint changed since the caller read it."""


class StorageError(ServiceError):
    """Raised when the persistence layer fails; the request may be retried."""
