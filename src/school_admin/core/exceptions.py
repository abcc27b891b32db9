class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist in the caller's school."""


class ConflictError(DomainError):
    """Raised when a record would duplicate an existing one."""


class AuthorizationError(DomainError):
    """Raised when a school setting forbids an action."""
