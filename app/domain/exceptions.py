"""Errors raised by domain validation and key handling."""


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DomainValidationError(DomainError):
    """Raised when domain validation rules are violated (title, key prefix, labels, dates)."""


class InvalidTenantError(DomainError):
    """Raised when tenant_id is invalid (e.g. empty)."""


class InvalidKeyError(DomainValidationError):
    """Raised when a work item key does not match PREFIX-N."""


class SelfNotificationError(DomainError):
    """Raised when a notification would be addressed to the actor who caused it."""
