"""Custom domain exceptions for the application."""

# Stable, machine-readable error codes for API consumers.
NOT_FOUND = "NOT_FOUND"
DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"
VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_STATE = "INVALID_STATE"
PAYMENT_EXCEEDS_BALANCE = "PAYMENT_EXCEEDS_BALANCE"
CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"


class DomainError(Exception):
    """Base exception for domain/business logic errors."""

    pass


class NotFoundError(DomainError):
    """Raised when a requested resource does not exist."""

    pass


class DuplicateResourceError(DomainError):
    """Raised when attempting to create or update a resource that would violate a uniqueness constraint."""

    pass


class DomainValidationError(DomainError):
    """Raised when input to a constructor or mutator is malformed (blank description, negative tax rate, ...)."""

    pass


class InvalidStateError(DomainError):
    """Raised when an operation is not allowed in the invoice's current status (editing a SENT invoice, re-sending, ...)."""

    pass


class PaymentExceedsBalanceError(DomainError):
    """Raised when a payment amount is larger than the outstanding balance."""

    pass


class CurrencyMismatchError(DomainError):
    """Raised when arithmetic or comparison is attempted across different currencies."""

    pass


class OptimisticLockError(DomainError):
    """Raised when an aggregate was modified by someone else since it was loaded. Safe to retry."""

    pass
