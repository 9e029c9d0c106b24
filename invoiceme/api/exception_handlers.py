"""Global exception handlers that map domain exceptions to HTTP responses."""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from invoiceme.errors import (
    CONCURRENT_MODIFICATION,
    CURRENCY_MISMATCH,
    DUPLICATE_RESOURCE,
    INVALID_STATE,
    NOT_FOUND,
    PAYMENT_EXCEEDS_BALANCE,
    VALIDATION_ERROR,
    CurrencyMismatchError,
    DomainValidationError,
    DuplicateResourceError,
    InvalidStateError,
    NotFoundError,
    OptimisticLockError,
    PaymentExceedsBalanceError,
)
from invoiceme.schemas.error import ErrorResponse


def _error_response(status_code: int, detail: str, code: str) -> JSONResponse:
    """Return a standardized error response with detail and machine-readable code."""
    body = ErrorResponse(detail=detail, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def domain_validation_error_handler(
    _request: Request, exc: DomainValidationError
) -> JSONResponse:
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        str(exc),
        VALIDATION_ERROR,
    )


def currency_mismatch_error_handler(
    _request: Request, exc: CurrencyMismatchError
) -> JSONResponse:
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        str(exc),
        CURRENCY_MISMATCH,
    )


def not_found_error_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(
        status.HTTP_404_NOT_FOUND,
        str(exc),
        NOT_FOUND,
    )


def duplicate_resource_error_handler(
    _request: Request, exc: DuplicateResourceError
) -> JSONResponse:
    return _error_response(
        status.HTTP_409_CONFLICT,
        str(exc),
        DUPLICATE_RESOURCE,
    )


def invalid_state_error_handler(
    _request: Request, exc: InvalidStateError
) -> JSONResponse:
    return _error_response(
        status.HTTP_409_CONFLICT,
        str(exc),
        INVALID_STATE,
    )


def optimistic_lock_error_handler(
    _request: Request, exc: OptimisticLockError
) -> JSONResponse:
    return _error_response(
        status.HTTP_409_CONFLICT,
        str(exc),
        CONCURRENT_MODIFICATION,
    )


def payment_exceeds_balance_error_handler(
    _request: Request, exc: PaymentExceedsBalanceError
) -> JSONResponse:
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        str(exc),
        PAYMENT_EXCEEDS_BALANCE,
    )


def register_exception_handlers(app):
    """Register domain exception handlers on the FastAPI app."""
    app.add_exception_handler(DomainValidationError, domain_validation_error_handler)
    app.add_exception_handler(CurrencyMismatchError, currency_mismatch_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(DuplicateResourceError, duplicate_resource_error_handler)
    app.add_exception_handler(InvalidStateError, invalid_state_error_handler)
    app.add_exception_handler(OptimisticLockError, optimistic_lock_error_handler)
    app.add_exception_handler(
        PaymentExceedsBalanceError, payment_exceeds_balance_error_handler
    )
