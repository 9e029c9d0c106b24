"""Error body returned for every DomainError."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of 4xx responses raised from invoiceme.errors."""

    detail: str = Field(..., description="Human-readable error message")
    code: str = Field(
        ...,
        description="Machine-readable error code, e.g. INVALID_STATE or PAYMENT_EXCEEDS_BALANCE",
    )
