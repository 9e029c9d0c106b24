from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from invoiceme.domain.money import Money
from invoiceme.errors import DomainValidationError


class PaymentMethod(str, Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    CHECK = "CHECK"
    WIRE_TRANSFER = "WIRE_TRANSFER"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: PaymentMethod | str) -> PaymentMethod:
        """Accept enum members or names like ``"bank transfer"`` / ``"BANK_TRANSFER"``."""
        if isinstance(value, cls):
            return value
        if value is None:
            raise DomainValidationError("Payment method is required")
        normalized = str(value).strip().upper().replace(" ", "_").replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise DomainValidationError(f"Unknown payment method: {value!r}")


@dataclass(frozen=True, slots=True, eq=False)
class Payment:
    """Funds applied against an invoice.

    Two payments are the same payment when their ids match, whatever the other
    fields say. Callers rely on this to spot a payment being applied twice.
    """

    id: uuid.UUID
    amount: Money
    payment_date: date
    method: PaymentMethod
    reference: str | None = field(default=None)

    def __post_init__(self) -> None:
        if self.id is None:
            raise DomainValidationError("Payment ID cannot be null")
        if self.amount is None:
            raise DomainValidationError("Payment amount cannot be null")
        if self.amount.is_negative() or self.amount.is_zero():
            raise DomainValidationError("Payment amount must be positive")
        if self.payment_date is None:
            raise DomainValidationError("Payment date cannot be null")
        object.__setattr__(self, "method", PaymentMethod.parse(self.method))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Payment):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
