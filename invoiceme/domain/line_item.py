from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from invoiceme.domain.money import Money, require_max_places, to_decimal
from invoiceme.errors import DomainValidationError

# Matches the line_items.quantity column scale
QUANTITY_PLACES = 6


@dataclass(frozen=True, slots=True)
class LineItem:
    """A billable line on an invoice.

    Line items are never edited in place; the invoice replaces its whole list
    instead. Every construction checks:

    - description must not be blank
    - quantity must be positive, with at most six decimal places
    - unit price must be positive

    The subtotal is always derived here and cannot be passed in.
    """

    description: str
    quantity: Decimal
    unit_price: Money
    subtotal: Money = field(init=False, compare=False)

    def __post_init__(self) -> None:
        if self.description is None or not str(self.description).strip():
            raise DomainValidationError("Line item description cannot be blank")
        if self.quantity is None:
            raise DomainValidationError("Line item quantity must be positive")
        quantity = to_decimal(self.quantity)
        if quantity <= 0:
            raise DomainValidationError("Line item quantity must be positive")
        require_max_places(quantity, QUANTITY_PLACES, "Line item quantity")
        if self.unit_price is None:
            raise DomainValidationError("Line item unit price is required")
        if self.unit_price.is_negative() or self.unit_price.is_zero():
            raise DomainValidationError("Line item unit price must be positive")

        object.__setattr__(self, "quantity", quantity)
        object.__setattr__(self, "subtotal", self.unit_price.multiply(quantity))

    @classmethod
    def of(
        cls,
        description: str,
        quantity: Decimal | int | float | str,
        unit_price: Money,
    ) -> LineItem:
        return cls(description=description, quantity=quantity, unit_price=unit_price)

    @property
    def currency(self) -> str:
        return self.unit_price.currency
