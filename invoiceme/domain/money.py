from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from invoiceme.errors import CurrencyMismatchError, DomainValidationError

DEFAULT_CURRENCY = "USD"

_CENT = Decimal("0.01")
_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a user-supplied number to Decimal.

    Floats go through ``str()`` so ``0.1`` becomes ``Decimal("0.1")`` and not
    its binary expansion.
    """
    if isinstance(value, bool):
        raise DomainValidationError("Amount must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            raise DomainValidationError(f"Invalid numeric value: {value!r}")
    if not result.is_finite():
        raise DomainValidationError(f"Invalid numeric value: {value!r}")
    return result


def round_half_up(amount: Decimal) -> Decimal:
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def decimal_places(value: Decimal) -> int:
    """Significant digits after the point: 0.0800 has 2, 100 has 0."""
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent)


def require_max_places(value: Decimal, places: int, name: str) -> Decimal:
    if decimal_places(value) > places:
        raise DomainValidationError(
            f"{name} supports at most {places} decimal places, got {value}"
        )
    return value


@dataclass(frozen=True, slots=True)
class Money:
    """Amount of money in a single currency.

    The amount is always rounded to cents (half-up) on construction, so every
    operation returns a value with exactly two decimal places.
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if self.currency is None or not _CURRENCY_CODE.match(str(self.currency)):
            raise DomainValidationError(f"Invalid currency code: {self.currency!r}")
        object.__setattr__(self, "amount", round_half_up(to_decimal(self.amount)))

    @classmethod
    def of(
        cls, amount: Decimal | int | float | str, currency: str = DEFAULT_CURRENCY
    ) -> Money:
        return cls(amount=to_decimal(amount), currency=currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Money:
        return cls(amount=Decimal("0"), currency=currency)

    def _require_same_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                f"Cannot {operation} money with different currencies: "
                f"{self.currency} and {other.currency}"
            )

    def add(self, other: Money) -> Money:
        self._require_same_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: Money) -> Money:
        self._require_same_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, multiplier: Decimal | int | float | str) -> Money:
        return Money(self.amount * to_decimal(multiplier), self.currency)

    def is_greater_than(self, other: Money) -> bool:
        self._require_same_currency(other, "compare")
        return self.amount > other.amount

    def is_less_than(self, other: Money) -> bool:
        self._require_same_currency(other, "compare")
        return self.amount < other.amount

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_effectively_zero(self) -> bool:
        # Anything under one cent, negative included, counts as settled.
        return self.amount < _CENT

    def is_negative(self) -> bool:
        return self.amount < 0

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"
