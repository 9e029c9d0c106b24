"""Invoice aggregate root.

An invoice is a bill sent from the business to a customer. It owns its line
items and payments; nothing outside this class may change them.

Invariants:
- at least one line item, all priced in the same currency
- line items, due date, tax rate and notes are editable only while DRAFT
- payments are append-only and a single payment may not exceed the balance
  (rounded to cents) that was outstanding before it
- status moves DRAFT -> SENT -> PAID and never back; PAID is terminal

Every mutator appends to an internal event buffer which command handlers
drain with ``pull_domain_events`` after saving.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable

from invoiceme.domain.events import (
    DomainEvent,
    InvoiceCreated,
    InvoicePaid,
    InvoiceSent,
    InvoiceUpdated,
    PaymentRecorded,
)
from invoiceme.domain.line_item import LineItem
from invoiceme.domain.money import Money, require_max_places, to_decimal
from invoiceme.domain.payment import Payment
from invoiceme.errors import (
    CurrencyMismatchError,
    DomainValidationError,
    InvalidStateError,
    PaymentExceedsBalanceError,
)


# Matches the invoices.tax_rate column scale
TAX_RATE_PLACES = 6


class InvoiceStatus(str, Enum):
    """Lifecycle: DRAFT -> SENT -> PAID."""

    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"


@dataclass(frozen=True, slots=True)
class InvoiceNumber:
    """Opaque, unique invoice number such as ``INV-2025-0001``."""

    value: str

    def __post_init__(self) -> None:
        if self.value is None or not str(self.value).strip():
            raise DomainValidationError("Invoice number cannot be blank")

    @classmethod
    def format(cls, year: int, sequence: int) -> InvoiceNumber:
        return cls(f"INV-{year}-{sequence:04d}")

    def __str__(self) -> str:
        return self.value


def _require_line_items(line_items: Iterable[LineItem] | None) -> tuple[LineItem, ...]:
    items = tuple(line_items or ())
    if not items:
        raise DomainValidationError("Invoice must have at least one line item")
    currencies = {item.currency for item in items}
    if len(currencies) > 1:
        raise CurrencyMismatchError(
            f"All line items must use the same currency, got {sorted(currencies)}"
        )
    return items


def _require_tax_rate(tax_rate: Decimal | int | float | str | None) -> Decimal:
    if tax_rate is None:
        raise DomainValidationError("Tax rate cannot be null")
    tax_rate = to_decimal(tax_rate)
    if tax_rate < 0:
        raise DomainValidationError("Tax rate cannot be negative")
    return require_max_places(tax_rate, TAX_RATE_PLACES, "Tax rate")


class Invoice:
    def __init__(
        self,
        *,
        id: uuid.UUID,
        customer_id: uuid.UUID,
        invoice_number: InvoiceNumber,
        issue_date: date,
        due_date: date,
        status: InvoiceStatus,
        line_items: Iterable[LineItem],
        payments: Iterable[Payment],
        notes: str | None,
        tax_rate: Decimal,
        version: int = 0,
    ) -> None:
        required = {
            "Invoice ID": id,
            "Customer ID": customer_id,
            "Invoice number": invoice_number,
            "Issue date": issue_date,
            "Due date": due_date,
            "Invoice status": status,
            "Line items": line_items,
            "Payments": payments,
        }
        for name, value in required.items():
            if value is None:
                raise DomainValidationError(f"{name} cannot be null")

        self._id = id
        self._customer_id = customer_id
        self._invoice_number = invoice_number
        self._issue_date = issue_date
        self._due_date = due_date
        self._status = InvoiceStatus(status)
        self._line_items: list[LineItem] = list(line_items)
        self._payments: list[Payment] = list(payments)
        self._notes = notes
        self._tax_rate = _require_tax_rate(tax_rate)
        self._domain_events: list[DomainEvent] = []

        # Set by the repository after each successful save; 0 means never saved.
        self.version = version

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        *,
        id: uuid.UUID,
        customer_id: uuid.UUID,
        invoice_number: InvoiceNumber,
        issue_date: date,
        due_date: date,
        line_items: Iterable[LineItem],
        notes: str | None = None,
        tax_rate: Decimal | int | float | str = Decimal("0"),
    ) -> Invoice:
        """Start a new DRAFT invoice and raise ``InvoiceCreated``."""
        invoice = cls(
            id=id,
            customer_id=customer_id,
            invoice_number=invoice_number,
            issue_date=issue_date,
            due_date=due_date,
            status=InvoiceStatus.DRAFT,
            line_items=_require_line_items(line_items),
            payments=(),
            notes=notes,
            tax_rate=tax_rate,
        )
        invoice._record(
            InvoiceCreated(
                invoice_id=invoice.id,
                customer_id=invoice.customer_id,
                invoice_number=str(invoice.invoice_number),
            )
        )
        return invoice

    @classmethod
    def reconstruct(
        cls,
        *,
        id: uuid.UUID,
        customer_id: uuid.UUID,
        invoice_number: InvoiceNumber,
        issue_date: date,
        due_date: date,
        status: InvoiceStatus,
        line_items: Iterable[LineItem],
        payments: Iterable[Payment],
        notes: str | None,
        tax_rate: Decimal,
        version: int,
    ) -> Invoice:
        """Rebuild an invoice from stored state. Raises no events."""
        return cls(
            id=id,
            customer_id=customer_id,
            invoice_number=invoice_number,
            issue_date=issue_date,
            due_date=due_date,
            status=status,
            line_items=line_items,
            payments=payments,
            notes=notes,
            tax_rate=tax_rate,
            version=version,
        )

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def _require_draft(self, action: str) -> None:
        if self._status is not InvoiceStatus.DRAFT:
            raise InvalidStateError(
                f"Cannot {action} on invoice with status: {self._status.value}"
            )

    def _record(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def update_line_items(self, line_items: Iterable[LineItem]) -> None:
        items = _require_line_items(line_items)
        self._require_draft("update line items")

        self._line_items = list(items)
        self._record(InvoiceUpdated(invoice_id=self._id))

    def update_due_date(self, due_date: date) -> None:
        if due_date is None:
            raise DomainValidationError("Due date cannot be null")
        self._require_draft("update due date")

        self._due_date = due_date
        self._record(InvoiceUpdated(invoice_id=self._id))

    def update_tax_rate(self, tax_rate: Decimal | int | float | str) -> None:
        tax_rate = _require_tax_rate(tax_rate)
        self._require_draft("update tax rate")

        self._tax_rate = tax_rate
        self._record(InvoiceUpdated(invoice_id=self._id))

    def update_notes(self, notes: str | None) -> None:
        self._require_draft("update notes")

        self._notes = notes
        self._record(InvoiceUpdated(invoice_id=self._id))

    def send(self) -> None:
        if self._status is not InvoiceStatus.DRAFT:
            raise InvalidStateError(
                f"Can only send invoices with DRAFT status. Current status: {self._status.value}"
            )

        self._status = InvoiceStatus.SENT
        self._record(
            InvoiceSent(
                invoice_id=self._id,
                customer_id=self._customer_id,
                invoice_number=str(self._invoice_number),
            )
        )

    def record_payment(self, payment: Payment) -> None:
        """Apply a payment and mark the invoice PAID once nothing is owed.

        Every Money is rounded to cents when it is built, so the balance
        compared here is already the rounded amount shown to the customer and
        paying exactly that amount always settles the invoice. Payments are
        accepted on DRAFT invoices too.
        """
        if payment is None:
            raise DomainValidationError("Payment cannot be null")
        if self._status is InvoiceStatus.PAID:
            raise InvalidStateError("Cannot record payment on already paid invoice")

        balance = self.calculate_balance()
        if payment.amount.is_greater_than(balance):
            raise PaymentExceedsBalanceError(
                f"Payment amount {payment.amount} exceeds outstanding balance {balance}"
            )

        self._payments.append(payment)
        self._record(
            PaymentRecorded(
                invoice_id=self._id,
                payment_id=payment.id,
                amount=payment.amount.amount,
                currency=payment.amount.currency,
                method=payment.method.value,
            )
        )

        if self.calculate_balance().is_effectively_zero():
            self._status = InvoiceStatus.PAID
            self._record(
                InvoicePaid(
                    invoice_id=self._id,
                    customer_id=self._customer_id,
                    invoice_number=str(self._invoice_number),
                )
            )

    def pull_domain_events(self) -> list[DomainEvent]:
        """Return the buffered events and clear the buffer."""
        events, self._domain_events = self._domain_events, []
        return events

    # ------------------------------------------------------------------
    # Derived amounts (always recomputed)
    # ------------------------------------------------------------------

    @property
    def currency(self) -> str:
        return self._line_items[0].currency

    def calculate_subtotal(self) -> Money:
        subtotal = Money.zero(self.currency)
        for item in self._line_items:
            subtotal = subtotal.add(item.subtotal)
        return subtotal

    def calculate_tax(self) -> Money:
        return self.calculate_subtotal().multiply(self._tax_rate)

    def calculate_total(self) -> Money:
        return self.calculate_subtotal().add(self.calculate_tax())

    def calculate_amount_paid(self) -> Money:
        paid = Money.zero(self.currency)
        for payment in self._payments:
            paid = paid.add(payment.amount)
        return paid

    def calculate_balance(self) -> Money:
        return self.calculate_total().subtract(self.calculate_amount_paid())

    def is_overdue(self, as_of: date) -> bool:
        return self._status is not InvoiceStatus.PAID and self._due_date < as_of

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def id(self) -> uuid.UUID:
        return self._id

    @property
    def customer_id(self) -> uuid.UUID:
        return self._customer_id

    @property
    def invoice_number(self) -> InvoiceNumber:
        return self._invoice_number

    @property
    def issue_date(self) -> date:
        return self._issue_date

    @property
    def due_date(self) -> date:
        return self._due_date

    @property
    def status(self) -> InvoiceStatus:
        return self._status

    @property
    def line_items(self) -> tuple[LineItem, ...]:
        return tuple(self._line_items)

    @property
    def payments(self) -> tuple[Payment, ...]:
        return tuple(self._payments)

    @property
    def notes(self) -> str | None:
        return self._notes

    @property
    def tax_rate(self) -> Decimal:
        return self._tax_rate

    def __repr__(self) -> str:
        return (
            f"Invoice(id={self._id}, number={self._invoice_number}, "
            f"status={self._status.value}, version={self.version})"
        )
