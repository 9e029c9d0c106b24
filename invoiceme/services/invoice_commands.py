"""Invoice command handlers.

Each handler is one unit of work: load the aggregate (or check preconditions
for creation), call exactly one aggregate operation, save, then publish the
events the aggregate raised. Results are plain ids, never the aggregate.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Sequence

from invoiceme.domain.events import DomainEvent, InvoiceUpdated
from invoiceme.domain.invoice import Invoice
from invoiceme.domain.line_item import LineItem
from invoiceme.domain.money import DEFAULT_CURRENCY, Money
from invoiceme.domain.payment import Payment, PaymentMethod
from invoiceme.domain.ports import (
    CustomerDirectory,
    DomainEventPublisher,
    InvoiceNumberSequence,
    InvoiceRepository,
)
from invoiceme.errors import NotFoundError

logger = logging.getLogger(__name__)


# ============================================================================
# COMMANDS
# ============================================================================


@dataclass(frozen=True)
class LineItemInput:
    description: str
    quantity: Decimal
    unit_price_amount: Decimal
    unit_price_currency: str = DEFAULT_CURRENCY  # ISO 4217


@dataclass(frozen=True)
class CreateInvoiceCommand:
    customer_id: uuid.UUID
    issue_date: date
    due_date: date
    line_items: Sequence[LineItemInput]
    tax_rate: Decimal = Decimal("0")  # e.g. 0.10 for 10%
    notes: str | None = None
    invoice_id: uuid.UUID | None = None


@dataclass(frozen=True)
class UpdateInvoiceCommand:
    invoice_id: uuid.UUID
    line_items: Sequence[LineItemInput]
    due_date: date
    tax_rate: Decimal
    notes: str | None = None


@dataclass(frozen=True)
class SendInvoiceCommand:
    invoice_id: uuid.UUID


@dataclass(frozen=True)
class RecordPaymentCommand:
    invoice_id: uuid.UUID
    amount: Decimal
    payment_date: date
    method: PaymentMethod | str
    currency: str = DEFAULT_CURRENCY
    reference: str | None = None
    payment_id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(frozen=True)
class DeleteInvoiceCommand:
    invoice_id: uuid.UUID


def to_line_items(inputs: Sequence[LineItemInput]) -> list[LineItem]:
    return [
        LineItem.of(
            item.description,
            item.quantity,
            Money.of(item.unit_price_amount, item.unit_price_currency),
        )
        for item in inputs or ()
    ]


# ============================================================================
# HANDLERS
# ============================================================================


class _InvoiceCommandHandler:
    def __init__(self, repository: InvoiceRepository, publisher: DomainEventPublisher):
        self.repository = repository
        self.publisher = publisher

    def _load(self, invoice_id: uuid.UUID) -> Invoice:
        invoice = self.repository.find_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice not found")
        return invoice

    def _publish(self, invoice: Invoice, events: list[DomainEvent]) -> None:
        """Best effort: the change is already saved, so failures are only logged."""
        if not events:
            return
        try:
            self.publisher.publish(events)
        except Exception:
            logger.exception(
                "Failed to publish %d domain event(s) for invoice %s",
                len(events),
                invoice.id,
            )

    def _commit(self, invoice: Invoice) -> None:
        self.repository.save(invoice)
        self._publish(invoice, invoice.pull_domain_events())


class CreateInvoiceHandler(_InvoiceCommandHandler):
    """Create a new invoice in DRAFT status."""

    def __init__(
        self,
        repository: InvoiceRepository,
        publisher: DomainEventPublisher,
        customers: CustomerDirectory,
        invoice_numbers: InvoiceNumberSequence,
    ):
        super().__init__(repository, publisher)
        self.customers = customers
        self.invoice_numbers = invoice_numbers

    def handle(self, command: CreateInvoiceCommand) -> uuid.UUID:
        if not self.customers.exists(command.customer_id):
            raise NotFoundError("Customer not found")

        line_items = to_line_items(command.line_items)
        invoice = Invoice.create(
            id=command.invoice_id or uuid.uuid4(),
            customer_id=command.customer_id,
            invoice_number=self.invoice_numbers.next_number(command.issue_date),
            issue_date=command.issue_date,
            due_date=command.due_date,
            line_items=line_items,
            notes=command.notes,
            tax_rate=command.tax_rate,
        )

        self._commit(invoice)
        logger.info("Created invoice %s (%s)", invoice.id, invoice.invoice_number)
        return invoice.id


class UpdateInvoiceHandler(_InvoiceCommandHandler):
    """
    Replace the editable fields of a DRAFT invoice.

    The aggregate raises one InvoiceUpdated per field it changes; this
    handler publishes a single InvoiceUpdated for the whole command and
    forwards any other events unchanged.
    """

    def handle(self, command: UpdateInvoiceCommand) -> None:
        invoice = self._load(command.invoice_id)

        invoice.update_line_items(to_line_items(command.line_items))
        invoice.update_due_date(command.due_date)
        invoice.update_tax_rate(command.tax_rate)
        invoice.update_notes(command.notes)

        self.repository.save(invoice)
        self._publish(invoice, collapse_updates(invoice.pull_domain_events()))
        logger.info("Updated invoice %s", invoice.id)


def collapse_updates(events: list[DomainEvent]) -> list[DomainEvent]:
    """Keep the first InvoiceUpdated, drop the rest, preserve everything else in order."""
    collapsed: list[DomainEvent] = []
    seen_update = False
    for event in events:
        if isinstance(event, InvoiceUpdated):
            if seen_update:
                continue
            seen_update = True
        collapsed.append(event)
    return collapsed


class SendInvoiceHandler(_InvoiceCommandHandler):
    """Move a DRAFT invoice to SENT."""

    def handle(self, command: SendInvoiceCommand) -> None:
        invoice = self._load(command.invoice_id)
        invoice.send()
        self._commit(invoice)
        logger.info("Sent invoice %s", invoice.id)


class RecordPaymentHandler(_InvoiceCommandHandler):
    """Record a payment; the invoice becomes PAID when the balance is cleared."""

    def handle(self, command: RecordPaymentCommand) -> uuid.UUID:
        invoice = self._load(command.invoice_id)

        payment = Payment(
            id=command.payment_id,
            amount=Money.of(command.amount, command.currency),
            payment_date=command.payment_date,
            method=PaymentMethod.parse(command.method),
            reference=command.reference,
        )

        # Payments compare by id: a retried command is recognised and ignored.
        if payment in invoice.payments:
            logger.info(
                "Payment %s already recorded on invoice %s, ignoring", payment.id, invoice.id
            )
            return payment.id

        invoice.record_payment(payment)
        self._commit(invoice)
        logger.info(
            "Recorded payment %s of %s on invoice %s (status %s)",
            payment.id,
            payment.amount,
            invoice.id,
            invoice.status.value,
        )
        return payment.id


class DeleteInvoiceHandler(_InvoiceCommandHandler):
    """Remove an invoice. Deletion is a storage operation and raises no events."""

    def handle(self, command: DeleteInvoiceCommand) -> None:
        invoice = self._load(command.invoice_id)
        self.repository.delete(invoice.id)
        logger.info("Deleted invoice %s", invoice.id)
