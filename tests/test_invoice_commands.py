import logging
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session, sessionmaker

from conftest import FailingEventPublisher
from invoiceme.db.models.invoice import Invoice as InvoiceModel
from invoiceme.db.models.invoice import InvoicePayment as PaymentModel
from invoiceme.db.models.invoice_number_sequence import (
    InvoiceNumberSequence as InvoiceNumberSequenceModel,
)
from invoiceme.domain.events import InvoiceCreated, InvoiceUpdated
from invoiceme.domain.invoice import InvoiceStatus
from invoiceme.domain.money import Money
from invoiceme.errors import InvalidStateError, NotFoundError, OptimisticLockError
from invoiceme.repositories.customer import CustomerDirectory
from invoiceme.repositories.invoice import SqlAlchemyInvoiceRepository
from invoiceme.repositories.invoice_number import (
    SqlAlchemyInvoiceNumberSequence,
    next_invoice_number,
)
from invoiceme.services.invoice_commands import (
    CreateInvoiceCommand,
    CreateInvoiceHandler,
    DeleteInvoiceCommand,
    DeleteInvoiceHandler,
    LineItemInput,
    RecordPaymentCommand,
    RecordPaymentHandler,
    SendInvoiceCommand,
    SendInvoiceHandler,
    UpdateInvoiceCommand,
    UpdateInvoiceHandler,
    collapse_updates,
)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def repository(db: Session) -> SqlAlchemyInvoiceRepository:
    return SqlAlchemyInvoiceRepository(db)


@pytest.fixture(scope="function")
def create_handler(db: Session, repository, publisher) -> CreateInvoiceHandler:
    return CreateInvoiceHandler(
        repository=repository,
        publisher=publisher,
        customers=CustomerDirectory(db),
        invoice_numbers=SqlAlchemyInvoiceNumberSequence(db),
    )


def create_command(customer_id, issue_date=date(2025, 1, 15), **overrides):
    values = dict(
        customer_id=customer_id,
        issue_date=issue_date,
        due_date=date(2025, 2, 14),
        line_items=[LineItemInput("Consulting", Decimal("2"), Decimal("100.00"))],
        tax_rate=Decimal("0.10"),
        notes="Net 30",
    )
    values.update(overrides)
    return CreateInvoiceCommand(**values)


@pytest.fixture(scope="function")
def invoice_id(create_handler, customer, publisher) -> uuid.UUID:
    """A persisted DRAFT invoice for 220.00 USD; the publisher starts empty."""
    invoice_id = create_handler.handle(create_command(customer.id))
    publisher.batches.clear()
    return invoice_id


@pytest.fixture(scope="function")
def sent_invoice_id(invoice_id, repository, publisher) -> uuid.UUID:
    SendInvoiceHandler(repository, publisher).handle(SendInvoiceCommand(invoice_id))
    publisher.batches.clear()
    return invoice_id


def payment_command(invoice_id, amount="220.00", **overrides):
    values = dict(
        invoice_id=invoice_id,
        amount=Decimal(amount),
        payment_date=date(2025, 1, 20),
        method="BANK_TRANSFER",
    )
    values.update(overrides)
    return RecordPaymentCommand(**values)


# ============================================================================
# CREATE
# ============================================================================


def test_create_invoice_persists_and_publishes(create_handler, repository, customer, publisher):
    """Creating an invoice stores it as DRAFT and publishes InvoiceCreated."""
    invoice_id = create_handler.handle(create_command(customer.id))

    invoice = repository.find_by_id(invoice_id)
    assert invoice is not None
    assert invoice.status is InvoiceStatus.DRAFT
    assert invoice.calculate_total() == Money.of("220.00")
    assert invoice.notes == "Net 30"
    assert invoice.version == 1

    assert len(publisher.batches) == 1
    (event,) = publisher.events
    assert isinstance(event, InvoiceCreated)
    assert event.invoice_id == invoice_id
    assert event.customer_id == customer.id


def test_create_invoice_uses_given_id(create_handler, customer):
    wanted = uuid.uuid4()
    assert create_handler.handle(create_command(customer.id, invoice_id=wanted)) == wanted


def test_create_invoice_unknown_customer(create_handler, publisher, db: Session):
    """An unknown customer is NotFound and nothing is stored or published."""
    with pytest.raises(NotFoundError, match="Customer not found"):
        create_handler.handle(create_command(uuid.uuid4()))

    assert publisher.batches == []
    assert db.query(InvoiceModel).count() == 0


def test_invoice_numbers_follow_yearly_sequence(create_handler, repository, customer):
    """Numbers run INV-YYYY-0001, 0002, ... and restart with each year."""
    first = create_handler.handle(create_command(customer.id, issue_date=date(2025, 1, 1)))
    second = create_handler.handle(create_command(customer.id, issue_date=date(2025, 6, 1)))
    next_year = create_handler.handle(create_command(customer.id, issue_date=date(2026, 1, 1)))

    assert str(repository.find_by_id(first).invoice_number) == "INV-2025-0001"
    assert str(repository.find_by_id(second).invoice_number) == "INV-2025-0002"
    assert str(repository.find_by_id(next_year).invoice_number) == "INV-2026-0001"


def test_fine_tax_rate_and_quantity_survive_reload(create_handler, repository, customer):
    """Stored rates and quantities keep their places, so reloaded totals match."""
    invoice_id = create_handler.handle(
        create_command(
            customer.id,
            line_items=[
                LineItemInput("Licence", Decimal("1"), Decimal("1000.00")),
                LineItemInput("Metered API", Decimal("1.00005"), Decimal("1000.00")),
            ],
            tax_rate=Decimal("0.08875"),
        )
    )

    reloaded = repository.find_by_id(invoice_id)

    assert reloaded.tax_rate == Decimal("0.08875")
    assert reloaded.line_items[1].quantity == Decimal("1.00005")
    assert reloaded.line_items[1].subtotal == Money.of("1000.05")
    assert reloaded.calculate_subtotal() == Money.of("2000.05")
    assert reloaded.calculate_tax() == Money.of("177.50")
    assert reloaded.calculate_total() == Money.of("2177.55")


def test_first_number_of_year_race_raises_optimistic_lock_error(db: Session, monkeypatch):
    """Another session creating the year's counter first is reported, not a raw IntegrityError."""
    other_session = sessionmaker(bind=db.get_bind())()
    try:
        other_session.add(InvoiceNumberSequenceModel(year=2025, last_value=1))
        other_session.commit()
    finally:
        other_session.close()

    # Our session read the counter before the other one committed it.
    monkeypatch.setattr(db, "get", lambda *args, **kwargs: None)
    with pytest.raises(OptimisticLockError):
        next_invoice_number(db, 2025)

    monkeypatch.undo()
    assert str(next_invoice_number(db, 2025)) == "INV-2025-0002"


# ============================================================================
# UPDATE
# ============================================================================


def test_update_publishes_single_updated_event(invoice_id, repository, publisher):
    """Four field changes are published as one InvoiceUpdated."""
    UpdateInvoiceHandler(repository, publisher).handle(
        UpdateInvoiceCommand(
            invoice_id=invoice_id,
            line_items=[
                LineItemInput("Design", Decimal("1"), Decimal("50.00")),
                LineItemInput("Review", Decimal("2"), Decimal("25.00")),
            ],
            due_date=date(2025, 3, 1),
            tax_rate=Decimal("0"),
            notes="Revised",
        )
    )

    assert len(publisher.events) == 1
    assert isinstance(publisher.events[0], InvoiceUpdated)

    invoice = repository.find_by_id(invoice_id)
    assert [item.description for item in invoice.line_items] == ["Design", "Review"]
    assert invoice.due_date == date(2025, 3, 1)
    assert invoice.calculate_total() == Money.of("100.00")
    assert invoice.notes == "Revised"
    assert invoice.version == 2


def test_collapse_updates_keeps_other_events_in_order():
    invoice_id = uuid.uuid4()
    created = InvoiceCreated(invoice_id=invoice_id, customer_id=uuid.uuid4(), invoice_number="INV-2025-0001")
    updates = [InvoiceUpdated(invoice_id=invoice_id) for _ in range(4)]

    collapsed = collapse_updates([updates[0], created, *updates[1:]])

    assert collapsed == [updates[0], created]


def test_update_sent_invoice_rejected(sent_invoice_id, repository, publisher):
    """Editing a SENT invoice fails and publishes nothing."""
    with pytest.raises(InvalidStateError):
        UpdateInvoiceHandler(repository, publisher).handle(
            UpdateInvoiceCommand(
                invoice_id=sent_invoice_id,
                line_items=[LineItemInput("Design", Decimal("1"), Decimal("50.00"))],
                due_date=date(2025, 3, 1),
                tax_rate=Decimal("0"),
            )
        )

    assert publisher.batches == []
    invoice = repository.find_by_id(sent_invoice_id)
    assert [item.description for item in invoice.line_items] == ["Consulting"]


def test_update_unknown_invoice(repository, publisher):
    with pytest.raises(NotFoundError, match="Invoice not found"):
        UpdateInvoiceHandler(repository, publisher).handle(
            UpdateInvoiceCommand(
                invoice_id=uuid.uuid4(),
                line_items=[LineItemInput("Design", Decimal("1"), Decimal("50.00"))],
                due_date=date(2025, 3, 1),
                tax_rate=Decimal("0"),
            )
        )


# ============================================================================
# SEND & PAYMENTS
# ============================================================================


def test_send_invoice(invoice_id, repository, publisher):
    SendInvoiceHandler(repository, publisher).handle(SendInvoiceCommand(invoice_id))

    assert repository.find_by_id(invoice_id).status is InvoiceStatus.SENT
    assert publisher.event_types == ["InvoiceSent"]


def test_send_twice_rejected(sent_invoice_id, repository, publisher):
    with pytest.raises(InvalidStateError):
        SendInvoiceHandler(repository, publisher).handle(SendInvoiceCommand(sent_invoice_id))
    assert publisher.batches == []


def test_full_payment_marks_paid(sent_invoice_id, repository, publisher):
    handler = RecordPaymentHandler(repository, publisher)

    payment_id = handler.handle(payment_command(sent_invoice_id, reference="TX-1"))

    invoice = repository.find_by_id(sent_invoice_id)
    assert invoice.status is InvoiceStatus.PAID
    assert invoice.calculate_balance() == Money.of("0.00")
    assert [p.id for p in invoice.payments] == [payment_id]
    assert invoice.payments[0].reference == "TX-1"
    assert publisher.event_types == ["PaymentRecorded", "InvoicePaid"]


def test_partial_payments(sent_invoice_id, repository, publisher):
    handler = RecordPaymentHandler(repository, publisher)

    handler.handle(payment_command(sent_invoice_id, amount="110.00"))
    invoice = repository.find_by_id(sent_invoice_id)
    assert invoice.status is InvoiceStatus.SENT
    assert invoice.calculate_balance() == Money.of("110.00")

    handler.handle(payment_command(sent_invoice_id, amount="110.00", method="cash"))
    invoice = repository.find_by_id(sent_invoice_id)
    assert invoice.status is InvoiceStatus.PAID
    assert len(invoice.payments) == 2
    assert publisher.event_types == ["PaymentRecorded", "PaymentRecorded", "InvoicePaid"]


def test_repeated_payment_id_is_ignored(sent_invoice_id, repository, publisher, db: Session):
    """Retrying the same payment command records it only once."""
    handler = RecordPaymentHandler(repository, publisher)
    command = payment_command(sent_invoice_id, amount="50.00")

    first = handler.handle(command)
    second = handler.handle(command)

    assert first == second == command.payment_id
    assert db.query(PaymentModel).count() == 1
    assert publisher.event_types == ["PaymentRecorded"]


# ============================================================================
# DELETE
# ============================================================================


def test_delete_invoice(invoice_id, repository, publisher):
    DeleteInvoiceHandler(repository, publisher).handle(DeleteInvoiceCommand(invoice_id))

    assert repository.find_by_id(invoice_id) is None
    assert publisher.batches == []


def test_delete_unknown_invoice(repository, publisher):
    with pytest.raises(NotFoundError):
        DeleteInvoiceHandler(repository, publisher).handle(DeleteInvoiceCommand(uuid.uuid4()))


# ============================================================================
# PUBLISHING & CONCURRENCY
# ============================================================================


def test_publisher_failure_does_not_fail_command(db: Session, customer, repository, caplog):
    """The invoice is saved even though publishing blows up; the failure is logged."""
    failing = FailingEventPublisher()
    handler = CreateInvoiceHandler(
        repository=repository,
        publisher=failing,
        customers=CustomerDirectory(db),
        invoice_numbers=SqlAlchemyInvoiceNumberSequence(db),
    )

    with caplog.at_level(logging.ERROR, logger="invoiceme.services.invoice_commands"):
        invoice_id = handler.handle(create_command(customer.id))

    assert failing.calls == 1
    assert repository.find_by_id(invoice_id) is not None
    assert "Failed to publish 1 domain event(s)" in caplog.text
    assert "event bus unavailable" in caplog.text


def test_stale_save_raises_optimistic_lock_error(invoice_id, repository):
    """Saving a copy loaded before someone else's save is rejected."""
    first = repository.find_by_id(invoice_id)
    second = repository.find_by_id(invoice_id)

    first.send()
    repository.save(first)
    assert first.version == 2

    second.update_notes("lost update")
    with pytest.raises(OptimisticLockError):
        repository.save(second)

    assert repository.find_by_id(invoice_id).notes == "Net 30"


def test_concurrent_session_write_detected_at_flush(invoice_id, db: Session):
    """A row changed through another session is caught by the version column."""
    other_session = sessionmaker(bind=db.get_bind(), autoflush=False)()
    try:
        ours = SqlAlchemyInvoiceRepository(db).find_by_id(invoice_id)
        theirs_repo = SqlAlchemyInvoiceRepository(other_session)
        theirs = theirs_repo.find_by_id(invoice_id)

        theirs.update_notes("theirs")
        theirs_repo.save(theirs)

        ours.update_notes("ours")
        with pytest.raises(OptimisticLockError):
            SqlAlchemyInvoiceRepository(db).save(ours)
    finally:
        other_session.close()


def test_saving_deleted_invoice_raises_optimistic_lock_error(invoice_id, repository):
    invoice = repository.find_by_id(invoice_id)
    repository.delete(invoice_id)

    invoice.update_notes("too late")
    with pytest.raises(OptimisticLockError):
        repository.save(invoice)


