from fastapi import Depends
from sqlalchemy.orm import Session

from invoiceme.core.config import settings
from invoiceme.db import SessionLocal
from invoiceme.domain.ports import DomainEventPublisher
from invoiceme.events.publisher import (
    CompositeEventPublisher,
    DatabaseEventPublisher,
    LoggingEventPublisher,
)
from invoiceme.repositories.customer import CustomerDirectory
from invoiceme.repositories.invoice import SqlAlchemyInvoiceRepository
from invoiceme.repositories.invoice_number import SqlAlchemyInvoiceNumberSequence
from invoiceme.services.invoice_commands import (
    CreateInvoiceHandler,
    DeleteInvoiceHandler,
    RecordPaymentHandler,
    SendInvoiceHandler,
    UpdateInvoiceHandler,
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_event_publisher() -> DomainEventPublisher:
    """Log every event and, unless disabled, store it in domain_events."""
    publishers: list[DomainEventPublisher] = [LoggingEventPublisher()]
    if settings.persist_domain_events:
        publishers.append(DatabaseEventPublisher(SessionLocal))
    return CompositeEventPublisher(publishers)


def get_create_invoice_handler(
    db: Session = Depends(get_db),
    publisher: DomainEventPublisher = Depends(get_event_publisher),
) -> CreateInvoiceHandler:
    return CreateInvoiceHandler(
        repository=SqlAlchemyInvoiceRepository(db),
        publisher=publisher,
        customers=CustomerDirectory(db),
        invoice_numbers=SqlAlchemyInvoiceNumberSequence(db),
    )


def get_update_invoice_handler(
    db: Session = Depends(get_db),
    publisher: DomainEventPublisher = Depends(get_event_publisher),
) -> UpdateInvoiceHandler:
    return UpdateInvoiceHandler(SqlAlchemyInvoiceRepository(db), publisher)


def get_send_invoice_handler(
    db: Session = Depends(get_db),
    publisher: DomainEventPublisher = Depends(get_event_publisher),
) -> SendInvoiceHandler:
    return SendInvoiceHandler(SqlAlchemyInvoiceRepository(db), publisher)


def get_record_payment_handler(
    db: Session = Depends(get_db),
    publisher: DomainEventPublisher = Depends(get_event_publisher),
) -> RecordPaymentHandler:
    return RecordPaymentHandler(SqlAlchemyInvoiceRepository(db), publisher)


def get_delete_invoice_handler(
    db: Session = Depends(get_db),
    publisher: DomainEventPublisher = Depends(get_event_publisher),
) -> DeleteInvoiceHandler:
    return DeleteInvoiceHandler(SqlAlchemyInvoiceRepository(db), publisher)
