import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from invoiceme.db.models.invoice import Invoice as InvoiceModel
from invoiceme.db.models.invoice import InvoiceLineItem as LineItemModel
from invoiceme.db.models.invoice import InvoicePayment as PaymentModel
from invoiceme.domain.invoice import Invoice, InvoiceNumber, InvoiceStatus
from invoiceme.domain.line_item import LineItem
from invoiceme.domain.money import Money
from invoiceme.domain.payment import Payment, PaymentMethod
from invoiceme.errors import DuplicateResourceError, OptimisticLockError


def to_aggregate(row: InvoiceModel) -> Invoice:
    """Rebuild the Invoice aggregate from its rows. Raises no domain events."""
    return Invoice.reconstruct(
        id=row.id,
        customer_id=row.customer_id,
        invoice_number=InvoiceNumber(row.invoice_number),
        issue_date=row.issue_date,
        due_date=row.due_date,
        status=InvoiceStatus(row.status),
        line_items=[
            LineItem.of(
                item.description,
                Decimal(item.quantity),
                Money.of(item.unit_price, item.currency),
            )
            for item in row.line_items
        ],
        payments=[
            Payment(
                id=payment.id,
                amount=Money.of(payment.amount, payment.currency),
                payment_date=payment.payment_date,
                method=PaymentMethod(payment.method),
                reference=payment.reference,
            )
            for payment in row.payments
        ],
        notes=row.notes,
        tax_rate=Decimal(row.tax_rate),
        version=row.version,
    )


def _query_invoices(db: Session):
    return db.query(InvoiceModel).options(
        selectinload(InvoiceModel.line_items),
        selectinload(InvoiceModel.payments),
        selectinload(InvoiceModel.customer),
    )


def get_invoice_row_by_id(db: Session, invoice_id: uuid.UUID) -> InvoiceModel | None:
    """Get an invoice row with line items, payments and customer loaded."""
    return _query_invoices(db).filter(InvoiceModel.id == invoice_id).first()


def get_invoice_by_id(db: Session, invoice_id: uuid.UUID) -> Invoice | None:
    """Load the Invoice aggregate, or None if it does not exist."""
    row = get_invoice_row_by_id(db, invoice_id)
    if row is None:
        return None
    return to_aggregate(row)


def get_invoice_rows_paginated(
    db: Session,
    page: int = 1,
    page_size: int = 100,
    status: InvoiceStatus | None = None,
) -> tuple[list[InvoiceModel], int]:
    """
    Get invoices with pagination, newest issue date first.

    Args:
        page: Page number (1-indexed)
        page_size: Number of items per page
        status: Optional status filter

    Returns:
        Tuple of (list of invoice rows, total count)
    """
    query = _query_invoices(db)
    if status is not None:
        query = query.filter(InvoiceModel.status == status.value)
    total = query.count()

    skip = (page - 1) * page_size
    rows = (
        query
        .order_by(InvoiceModel.issue_date.desc(), InvoiceModel.invoice_number.desc())
        .offset(skip)
        .limit(page_size)
        .all()
    )
    return rows, total


def get_unpaid_invoice_rows_due_before(db: Session, as_of: date) -> list[InvoiceModel]:
    """Invoices not yet PAID whose due date is strictly before ``as_of``, oldest due date first."""
    return (
        _query_invoices(db)
        .filter(
            InvoiceModel.status != InvoiceStatus.PAID.value,
            InvoiceModel.due_date < as_of,
        )
        .order_by(InvoiceModel.due_date.asc(), InvoiceModel.invoice_number.asc())
        .all()
    )


def _apply_aggregate(row: InvoiceModel, invoice: Invoice) -> None:
    row.due_date = invoice.due_date
    row.status = invoice.status.value
    row.tax_rate = invoice.tax_rate
    row.notes = invoice.notes
    # Always dirty the row so the version counter moves even when only
    # child rows (payments) changed.
    row.updated_at = datetime.now(timezone.utc)

    # Line items are replaced wholesale; delete-orphan removes the old rows.
    row.line_items = [
        LineItemModel(
            position=position,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price.amount,
            currency=item.currency,
            subtotal=item.subtotal.amount,
        )
        for position, item in enumerate(invoice.line_items)
    ]

    # Payments are append-only.
    stored_ids = {payment.id for payment in row.payments}
    for position, payment in enumerate(invoice.payments):
        if payment.id in stored_ids:
            continue
        row.payments.append(
            PaymentModel(
                id=payment.id,
                position=position,
                amount=payment.amount.amount,
                currency=payment.amount.currency,
                payment_date=payment.payment_date,
                method=payment.method.value,
                reference=payment.reference,
            )
        )


def save_invoice(db: Session, invoice: Invoice) -> None:
    """
    Insert or update the invoice and commit.

    The aggregate's ``version`` must match the stored row; on success it is
    set to the new stored version.

    Raises:
        OptimisticLockError: If the invoice was changed or deleted since it was loaded.
        DuplicateResourceError: If the invoice number is already taken.
    """
    row = db.get(InvoiceModel, invoice.id)
    if row is None:
        if invoice.version != 0:
            raise OptimisticLockError(
                f"Invoice {invoice.id} was deleted by another request"
            )
        row = InvoiceModel(
            id=invoice.id,
            customer_id=invoice.customer_id,
            invoice_number=str(invoice.invoice_number),
            issue_date=invoice.issue_date,
        )
        db.add(row)
    elif row.version != invoice.version:
        raise OptimisticLockError(
            f"Invoice {invoice.id} was modified by another request "
            f"(loaded version {invoice.version}, current version {row.version})"
        )

    _apply_aggregate(row, invoice)

    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise OptimisticLockError(
            f"Invoice {invoice.id} was modified by another request"
        )
    except IntegrityError:
        db.rollback()
        raise DuplicateResourceError(
            f"Invoice number {invoice.invoice_number} is already in use"
        )

    invoice.version = row.version


def delete_invoice(db: Session, invoice_id: uuid.UUID) -> None:
    """Delete an invoice with its line items and payments. Pure data access - no business logic."""
    row = db.get(InvoiceModel, invoice_id)
    if row is None:
        return
    db.delete(row)
    db.commit()


class SqlAlchemyInvoiceRepository:
    """Invoice repository backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, invoice_id: uuid.UUID) -> Invoice | None:
        return get_invoice_by_id(self.db, invoice_id)

    def save(self, invoice: Invoice) -> None:
        save_invoice(self.db, invoice)

    def delete(self, invoice_id: uuid.UUID) -> None:
        delete_invoice(self.db, invoice_id)
