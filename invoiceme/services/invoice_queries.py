"""Read path for invoices.

Projections are built from the aggregate so totals and balances are computed
by exactly the same rules the command side enforces.
"""

import uuid
from datetime import date

from sqlalchemy.orm import Session

import invoiceme.repositories.invoice as invoice_repo
from invoiceme.db.models.invoice import Invoice as InvoiceModel
from invoiceme.domain.invoice import InvoiceStatus
from invoiceme.domain.money import Money as DomainMoney
from invoiceme.errors import NotFoundError
from invoiceme.schemas.invoice import (
    InvoiceDetail,
    InvoiceSummary,
    LineItemView,
    Money,
    PaymentView,
)


def _money(value: DomainMoney) -> Money:
    return Money(amount=value.amount, currency=value.currency)


def _to_summary(row: InvoiceModel) -> InvoiceSummary:
    invoice = invoice_repo.to_aggregate(row)
    return InvoiceSummary(
        id=invoice.id,
        invoice_number=str(invoice.invoice_number),
        customer_id=invoice.customer_id,
        customer_name=row.customer.name,
        status=invoice.status.value,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        total=_money(invoice.calculate_total()),
        balance=_money(invoice.calculate_balance()),
    )


def get_invoice_detail(db: Session, invoice_id: uuid.UUID) -> InvoiceDetail:
    """
    Full invoice projection with line items, payments and computed amounts.

    Raises:
        NotFoundError: If the invoice does not exist.
    """
    row = invoice_repo.get_invoice_row_by_id(db, invoice_id)
    if not row:
        raise NotFoundError("Invoice not found")

    invoice = invoice_repo.to_aggregate(row)
    return InvoiceDetail(
        id=invoice.id,
        invoice_number=str(invoice.invoice_number),
        customer_id=invoice.customer_id,
        customer_name=row.customer.name,
        customer_email=row.customer.email,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        status=invoice.status.value,
        currency=invoice.currency,
        tax_rate=invoice.tax_rate,
        notes=invoice.notes,
        subtotal=_money(invoice.calculate_subtotal()),
        tax=_money(invoice.calculate_tax()),
        total=_money(invoice.calculate_total()),
        balance=_money(invoice.calculate_balance()),
        line_items=[
            LineItemView(
                description=item.description,
                quantity=item.quantity,
                unit_price=_money(item.unit_price),
                subtotal=_money(item.subtotal),
            )
            for item in invoice.line_items
        ],
        payments=[
            PaymentView(
                id=payment.id,
                amount=_money(payment.amount),
                payment_date=payment.payment_date,
                method=payment.method.value,
                reference=payment.reference,
            )
            for payment in invoice.payments
        ],
        version=invoice.version,
    )


def list_invoices(
    db: Session,
    page: int = 1,
    page_size: int = 100,
    status: InvoiceStatus | None = None,
) -> tuple[list[InvoiceSummary], int]:
    """
    Invoices with pagination, newest issue date first.

    Returns:
        Tuple of (list of summaries, total count)
    """
    rows, total = invoice_repo.get_invoice_rows_paginated(
        db, page=page, page_size=page_size, status=status
    )
    return [_to_summary(row) for row in rows], total


def list_overdue_invoices(db: Session, as_of: date | None = None) -> list[InvoiceSummary]:
    """
    Invoices past their due date that are not PAID.

    Overdue means due_date < as_of (today when not given) and status != PAID.
    """
    as_of = as_of or date.today()
    return [
        _to_summary(row)
        for row in invoice_repo.get_unpaid_invoice_rows_due_before(db, as_of)
    ]
