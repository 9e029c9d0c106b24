import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from invoiceme.api.deps import (
    get_create_invoice_handler,
    get_db,
    get_delete_invoice_handler,
    get_record_payment_handler,
    get_send_invoice_handler,
    get_update_invoice_handler,
)
from invoiceme.core.config import settings
from invoiceme.domain.invoice import InvoiceStatus
from invoiceme.schemas.invoice import (
    InvoiceCreate,
    InvoiceDetail,
    InvoiceSummary,
    InvoiceUpdate,
    LineItemInput,
    PaymentCreate,
    PaymentRecordedResponse,
)
from invoiceme.schemas.pagination import PaginatedResponse
from invoiceme.services import invoice_commands as commands
from invoiceme.services.invoice_queries import (
    get_invoice_detail,
    list_invoices,
    list_overdue_invoices,
)

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _line_item_inputs(items: list[LineItemInput]) -> list[commands.LineItemInput]:
    return [
        commands.LineItemInput(
            description=item.description,
            quantity=item.quantity,
            unit_price_amount=item.unit_price.amount,
            unit_price_currency=(item.unit_price.currency or settings.default_currency).upper(),
        )
        for item in items
    ]


@router.post("", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
def create_invoice(
    invoice_data: InvoiceCreate,
    db: Session = Depends(get_db),
    handler: commands.CreateInvoiceHandler = Depends(get_create_invoice_handler),
):
    """
    Create a new invoice in DRAFT status.
    The invoice number is assigned by the server.
    """
    invoice_id = handler.handle(
        commands.CreateInvoiceCommand(
            customer_id=invoice_data.customer_id,
            issue_date=invoice_data.issue_date or date.today(),
            due_date=invoice_data.due_date,
            line_items=_line_item_inputs(invoice_data.line_items),
            tax_rate=invoice_data.tax_rate,
            notes=invoice_data.notes,
        )
    )
    return get_invoice_detail(db, invoice_id)


@router.get("", response_model=PaginatedResponse[InvoiceSummary])
def get_all_invoices(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(100, ge=1, le=1000, description="Number of items per page"),
    status_filter: InvoiceStatus | None = Query(
        None, alias="status", description="Only invoices in this status"
    ),
    db: Session = Depends(get_db),
):
    """List invoices with pagination, newest issue date first."""
    invoices, total = list_invoices(
        db, page=page, page_size=page_size, status=status_filter
    )
    return PaginatedResponse(
        items=invoices,
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/overdue", response_model=list[InvoiceSummary])
def get_overdue_invoices(
    db: Session = Depends(get_db),
    as_of: date | None = Query(
        None, description="Reference date (defaults to today)"
    ),
):
    """List invoices past their due date that are not PAID, oldest due date first."""
    return list_overdue_invoices(db, as_of=as_of)


@router.get("/{invoice_id}", response_model=InvoiceDetail)
def get_invoice_by_id(invoice_id: uuid.UUID, db: Session = Depends(get_db)):
    """Get an invoice with line items, payments and computed totals."""
    return get_invoice_detail(db, invoice_id)


@router.put("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_invoice(
    invoice_id: uuid.UUID,
    invoice_data: InvoiceUpdate,
    handler: commands.UpdateInvoiceHandler = Depends(get_update_invoice_handler),
):
    """
    Replace line items, due date, tax rate and notes.
    Only DRAFT invoices can be edited.
    """
    handler.handle(
        commands.UpdateInvoiceCommand(
            invoice_id=invoice_id,
            line_items=_line_item_inputs(invoice_data.line_items),
            due_date=invoice_data.due_date,
            tax_rate=invoice_data.tax_rate,
            notes=invoice_data.notes,
        )
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{invoice_id}/send", status_code=status.HTTP_204_NO_CONTENT)
def send_invoice(
    invoice_id: uuid.UUID,
    handler: commands.SendInvoiceHandler = Depends(get_send_invoice_handler),
):
    """Send a DRAFT invoice to the customer."""
    handler.handle(commands.SendInvoiceCommand(invoice_id=invoice_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{invoice_id}/payments",
    response_model=PaymentRecordedResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_payment(
    invoice_id: uuid.UUID,
    payment_data: PaymentCreate,
    handler: commands.RecordPaymentHandler = Depends(get_record_payment_handler),
):
    """
    Record a payment against an invoice.
    The invoice becomes PAID once the balance reaches zero.
    """
    payment_id = handler.handle(
        commands.RecordPaymentCommand(
            invoice_id=invoice_id,
            amount=payment_data.amount.amount,
            currency=(payment_data.amount.currency or settings.default_currency).upper(),
            payment_date=payment_data.payment_date or date.today(),
            method=payment_data.method,
            reference=payment_data.reference,
        )
    )
    return PaymentRecordedResponse(payment_id=payment_id)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: uuid.UUID,
    handler: commands.DeleteInvoiceHandler = Depends(get_delete_invoice_handler),
):
    """Delete an invoice with its line items and payments."""
    handler.handle(commands.DeleteInvoiceCommand(invoice_id=invoice_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
