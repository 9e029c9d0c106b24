import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class Money(BaseModel):
    """Money on the wire: decimal string amount plus ISO 4217 code, never a float."""

    amount: Decimal
    currency: str


class MoneyInput(BaseModel):
    amount: Decimal
    currency: str | None = Field(
        None, min_length=3, max_length=3, description="ISO 4217 code, defaults to DEFAULT_CURRENCY"
    )


class LineItemInput(BaseModel):
    description: str = Field(..., max_length=1000)
    quantity: Decimal
    unit_price: MoneyInput


class InvoiceCreate(BaseModel):
    customer_id: uuid.UUID
    issue_date: date | None = Field(None, description="Defaults to today")
    due_date: date
    line_items: list[LineItemInput]
    tax_rate: Decimal = Field(Decimal("0"), description="Flat rate, e.g. 0.10 for 10%")
    notes: str | None = None


class InvoiceUpdate(BaseModel):
    line_items: list[LineItemInput]
    due_date: date
    tax_rate: Decimal
    notes: str | None = None


class PaymentCreate(BaseModel):
    amount: MoneyInput
    payment_date: date | None = Field(None, description="Defaults to today")
    method: str = Field(..., description="CASH, BANK_TRANSFER, CREDIT_CARD, DEBIT_CARD, CHECK, WIRE_TRANSFER or OTHER")
    reference: str | None = Field(None, max_length=255)


class PaymentRecordedResponse(BaseModel):
    payment_id: uuid.UUID


class LineItemView(BaseModel):
    description: str
    quantity: Decimal
    unit_price: Money
    subtotal: Money


class PaymentView(BaseModel):
    id: uuid.UUID
    amount: Money
    payment_date: date
    method: str
    reference: str | None = None


class InvoiceDetail(BaseModel):
    id: uuid.UUID
    invoice_number: str
    customer_id: uuid.UUID
    customer_name: str
    customer_email: str
    issue_date: date
    due_date: date
    status: str
    currency: str
    tax_rate: Decimal
    notes: str | None = None
    subtotal: Money
    tax: Money
    total: Money
    balance: Money
    line_items: list[LineItemView]
    payments: list[PaymentView]
    version: int


class InvoiceSummary(BaseModel):
    id: uuid.UUID
    invoice_number: str
    customer_id: uuid.UUID
    customer_name: str
    status: str
    issue_date: date
    due_date: date
    total: Money
    balance: Money
