"""Domain events raised by the Invoice aggregate.

Events are immutable facts, named in the past tense. The aggregate buffers
them and command handlers publish them once the change has been saved.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DomainEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    occurred_at: datetime = Field(default_factory=_utcnow)

    @property
    def event_type(self) -> str:
        return type(self).__name__


class InvoiceCreated(DomainEvent):
    invoice_id: uuid.UUID
    customer_id: uuid.UUID
    invoice_number: str = Field(..., min_length=1)


class InvoiceUpdated(DomainEvent):
    invoice_id: uuid.UUID


class InvoiceSent(DomainEvent):
    invoice_id: uuid.UUID
    customer_id: uuid.UUID
    invoice_number: str = Field(..., min_length=1)


class PaymentRecorded(DomainEvent):
    invoice_id: uuid.UUID
    payment_id: uuid.UUID
    amount: Decimal = Field(..., gt=0)
    currency: str
    method: str


class InvoicePaid(DomainEvent):
    invoice_id: uuid.UUID
    customer_id: uuid.UUID
    invoice_number: str = Field(..., min_length=1)
