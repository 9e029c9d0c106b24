import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from invoiceme.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False, index=True)
    invoice_number = Column(String(32), unique=True, nullable=False, index=True)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String(16), nullable=False, index=True)
    tax_rate = Column(Numeric(10, 6), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    version = Column(Integer, nullable=False)

    # Relationships
    customer = relationship("Customer", backref="invoices")
    line_items = relationship(
        "InvoiceLineItem",
        order_by="InvoiceLineItem.position",
        cascade="all, delete-orphan",
    )
    payments = relationship(
        "InvoicePayment",
        order_by="InvoicePayment.position",
        cascade="all, delete-orphan",
    )

    # UPDATE ... WHERE version = :loaded_version; mismatches raise StaleDataError
    __mapper_args__ = {"version_id_col": version}


class InvoiceLineItem(Base):
    __tablename__ = "line_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = Column(
        Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    quantity = Column(Numeric(18, 6), nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    subtotal = Column(Numeric(18, 2), nullable=False)


class InvoicePayment(Base):
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True)
    invoice_id = Column(
        Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    payment_date = Column(Date, nullable=False)
    method = Column(String(32), nullable=False)
    reference = Column(String(255), nullable=True)
