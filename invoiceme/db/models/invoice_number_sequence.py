from sqlalchemy import Column, Integer

from invoiceme.db.base import Base


class InvoiceNumberSequence(Base):
    __tablename__ = "invoice_number_sequences"

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(Integer, nullable=False, default=0)
