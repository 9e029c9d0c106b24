from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from invoiceme.db.models.invoice_number_sequence import (
    InvoiceNumberSequence as InvoiceNumberSequenceModel,
)
from invoiceme.domain.invoice import InvoiceNumber
from invoiceme.errors import OptimisticLockError


def next_invoice_number(db: Session, year: int) -> InvoiceNumber:
    """
    Allocate the next number in the year's sequence.

    The counter row is locked (SELECT ... FOR UPDATE where supported) and only
    flushed here; it is committed together with the invoice.

    Raises:
        OptimisticLockError: If another request created the year's counter
            row first. The session is rolled back and the caller may retry.
    """
    sequence = db.get(InvoiceNumberSequenceModel, year, with_for_update=True)
    if sequence is None:
        sequence = InvoiceNumberSequenceModel(year=year, last_value=1)
        db.add(sequence)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            raise OptimisticLockError(
                f"Invoice number sequence for {year} was created by another request; retry"
            )
        return InvoiceNumber.format(year, sequence.last_value)

    sequence.last_value += 1
    db.flush()
    return InvoiceNumber.format(year, sequence.last_value)


class SqlAlchemyInvoiceNumberSequence:
    """Invoice number sequence backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def next_number(self, issue_date: date) -> InvoiceNumber:
        return next_invoice_number(self.db, issue_date.year)
