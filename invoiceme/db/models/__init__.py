from invoiceme.db.models.customer import Customer
from invoiceme.db.models.invoice import Invoice, InvoiceLineItem, InvoicePayment
from invoiceme.db.models.invoice_number_sequence import InvoiceNumberSequence
from invoiceme.db.models.domain_event import DomainEventRecord

__all__ = [
    "Customer",
    "Invoice",
    "InvoiceLineItem",
    "InvoicePayment",
    "InvoiceNumberSequence",
    "DomainEventRecord",
]
