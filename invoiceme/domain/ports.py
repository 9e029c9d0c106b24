"""Interfaces the application layer depends on.

Infrastructure provides the implementations (see ``invoiceme.repositories``
and ``invoiceme.events``); tests are free to pass simple in-memory doubles.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Protocol, Sequence

from invoiceme.domain.events import DomainEvent
from invoiceme.domain.invoice import Invoice, InvoiceNumber


class InvoiceRepository(Protocol):
    def find_by_id(self, invoice_id: uuid.UUID) -> Invoice | None: ...

    def save(self, invoice: Invoice) -> None:
        """Persist the aggregate.

        Raises:
            OptimisticLockError: If the stored version differs from ``invoice.version``.
        """
        ...

    def delete(self, invoice_id: uuid.UUID) -> None: ...


class DomainEventPublisher(Protocol):
    def publish(self, events: Sequence[DomainEvent]) -> None: ...


class CustomerDirectory(Protocol):
    def exists(self, customer_id: uuid.UUID) -> bool: ...


class InvoiceNumberSequence(Protocol):
    def next_number(self, issue_date: date) -> InvoiceNumber: ...
