"""Domain event publishers.

Publishing happens after the aggregate has been saved. A publisher may fail;
command handlers log such failures and never undo the saved change.
"""

import logging
from typing import Sequence

from sqlalchemy.orm import Session, sessionmaker

from invoiceme.db.models.domain_event import DomainEventRecord
from invoiceme.domain.events import DomainEvent
from invoiceme.domain.ports import DomainEventPublisher

logger = logging.getLogger(__name__)


class LoggingEventPublisher:
    """Write one INFO line per event."""

    def publish(self, events: Sequence[DomainEvent]) -> None:
        for event in events:
            logger.info(
                "Domain event: %s | invoiceId: %s | customerId: %s | timestamp: %s",
                event.event_type,
                getattr(event, "invoice_id", None) or "N/A",
                getattr(event, "customer_id", None) or "N/A",
                event.occurred_at.isoformat(),
            )


class DatabaseEventPublisher:
    """
    Store events in the domain_events table for auditing and debugging.

    Uses its own session so a failure here never touches the caller's
    transaction. Failures are logged and swallowed.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def publish(self, events: Sequence[DomainEvent]) -> None:
        if not events:
            return
        db: Session = self.session_factory()
        try:
            for event in events:
                db.add(
                    DomainEventRecord(
                        id=event.event_id,
                        type=event.event_type,
                        aggregate_id=getattr(event, "invoice_id", None),
                        payload=event.model_dump(mode="json"),
                        created_at=event.occurred_at,
                    )
                )
            db.commit()
            logger.debug("Persisted %d domain event(s)", len(events))
        except Exception as e:
            db.rollback()
            logger.warning("Failed to persist domain events: %s", e)
        finally:
            db.close()


class CompositeEventPublisher:
    """Forward the same events to several publishers, in order."""

    def __init__(self, publishers: Sequence[DomainEventPublisher]):
        self.publishers = list(publishers)

    def publish(self, events: Sequence[DomainEvent]) -> None:
        for publisher in self.publishers:
            publisher.publish(events)


def get_recent_domain_events(db: Session, limit: int = 50) -> list[DomainEventRecord]:
    """Most recently stored events first."""
    return (
        db.query(DomainEventRecord)
        .order_by(DomainEventRecord.created_at.desc())
        .limit(limit)
        .all()
    )
