import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String, Uuid

from invoiceme.db.base import Base


class DomainEventRecord(Base):
    __tablename__ = "domain_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(String(64), nullable=False, index=True)
    aggregate_id = Column(Uuid, nullable=True, index=True)
    payload = Column(JSON, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
