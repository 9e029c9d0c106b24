from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from invoiceme.api.deps import get_db
from invoiceme.events.publisher import get_recent_domain_events
from invoiceme.schemas.event import DomainEventView

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=list[DomainEventView])
def get_recent_events(
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=500, description="Maximum number of events"),
):
    """Most recently stored domain events, newest first. Useful for debugging."""
    return [DomainEventView.model_validate(e) for e in get_recent_domain_events(db, limit)]
