import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class DomainEventView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: str
    aggregate_id: uuid.UUID | None = None
    payload: dict[str, Any]
    created_at: datetime
