from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of a listing plus the total number of matching rows."""

    items: list[T]
    total: int
    page: int
    page_size: int
