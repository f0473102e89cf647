"""
Shared response schemas.
"""
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of a cursor-paginated listing (newest first)."""

    items: List[T] = []
    next_cursor: Optional[str] = None
    is_done: bool = True


class CountResponse(BaseModel):
    """Schema for count queries."""

    count: int
