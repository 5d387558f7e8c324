"""Common schemas used across the application."""

from typing import Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper.

    Usage:
        response_model=PaginatedResponse[PacienteOut]

    Returns:
        {
            "items": [...],
            "total": 150,
            "limit": 50,
            "offset": 0
        }
    """
    items: list[T]
    total: int
    limit: int
    offset: int


class PagedResponse(BaseModel, Generic[T]):
    """Page-number variant used by the back-office tables (users, logs)."""
    items: list[T]
    total: int
    page: int
    limit: int
    total_pages: int
