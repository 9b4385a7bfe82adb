"""Shared schema utilities."""

from pydantic import BaseModel


class APIResponse(BaseModel):
    """Standard API response wrapper."""
    success: bool = True
    data: dict | list | None = None
    meta: dict | None = None
    error: dict | None = None


class PaginationMeta(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool
