"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Largest id a signed 64-bit INTEGER column can hold.
MAX_ITEM_ID = 2**63 - 1


class CamelModel(BaseModel):
    """Base schema serialised with camelCase keys, accepting either casing on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationOut(CamelModel):
    """Page metadata returned by list endpoints."""

    total: int
    page: int
    total_pages: int
    has_more: bool


class BlockedDetail(CamelModel):
    """Details attached to an error when automated moderation blocked content."""

    code: str
    reasons: list[str] = Field(default_factory=list)
    confidence: float
    moderation_id: str
    is_appealable: bool
    help: str


class ErrorEnvelope(CamelModel):
    """Structured error body used by every failing endpoint."""

    success: bool = False
    message: str
    errors: list[Any] | None = None
    error: BlockedDetail | None = None
