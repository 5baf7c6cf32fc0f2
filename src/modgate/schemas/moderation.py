# src/modgate/schemas/moderation.py
"""Moderation-related Pydantic schemas."""

from typing import Annotated, Literal

from pydantic import Field, StringConstraints

from modgate.schemas.common import CamelModel, PaginationOut
from modgate.schemas.content import AuditEntryOut, ContentItemOut


class DecisionRequest(CamelModel):
    """Schema for a moderator approving or rejecting an item."""

    action: Literal["approve", "reject"] = Field(..., description="Moderator decision")
    reason: Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)] | None = None
    expected_version: int | None = Field(None, ge=1)


class AppealRequest(CamelModel):
    """Schema for an owner appealing a rejection."""

    reason: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)
    ] = Field(..., description="Why the decision should be reconsidered")
    expected_version: int | None = Field(None, ge=1)


class ModerationActionResponse(CamelModel):
    """Result of a decision or appeal."""

    success: bool = True
    message: str
    item: ContentItemOut


class QueueResponse(CamelModel):
    items: list[ContentItemOut]
    pagination: PaginationOut


class CountWithPercentage(CamelModel):
    count: int
    percentage: int


class StatsResponse(CamelModel):
    """Aggregate moderation statistics over the whole corpus."""

    total_items: int
    approved: CountWithPercentage
    rejected: CountWithPercentage
    pending_review: int
    pending_appeals: int


class HistoryResponse(CamelModel):
    item_id: int
    entries: list[AuditEntryOut]
