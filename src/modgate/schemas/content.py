"""Content-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import Field, StringConstraints, model_validator

from modgate.core.settings import settings
from modgate.schemas.common import MAX_ITEM_ID, CamelModel, PaginationOut

ContentText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def text_length_error(text: str, kind: str) -> str | None:
    """Return a message when ``text`` exceeds the limit for ``kind``, else None."""
    limit = settings.comment_max_length if kind == "comment" else settings.post_max_length
    if len(text) > limit:
        noun = "Comment" if kind == "comment" else "Post"
        return f"{noun} must be 1-{limit} characters"
    return None


class ContentCreate(CamelModel):
    """Schema for submitting a new post or comment."""

    text: ContentText = Field(..., description="Body text to be moderated")
    kind: Literal["post", "comment"] = Field("post", description="Type of content")
    parent_id: int | None = Field(
        None, gt=0, le=MAX_ITEM_ID, description="Parent post ID for comments"
    )

    @model_validator(mode="after")
    def _validate_length(self) -> ContentCreate:
        error = text_length_error(self.text, self.kind)
        if error:
            raise ValueError(error)
        return self


class ContentUpdate(CamelModel):
    """Schema for an owner edit; edits are re-scored by the gate."""

    text: ContentText
    expected_version: int | None = Field(None, ge=1)


class ScoreSnapshotOut(CamelModel):
    """Last automated score for an item."""

    is_toxic: bool
    confidence: float
    reasons: list[str]
    categories: dict[str, float]
    provider_id: str
    scored_at: datetime | None
    degraded: bool


class AppealOut(CamelModel):
    """Appeal sub-record of an item."""

    status: str
    reason: str | None = None
    submitted_at: datetime | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None


class AuditEntryOut(CamelModel):
    """One immutable moderation history entry."""

    entry_id: str
    sequence: int
    status: str
    reason: str
    actor: str
    actor_role: str
    timestamp: datetime
    confidence: float | None = None
    reasons: list[str] = Field(default_factory=list)


class ContentEditOut(CamelModel):
    """Text an item held before one of its edits."""

    revision: int
    text: str
    edited_at: datetime


class ContentItemOut(CamelModel):
    """Schema for content information returned by the API."""

    id: int
    kind: str
    parent_id: int | None
    owner_id: str
    text: str
    is_edited: bool
    moderation_status: str
    is_visible: bool
    version: int
    created_at: datetime
    updated_at: datetime
    auto_moderation: ScoreSnapshotOut | None = None
    appeal: AppealOut
    moderation_history: list[AuditEntryOut] = Field(default_factory=list)
    edit_history: list[ContentEditOut] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _from_orm_item(cls, data: object) -> object:
        if isinstance(data, dict):
            return data

        extracted: dict[str, Any] = {
            name: getattr(data, name, None)
            for name in (
                "id", "kind", "parent_id", "owner_id", "text", "is_edited",
                "moderation_status", "is_visible", "version", "created_at", "updated_at",
            )
        }
        if getattr(data, "auto_provider_id", None) is not None:
            extracted["auto_moderation"] = {
                "is_toxic": bool(data.auto_is_toxic),  # type: ignore[attr-defined]
                "confidence": data.auto_confidence or 0.0,  # type: ignore[attr-defined]
                "reasons": list(data.auto_reasons or []),  # type: ignore[attr-defined]
                "categories": dict(data.auto_categories or {}),  # type: ignore[attr-defined]
                "provider_id": data.auto_provider_id,  # type: ignore[attr-defined]
                "scored_at": data.auto_scored_at,  # type: ignore[attr-defined]
                "degraded": bool(data.auto_degraded),  # type: ignore[attr-defined]
            }
        extracted["appeal"] = getattr(data, "appeal", {"status": "none"})
        extracted["moderation_history"] = list(getattr(data, "history", None) or [])
        extracted["edit_history"] = list(getattr(data, "edits", None) or [])
        return extracted


class ContentMutationResponse(CamelModel):
    """Response to a create or edit, including the gate's verdict."""

    success: bool = True
    message: str
    moderation_status: str
    outcome: str
    item: ContentItemOut


class ContentListResponse(CamelModel):
    items: list[ContentItemOut]
    pagination: PaginationOut
