# src/modgate/models/content.py
"""SQLAlchemy model for posts and comments subject to moderation."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modgate.db.session import Base
from modgate.db.time import utcnow
from modgate.models.moderation import (
    APPEAL_STATUS_NONE,
    MODERATION_STATUS_PENDING,
    AuditEntry,
    AuditImmutableError,
)

CONTENT_KIND_POST = "post"
CONTENT_KIND_COMMENT = "comment"


class ContentEdit(Base):
    """The text an item carried before one owner edit replaced it."""

    __tablename__ = "content_edit"
    __table_args__ = (UniqueConstraint("item_id", "revision", name="uq_content_edit_revision"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("content_item.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Matches the item's edit_count right after this edit.
    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    edited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


@event.listens_for(ContentEdit, "before_update")
def _reject_edit_update(mapper, connection, target: ContentEdit) -> None:  # type: ignore[no-untyped-def]
    raise AuditImmutableError(f"Edit revision {target.revision} of item {target.item_id} is immutable")


class ContentItem(Base):
    """A post or comment; both are moderated identically.

    ``version`` is the optimistic concurrency counter: every UPDATE is issued
    with ``WHERE version = <loaded version>`` and bumps it by one.
    """

    __tablename__ = "content_item"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(Text, nullable=False, default=CONTENT_KIND_POST)
    # Comments point at the post they belong to; posts have parent_id = NULL.
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("content_item.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    owner_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("app_user.user_id"),
        nullable=False,
        index=True,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    moderation_status: Mapped[str] = mapped_column(
        Text, nullable=False, default=MODERATION_STATUS_PENDING, index=True
    )
    # Cached visibility; recomputed on every status write.
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Last automated score. Overwritten on each pass, never part of history.
    auto_is_toxic: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    auto_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    auto_reasons: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    auto_categories: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    auto_provider_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    auto_scored_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    auto_degraded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    appeal_status: Mapped[str] = mapped_column(
        Text, nullable=False, default=APPEAL_STATUS_NONE, index=True
    )
    appeal_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    appeal_submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    appeal_reviewed_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    appeal_reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    appeal_review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    history: Mapped[list[AuditEntry]] = relationship(
        AuditEntry,
        order_by=AuditEntry.sequence,
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )
    edits: Mapped[list[ContentEdit]] = relationship(
        ContentEdit,
        order_by=ContentEdit.revision,
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )
    replies: Mapped[list[ContentItem]] = relationship(
        "ContentItem",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def appeal(self) -> dict[str, Any]:
        """Return the appeal sub-record as a plain mapping."""
        return {
            "status": self.appeal_status,
            "reason": self.appeal_reason,
            "submitted_at": self.appeal_submitted_at,
            "reviewed_by": self.appeal_reviewed_by,
            "reviewed_at": self.appeal_reviewed_at,
            "review_notes": self.appeal_review_notes,
        }
