"""Moderation status codes and the append-only audit entry model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from modgate.db.session import Base
from modgate.db.time import utcnow

MODERATION_STATUS_PENDING = "pending"
MODERATION_STATUS_APPROVED = "approved"
MODERATION_STATUS_REJECTED = "rejected"
MODERATION_STATUS_UNDER_REVIEW = "under_review"

MODERATION_STATUSES = (
    MODERATION_STATUS_PENDING,
    MODERATION_STATUS_APPROVED,
    MODERATION_STATUS_REJECTED,
    MODERATION_STATUS_UNDER_REVIEW,
)

APPEAL_STATUS_NONE = "none"
APPEAL_STATUS_PENDING = "pending"
APPEAL_STATUS_APPROVED = "approved"
APPEAL_STATUS_REJECTED = "rejected"

ACTOR_SYSTEM = "system"
ACTOR_ROLE_SYSTEM = "system"
ACTOR_ROLE_MODERATOR = "moderator"
ACTOR_ROLE_OWNER = "owner"


class AuditImmutableError(RuntimeError):
    """Raised when something attempts to rewrite a recorded audit entry."""


class AuditEntry(Base):
    """One immutable record of a moderation status change."""

    __tablename__ = "audit_entry"
    __table_args__ = (UniqueConstraint("item_id", "sequence", name="uq_audit_item_sequence"),)

    entry_id: Mapped[str] = mapped_column(Text, primary_key=True)
    item_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("content_item.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # 1-based position in the item's history; gaps never occur.
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # "system" or the id of the moderator/owner who acted.
    actor: Mapped[str] = mapped_column(Text, nullable=False, default=ACTOR_SYSTEM)
    actor_role: Mapped[str] = mapped_column(Text, nullable=False, default=ACTOR_ROLE_SYSTEM)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    reasons: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)


@event.listens_for(AuditEntry, "before_update")
def _reject_audit_update(mapper, connection, target: AuditEntry) -> None:  # type: ignore[no-untyped-def]
    raise AuditImmutableError(f"Audit entry {target.entry_id} is immutable")
