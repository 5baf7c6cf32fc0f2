"""Read-side views over moderation state: the review queue and aggregate stats."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session

from modgate.models import ContentItem
from modgate.models.moderation import (
    APPEAL_STATUS_PENDING,
    MODERATION_STATUS_APPROVED,
    MODERATION_STATUS_REJECTED,
    MODERATION_STATUS_UNDER_REVIEW,
)


@dataclass(frozen=True)
class Pagination:
    """Page metadata for list responses."""

    total: int
    page: int
    total_pages: int
    has_more: bool


@dataclass(frozen=True)
class QueuePage:
    items: list[ContentItem]
    pagination: Pagination


def _percentage(count: int, total: int) -> int:
    """Half-up rounded integer percentage; 0 for an empty corpus."""
    if not total:
        return 0
    return int(math.floor(count * 100 / total + 0.5))


class ModerationQueryService:
    """Lock-free reads; concurrent writes may make counts briefly stale."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def queue(self, page: int = 1, limit: int = 20) -> QueuePage:
        """Items under review or with a pending appeal, newest first."""
        condition = or_(
            ContentItem.moderation_status == MODERATION_STATUS_UNDER_REVIEW,
            ContentItem.appeal_status == APPEAL_STATUS_PENDING,
        )
        total = int(
            self.db.scalar(select(func.count()).select_from(ContentItem).where(condition)) or 0
        )
        skip = (page - 1) * limit
        items = list(
            self.db.scalars(
                select(ContentItem)
                .where(condition)
                .order_by(ContentItem.created_at.desc(), ContentItem.id.desc())
                .offset(skip)
                .limit(limit)
            )
        )
        return QueuePage(
            items=items,
            pagination=Pagination(
                total=total,
                page=page,
                total_pages=math.ceil(total / limit) if limit else 0,
                has_more=skip + len(items) < total,
            ),
        )

    def stats(self) -> dict[str, Any]:
        """Aggregate counts with percentages over the whole corpus."""

        def _count_where(condition: Any) -> Any:
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        row = self.db.execute(
            select(
                func.count(ContentItem.id),
                _count_where(ContentItem.moderation_status == MODERATION_STATUS_APPROVED),
                _count_where(ContentItem.moderation_status == MODERATION_STATUS_REJECTED),
                _count_where(ContentItem.moderation_status == MODERATION_STATUS_UNDER_REVIEW),
                _count_where(ContentItem.appeal_status == APPEAL_STATUS_PENDING),
            )
        ).one()
        total = int(row[0] or 0)
        approved = int(row[1] or 0)
        rejected = int(row[2] or 0)
        return {
            "total_items": total,
            "approved": {"count": approved, "percentage": _percentage(approved, total)},
            "rejected": {"count": rejected, "percentage": _percentage(rejected, total)},
            "pending_review": int(row[3] or 0),
            "pending_appeals": int(row[4] or 0),
        }
