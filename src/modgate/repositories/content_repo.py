"""Data access helpers for content items."""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from modgate.core.errors import Conflict, NotFound
from modgate.models import ContentItem

__all__ = ["ContentRepository"]

logger = logging.getLogger(__name__)


class ContentRepository:
    """Thin wrapper around database access for content items.

    Writes go through :meth:`commit`, which turns a lost optimistic-version
    race into :class:`~modgate.core.errors.Conflict` after rolling back the
    whole unit of work (status, snapshot and audit entry together).
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get(self, item_id: int) -> ContentItem | None:
        """Return an item by identifier."""
        return self.session.get(ContentItem, item_id)

    def get_or_404(self, item_id: int) -> ContentItem:
        """Return an item or raise :class:`NotFound`."""
        item = self.get(item_id)
        if item is None:
            raise NotFound(f"Content item {item_id} not found")
        return item

    @staticmethod
    def check_version(item: ContentItem, expected_version: int | None) -> None:
        """Raise :class:`Conflict` when the caller acted on a stale read."""
        if expected_version is not None and expected_version != item.version:
            raise Conflict(
                f"Content item {item.id} was modified concurrently "
                f"(expected version {expected_version}, found {item.version}); "
                "reload it and retry"
            )

    def add(self, item: ContentItem) -> ContentItem:
        """Stage a new item and flush it so it gets an id."""
        self.session.add(item)
        self.session.flush()
        return item

    def commit(self, item: ContentItem | None = None) -> None:
        """Commit the current unit of work, mapping version races to Conflict."""
        try:
            self.session.commit()
        except (StaleDataError, IntegrityError) as exc:
            self.session.rollback()
            item_ref = f" {item.id}" if item is not None else ""
            logger.info("Write conflict on content item%s: %s", item_ref, exc)
            raise Conflict(
                f"Content item{item_ref} was modified concurrently; reload it and retry"
            ) from exc
        if item is not None:
            self.session.refresh(item)

    def delete(self, item: ContentItem) -> None:
        """Delete an item; its history and replies cascade with it."""
        self.session.delete(item)
        self.commit()

    def list_visible(self, *, page: int, limit: int) -> tuple[list[ContentItem], int]:
        """Return visible top-level and reply items, newest first, plus the total."""
        base = select(ContentItem).where(ContentItem.is_visible.is_(True))
        total = self.session.scalar(select(func.count()).select_from(base.subquery())) or 0
        items = self.session.scalars(
            base.order_by(ContentItem.created_at.desc(), ContentItem.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return list(items), int(total)
