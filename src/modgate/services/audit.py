"""Append-only audit log attached to content items."""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from modgate.db.time import utcnow
from modgate.models import AuditEntry, ContentItem
from modgate.models.moderation import ACTOR_ROLE_SYSTEM, ACTOR_SYSTEM


def new_entry_id(prefix: str = "mod") -> str:
    """Return a globally unique audit entry id such as ``mod-<uuid4>``."""
    return f"{prefix}-{uuid.uuid4()}"


@dataclass(frozen=True)
class AuditRecord:
    """Values for an entry that is about to be appended."""

    status: str
    reason: str
    actor: str = ACTOR_SYSTEM
    actor_role: str = ACTOR_ROLE_SYSTEM
    confidence: float | None = None
    reasons: tuple[str, ...] = ()
    entry_id: str = field(default_factory=new_entry_id)
    timestamp: datetime = field(default_factory=utcnow)


class AuditTrail:
    """Lazy, restartable view over an item's history.

    Each iteration issues a fresh ordered query and streams rows, so a trail
    can be iterated any number of times and always reflects committed growth.
    """

    def __init__(self, session: Session, item_id: int, batch_size: int = 100) -> None:
        self._session = session
        self._item_id = item_id
        self._batch_size = batch_size

    def __iter__(self) -> Iterator[AuditEntry]:
        stmt = (
            select(AuditEntry)
            .where(AuditEntry.item_id == self._item_id)
            .order_by(AuditEntry.sequence)
            .execution_options(yield_per=self._batch_size)
        )
        yield from self._session.scalars(stmt)

    def __len__(self) -> int:
        return AuditLog.count(self._session, self._item_id)


class AuditLog:
    """Append and read access to moderation history. There is no update or delete."""

    @staticmethod
    def append(session: Session, item: ContentItem, record: AuditRecord) -> AuditEntry:
        """Stage ``record`` in the session's current unit of work.

        The caller commits it together with the status write; nothing is
        committed here.
        """
        if item.id is None:
            session.flush()
        sequence = AuditLog.count(session, item.id) + 1
        entry = AuditEntry(
            entry_id=record.entry_id,
            item_id=item.id,
            sequence=sequence,
            status=record.status,
            reason=record.reason,
            actor=record.actor,
            actor_role=record.actor_role,
            timestamp=record.timestamp,
            confidence=record.confidence,
            reasons=list(record.reasons),
        )
        session.add(entry)
        return entry

    @staticmethod
    def read(session: Session, item_id: int) -> AuditTrail:
        """Return the ordered history of ``item_id``."""
        return AuditTrail(session, item_id)

    @staticmethod
    def count(session: Session, item_id: int) -> int:
        """Return the number of persisted (or flushed) entries for ``item_id``."""
        stmt = select(func.count()).select_from(AuditEntry).where(AuditEntry.item_id == item_id)
        return int(session.scalar(stmt) or 0)
