# src/modgate/services/moderation.py
"""Moderation services for modgate."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from modgate.core.settings import settings
from modgate.db.time import utcnow
from modgate.models import AuditEntry, ContentItem, User
from modgate.models.moderation import (
    ACTOR_ROLE_MODERATOR,
    APPEAL_STATUS_APPROVED,
    APPEAL_STATUS_PENDING,
    APPEAL_STATUS_REJECTED,
    MODERATION_STATUS_APPROVED,
)
from modgate.repositories.content_repo import ContentRepository
from modgate.services.audit import AuditLog, AuditRecord, new_entry_id
from modgate.services.state_machine import (
    EVENT_MODERATOR_APPROVE,
    EVENT_MODERATOR_REJECT,
    Transition,
    is_visible,
    next_status,
)

logger = logging.getLogger(__name__)

ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"

DEFAULT_APPROVE_REASON = "Manually approved by moderator"
DEFAULT_REJECT_REASON = "Content violates community guidelines"
DEFAULT_REVIEW_NOTES = "Reviewed by moderator"


def apply_transition(
    session: Session,
    item: ContentItem,
    transition: Transition,
    record: AuditRecord,
) -> AuditEntry | None:
    """Write the status change and its audit entry into the same unit of work.

    No-op transitions leave both status and history untouched and return None.
    """
    if not transition.changed:
        return None
    item.moderation_status = transition.target
    item.is_visible = is_visible(
        transition.target,
        soft_visibility=settings.soft_visibility_during_review,
    )
    return AuditLog.append(session, item, record)


class ModerationService:
    """Moderator decisions on items held for review."""

    @staticmethod
    def decide(
        db: Session,
        item_id: int,
        moderator: User,
        action: str,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> ContentItem:
        """Approve or reject an item that is under review.

        A pending appeal on the item is resolved with the same outcome.

        Args:
            db: Database session
            item_id: ID of the item to decide
            moderator: The moderator making the decision
            action: ``approve`` or ``reject``
            reason: Optional justification recorded in the audit entry
            expected_version: Version the moderator last saw, if known

        Raises:
            NotFound: If the item does not exist.
            Conflict: If the item changed since ``expected_version``.
            PolicyViolation: If the item is not under review.
        """
        repo = ContentRepository(db)
        item = repo.get_or_404(item_id)
        repo.check_version(item, expected_version)

        event = EVENT_MODERATOR_APPROVE if action == ACTION_APPROVE else EVENT_MODERATOR_REJECT
        transition = next_status(item.moderation_status, event)
        approved = transition.target == MODERATION_STATUS_APPROVED
        audit_reason = reason or (DEFAULT_APPROVE_REASON if approved else DEFAULT_REJECT_REASON)

        now = utcnow()
        if item.appeal_status == APPEAL_STATUS_PENDING:
            item.appeal_status = APPEAL_STATUS_APPROVED if approved else APPEAL_STATUS_REJECTED
            item.appeal_reviewed_by = moderator.user_id
            item.appeal_reviewed_at = now
            item.appeal_review_notes = reason or DEFAULT_REVIEW_NOTES

        apply_transition(
            db,
            item,
            transition,
            AuditRecord(
                entry_id=new_entry_id("mod"),
                status=transition.target,
                reason=audit_reason,
                actor=moderator.user_id,
                actor_role=ACTOR_ROLE_MODERATOR,
                timestamp=now,
                confidence=item.auto_confidence if item.auto_confidence is not None else 0.0,
                reasons=tuple(item.auto_reasons or ()),
            ),
        )
        repo.commit(item)
        logger.info(
            "Moderator %s %s content item %s",
            moderator.user_id,
            "approved" if approved else "rejected",
            item.id,
        )
        return item
