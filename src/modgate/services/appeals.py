"""Owner-initiated appeals against rejections.

An appeal moves a rejected item back to ``under_review`` and records the
owner's reason. It is resolved by the regular moderator decision, which
mirrors the outcome onto the appeal record.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from modgate.core.errors import AuthorizationError, PreconditionFailed
from modgate.db.time import utcnow
from modgate.models import ContentItem, User
from modgate.models.moderation import (
    ACTOR_ROLE_OWNER,
    APPEAL_STATUS_PENDING,
    MODERATION_STATUS_REJECTED,
)
from modgate.repositories.content_repo import ContentRepository
from modgate.services.audit import AuditRecord, new_entry_id
from modgate.services.moderation import apply_transition
from modgate.services.state_machine import EVENT_APPEAL_SUBMITTED, next_status

logger = logging.getLogger(__name__)

APPEAL_AUDIT_REASON = "appeal submitted"


class AppealWorkflow:
    """Submit appeals while enforcing the one-pending-appeal rule."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ContentRepository(db)

    def submit_appeal(
        self,
        item_id: int,
        owner: User,
        reason: str,
        expected_version: int | None = None,
    ) -> ContentItem:
        """Open an appeal on a rejected item.

        Raises:
            NotFound: If the item does not exist.
            AuthorizationError: If ``owner`` did not author the item.
            PreconditionFailed: If the item is not rejected or already has a
                pending appeal.
            Conflict: If the item changed since it was read.
        """
        item = self.repo.get_or_404(item_id)
        if item.owner_id != owner.user_id:
            raise AuthorizationError("Only the author of this content can appeal its moderation")
        self.repo.check_version(item, expected_version)

        if item.appeal_status == APPEAL_STATUS_PENDING:
            raise PreconditionFailed(
                "An appeal for this content is already pending; wait for a moderator to review it"
            )
        if item.moderation_status != MODERATION_STATUS_REJECTED:
            raise PreconditionFailed(
                f"Only rejected content can be appealed (current status: {item.moderation_status})"
            )

        transition = next_status(item.moderation_status, EVENT_APPEAL_SUBMITTED)
        now = utcnow()
        item.appeal_status = APPEAL_STATUS_PENDING
        item.appeal_reason = reason
        item.appeal_submitted_at = now
        item.appeal_reviewed_by = None
        item.appeal_reviewed_at = None
        item.appeal_review_notes = None

        apply_transition(
            self.db,
            item,
            transition,
            AuditRecord(
                entry_id=new_entry_id("appeal"),
                status=transition.target,
                reason=APPEAL_AUDIT_REASON,
                actor=owner.user_id,
                actor_role=ACTOR_ROLE_OWNER,
                timestamp=now,
                confidence=item.auto_confidence,
                reasons=(f"Appeal reason: {reason}",),
            ),
        )
        self.repo.commit(item)
        logger.info("Appeal submitted for content item %s by %s", item.id, owner.user_id)
        return item
