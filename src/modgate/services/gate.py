"""Synchronous moderation checkpoint run on content creation and edits.

The gate composes scorer, state machine and audit log::

    text -> ContentScorer -> next_status(...) -> status + audit entry (one commit)

Scoring faults never reach the caller: the scorer degrades to its heuristic
provider and the gate still produces a decision. Only an explicit toxic
score can hold content back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from modgate.core.errors import AuthorizationError, ContentBlocked, NotFound, ValidationError
from modgate.core.settings import settings
from modgate.db.time import utcnow
from modgate.models import ContentEdit, ContentItem, User
from modgate.models.content import CONTENT_KIND_COMMENT, CONTENT_KIND_POST
from modgate.models.moderation import (
    ACTOR_ROLE_SYSTEM,
    ACTOR_SYSTEM,
    MODERATION_STATUS_APPROVED,
    MODERATION_STATUS_PENDING,
    MODERATION_STATUS_UNDER_REVIEW,
)
from modgate.repositories.content_repo import ContentRepository
from modgate.services.audit import AuditRecord, new_entry_id
from modgate.services.moderation import apply_transition
from modgate.services.scoring import ContentScorer, ScoreResult
from modgate.services.state_machine import is_visible, next_status, score_event

logger = logging.getLogger(__name__)

HOLD_POLICY_SOFT = "soft"
HOLD_POLICY_HARD = "hard"

OUTCOME_ALLOW = "allow"
OUTCOME_FLAGGED_VISIBLE = "flagged_visible"
OUTCOME_HELD = "held_for_review"
OUTCOME_REJECTED = "rejected"

REASON_PASSED = "Passed automated moderation"
REASON_FLAGGED = "Auto-flagged content requiring review"
REASON_EDIT_FLAGGED = "Edited content auto-flagged for review"
BLOCKED_MESSAGE = "Content blocked by automated moderation for violating community guidelines."


@dataclass(frozen=True)
class GateContext:
    """Who is submitting and where the text goes.

    ``item_id`` selects the edit path; without it the gate creates a new item.
    """

    caller: User
    kind: str = CONTENT_KIND_POST
    parent_id: int | None = None
    item_id: int | None = None
    expected_version: int | None = None


@dataclass(frozen=True)
class GateDecision:
    """What the gate decided for one submission."""

    item: ContentItem
    final_status: str
    visible: bool
    audit_entry_id: str | None
    outcome: str
    score: ScoreResult

    @property
    def held(self) -> bool:
        return self.final_status == MODERATION_STATUS_UNDER_REVIEW

    @property
    def message(self) -> str:
        noun = "comment" if self.item.kind == CONTENT_KIND_COMMENT else "post"
        if self.held:
            return f"Your {noun} is under review by our moderation team"
        if self.outcome == OUTCOME_REJECTED:
            return f"Your {noun} was rejected by a moderator; you may appeal the decision"
        return f"{noun.capitalize()} saved successfully"


def outcome_for(status: str, visible: bool) -> str:
    """Classify a post-gate status for the caller."""
    if status == MODERATION_STATUS_APPROVED:
        return OUTCOME_ALLOW
    if status == MODERATION_STATUS_UNDER_REVIEW:
        return OUTCOME_FLAGGED_VISIBLE if visible else OUTCOME_HELD
    return OUTCOME_REJECTED


def _store_snapshot(item: ContentItem, score: ScoreResult) -> None:
    item.auto_is_toxic = score.is_toxic
    item.auto_confidence = score.confidence
    item.auto_reasons = list(score.reasons)
    item.auto_categories = dict(score.categories)
    item.auto_provider_id = score.provider_id
    item.auto_scored_at = score.scored_at
    item.auto_degraded = score.degraded


class ModerationGate:
    """The only component allowed to make an item's first moderation decision."""

    def __init__(self, scorer: ContentScorer, hold_policy: str | None = None) -> None:
        self.scorer = scorer
        self.hold_policy = hold_policy or settings.moderation_hold_policy

    async def evaluate(self, db: Session, text: str, context: GateContext) -> GateDecision:
        """Score ``text`` and create or update the item it belongs to.

        Raises:
            ValidationError: If the text is empty or the comment target is invalid.
            NotFound: If the edited item or comment parent does not exist.
            AuthorizationError: If someone other than the owner edits an item.
            Conflict: If the item changed concurrently.
            ContentBlocked: Under the hard hold policy, for toxic text.
        """
        if not text or not text.strip():
            raise ValidationError("Content text must not be empty")
        if context.item_id is None:
            return await self._create(db, text, context)
        return await self._edit(db, text, context.item_id, context)

    async def _create(self, db: Session, text: str, context: GateContext) -> GateDecision:
        repo = ContentRepository(db)
        if context.kind == CONTENT_KIND_COMMENT:
            if context.parent_id is None:
                raise ValidationError("Comments require a parent post id")
            parent = repo.get(context.parent_id)
            if parent is None:
                raise NotFound(f"Parent post {context.parent_id} not found")
            if parent.kind != CONTENT_KIND_POST:
                raise ValidationError("Comments can only be attached to posts")
        elif context.parent_id is not None:
            raise ValidationError("Only comments may reference a parent post")

        score = await self.scorer.score(text)
        self._enforce_hold_policy(score)

        soft = settings.soft_visibility_during_review
        item = ContentItem(
            kind=context.kind,
            parent_id=context.parent_id,
            owner_id=context.caller.user_id,
            text=text,
            moderation_status=MODERATION_STATUS_PENDING,
            is_visible=is_visible(MODERATION_STATUS_PENDING, soft_visibility=soft),
        )
        _store_snapshot(item, score)
        repo.add(item)

        transition = next_status(item.moderation_status, score_event(score.is_toxic))
        entry = apply_transition(
            db,
            item,
            transition,
            AuditRecord(
                entry_id=new_entry_id("review" if score.is_toxic else "mod"),
                status=transition.target,
                reason=REASON_FLAGGED if score.is_toxic else REASON_PASSED,
                actor=ACTOR_SYSTEM,
                actor_role=ACTOR_ROLE_SYSTEM,
                confidence=score.confidence,
                reasons=score.reasons,
            ),
        )
        repo.commit(item)
        if item.moderation_status == MODERATION_STATUS_UNDER_REVIEW:
            logger.info("Content item %s requires moderation review", item.id)
        return self._decision(item, entry.entry_id if entry else None, score)

    async def _edit(
        self, db: Session, text: str, item_id: int, context: GateContext
    ) -> GateDecision:
        repo = ContentRepository(db)
        item = repo.get_or_404(item_id)
        if item.owner_id != context.caller.user_id:
            raise AuthorizationError("Not authorized to edit this content")
        repo.check_version(item, context.expected_version)

        score = await self.scorer.score(text)
        self._enforce_hold_policy(score)

        item.edit_count += 1
        item.edits.append(
            ContentEdit(revision=item.edit_count, text=item.text, edited_at=utcnow())
        )
        item.text = text
        item.is_edited = True
        _store_snapshot(item, score)

        transition = next_status(item.moderation_status, score_event(score.is_toxic))
        entry = apply_transition(
            db,
            item,
            transition,
            AuditRecord(
                entry_id=new_entry_id("review"),
                status=transition.target,
                reason=REASON_EDIT_FLAGGED,
                actor=ACTOR_SYSTEM,
                actor_role=ACTOR_ROLE_SYSTEM,
                confidence=score.confidence,
                reasons=score.reasons,
            ),
        )
        repo.commit(item)
        if entry is not None:
            logger.info("Edited content item %s moved to %s", item.id, item.moderation_status)
        return self._decision(item, entry.entry_id if entry else None, score)

    def _enforce_hold_policy(self, score: ScoreResult) -> None:
        if score.is_toxic and self.hold_policy == HOLD_POLICY_HARD:
            moderation_id = new_entry_id("blocked")
            logger.info("Blocked toxic submission %s (%s)", moderation_id, score.headline)
            raise ContentBlocked(
                BLOCKED_MESSAGE,
                reasons=list(score.reasons),
                confidence=score.confidence,
                moderation_id=moderation_id,
            )

    @staticmethod
    def _decision(item: ContentItem, audit_entry_id: str | None, score: ScoreResult) -> GateDecision:
        return GateDecision(
            item=item,
            final_status=item.moderation_status,
            visible=item.is_visible,
            audit_entry_id=audit_entry_id,
            outcome=outcome_for(item.moderation_status, item.is_visible),
            score=score,
        )
