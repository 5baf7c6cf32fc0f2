# tests/test_appeals_and_decisions.py
"""Tests for moderator decisions and owner appeals."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy import text

from modgate.core.errors import (
    AuthorizationError,
    Conflict,
    NotFound,
    PolicyViolation,
    PreconditionFailed,
)
from modgate.models.moderation import (
    ACTOR_ROLE_MODERATOR,
    ACTOR_ROLE_OWNER,
    APPEAL_STATUS_APPROVED,
    APPEAL_STATUS_NONE,
    APPEAL_STATUS_PENDING,
    APPEAL_STATUS_REJECTED,
    MODERATION_STATUS_APPROVED,
    MODERATION_STATUS_REJECTED,
    MODERATION_STATUS_UNDER_REVIEW,
)
from modgate.services.appeals import AppealWorkflow
from modgate.services.audit import AuditLog
from modgate.services.moderation import ACTION_APPROVE, ACTION_REJECT, ModerationService

from tests.conftest import CLEAN_TEXT, TOXIC_TEXT


@pytest_asyncio.fixture
async def rejected_item(db_session, create_item, moderator):
    item = await create_item(TOXIC_TEXT)
    return ModerationService.decide(db_session, item.id, moderator, ACTION_REJECT)


class TestDecide:
    @pytest.mark.asyncio
    async def test_reject_item_under_review(self, db_session, create_item, moderator) -> None:
        item = await create_item(TOXIC_TEXT)

        item = ModerationService.decide(db_session, item.id, moderator, ACTION_REJECT)

        assert item.moderation_status == MODERATION_STATUS_REJECTED
        assert item.is_visible is False
        entries = list(AuditLog.read(db_session, item.id))
        assert len(entries) == 2
        assert entries[1].actor == moderator.user_id
        assert entries[1].actor_role == ACTOR_ROLE_MODERATOR
        assert entries[1].reason == "Content violates community guidelines"
        assert entries[1].confidence == pytest.approx(0.95)
        assert entries[1].entry_id.startswith("mod-")

    @pytest.mark.asyncio
    async def test_approve_with_reason(self, db_session, create_item, moderator) -> None:
        item = await create_item(TOXIC_TEXT)

        item = ModerationService.decide(
            db_session, item.id, moderator, ACTION_APPROVE, reason="quoted lyrics"
        )

        assert item.moderation_status == MODERATION_STATUS_APPROVED
        assert item.is_visible is True
        assert item.appeal_status == APPEAL_STATUS_NONE
        assert list(AuditLog.read(db_session, item.id))[-1].reason == "quoted lyrics"

    @pytest.mark.asyncio
    async def test_cannot_decide_approved_item(self, db_session, create_item, moderator) -> None:
        item = await create_item(CLEAN_TEXT)
        with pytest.raises(PolicyViolation):
            ModerationService.decide(db_session, item.id, moderator, ACTION_REJECT)
        assert AuditLog.count(db_session, item.id) == 1

    def test_missing_item(self, db_session, moderator) -> None:
        with pytest.raises(NotFound):
            ModerationService.decide(db_session, 404, moderator, ACTION_APPROVE)

    @pytest.mark.asyncio
    async def test_stale_expected_version(self, db_session, create_item, moderator) -> None:
        item = await create_item(TOXIC_TEXT)
        with pytest.raises(Conflict):
            ModerationService.decide(
                db_session, item.id, moderator, ACTION_APPROVE, expected_version=item.version + 1
            )
        assert item.moderation_status == MODERATION_STATUS_UNDER_REVIEW

    @pytest.mark.asyncio
    async def test_concurrent_write_is_a_conflict(self, db_session, create_item, moderator) -> None:
        item = await create_item(TOXIC_TEXT)
        item_id = item.id
        # Another writer bumps the row behind the ORM's back.
        db_session.execute(
            text("UPDATE content_item SET version = version + 1 WHERE id = :id"),
            {"id": item_id},
        )

        with pytest.raises(Conflict):
            ModerationService.decide(db_session, item_id, moderator, ACTION_REJECT)

        assert AuditLog.count(db_session, item_id) == 1
        db_session.expire_all()
        assert db_session.get(type(item), item_id).moderation_status == MODERATION_STATUS_UNDER_REVIEW


class TestAppeal:
    @pytest.mark.asyncio
    async def test_owner_appeals_rejection(self, db_session, rejected_item, test_user) -> None:
        item = AppealWorkflow(db_session).submit_appeal(
            rejected_item.id, test_user, "context missing"
        )

        assert item.appeal_status == APPEAL_STATUS_PENDING
        assert item.appeal_reason == "context missing"
        assert item.appeal_submitted_at is not None
        assert item.moderation_status == MODERATION_STATUS_UNDER_REVIEW
        entries = list(AuditLog.read(db_session, item.id))
        assert len(entries) == 3
        assert entries[2].actor == test_user.user_id
        assert entries[2].actor_role == ACTOR_ROLE_OWNER
        assert entries[2].reason == "appeal submitted"
        assert entries[2].reasons == ["Appeal reason: context missing"]
        assert entries[2].entry_id.startswith("appeal-")

    @pytest.mark.asyncio
    async def test_second_pending_appeal_rejected(self, db_session, rejected_item, test_user) -> None:
        workflow = AppealWorkflow(db_session)
        workflow.submit_appeal(rejected_item.id, test_user, "context missing")

        with pytest.raises(PreconditionFailed):
            workflow.submit_appeal(rejected_item.id, test_user, "please look again")

        item = db_session.get(type(rejected_item), rejected_item.id)
        assert item.moderation_status == MODERATION_STATUS_UNDER_REVIEW
        assert item.appeal_reason == "context missing"
        assert AuditLog.count(db_session, item.id) == 3

    @pytest.mark.asyncio
    async def test_only_owner_may_appeal(self, db_session, rejected_item, other_user) -> None:
        with pytest.raises(AuthorizationError):
            AppealWorkflow(db_session).submit_appeal(rejected_item.id, other_user, "not mine")
        assert AuditLog.count(db_session, rejected_item.id) == 2

    @pytest.mark.asyncio
    async def test_cannot_appeal_approved_item(self, db_session, create_item, test_user) -> None:
        item = await create_item(CLEAN_TEXT)
        with pytest.raises(PreconditionFailed):
            AppealWorkflow(db_session).submit_appeal(item.id, test_user, "why not")

    def test_appeal_missing_item(self, db_session, test_user) -> None:
        with pytest.raises(NotFound):
            AppealWorkflow(db_session).submit_appeal(999, test_user, "where is it")

    @pytest.mark.asyncio
    async def test_decision_resolves_pending_appeal(
        self, db_session, rejected_item, test_user, moderator
    ) -> None:
        AppealWorkflow(db_session).submit_appeal(rejected_item.id, test_user, "context missing")

        item = ModerationService.decide(db_session, rejected_item.id, moderator, ACTION_APPROVE)

        assert item.moderation_status == MODERATION_STATUS_APPROVED
        assert item.appeal_status == APPEAL_STATUS_APPROVED
        assert item.appeal_reviewed_by == moderator.user_id
        assert item.appeal_reviewed_at is not None
        assert item.appeal_review_notes == "Reviewed by moderator"
        assert AuditLog.count(db_session, item.id) == 4

    @pytest.mark.asyncio
    async def test_new_appeal_after_rejected_appeal(
        self, db_session, rejected_item, test_user, moderator
    ) -> None:
        workflow = AppealWorkflow(db_session)
        workflow.submit_appeal(rejected_item.id, test_user, "context missing")
        item = ModerationService.decide(
            db_session, rejected_item.id, moderator, ACTION_REJECT, reason="still abusive"
        )
        assert item.appeal_status == APPEAL_STATUS_REJECTED
        assert item.appeal_review_notes == "still abusive"

        item = workflow.submit_appeal(rejected_item.id, test_user, "it was satire")

        assert item.appeal_status == APPEAL_STATUS_PENDING
        assert item.appeal_reviewed_by is None
        assert AuditLog.count(db_session, item.id) == 5

    @pytest.mark.asyncio
    async def test_appeal_with_stale_version(self, db_session, rejected_item, test_user) -> None:
        with pytest.raises(Conflict):
            AppealWorkflow(db_session).submit_appeal(
                rejected_item.id,
                test_user,
                "context missing",
                expected_version=rejected_item.version - 1,
            )
