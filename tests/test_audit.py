# tests/test_audit.py
"""Tests for the append-only moderation history."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from modgate.models import AuditEntry
from modgate.models.moderation import (
    ACTOR_ROLE_MODERATOR,
    ACTOR_SYSTEM,
    MODERATION_STATUS_UNDER_REVIEW,
    AuditImmutableError,
)
from modgate.repositories.content_repo import ContentRepository
from modgate.services.audit import AuditLog, AuditRecord, new_entry_id

from tests.conftest import CLEAN_TEXT, TOXIC_TEXT


def test_new_entry_id_prefix() -> None:
    first = new_entry_id("appeal")
    assert first.startswith("appeal-")
    assert first != new_entry_id("appeal")


@pytest.mark.asyncio
async def test_creation_writes_single_system_entry(db_session, create_item) -> None:
    item = await create_item(TOXIC_TEXT)

    entries = list(AuditLog.read(db_session, item.id))
    assert len(entries) == 1
    entry = entries[0]
    assert entry.sequence == 1
    assert entry.actor == ACTOR_SYSTEM
    assert entry.status == MODERATION_STATUS_UNDER_REVIEW
    assert entry.entry_id.startswith("review-")
    assert entry.confidence == pytest.approx(0.95)
    assert "Potential hate speech detected" in entry.reasons


@pytest.mark.asyncio
async def test_clean_creation_entry_uses_mod_prefix(db_session, create_item) -> None:
    item = await create_item(CLEAN_TEXT)
    (entry,) = list(AuditLog.read(db_session, item.id))
    assert entry.entry_id.startswith("mod-")
    assert entry.reason == "Passed automated moderation"


@pytest.mark.asyncio
async def test_append_increments_sequence(db_session, create_item, moderator) -> None:
    item = await create_item(TOXIC_TEXT)
    AuditLog.append(
        db_session,
        item,
        AuditRecord(
            status="approved",
            reason="looks fine",
            actor=moderator.user_id,
            actor_role=ACTOR_ROLE_MODERATOR,
        ),
    )
    db_session.commit()

    trail = AuditLog.read(db_session, item.id)
    assert [entry.sequence for entry in trail] == [1, 2]
    assert len(trail) == 2


@pytest.mark.asyncio
async def test_trail_is_restartable(db_session, create_item) -> None:
    item = await create_item(TOXIC_TEXT)
    trail = AuditLog.read(db_session, item.id)

    first = [entry.entry_id for entry in trail]
    second = [entry.entry_id for entry in trail]
    assert first == second
    assert len(first) == 1


@pytest.mark.asyncio
async def test_entries_cannot_be_rewritten(db_session, create_item) -> None:
    item = await create_item(TOXIC_TEXT)
    entry = db_session.scalars(select(AuditEntry).where(AuditEntry.item_id == item.id)).one()

    entry.reason = "rewritten"
    with pytest.raises(AuditImmutableError):
        db_session.flush()
    db_session.rollback()

    entry = db_session.scalars(select(AuditEntry).where(AuditEntry.item_id == item.id)).one()
    assert entry.reason != "rewritten"


@pytest.mark.asyncio
async def test_history_is_deleted_with_item(db_session, create_item) -> None:
    item = await create_item(TOXIC_TEXT)
    item_id = item.id

    ContentRepository(db_session).delete(item)

    assert AuditLog.count(db_session, item_id) == 0
