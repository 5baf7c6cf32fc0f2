# tests/test_state_machine.py
"""Tests for the moderation lifecycle table."""

import pytest

from modgate.core.errors import PolicyViolation
from modgate.models.moderation import (
    MODERATION_STATUS_APPROVED,
    MODERATION_STATUS_PENDING,
    MODERATION_STATUS_REJECTED,
    MODERATION_STATUS_UNDER_REVIEW,
)
from modgate.services.state_machine import (
    EVENT_APPEAL_SUBMITTED,
    EVENT_MODERATOR_APPROVE,
    EVENT_MODERATOR_REJECT,
    EVENT_SCORE_CLEAN,
    EVENT_SCORE_TOXIC,
    allowed_events,
    is_visible,
    next_status,
    score_event,
)


@pytest.mark.parametrize(
    ("status", "event", "target"),
    [
        (MODERATION_STATUS_PENDING, EVENT_SCORE_CLEAN, MODERATION_STATUS_APPROVED),
        (MODERATION_STATUS_PENDING, EVENT_SCORE_TOXIC, MODERATION_STATUS_UNDER_REVIEW),
        (MODERATION_STATUS_APPROVED, EVENT_SCORE_TOXIC, MODERATION_STATUS_UNDER_REVIEW),
        (MODERATION_STATUS_UNDER_REVIEW, EVENT_MODERATOR_APPROVE, MODERATION_STATUS_APPROVED),
        (MODERATION_STATUS_UNDER_REVIEW, EVENT_MODERATOR_REJECT, MODERATION_STATUS_REJECTED),
        (MODERATION_STATUS_REJECTED, EVENT_APPEAL_SUBMITTED, MODERATION_STATUS_UNDER_REVIEW),
    ],
)
def test_allowed_transitions(status: str, event: str, target: str) -> None:
    transition = next_status(status, event)
    assert transition.target == target
    assert transition.changed is True


@pytest.mark.parametrize(
    "status",
    [MODERATION_STATUS_APPROVED, MODERATION_STATUS_UNDER_REVIEW, MODERATION_STATUS_REJECTED],
)
def test_clean_rescore_keeps_status(status: str) -> None:
    transition = next_status(status, EVENT_SCORE_CLEAN)
    assert transition.target == status
    assert transition.changed is False


@pytest.mark.parametrize(
    ("status", "event"),
    [
        (MODERATION_STATUS_APPROVED, EVENT_MODERATOR_APPROVE),
        (MODERATION_STATUS_APPROVED, EVENT_APPEAL_SUBMITTED),
        (MODERATION_STATUS_PENDING, EVENT_MODERATOR_REJECT),
        (MODERATION_STATUS_REJECTED, EVENT_MODERATOR_APPROVE),
        (MODERATION_STATUS_UNDER_REVIEW, EVENT_APPEAL_SUBMITTED),
        ("archived", EVENT_SCORE_CLEAN),
    ],
)
def test_forbidden_transitions_raise(status: str, event: str) -> None:
    with pytest.raises(PolicyViolation):
        next_status(status, event)


def test_violation_message_names_current_status() -> None:
    with pytest.raises(PolicyViolation) as excinfo:
        next_status(MODERATION_STATUS_APPROVED, EVENT_APPEAL_SUBMITTED)
    assert "approved" in excinfo.value.message
    assert excinfo.value.status_code == 400


def test_score_event() -> None:
    assert score_event(True) == EVENT_SCORE_TOXIC
    assert score_event(False) == EVENT_SCORE_CLEAN


def test_visibility() -> None:
    assert is_visible(MODERATION_STATUS_APPROVED) is True
    assert is_visible(MODERATION_STATUS_PENDING) is False
    assert is_visible(MODERATION_STATUS_UNDER_REVIEW) is False
    assert is_visible(MODERATION_STATUS_REJECTED) is False


def test_soft_visibility_shows_items_in_review() -> None:
    assert is_visible(MODERATION_STATUS_UNDER_REVIEW, soft_visibility=True) is True
    assert is_visible(MODERATION_STATUS_PENDING, soft_visibility=True) is True
    assert is_visible(MODERATION_STATUS_REJECTED, soft_visibility=True) is False


def test_allowed_events_from_rejected() -> None:
    assert EVENT_APPEAL_SUBMITTED in allowed_events(MODERATION_STATUS_REJECTED)
    assert EVENT_MODERATOR_APPROVE not in allowed_events(MODERATION_STATUS_REJECTED)
