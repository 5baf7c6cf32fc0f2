"""Moderation lifecycle for a content item.

The machine is a pure lookup table. Callers ask for the next status given
the current status and an event; any pair the table does not list raises
:class:`~modgate.core.errors.PolicyViolation`.
"""

from __future__ import annotations

from dataclasses import dataclass

from modgate.core.errors import PolicyViolation
from modgate.models.moderation import (
    MODERATION_STATUS_APPROVED,
    MODERATION_STATUS_PENDING,
    MODERATION_STATUS_REJECTED,
    MODERATION_STATUS_UNDER_REVIEW,
)

EVENT_SCORE_CLEAN = "score_clean"
EVENT_SCORE_TOXIC = "score_toxic"
EVENT_MODERATOR_APPROVE = "moderator_approve"
EVENT_MODERATOR_REJECT = "moderator_reject"
EVENT_APPEAL_SUBMITTED = "appeal_submitted"

_TRANSITIONS: dict[tuple[str, str], str] = {
    # Gate: first decision on creation.
    (MODERATION_STATUS_PENDING, EVENT_SCORE_CLEAN): MODERATION_STATUS_APPROVED,
    (MODERATION_STATUS_PENDING, EVENT_SCORE_TOXIC): MODERATION_STATUS_UNDER_REVIEW,
    # Gate: re-scoring after an edit.
    (MODERATION_STATUS_APPROVED, EVENT_SCORE_CLEAN): MODERATION_STATUS_APPROVED,
    (MODERATION_STATUS_APPROVED, EVENT_SCORE_TOXIC): MODERATION_STATUS_UNDER_REVIEW,
    (MODERATION_STATUS_UNDER_REVIEW, EVENT_SCORE_CLEAN): MODERATION_STATUS_UNDER_REVIEW,
    (MODERATION_STATUS_UNDER_REVIEW, EVENT_SCORE_TOXIC): MODERATION_STATUS_UNDER_REVIEW,
    (MODERATION_STATUS_REJECTED, EVENT_SCORE_CLEAN): MODERATION_STATUS_REJECTED,
    (MODERATION_STATUS_REJECTED, EVENT_SCORE_TOXIC): MODERATION_STATUS_REJECTED,
    # Moderator decision.
    (MODERATION_STATUS_UNDER_REVIEW, EVENT_MODERATOR_APPROVE): MODERATION_STATUS_APPROVED,
    (MODERATION_STATUS_UNDER_REVIEW, EVENT_MODERATOR_REJECT): MODERATION_STATUS_REJECTED,
    # Owner appeal.
    (MODERATION_STATUS_REJECTED, EVENT_APPEAL_SUBMITTED): MODERATION_STATUS_UNDER_REVIEW,
}

_VIOLATION_MESSAGES: dict[str, str] = {
    EVENT_MODERATOR_APPROVE: "Only items under review can be approved (current status: {status})",
    EVENT_MODERATOR_REJECT: "Only items under review can be rejected (current status: {status})",
    EVENT_APPEAL_SUBMITTED: "Only rejected items can be appealed (current status: {status})",
}


@dataclass(frozen=True)
class Transition:
    """Result of applying an event to a status."""

    source: str
    event: str
    target: str

    @property
    def changed(self) -> bool:
        """True when the status actually moves and therefore needs an audit entry."""
        return self.source != self.target


def next_status(status: str, event: str) -> Transition:
    """Return the transition for ``(status, event)``.

    Raises:
        PolicyViolation: If the table does not allow the event in this status.
    """
    target = _TRANSITIONS.get((status, event))
    if target is None:
        template = _VIOLATION_MESSAGES.get(
            event, "Event {event} is not allowed for status {status}"
        )
        raise PolicyViolation(template.format(status=status, event=event))
    return Transition(source=status, event=event, target=target)


def score_event(is_toxic: bool) -> str:
    """Map a score outcome onto the gate event it triggers."""
    return EVENT_SCORE_TOXIC if is_toxic else EVENT_SCORE_CLEAN


def is_visible(status: str, *, soft_visibility: bool = False) -> bool:
    """Return whether ``status`` permits display to general readers."""
    if status == MODERATION_STATUS_APPROVED:
        return True
    if soft_visibility:
        return status in (MODERATION_STATUS_PENDING, MODERATION_STATUS_UNDER_REVIEW)
    return False


def allowed_events(status: str) -> list[str]:
    """Return the events that are legal from ``status``."""
    return [event for (source, event) in _TRANSITIONS if source == status]
