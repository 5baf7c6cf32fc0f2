"""Error taxonomy for the moderation pipeline.

Every error a caller can act on derives from :class:`ModerationError` and
carries the HTTP status it maps to. The API layer renders them into the
structured ``{success: false, message, ...}`` envelope.
"""

from __future__ import annotations

from typing import Any


class ModerationError(Exception):
    """Base exception for caller-visible moderation failures."""

    status_code: int = 500
    code: str = "MODERATION_ERROR"

    def __init__(self, message: str, *, errors: list[Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_envelope(self) -> dict[str, Any]:
        """Render the error into the response envelope."""
        body: dict[str, Any] = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ModerationError):
    """Raised when input is malformed (size or type of text, invalid id)."""

    status_code = 400
    code = "VALIDATION_FAILED"


class PreconditionFailed(ModerationError):
    """Raised when a workflow rule is violated, e.g. appealing an approved item."""

    status_code = 400
    code = "PRECONDITION_FAILED"


class PolicyViolation(PreconditionFailed):
    """Raised for a (status, event) pair the state machine does not allow."""

    code = "POLICY_VIOLATION"


class AuthorizationError(ModerationError):
    """Raised when the caller is not the actor allowed to perform an operation."""

    status_code = 403
    code = "FORBIDDEN"


class NotFound(ModerationError):
    """Raised when the referenced content item does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class Conflict(ModerationError):
    """Raised when a concurrent write won the race for the same item."""

    status_code = 409
    code = "CONFLICT"


class ContentBlocked(ModerationError):
    """Raised by the gate under the hard hold policy when text scores toxic."""

    status_code = 400
    code = "CONTENT_BLOCKED"

    def __init__(
        self,
        message: str,
        *,
        reasons: list[str],
        confidence: float,
        moderation_id: str,
    ) -> None:
        super().__init__(message)
        self.reasons = reasons
        self.confidence = confidence
        self.moderation_id = moderation_id

    def to_envelope(self) -> dict[str, Any]:
        body = super().to_envelope()
        body["error"] = {
            "code": self.code,
            "reasons": list(self.reasons),
            "confidence": self.confidence,
            "moderationId": self.moderation_id,
            "isAppealable": False,
            "help": "Please revise your content to follow the community guidelines.",
        }
        return body


class ProviderError(RuntimeError):
    """Raised inside the scorer when the external provider cannot be used.

    Never propagates past :class:`~modgate.services.scoring.ContentScorer`;
    it is converted into a degraded (heuristic) score.
    """
