"""System and transparency endpoints for the modgate API."""

from __future__ import annotations

from fastapi import APIRouter

from modgate.api.v1.dependencies import ModeratorDep, ScorerDep
from modgate.core.settings import settings

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets, API keys and connection strings.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
        },
        "moderation": {
            "provider_configured": settings.provider_configured,
            "provider_timeout_seconds": settings.moderation_provider_timeout_seconds,
            "toxicity_threshold": settings.moderation_toxicity_threshold,
            "hold_policy": settings.moderation_hold_policy,
            "soft_visibility_during_review": settings.soft_visibility_during_review,
        },
        "limits": {
            "post_max_length": settings.post_max_length,
            "comment_max_length": settings.comment_max_length,
        },
    }


@router.get("/scorer")
async def get_scorer_status(scorer: ScorerDep, moderator: ModeratorDep) -> dict[str, object]:
    """Report scorer providers, circuit state and degraded-mode counters."""
    return scorer.status()
