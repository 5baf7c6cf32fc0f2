"""Moderation-related endpoints for the modgate API."""

from __future__ import annotations

from fastapi import APIRouter, Query

from modgate.api.v1.dependencies import (
    AuthorizerDep,
    CurrentUserDep,
    ItemIdPath,
    ModeratorDep,
    SessionDep,
)
from modgate.core.errors import AuthorizationError
from modgate.repositories.content_repo import ContentRepository
from modgate.schemas.common import PaginationOut
from modgate.schemas.content import AuditEntryOut, ContentItemOut
from modgate.schemas.moderation import (
    AppealRequest,
    DecisionRequest,
    HistoryResponse,
    ModerationActionResponse,
    QueueResponse,
    StatsResponse,
)
from modgate.services.appeals import AppealWorkflow
from modgate.services.audit import AuditLog
from modgate.services.moderation import ACTION_APPROVE, ModerationService
from modgate.services.queries import ModerationQueryService

router = APIRouter(prefix="/moderation", tags=["moderation"])
moderation_service = ModerationService()


@router.get("/queue", response_model=QueueResponse)
async def get_moderation_queue(
    db: SessionDep,
    moderator: ModeratorDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> QueueResponse:
    """Get items under review or with a pending appeal, newest first."""
    result = ModerationQueryService(db).queue(page=page, limit=limit)
    return QueueResponse(
        items=[ContentItemOut.model_validate(item) for item in result.items],
        pagination=PaginationOut(
            total=result.pagination.total,
            page=result.pagination.page,
            total_pages=result.pagination.total_pages,
            has_more=result.pagination.has_more,
        ),
    )


@router.post("/decide/{item_id}", response_model=ModerationActionResponse)
async def decide(
    payload: DecisionRequest,
    db: SessionDep,
    moderator: ModeratorDep,
    item_id: int = ItemIdPath,
) -> ModerationActionResponse:
    """Approve or reject an item held for review."""
    item = moderation_service.decide(
        db,
        item_id,
        moderator,
        payload.action,
        payload.reason or None,
        payload.expected_version,
    )
    verb = "approved" if payload.action == ACTION_APPROVE else "rejected"
    return ModerationActionResponse(
        message=f"Content {verb} successfully",
        item=ContentItemOut.model_validate(item),
    )


@router.post("/appeal/{item_id}", response_model=ModerationActionResponse)
async def appeal(
    payload: AppealRequest,
    db: SessionDep,
    current_user: CurrentUserDep,
    item_id: int = ItemIdPath,
) -> ModerationActionResponse:
    """Appeal the rejection of the caller's own content."""
    item = AppealWorkflow(db).submit_appeal(
        item_id,
        current_user,
        payload.reason,
        payload.expected_version,
    )
    return ModerationActionResponse(
        message="Appeal submitted successfully. Our moderators will review your request.",
        item=ContentItemOut.model_validate(item),
    )


@router.get("/stats", response_model=StatsResponse)
async def get_moderation_stats(db: SessionDep, moderator: ModeratorDep) -> StatsResponse:
    """Aggregate moderation statistics."""
    return StatsResponse.model_validate(ModerationQueryService(db).stats())


@router.get("/history/{item_id}", response_model=HistoryResponse)
async def get_moderation_history(
    db: SessionDep,
    current_user: CurrentUserDep,
    authorizer: AuthorizerDep,
    item_id: int = ItemIdPath,
) -> HistoryResponse:
    """Return the audit trail of an item to its owner or a moderator."""
    item = ContentRepository(db).get_or_404(item_id)
    if item.owner_id != current_user.user_id and not authorizer.is_moderator(current_user):
        raise AuthorizationError("Only the author or a moderator can view this history")
    return HistoryResponse(
        item_id=item.id,
        entries=[AuditEntryOut.model_validate(entry) for entry in AuditLog.read(db, item.id)],
    )
