"""Content endpoints: creation and edits pass through the moderation gate."""

from __future__ import annotations

import math

from fastapi import APIRouter, Query, status

from modgate.api.v1.dependencies import (
    AuthorizerDep,
    CurrentUserDep,
    GateDep,
    ItemIdPath,
    SessionDep,
)
from modgate.core.errors import AuthorizationError, NotFound, ValidationError
from modgate.repositories.content_repo import ContentRepository
from modgate.schemas.common import PaginationOut
from modgate.schemas.content import (
    ContentCreate,
    ContentItemOut,
    ContentListResponse,
    ContentMutationResponse,
    ContentUpdate,
    text_length_error,
)
from modgate.services.gate import GateContext, GateDecision

router = APIRouter(prefix="/content", tags=["content"])


def _mutation_response(decision: GateDecision) -> ContentMutationResponse:
    return ContentMutationResponse(
        message=decision.message,
        moderation_status=decision.final_status,
        outcome=decision.outcome,
        item=ContentItemOut.model_validate(decision.item),
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ContentMutationResponse)
async def create_content(
    payload: ContentCreate,
    db: SessionDep,
    current_user: CurrentUserDep,
    gate: GateDep,
) -> ContentMutationResponse:
    """Create a post or comment; the gate decides its initial moderation status."""
    decision = await gate.evaluate(
        db,
        payload.text,
        GateContext(caller=current_user, kind=payload.kind, parent_id=payload.parent_id),
    )
    return _mutation_response(decision)


@router.put("/{item_id}", response_model=ContentMutationResponse)
async def update_content(
    payload: ContentUpdate,
    db: SessionDep,
    current_user: CurrentUserDep,
    gate: GateDep,
    item_id: int = ItemIdPath,
) -> ContentMutationResponse:
    """Edit the caller's own content; the new text is re-scored."""
    item = ContentRepository(db).get_or_404(item_id)
    # Length limits depend on the stored kind, so they are checked here.
    error = text_length_error(payload.text, item.kind)
    if error:
        raise ValidationError(error)
    decision = await gate.evaluate(
        db,
        payload.text,
        GateContext(
            caller=current_user,
            kind=item.kind,
            item_id=item_id,
            expected_version=payload.expected_version,
        ),
    )
    return _mutation_response(decision)


@router.get("", response_model=ContentListResponse)
async def list_content(
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ContentListResponse:
    """List content visible to general readers, newest first."""
    items, total = ContentRepository(db).list_visible(page=page, limit=limit)
    return ContentListResponse(
        items=[ContentItemOut.model_validate(item) for item in items],
        pagination=PaginationOut(
            total=total,
            page=page,
            total_pages=math.ceil(total / limit),
            has_more=(page - 1) * limit + len(items) < total,
        ),
    )


@router.get("/{item_id}", response_model=ContentItemOut)
async def get_content(
    db: SessionDep,
    current_user: CurrentUserDep,
    authorizer: AuthorizerDep,
    item_id: int = ItemIdPath,
) -> ContentItemOut:
    """Return an item if it is visible, or the caller owns or moderates it."""
    item = ContentRepository(db).get_or_404(item_id)
    if (
        not item.is_visible
        and item.owner_id != current_user.user_id
        and not authorizer.is_moderator(current_user)
    ):
        raise NotFound(f"Content item {item_id} not found")
    return ContentItemOut.model_validate(item)


@router.delete("/{item_id}")
async def delete_content(
    db: SessionDep,
    current_user: CurrentUserDep,
    item_id: int = ItemIdPath,
) -> dict[str, object]:
    """Delete the caller's content together with its replies and moderation history."""
    repo = ContentRepository(db)
    item = repo.get_or_404(item_id)
    if item.owner_id != current_user.user_id:
        raise AuthorizationError("Not authorized to delete this content")
    repo.delete(item)
    return {"success": True, "message": "Content deleted successfully"}
