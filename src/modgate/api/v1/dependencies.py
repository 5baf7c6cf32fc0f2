"""Shared API dependencies for authentication, authorization and services."""

from typing import Annotated, Protocol

from fastapi import Depends, HTTPException, Path, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from modgate.core.errors import AuthorizationError
from modgate.core.security import decode_subject
from modgate.core.settings import settings
from modgate.db.session import get_db
from modgate.models import User
from modgate.schemas.common import MAX_ITEM_ID
from modgate.services.gate import ModerationGate
from modgate.services.scoring import ContentScorer, get_content_scorer

ItemIdPath = Path(..., gt=0, le=MAX_ITEM_ID, description="Content item ID")

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    try:
        subject = decode_subject(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = db.get(User, subject)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


class ModeratorAuthorizer(Protocol):
    """Role-check collaborator guarding moderator-only operations."""

    def is_moderator(self, user: User) -> bool: ...


class RoleModeratorAuthorizer:
    """Grants moderator rights from the stored role or the MODERATOR_IDS allow-list."""

    def __init__(self, allow_list: list[str] | None = None) -> None:
        self.allow_list = set(allow_list if allow_list is not None else settings.moderator_ids)

    def is_moderator(self, user: User) -> bool:
        return user.is_moderator or user.user_id in self.allow_list


def get_moderator_authorizer() -> ModeratorAuthorizer:
    """Return the authorizer; override this dependency to plug in another RBAC source."""
    return RoleModeratorAuthorizer()


AuthorizerDep = Annotated[ModeratorAuthorizer, Depends(get_moderator_authorizer)]


def require_moderator(
    current_user: CurrentUserDep,
    authorizer: AuthorizerDep,
) -> User:
    """Resolve the caller and insist on moderator privileges."""
    if not authorizer.is_moderator(current_user):
        raise AuthorizationError("Moderator privileges are required for this operation")
    return current_user


ModeratorDep = Annotated[User, Depends(require_moderator)]


def get_scorer_dep() -> ContentScorer:
    """Return the shared content scorer."""
    return get_content_scorer()


ScorerDep = Annotated[ContentScorer, Depends(get_scorer_dep)]


def get_gate(scorer: ScorerDep) -> ModerationGate:
    """Build a gate over the shared scorer using the configured hold policy."""
    return ModerationGate(scorer)


GateDep = Annotated[ModerationGate, Depends(get_gate)]
