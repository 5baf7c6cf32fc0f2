# src/modgate/models/user.py
"""SQLAlchemy model for caller identities."""

from __future__ import annotations

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from modgate.db.session import Base

ROLE_MEMBER = "member"
ROLE_MODERATOR = "moderator"


class User(Base):
    """Identity issued by the external auth provider, resolved from the token subject."""

    __tablename__ = "app_user"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False, default=ROLE_MEMBER)

    @property
    def is_moderator(self) -> bool:
        """Return True when the stored role grants moderator privileges."""
        return self.role == ROLE_MODERATOR
