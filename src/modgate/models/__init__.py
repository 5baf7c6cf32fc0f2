"""SQLAlchemy models for the modgate application."""

from .content import ContentEdit, ContentItem
from .moderation import AuditEntry
from .user import User

__all__ = [
    "AuditEntry",
    "ContentEdit",
    "ContentItem",
    "User",
]
