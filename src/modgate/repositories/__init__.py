"""Repository layer for database access."""

from .content_repo import ContentRepository

__all__ = ["ContentRepository"]
