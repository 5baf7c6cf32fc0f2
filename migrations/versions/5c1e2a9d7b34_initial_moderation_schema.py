"""initial moderation schema

Revision ID: 5c1e2a9d7b34
Revises:
Create Date: 2026-10-18 09:12:40.418211

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2a9d7b34"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, content items and the append-only audit log."""
    op.create_table(
        "app_user",
        sa.Column("user_id", sa.Text(), primary_key=True),
        sa.Column("username", sa.Text(), nullable=False, unique=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="member"),
    )

    op.create_table(
        "content_item",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("kind", sa.Text(), nullable=False, server_default="post"),
        sa.Column(
            "parent_id",
            sa.Integer(),
            sa.ForeignKey("content_item.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("owner_id", sa.Text(), sa.ForeignKey("app_user.user_id"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("edit_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("moderation_status", sa.Text(), nullable=False, server_default="pending"),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("auto_is_toxic", sa.Boolean(), nullable=True),
        sa.Column("auto_confidence", sa.Float(), nullable=True),
        sa.Column("auto_reasons", sa.JSON(), nullable=False),
        sa.Column("auto_categories", sa.JSON(), nullable=False),
        sa.Column("auto_provider_id", sa.Text(), nullable=True),
        sa.Column("auto_scored_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("auto_degraded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("appeal_status", sa.Text(), nullable=False, server_default="none"),
        sa.Column("appeal_reason", sa.Text(), nullable=True),
        sa.Column("appeal_submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("appeal_reviewed_by", sa.Text(), nullable=True),
        sa.Column("appeal_reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("appeal_review_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_content_item_parent_id", "content_item", ["parent_id"])
    op.create_index("ix_content_item_owner_id", "content_item", ["owner_id"])
    op.create_index("ix_content_item_moderation_status", "content_item", ["moderation_status"])
    op.create_index("ix_content_item_appeal_status", "content_item", ["appeal_status"])
    op.create_index("ix_content_item_created_at", "content_item", ["created_at"])

    op.create_table(
        "audit_entry",
        sa.Column("entry_id", sa.Text(), primary_key=True),
        sa.Column(
            "item_id",
            sa.Integer(),
            sa.ForeignKey("content_item.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False, server_default=""),
        sa.Column("actor", sa.Text(), nullable=False, server_default="system"),
        sa.Column("actor_role", sa.Text(), nullable=False, server_default="system"),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("reasons", sa.JSON(), nullable=False),
        sa.UniqueConstraint("item_id", "sequence", name="uq_audit_item_sequence"),
    )
    op.create_index("ix_audit_entry_item_id", "audit_entry", ["item_id"])


def downgrade() -> None:
    """Drop the moderation schema."""
    op.drop_index("ix_audit_entry_item_id", table_name="audit_entry")
    op.drop_table("audit_entry")
    for name in (
        "ix_content_item_created_at",
        "ix_content_item_appeal_status",
        "ix_content_item_moderation_status",
        "ix_content_item_owner_id",
        "ix_content_item_parent_id",
    ):
        op.drop_index(name, table_name="content_item")
    op.drop_table("content_item")
    op.drop_table("app_user")
