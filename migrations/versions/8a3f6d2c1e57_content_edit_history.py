"""content edit history

Revision ID: 8a3f6d2c1e57
Revises: 5c1e2a9d7b34
Create Date: 2026-10-18 15:40:02.907316

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "8a3f6d2c1e57"
down_revision: Union[str, Sequence[str], None] = "5c1e2a9d7b34"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Keep the text each edit replaced."""
    op.create_table(
        "content_edit",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "item_id",
            sa.Integer(),
            sa.ForeignKey("content_item.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("revision", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("item_id", "revision", name="uq_content_edit_revision"),
    )
    op.create_index("ix_content_edit_item_id", "content_edit", ["item_id"])


def downgrade() -> None:
    """Drop the edit history table."""
    op.drop_index("ix_content_edit_item_id", table_name="content_edit")
    op.drop_table("content_edit")
