"""Create comments table (one post has many comments).

Revision ID: c5e8a0d3f942
Revises: 7b2d4f6a8c31
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "c5e8a0d3f942"
down_revision: Union[str, Sequence[str], None] = "7b2d4f6a8c31"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("author_name", sa.String(120), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_comments_post_id", "comments", ["post_id"])


def downgrade() -> None:
    op.drop_index("idx_comments_post_id", table_name="comments")
    op.drop_table("comments")
