"""create source_files and tracked_tasks tables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_tracked_tasks"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "source_files",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("path", sa.String(length=1024), nullable=False, unique=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "tracked_tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "file_id",
            sa.Integer(),
            sa.ForeignKey("source_files.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("checklist", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("state", sa.String(length=20), nullable=False, server_default="unsynced"),
        sa.Column("card_id", sa.String(length=64), nullable=True),
        sa.Column("checklist_id", sa.String(length=64), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tracked_tasks_file_id", "tracked_tasks", ["file_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_tracked_tasks_file_id", table_name="tracked_tasks")
    op.drop_table("tracked_tasks")
    op.drop_table("source_files")
