"""Initial TaskFlow schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-16

"""
from alembic import op
import sqlalchemy as sa

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # User profile (ownership root)
    op.create_table(
        "user_profile",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("email", sa.String(255)),
        sa.Column("display_name", sa.String(100)),
        sa.Column("photo_url", sa.String(500)),
        sa.Column("preferences", sa.JSON, nullable=False),
        sa.Column("stats", sa.JSON, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("last_active_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    # Project
    op.create_table(
        "project",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("mode", sa.String(20), nullable=False),
        sa.Column("color", sa.String(7), nullable=False),
        sa.Column("icon", sa.String(16), nullable=False),
        sa.Column("task_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_task_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_default", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_archived", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("position", sa.BigInteger, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_project_user_id", "project", ["user_id"])
    op.create_index("ix_project_is_deleted", "project", ["is_deleted"])
    op.create_index("ix_project_user_mode", "project", ["user_id", "mode"])
    op.create_index(
        "uq_project_default_per_mode",
        "project",
        ["user_id", "mode"],
        unique=True,
        sqlite_where=sa.text("is_default"),
        postgresql_where=sa.text("is_default"),
    )

    # Task
    op.create_table(
        "task",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False, server_default="todo"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True)),
        sa.Column("due_time", sa.String(5)),
        sa.Column("start_date", sa.DateTime(timezone=True)),
        sa.Column("project_id", sa.Uuid),
        sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("position", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True)),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("ix_task_user_id", "task", ["user_id"])
    op.create_index("ix_task_is_deleted", "task", ["is_deleted"])
    op.create_index("ix_task_user_project", "task", ["user_id", "project_id"])
    op.create_index("ix_task_user_due", "task", ["user_id", "due_date"])

    # Tag
    op.create_table(
        "tag",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(30), nullable=False),
        sa.Column("display_name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(200), nullable=False, server_default=""),
        sa.Column("color", sa.String(7), nullable=False),
        sa.Column("usage_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "name", name="uq_tag_user_name"),
    )
    op.create_index("ix_tag_user_id", "tag", ["user_id"])


def downgrade() -> None:
    op.drop_table("tag")
    op.drop_table("task")
    op.drop_table("project")
    op.drop_table("user_profile")
