"""Initial to-do tables.

Revision ID: 0001
Revises:
"""

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_AUTOMATIC_PENDING = (
    "state = 'pending' AND action IN ('assigned', 'mentioned', 'directly_addressed')"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("todos_pending_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("todos_done_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "groups",
        sa.Column("group_id", sa.String(128), primary_key=True),
        sa.Column("path", sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_groups_path", "groups", ["path"], unique=True)

    op.create_table(
        "group_members",
        sa.Column(
            "group_id",
            sa.String(128),
            sa.ForeignKey("groups.group_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.String(128),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "todos",
        sa.Column("todo_id", sa.String(128), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(128),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", sa.String(128), nullable=False),
        sa.Column("project_id", sa.String(128), nullable=False),
        sa.Column("target_type", sa.String(64), nullable=False),
        sa.Column("target_id", sa.String(128), nullable=True),
        sa.Column("commit_id", sa.String(64), nullable=True),
        sa.Column("note_id", sa.String(128), nullable=True),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("state", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("resolved_by_action", sa.String(32), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_todos_project_id", "todos", ["project_id"])
    op.create_index("ix_todos_target", "todos", ["target_type", "target_id", "commit_id"])
    op.create_index("ix_todos_user_state", "todos", ["user_id", "state"])
    op.create_index(
        "uq_todos_pending_automatic",
        "todos",
        [
            "user_id",
            "target_type",
            sa.text("coalesce(target_id, '')"),
            sa.text("coalesce(commit_id, '')"),
            "action",
        ],
        unique=True,
        postgresql_where=sa.text(_AUTOMATIC_PENDING),
        sqlite_where=sa.text(_AUTOMATIC_PENDING),
    )


def downgrade() -> None:
    op.drop_table("todos")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("users")
