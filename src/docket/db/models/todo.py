"""To-do records: one pending or done work item per recipient and target."""

from sqlalchemy import ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from docket.db.base import Base, TimestampMixin


class TodoRow(Base, TimestampMixin):
    __tablename__ = "todos"
    __table_args__ = (
        Index("ix_todos_target", "target_type", "target_id", "commit_id"),
        Index("ix_todos_user_state", "user_id", "state"),
    )

    todo_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str] = mapped_column(String(128), nullable=False)
    project_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    target_type: Mapped[str] = mapped_column(String(64), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    commit_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    note_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    state: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    resolved_by_action: Mapped[str | None] = mapped_column(String(32), nullable=True)


_AUTOMATIC_PENDING = (TodoRow.state == "pending") & TodoRow.action.in_(
    ["assigned", "mentioned", "directly_addressed"]
)

# One pending automatic to-do per (recipient, target, action).
Index(
    "uq_todos_pending_automatic",
    TodoRow.user_id,
    TodoRow.target_type,
    func.coalesce(TodoRow.target_id, ""),
    func.coalesce(TodoRow.commit_id, ""),
    TodoRow.action,
    unique=True,
    postgresql_where=_AUTOMATIC_PENDING,
    sqlite_where=_AUTOMATIC_PENDING,
)
