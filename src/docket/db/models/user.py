"""User table with the denormalized to-do counters."""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from docket.db.base import Base, TimestampMixin


class UserRow(Base, TimestampMixin):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    todos_pending_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    todos_done_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
