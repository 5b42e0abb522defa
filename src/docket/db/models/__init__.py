"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from docket.db.models.user import UserRow
from docket.db.models.group import GroupRow, GroupMemberRow
from docket.db.models.todo import TodoRow

__all__ = [
    "UserRow",
    "GroupRow",
    "GroupMemberRow",
    "TodoRow",
]
