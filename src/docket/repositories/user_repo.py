"""User and group repositories."""

from collections.abc import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docket.db.models.group import GroupMemberRow, GroupRow
from docket.db.models.user import UserRow
from docket.repositories.base import BaseRepository


class UserRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, UserRow)

    async def ids_for_usernames(self, usernames: Iterable[str]) -> dict[str, str]:
        """Map lower-cased usernames to user ids; unknown names are omitted."""
        lowered = {name.lower() for name in usernames}
        if not lowered:
            return {}
        stmt = select(func.lower(UserRow.username), UserRow.user_id).where(
            func.lower(UserRow.username).in_(lowered)
        )
        result = await self.session.execute(stmt)
        return {name: user_id for name, user_id in result.all()}

    async def admin_ids(self) -> set[str]:
        result = await self.session.execute(select(UserRow.user_id).where(UserRow.is_admin.is_(True)))
        return set(result.scalars().all())

    async def set_todo_counts(self, user_id: str, pending: int, done: int) -> None:
        await self.session.execute(
            update(UserRow)
            .where(UserRow.user_id == user_id)
            .values(todos_pending_count=pending, todos_done_count=done)
        )


class GroupRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, GroupRow)

    async def member_ids_by_path(self, paths: Iterable[str]) -> dict[str, set[str]]:
        """Map lower-cased group paths to the ids of their members."""
        lowered = {path.lower() for path in paths}
        if not lowered:
            return {}
        stmt = (
            select(func.lower(GroupRow.path), GroupMemberRow.user_id)
            .join(GroupMemberRow, GroupMemberRow.group_id == GroupRow.group_id)
            .where(func.lower(GroupRow.path).in_(lowered))
        )
        result = await self.session.execute(stmt)
        members: dict[str, set[str]] = {}
        for path, user_id in result.all():
            members.setdefault(path, set()).add(user_id)
        return members

    async def add_member(self, group_id: str, user_id: str) -> GroupMemberRow:
        row = GroupMemberRow(group_id=group_id, user_id=user_id)
        self.session.add(row)
        await self.session.flush()
        return row
