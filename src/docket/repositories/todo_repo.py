"""To-do repository: set-oriented queries over the todos table."""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docket.db.base import utcnow
from docket.db.models.todo import TodoRow
from docket.models.enums import TodoState
from docket.models.targets import TargetRef
from docket.repositories.base import BaseRepository


def target_clauses(ref: TargetRef) -> list:
    """WHERE clauses matching every to-do that points at ``ref``."""
    clauses = [TodoRow.target_type == ref.target_type.value]
    if ref.target_id is None:
        clauses.append(TodoRow.target_id.is_(None))
    else:
        clauses.append(TodoRow.target_id == ref.target_id)
    if ref.commit_id is None:
        clauses.append(TodoRow.commit_id.is_(None))
    else:
        clauses.append(TodoRow.commit_id == ref.commit_id)
    return clauses


class TodoRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, TodoRow)

    async def find(self, target: TargetRef | None = None, **criteria: Any) -> list[TodoRow]:
        """Return to-dos matching ``target`` and plain column equality criteria."""
        stmt = (
            select(TodoRow)
            .where(*self._where(target, criteria))
            .order_by(TodoRow.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, target: TargetRef | None = None, **criteria: Any) -> int:
        stmt = select(func.count()).select_from(TodoRow).where(*self._where(target, criteria))
        return (await self.session.execute(stmt)).scalar() or 0

    async def pending_ids(
        self,
        target: TargetRef,
        user_id: str | None = None,
        action: str | None = None,
    ) -> list[str]:
        criteria: dict[str, Any] = {"state": TodoState.PENDING.value}
        if user_id is not None:
            criteria["user_id"] = user_id
        if action is not None:
            criteria["action"] = action
        stmt = select(TodoRow.todo_id).where(*self._where(target, criteria))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def users_with_pending(
        self,
        target: TargetRef,
        action: str | None = None,
        among: Iterable[str] | None = None,
    ) -> set[str]:
        """Distinct recipients holding a pending to-do on ``target``."""
        stmt = select(TodoRow.user_id).distinct().where(
            *target_clauses(target),
            TodoRow.state == TodoState.PENDING.value,
        )
        if action is not None:
            stmt = stmt.where(TodoRow.action == action)
        if among is not None:
            stmt = stmt.where(TodoRow.user_id.in_(list(among)))
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def owners_of(self, todo_ids: Iterable[str]) -> set[str]:
        stmt = select(TodoRow.user_id).distinct().where(TodoRow.todo_id.in_(list(todo_ids)))
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def owned_ids_not_in_state(
        self, todo_ids: Iterable[str], user_id: str, state: str
    ) -> list[str]:
        """Ids among ``todo_ids`` that belong to ``user_id`` and would change state."""
        stmt = select(TodoRow.todo_id).where(
            TodoRow.todo_id.in_(list(todo_ids)),
            TodoRow.user_id == user_id,
            TodoRow.state != state,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_state(self, todo_ids: list[str], state: str, resolved_by_action: str | None) -> int:
        """Move every listed to-do to ``state`` in a single UPDATE."""
        if not todo_ids:
            return 0
        stmt = (
            update(TodoRow)
            .where(TodoRow.todo_id.in_(todo_ids))
            .values(state=state, resolved_by_action=resolved_by_action, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def delete_for_target(self, target: TargetRef) -> int:
        stmt = delete(TodoRow).where(*target_clauses(target)).execution_options(
            synchronize_session=False
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def state_counts(self, user_ids: Iterable[str]) -> dict[str, dict[str, int]]:
        """Per-user ``{state: count}`` computed from the table, not the cache."""
        ids = list(user_ids)
        counts: dict[str, dict[str, int]] = {uid: {} for uid in ids}
        if not ids:
            return counts
        stmt = (
            select(TodoRow.user_id, TodoRow.state, func.count())
            .where(TodoRow.user_id.in_(ids))
            .group_by(TodoRow.user_id, TodoRow.state)
        )
        for user_id, state, total in (await self.session.execute(stmt)).all():
            counts[user_id][state] = total
        return counts

    async def list_for_user(
        self,
        user_id: str,
        state: str | None = None,
        action: str | None = None,
        project_id: str | None = None,
        limit: int = 50,
    ) -> list[TodoRow]:
        stmt = select(TodoRow).where(TodoRow.user_id == user_id)
        if state:
            stmt = stmt.where(TodoRow.state == state)
        if action:
            stmt = stmt.where(TodoRow.action == action)
        if project_id:
            stmt = stmt.where(TodoRow.project_id == project_id)
        stmt = (
            stmt.order_by(TodoRow.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    def _where(target: TargetRef | None, criteria: dict[str, Any]) -> list:
        clauses = target_clauses(target) if target is not None else []
        for field, value in criteria.items():
            column = getattr(TodoRow, field)
            clauses.append(column.is_(None) if value is None else column == value)
        return clauses
