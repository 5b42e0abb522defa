"""To-do ledger: the state machine of to-do records and the cached counters.

The ledger never commits. Callers run it inside ``unit_of_work`` so a
to-do mutation and the counter refresh that follows it land together or
not at all.
"""

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docket.db.models.todo import TodoRow
from docket.errors.exceptions import ConflictError, ValidationError
from docket.models.enums import ResolvedBy, TargetType, TodoAction, TodoState
from docket.models.targets import TargetRef
from docket.repositories.todo_repo import TodoRepository
from docket.repositories.user_repo import UserRepository
from docket.services.id_generator import generate_id
from docket.services.todos.recipients import Recipient

logger = logging.getLogger(__name__)


def coerce_action(action: str) -> TodoAction:
    try:
        return TodoAction(action)
    except ValueError:
        raise ValidationError(f"Unknown to-do action '{action}'") from None


def _coerce_state(state: str) -> TodoState:
    try:
        return TodoState(state)
    except ValueError:
        raise ValidationError(f"Unknown to-do state '{state}'") from None


def _coerce_resolved_by(value: str | None) -> ResolvedBy | None:
    if value is None:
        return None
    try:
        return ResolvedBy(value)
    except ValueError:
        raise ValidationError(f"Unknown resolution mechanism '{value}'") from None


def _check_target(target: TargetRef | None) -> TargetRef:
    if target is None:
        raise ValidationError("A target reference is required")
    if target.target_type == TargetType.PROJECT_SNIPPET:
        raise ValidationError("Snippets do not carry to-dos")
    return target


class TodoLedger:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.todos = TodoRepository(session)
        self.users = UserRepository(session)

    async def upsert_pending(
        self,
        recipient: str,
        author: str,
        target: TargetRef,
        action: str,
        project_id: str,
        note_id: str | None = None,
    ) -> bool:
        """Insert one pending to-do; returns False when deduplicated away."""
        rows = await self.bulk_upsert_pending(
            [Recipient(recipient, coerce_action(action))],
            author,
            target,
            project_id,
            note_id=note_id,
        )
        return bool(rows)

    async def bulk_upsert_pending(
        self,
        recipients: Sequence[Recipient],
        author: str,
        target: TargetRef,
        project_id: str,
        note_id: str | None = None,
    ) -> list[TodoRow]:
        """Insert pending to-dos for ``recipients`` in one flush.

        ASSIGNED, MENTIONED and DIRECTLY_ADDRESSED are skipped for users who
        already hold a pending to-do with that action on ``target``. MARKED,
        BUILD_FAILED and UNMERGEABLE are always inserted.
        """
        _check_target(target)
        if not recipients:
            return []

        wanted = [(r.user_id, coerce_action(r.action)) for r in recipients]
        existing: dict[TodoAction, set[str]] = {}
        for action in {a for _, a in wanted if a.deduplicated}:
            existing[action] = await self.todos.users_with_pending(
                target,
                action=action.value,
                among=[uid for uid, a in wanted if a == action],
            )

        rows: list[TodoRow] = []
        for user_id, action in wanted:
            if action.deduplicated:
                holders = existing[action]
                if user_id in holders:
                    continue
                holders.add(user_id)
            rows.append(
                TodoRow(
                    todo_id=generate_id("todo_"),
                    user_id=user_id,
                    author_id=author,
                    project_id=project_id,
                    target_type=target.target_type.value,
                    target_id=target.target_id,
                    commit_id=target.commit_id,
                    note_id=note_id,
                    action=action.value,
                    state=TodoState.PENDING.value,
                )
            )

        if not rows:
            return []
        self.session.add_all(rows)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError("A pending to-do was created concurrently for this target") from exc
        await self.refresh_counts({row.user_id for row in rows})
        logger.info("Created %d pending to-do(s)", len(rows))
        return rows

    async def resolve_for_target(
        self,
        target: TargetRef,
        recipient: str | None = None,
        action: str | None = None,
        resolved_by_action: str = ResolvedBy.SYSTEM_DONE,
    ) -> list[str]:
        """Mark pending to-dos on ``target`` done, optionally for one recipient
        and one action only. Returns the affected ids."""
        action_value = coerce_action(action).value if action is not None else None
        ids = await self.todos.pending_ids(
            _check_target(target), user_id=recipient, action=action_value
        )
        return await self._transition(
            ids, TodoState.DONE, _coerce_resolved_by(resolved_by_action)
        )

    async def resolve_collection(
        self,
        todo_ids: Iterable[str],
        user_id: str,
        resolution: str = TodoState.DONE,
        resolved_by_action: str | None = ResolvedBy.SYSTEM_DONE,
    ) -> list[str]:
        """Move the acting user's to-dos among ``todo_ids`` to ``resolution``.

        Ids owned by other users or already in ``resolution`` are left alone.
        """
        requested = list(dict.fromkeys(todo_ids))
        if not requested:
            return []
        state = _coerce_state(resolution)
        ids = await self.todos.owned_ids_not_in_state(requested, user_id, state.value)
        resolved_by = None if state == TodoState.PENDING else _coerce_resolved_by(resolved_by_action)
        return await self._transition(ids, state, resolved_by, owners={user_id})

    async def restore_collection(self, todo_ids: Iterable[str], user_id: str) -> list[str]:
        return await self.resolve_collection(todo_ids, user_id, resolution=TodoState.PENDING)

    async def pending_exists(self, target: TargetRef, user_id: str) -> bool:
        return bool(await self.todos.pending_ids(_check_target(target), user_id=user_id))

    async def pending_ids_for_user(self, user_id: str) -> list[str]:
        rows = await self.todos.find(user_id=user_id, state=TodoState.PENDING.value)
        return [row.todo_id for row in rows]

    async def resolve_build_failures(self, target: TargetRef, recipient: str) -> list[str]:
        return await self.resolve_for_target(
            target, recipient=recipient, action=TodoAction.BUILD_FAILED
        )

    async def users_with_pending_for_target(self, target: TargetRef) -> list[str]:
        return sorted(await self.todos.users_with_pending(_check_target(target)))

    async def count(self, target: TargetRef | None = None, **filters) -> int:
        return await self.todos.count(target, **filters)

    async def list_for_user(self, user_id: str, **filters) -> list[TodoRow]:
        return await self.todos.list_for_user(user_id, **filters)

    async def delete_for_target(self, target: TargetRef) -> int:
        return await self.todos.delete_for_target(_check_target(target))

    async def refresh_counts(self, user_ids: Iterable[str]) -> None:
        """Recompute both cached counters of each user from the todos table."""
        counts = await self.todos.state_counts(user_ids)
        for user_id, by_state in counts.items():
            await self.users.set_todo_counts(
                user_id,
                pending=by_state.get(TodoState.PENDING.value, 0),
                done=by_state.get(TodoState.DONE.value, 0),
            )

    async def _transition(
        self,
        todo_ids: list[str],
        state: TodoState,
        resolved_by_action: ResolvedBy | None,
        owners: set[str] | None = None,
    ) -> list[str]:
        if not todo_ids:
            return []
        if owners is None:
            owners = await self.todos.owners_of(todo_ids)
        try:
            updated = await self.todos.set_state(
                todo_ids,
                state.value,
                resolved_by_action.value if resolved_by_action is not None else None,
            )
        except IntegrityError as exc:
            raise ConflictError("Restoring would duplicate a pending to-do") from exc
        if updated != len(todo_ids):
            raise ConflictError(
                f"Expected to update {len(todo_ids)} to-do(s) but updated {updated}"
            )
        await self.refresh_counts(owners)
        logger.info("Moved %d to-do(s) to %s", updated, state.value)
        return todo_ids
