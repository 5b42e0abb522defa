"""To-do event dispatcher.

One public coroutine per domain event. Each runs inside a single
``unit_of_work`` so the to-do rows it touches and the counters of the
affected users are committed together; any exception raised while
classifying recipients (including from the reference resolver or the
visibility oracle) rolls the whole event back.
"""

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from docket.db.engine import unit_of_work
from docket.db.models.todo import TodoRow
from docket.errors.exceptions import ValidationError
from docket.logging_config import todo_event_context
from docket.models.enums import ResolvedBy, TargetState, TodoAction, TodoState
from docket.models.targets import Issue, MergeRequest, Note, ProjectSnippet, Target, TargetRef
from docket.services.todos.ledger import TodoLedger
from docket.services.todos.recipients import (
    Recipient,
    assignment_recipients,
    classify_recipients,
    participant_recipients,
)
from docket.services.todos.references import MentionResolver, ReferenceResolver
from docket.services.todos.visibility import VisibilityOracle

logger = logging.getLogger(__name__)


def _require_state(target: Issue | MergeRequest, state: TargetState) -> None:
    """State transitions are dispatched after the target has moved."""
    if target.state != state:
        raise ValidationError(
            f"{target.reference().target_type} is {target.state}, expected {state}"
        )


class TodoService:
    def __init__(
        self,
        session: AsyncSession,
        visibility: VisibilityOracle,
        references: ReferenceResolver | None = None,
    ):
        self.session = session
        self.visibility = visibility
        self.references = references or MentionResolver(session)
        self.ledger = TodoLedger(session)

    # ── issues ───────────────────────────────────────────────

    async def new_issue(self, issue: Issue, current_user_id: str) -> list[TodoRow]:
        """Assignee and mention to-dos for a freshly created issue."""
        async with self._event("new_issue", issue) as ref:
            return await self._create_for_new(issue, ref, current_user_id)

    async def update_issue(
        self,
        issue: Issue,
        current_user_id: str,
        skip_users: Iterable[str] = (),
        previous_description: str | None = None,
    ) -> list[TodoRow]:
        async with self._event("update_issue", issue) as ref:
            return await self._create_for_update(
                issue, ref, current_user_id, skip_users, previous_description
            )

    async def close_issue(self, issue: Issue, current_user_id: str) -> list[str]:
        _require_state(issue, TargetState.CLOSED)
        async with self._event("close_issue", issue) as ref:
            return await self._resolve_all(ref, current_user_id)

    async def reopen_issue(self, issue: Issue, current_user_id: str) -> None:
        _require_state(issue, TargetState.OPENED)
        with todo_event_context("reopen_issue", issue.reference().target_type.value, issue.issue_id):
            logger.debug("Reopening does not recreate to-dos")

    # ── merge requests ───────────────────────────────────────

    async def new_merge_request(self, mr: MergeRequest, current_user_id: str) -> list[TodoRow]:
        async with self._event("new_merge_request", mr) as ref:
            return await self._create_for_new(mr, ref, current_user_id)

    async def update_merge_request(
        self,
        mr: MergeRequest,
        current_user_id: str,
        skip_users: Iterable[str] = (),
        previous_description: str | None = None,
    ) -> list[TodoRow]:
        async with self._event("update_merge_request", mr) as ref:
            return await self._create_for_update(
                mr, ref, current_user_id, skip_users, previous_description
            )

    async def close_merge_request(self, mr: MergeRequest, current_user_id: str) -> list[str]:
        _require_state(mr, TargetState.CLOSED)
        async with self._event("close_merge_request", mr) as ref:
            return await self._resolve_all(ref, current_user_id)

    async def reopen_merge_request(self, mr: MergeRequest, current_user_id: str) -> None:
        _require_state(mr, TargetState.OPENED)
        with todo_event_context(
            "reopen_merge_request", mr.reference().target_type.value, mr.merge_request_id
        ):
            logger.debug("Reopening does not recreate to-dos")

    async def merge_merge_request(self, mr: MergeRequest, current_user_id: str) -> list[str]:
        _require_state(mr, TargetState.MERGED)
        async with self._event("merge_merge_request", mr) as ref:
            return await self._resolve_all(ref, current_user_id)

    async def merge_request_build_failed(self, mr: MergeRequest) -> int:
        """A fresh BUILD_FAILED to-do for every merge participant."""
        async with self._event("merge_request_build_failed", mr) as ref:
            return await self._notify_participants(mr, ref, TodoAction.BUILD_FAILED)

    async def merge_request_became_unmergeable(self, mr: MergeRequest) -> int:
        async with self._event("merge_request_became_unmergeable", mr) as ref:
            return await self._notify_participants(mr, ref, TodoAction.UNMERGEABLE)

    async def merge_request_push(self, mr: MergeRequest, current_user_id: str) -> list[str]:
        """Pushing new commits clears the pusher's build failure to-dos."""
        async with self._event("merge_request_push", mr) as ref:
            return await self.ledger.resolve_build_failures(ref, current_user_id)

    # ── assignment, notes, reactions ─────────────────────────

    async def reassigned_assignable(
        self,
        target: Target,
        current_user_id: str,
        old_assignees: Iterable[str] = (),
    ) -> list[TodoRow]:
        async with self._event("reassigned_assignable", target) as ref:
            recipients = assignment_recipients(
                target, visibility=self.visibility, old_assignees=old_assignees
            )
            return await self.ledger.bulk_upsert_pending(
                recipients, current_user_id, ref, target.project.project_id
            )

    async def new_note(self, note: Note, current_user_id: str) -> list[TodoRow]:
        """Commenting on a target resolves the commenter's own pending to-dos
        on it, then creates mention to-dos pointing at the note."""
        return await self._handle_note("new_note", note, current_user_id)

    async def update_note(
        self,
        note: Note,
        current_user_id: str,
        skip_users: Iterable[str] = (),
        previous_note: str | None = None,
    ) -> list[TodoRow]:
        return await self._handle_note(
            "update_note", note, current_user_id, skip_users, previous_note
        )

    async def new_award_emoji(self, target: Target, current_user_id: str) -> list[str]:
        async with self._event("new_award_emoji", target) as ref:
            return await self.ledger.resolve_for_target(ref, recipient=current_user_id)

    # ── manual to-dos ────────────────────────────────────────

    async def mark_todo(self, target: Target, current_user_id: str) -> list[TodoRow]:
        async with self._event("mark_todo", target) as ref:
            return await self.ledger.bulk_upsert_pending(
                [Recipient(current_user_id, TodoAction.MARKED)],
                current_user_id,
                ref,
                target.project.project_id,
            )

    async def todo_exist(self, target: Target, current_user_id: str) -> bool:
        return await self.ledger.pending_exists(target.reference(), current_user_id)

    async def resolve_todos_for_target(self, target: Target, current_user_id: str) -> list[str]:
        async with self._event("resolve_todos_for_target", target) as ref:
            return await self.ledger.resolve_for_target(ref, recipient=current_user_id)

    async def resolve_todos(
        self,
        todo_ids: Iterable[str],
        current_user_id: str,
        resolution: str = TodoState.DONE,
        resolved_by_action: str = ResolvedBy.SYSTEM_DONE,
    ) -> list[str]:
        async with self._collection_event("resolve_todos"):
            return await self.ledger.resolve_collection(
                todo_ids, current_user_id, resolution, resolved_by_action
            )

    async def restore_todos(self, todo_ids: Iterable[str], current_user_id: str) -> list[str]:
        async with self._collection_event("restore_todos"):
            return await self.ledger.restore_collection(todo_ids, current_user_id)

    async def resolve_todo(
        self,
        todo: TodoRow,
        current_user_id: str,
        resolved_by_action: str = ResolvedBy.SYSTEM_DONE,
    ) -> list[str]:
        return await self.resolve_todos(
            [todo.todo_id], current_user_id, resolved_by_action=resolved_by_action
        )

    async def restore_todo(self, todo: TodoRow, current_user_id: str) -> list[str]:
        return await self.restore_todos([todo.todo_id], current_user_id)

    async def resolve_all_pending(
        self,
        current_user_id: str,
        resolved_by_action: str = ResolvedBy.API_ALL_DONE,
    ) -> list[str]:
        """Mark every pending to-do of the acting user done."""
        async with self._collection_event("resolve_all_pending"):
            ids = await self.ledger.pending_ids_for_user(current_user_id)
            return await self.ledger.resolve_collection(
                ids, current_user_id, TodoState.DONE, resolved_by_action
            )

    # ── target lifecycle ─────────────────────────────────────

    @asynccontextmanager
    async def destroy_target(self, target: Target) -> AsyncIterator[Target]:
        """Wrap the deletion of ``target``.

        Users holding a pending to-do on the target are collected first. The
        caller deletes the target inside the block; afterwards every to-do on
        it is removed and the collected users' counters are recomputed, all in
        the same transaction as the caller's deletion.
        """
        if isinstance(target, ProjectSnippet):
            yield target
            return
        async with self._event("destroy_target", target) as ref:
            holders = await self.ledger.users_with_pending_for_target(ref)
            yield target
            removed = await self.ledger.delete_for_target(ref)
            await self.ledger.refresh_counts(holders)
            logger.info("Deleted %d to-do(s) of destroyed target", removed)

    # ── internals ────────────────────────────────────────────

    @asynccontextmanager
    async def _event(self, name: str, target: Target) -> AsyncIterator[TargetRef]:
        ref = target.reference()
        with todo_event_context(name, ref.target_type.value, ref.key):
            async with unit_of_work(self.session):
                yield ref

    @asynccontextmanager
    async def _collection_event(self, name: str) -> AsyncIterator[None]:
        with todo_event_context(name, "Todo", None):
            async with unit_of_work(self.session):
                yield

    async def _create_for_new(
        self, target: Target, ref: TargetRef, current_user_id: str
    ) -> list[TodoRow]:
        # On creation assignees get ASSIGNED only, never a textual to-do as well.
        recipients = assignment_recipients(target, visibility=self.visibility)
        recipients += await classify_recipients(
            target.text(),
            target,
            references=self.references,
            visibility=self.visibility,
            skip_users=target.assignee_ids(),
        )
        return await self.ledger.bulk_upsert_pending(
            recipients, current_user_id, ref, target.project.project_id
        )

    async def _create_for_update(
        self,
        target: Target,
        ref: TargetRef,
        current_user_id: str,
        skip_users: Iterable[str],
        previous_text: str | None,
    ) -> list[TodoRow]:
        recipients = await classify_recipients(
            target.text(),
            target,
            references=self.references,
            visibility=self.visibility,
            skip_users=skip_users,
            previous_text=previous_text,
        )
        return await self.ledger.bulk_upsert_pending(
            recipients, current_user_id, ref, target.project.project_id
        )

    async def _resolve_all(self, ref: TargetRef, current_user_id: str) -> list[str]:
        resolved = await self.ledger.resolve_for_target(ref)
        logger.info("Resolved %d to-do(s) on behalf of %s", len(resolved), current_user_id)
        return resolved

    async def _notify_participants(
        self, mr: MergeRequest, ref: TargetRef, action: TodoAction
    ) -> int:
        created = 0
        for recipient in participant_recipients(
            mr.merge_participants(), action, mr, visibility=self.visibility
        ):
            if await self.ledger.upsert_pending(
                recipient.user_id,
                recipient.user_id,
                ref,
                recipient.action,
                mr.project.project_id,
            ):
                created += 1
        return created

    async def _handle_note(
        self,
        name: str,
        note: Note,
        current_user_id: str,
        skip_users: Iterable[str] = (),
        previous_note: str | None = None,
    ) -> list[TodoRow]:
        if not note.can_create_todo():
            logger.debug("Note %s cannot create to-dos", note.note_id)
            return []
        noteable = note.noteable
        async with self._event(name, noteable) as ref:
            await self.ledger.resolve_for_target(ref, recipient=current_user_id)
            recipients = await classify_recipients(
                note.text(),
                noteable,
                references=self.references,
                visibility=self.visibility,
                skip_users=skip_users,
                previous_text=previous_note,
            )
            return await self.ledger.bulk_upsert_pending(
                recipients,
                current_user_id,
                ref,
                note.project.project_id,
                note_id=note.note_id,
            )
