"""Decide who gets which to-do for a triggering event."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from docket.models.enums import TodoAction
from docket.models.targets import Target
from docket.services.todos.references import ReferenceResolver
from docket.services.todos.task_list import only_task_toggles
from docket.services.todos.visibility import VisibilityOracle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    user_id: str
    action: TodoAction


async def classify_recipients(
    text: str,
    target: Target,
    *,
    references: ReferenceResolver,
    visibility: VisibilityOracle,
    skip_users: Iterable[str] = (),
    previous_text: str | None = None,
) -> list[Recipient]:
    """Classify the users referenced by ``text`` into textual to-do actions.

    A user referenced both at the start of a line and elsewhere is only
    DIRECTLY_ADDRESSED. When ``previous_text`` is given the event is an
    update: a checkbox-only edit yields nothing, otherwise only references
    that are new relative to ``previous_text`` are considered. Users in
    ``skip_users`` and users who cannot see ``target`` are dropped.
    """
    if only_task_toggles(previous_text, text):
        logger.debug("Skipping mention to-dos for task list toggle")
        return []

    current = await references.scan(text or "")
    addressed = set(current.addressed)
    mentioned = set(current.mentioned) - addressed

    if previous_text is not None:
        before = await references.scan(previous_text)
        addressed -= before.addressed
        mentioned -= before.addressed | before.mentioned

    skipped = set(skip_users)
    recipients = []
    for action, user_ids in (
        (TodoAction.DIRECTLY_ADDRESSED, addressed),
        (TodoAction.MENTIONED, mentioned),
    ):
        for user_id in sorted(user_ids - skipped):
            if visibility.can_see(user_id, target):
                recipients.append(Recipient(user_id, action))
    return recipients


def assignment_recipients(
    target: Target,
    *,
    visibility: VisibilityOracle,
    old_assignees: Iterable[str] = (),
) -> list[Recipient]:
    """ASSIGNED recipients: current assignees that were not assigned before."""
    previous = set(old_assignees)
    recipients = []
    for user_id in dict.fromkeys(target.assignee_ids()):
        if user_id not in previous and visibility.can_see(user_id, target):
            recipients.append(Recipient(user_id, TodoAction.ASSIGNED))
    return recipients


def participant_recipients(
    participants: Iterable[str],
    action: TodoAction,
    target: Target,
    *,
    visibility: VisibilityOracle,
) -> list[Recipient]:
    """Role-derived recipients for merge lifecycle events, in participant order."""
    return [
        Recipient(user_id, action)
        for user_id in dict.fromkeys(participants)
        if visibility.can_see(user_id, target)
    ]
