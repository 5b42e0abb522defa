"""Visibility oracle: may a user see the target a to-do would point at?"""

from collections.abc import Iterable
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from docket.models.enums import AccessLevel, Visibility
from docket.models.targets import (
    Alert,
    Commit,
    Design,
    Issue,
    MergeRequest,
    Project,
    ProjectSnippet,
    Target,
)
from docket.repositories.user_repo import UserRepository


class VisibilityOracle(Protocol):
    def can_see(self, user_id: str, target: Target) -> bool: ...


class ProjectAccessPolicy:
    """Project-membership based read rules.

    Admins read everything. Issues and designs follow project readability,
    confidential issues further require authorship, assignment or reporter
    access. Merge requests and commits follow repository readability, alerts
    require developer access. Snippets never carry to-dos.
    """

    def __init__(self, admin_ids: Iterable[str] = ()):
        self.admin_ids = frozenset(admin_ids)

    def can_see(self, user_id: str, target: Target) -> bool:
        if isinstance(target, ProjectSnippet):
            return False
        if user_id in self.admin_ids:
            return True
        if isinstance(target, Issue):
            return self._can_read_issue(user_id, target)
        if isinstance(target, Design):
            return self._can_read_issue(user_id, target.issue)
        if isinstance(target, MergeRequest):
            return self._can_read_code(user_id, target.project, minimum=AccessLevel.REPORTER)
        if isinstance(target, Commit):
            return self._can_read_commit(user_id, target.project)
        if isinstance(target, Alert):
            return _at_least(target.project, user_id, AccessLevel.DEVELOPER)
        return False

    def _can_read_issue(self, user_id: str, issue: Issue) -> bool:
        if not _can_read_project(issue.project, user_id):
            return False
        if not issue.confidential:
            return True
        return (
            user_id == issue.author_id
            or user_id in issue.assignees
            or _at_least(issue.project, user_id, AccessLevel.REPORTER)
        )

    def _can_read_commit(self, user_id: str, project: Project) -> bool:
        if project.visibility != Visibility.PRIVATE and project.repository_private:
            return project.access_level(user_id) is not None
        return self._can_read_code(user_id, project, minimum=AccessLevel.REPORTER)

    @staticmethod
    def _can_read_code(user_id: str, project: Project, minimum: AccessLevel) -> bool:
        if project.visibility != Visibility.PRIVATE and not project.repository_private:
            return True
        return _at_least(project, user_id, minimum)


def _can_read_project(project: Project, user_id: str) -> bool:
    if project.visibility != Visibility.PRIVATE:
        return True
    return project.access_level(user_id) is not None


def _at_least(project: Project, user_id: str, minimum: AccessLevel) -> bool:
    level = project.access_level(user_id)
    return level is not None and level >= minimum


async def load_access_policy(session: AsyncSession) -> ProjectAccessPolicy:
    """Policy whose admins are the users flagged ``is_admin``."""
    return ProjectAccessPolicy(await UserRepository(session).admin_ids())
