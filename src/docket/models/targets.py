"""In-process target objects handed to the to-do service.

Targets (issues, merge requests, commits, alerts, designs, snippets) are
owned by the surrounding application. The service only needs a handful of
capabilities from each: a stable reference, the text that may mention
users, the current assignees and the owning project.
"""

from dataclasses import dataclass, field

from docket.errors.exceptions import ValidationError
from docket.models.enums import AccessLevel, TargetState, TargetType, Visibility


@dataclass
class Project:
    project_id: str
    visibility: Visibility = Visibility.PRIVATE
    repository_private: bool = False
    members: dict[str, AccessLevel] = field(default_factory=dict)

    def access_level(self, user_id: str) -> AccessLevel | None:
        return self.members.get(user_id)

    def add_member(self, user_id: str, level: AccessLevel) -> None:
        self.members[user_id] = level


@dataclass(frozen=True)
class TargetRef:
    """Polymorphic pointer persisted on every to-do record.

    Commits have no row identity, so their sha travels as ``commit_id``
    and ``target_id`` stays empty.
    """

    target_type: TargetType
    target_id: str | None = None
    commit_id: str | None = None

    def __post_init__(self):
        if self.target_type == TargetType.COMMIT:
            if not self.commit_id:
                raise ValidationError("Commit targets require a commit_id")
        elif not self.target_id:
            raise ValidationError(f"{self.target_type} target requires a target_id")

    @property
    def key(self) -> str:
        return self.commit_id if self.target_type == TargetType.COMMIT else self.target_id


@dataclass
class Issue:
    issue_id: str
    project: Project
    author_id: str | None = None
    title: str = ""
    description: str = ""
    assignees: list[str] = field(default_factory=list)
    confidential: bool = False
    state: TargetState = TargetState.OPENED

    def reference(self) -> TargetRef:
        return TargetRef(TargetType.ISSUE, target_id=self.issue_id)

    def text(self) -> str:
        return self.description or ""

    def assignee_ids(self) -> list[str]:
        return list(self.assignees)


@dataclass
class MergeRequest:
    merge_request_id: str
    project: Project
    author_id: str | None = None
    title: str = ""
    description: str = ""
    assignees: list[str] = field(default_factory=list)
    state: TargetState = TargetState.OPENED
    merge_user_id: str | None = None
    merge_when_pipeline_succeeds: bool = False

    def reference(self) -> TargetRef:
        return TargetRef(TargetType.MERGE_REQUEST, target_id=self.merge_request_id)

    def text(self) -> str:
        return self.description or ""

    def assignee_ids(self) -> list[str]:
        return list(self.assignees)

    def merge_participants(self) -> list[str]:
        """Users who care about the merge lifecycle: the author, plus whoever
        scheduled an automatic merge."""
        participants = [self.author_id] if self.author_id else []
        if (
            self.merge_when_pipeline_succeeds
            and self.merge_user_id
            and self.merge_user_id not in participants
        ):
            participants.append(self.merge_user_id)
        return participants


@dataclass
class Commit:
    sha: str
    project: Project
    author_id: str | None = None
    message: str = ""

    def reference(self) -> TargetRef:
        return TargetRef(TargetType.COMMIT, commit_id=self.sha)

    def text(self) -> str:
        return self.message or ""

    def assignee_ids(self) -> list[str]:
        return []


@dataclass
class Alert:
    alert_id: str
    project: Project
    title: str = ""
    description: str = ""
    assignees: list[str] = field(default_factory=list)
    author_id: str | None = None

    def reference(self) -> TargetRef:
        return TargetRef(TargetType.ALERT, target_id=self.alert_id)

    def text(self) -> str:
        return self.description or ""

    def assignee_ids(self) -> list[str]:
        return list(self.assignees)


@dataclass
class Design:
    design_id: str
    issue: Issue
    filename: str = ""

    @property
    def project(self) -> Project:
        return self.issue.project

    @property
    def author_id(self) -> str | None:
        return self.issue.author_id

    def reference(self) -> TargetRef:
        return TargetRef(TargetType.DESIGN, target_id=self.design_id)

    def text(self) -> str:
        return ""

    def assignee_ids(self) -> list[str]:
        return []


@dataclass
class ProjectSnippet:
    snippet_id: str
    project: Project
    author_id: str | None = None
    content: str = ""

    def reference(self) -> TargetRef:
        return TargetRef(TargetType.PROJECT_SNIPPET, target_id=self.snippet_id)

    def text(self) -> str:
        return self.content or ""

    def assignee_ids(self) -> list[str]:
        return []


Target = Issue | MergeRequest | Commit | Alert | Design | ProjectSnippet


@dataclass
class Note:
    """A comment left on a target (its ``noteable``)."""

    note_id: str
    noteable: Target
    author_id: str | None = None
    note: str = ""
    system: bool = False

    @property
    def project(self) -> Project:
        return self.noteable.project

    def text(self) -> str:
        return self.note or ""

    def can_create_todo(self) -> bool:
        return not self.system and not isinstance(self.noteable, ProjectSnippet)
