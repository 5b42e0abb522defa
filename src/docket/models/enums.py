"""String enums for to-do records and their targets."""

from enum import IntEnum, StrEnum


class TodoAction(StrEnum):
    ASSIGNED = "assigned"
    MENTIONED = "mentioned"
    DIRECTLY_ADDRESSED = "directly_addressed"
    MARKED = "marked"
    BUILD_FAILED = "build_failed"
    UNMERGEABLE = "unmergeable"

    @property
    def deduplicated(self) -> bool:
        """Automatic classifications keep at most one pending record per target."""
        return self in _DEDUPLICATED_ACTIONS


_DEDUPLICATED_ACTIONS = frozenset(
    {TodoAction.ASSIGNED, TodoAction.MENTIONED, TodoAction.DIRECTLY_ADDRESSED}
)


class TodoState(StrEnum):
    PENDING = "pending"
    DONE = "done"


class ResolvedBy(StrEnum):
    """How a to-do transitioned to done."""

    SYSTEM_DONE = "system_done"
    API_ALL_DONE = "api_all_done"
    API_DONE = "api_done"
    MARK_ALL_DONE = "mark_all_done"
    MARK_DONE = "mark_done"


class TargetType(StrEnum):
    ISSUE = "Issue"
    MERGE_REQUEST = "MergeRequest"
    COMMIT = "Commit"
    ALERT = "AlertManagement::Alert"
    DESIGN = "DesignManagement::Design"
    PROJECT_SNIPPET = "ProjectSnippet"


class TargetState(StrEnum):
    OPENED = "opened"
    CLOSED = "closed"
    MERGED = "merged"


class Visibility(StrEnum):
    PRIVATE = "private"
    INTERNAL = "internal"
    PUBLIC = "public"


class AccessLevel(IntEnum):
    GUEST = 10
    REPORTER = 20
    DEVELOPER = 30
    MAINTAINER = 40
    OWNER = 50
