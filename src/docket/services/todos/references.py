"""Mention extraction glue.

``scan_references`` walks a Markdown body and lazily yields each distinct
``@handle`` together with whether it was *directly addressed* (part of the
run of mentions that opens a line) or merely mentioned. ``MentionResolver``
turns those handles into user ids, expanding group mentions to members.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from docket.repositories.user_repo import GroupRepository, UserRepository

logger = logging.getLogger(__name__)

_HANDLE = r"[A-Za-z0-9_](?:[A-Za-z0-9_.\-/]*[A-Za-z0-9_])?"
_MENTION_RE = re.compile(rf"(?<![\w@.`])@(?P<handle>{_HANDLE})")
_LEADING_RUN_RE = re.compile(rf"[ \t]*(?:@{_HANDLE}[ \t,]*)+")
_CODE_RE = re.compile(r"```.*?```|`[^`\n]*`", re.DOTALL)


@dataclass(frozen=True)
class References:
    """User ids referenced by a body of text, split by how they were referenced."""

    addressed: frozenset[str] = frozenset()
    mentioned: frozenset[str] = frozenset()


class ReferenceResolver(Protocol):
    async def scan(self, text: str) -> References: ...


def _mask_code(match: re.Match) -> str:
    # Same shape, no spaces: a mention after code never opens its line.
    return re.sub(r"[^\n]", "#", match.group(0))


def _strip_code(text: str) -> str:
    return _CODE_RE.sub(_mask_code, text)


def scan_references(text: str | None) -> Iterator[tuple[str, bool]]:
    """Yield ``(handle, addressed)`` pairs, lower-cased, each pair at most once."""
    if not text:
        return
    seen: set[tuple[str, bool]] = set()
    for line in _strip_code(text).splitlines():
        lead = _LEADING_RUN_RE.match(line)
        boundary = lead.end() if lead else 0
        for match in _MENTION_RE.finditer(line):
            pair = (match.group("handle").lower(), match.start() < boundary)
            if pair not in seen:
                seen.add(pair)
                yield pair


class MentionResolver:
    """Resolve ``@handles`` in text against the users and groups tables."""

    def __init__(self, session: AsyncSession):
        self.users = UserRepository(session)
        self.groups = GroupRepository(session)

    async def scan(self, text: str) -> References:
        addressed_handles: set[str] = set()
        mentioned_handles: set[str] = set()
        for handle, addressed in scan_references(text):
            (addressed_handles if addressed else mentioned_handles).add(handle)

        handles = addressed_handles | mentioned_handles
        if not handles:
            return References()

        user_ids = await self.users.ids_for_usernames(handles)
        group_members = await self.groups.member_ids_by_path(handles - user_ids.keys())

        def expand(found: set[str]) -> set[str]:
            ids: set[str] = set()
            for handle in found:
                if handle in user_ids:
                    ids.add(user_ids[handle])
                ids |= group_members.get(handle, set())
            return ids

        addressed = expand(addressed_handles)
        mentioned = expand(mentioned_handles) - addressed
        unknown = handles - user_ids.keys() - group_members.keys()
        if unknown:
            logger.debug("Ignoring %d unknown handle(s)", len(unknown))
        return References(frozenset(addressed), frozenset(mentioned))
