"""Tests for to-do propagation on merge requests.

Covers:
- new/update merge request classification and code visibility
- close and merge resolve every pending record, reopen creates nothing
- merging requires the merge request to be merged already
- build failures and unmergeable notices always insert, author = participant
- pushing resolves only the pusher's build failures
"""

import pytest

from docket.errors.exceptions import ValidationError
from docket.models.enums import TargetState, TodoAction

CODE_READERS = {"admin", "assignee", "author", "john_doe", "member", "skipped"}


@pytest.mark.asyncio
async def test_new_merge_request(service, merge_request, find_todos):
    await service.new_merge_request(merge_request, "author")

    rows = await find_todos(merge_request.reference())
    assert {row.user_id for row in rows if row.action == "assigned"} == {"assignee"}
    # guests cannot read code in a private project
    assert {row.user_id for row in rows if row.action == "mentioned"} == CODE_READERS - {"assignee"}
    assert {row.target_type for row in rows} == {"MergeRequest"}


@pytest.mark.asyncio
async def test_update_merge_request(service, merge_request, find_todos, mentions):
    merge_request.description = mentions + "\n@john_doe can you take this?"
    await service.update_merge_request(
        merge_request, "author", skip_users=["skipped"], previous_description=mentions
    )
    rows = await find_todos(merge_request.reference())
    assert {(row.user_id, row.action) for row in rows} == {("john_doe", "directly_addressed")}


@pytest.mark.asyncio
async def test_close_merge_request(service, merge_request, count_todos):
    await service.new_merge_request(merge_request, "author")
    merge_request.state = TargetState.CLOSED
    await service.close_merge_request(merge_request, "member")
    assert await count_todos(merge_request.reference(), state="pending") == 0
    merge_request.state = TargetState.OPENED
    await service.reopen_merge_request(merge_request, "member")
    assert await count_todos(merge_request.reference(), state="pending") == 0


@pytest.mark.asyncio
async def test_merge_resolves_everything(service, merge_request, count_todos, user_counts):
    await service.new_merge_request(merge_request, "author")
    merge_request.state = TargetState.MERGED
    resolved = await service.merge_merge_request(merge_request, "member")
    assert len(resolved) == len(CODE_READERS)
    assert await count_todos(merge_request.reference(), state="done") == len(resolved)
    assert await user_counts("member") == (0, 1)


@pytest.mark.asyncio
async def test_merge_requires_merged_state(service, merge_request, count_todos):
    await service.new_merge_request(merge_request, "author")
    with pytest.raises(ValidationError):
        await service.merge_merge_request(merge_request, "member")
    merge_request.state = TargetState.CLOSED
    with pytest.raises(ValidationError):
        await service.merge_merge_request(merge_request, "member")
    assert await count_todos(merge_request.reference(), state="done") == 0


@pytest.mark.asyncio
async def test_build_failed_for_participants(service, merge_request, find_todos):
    merge_request.merge_when_pipeline_succeeds = True
    merge_request.merge_user_id = "member"

    assert await service.merge_request_build_failed(merge_request) == 2
    rows = await find_todos(merge_request.reference())
    assert {(row.user_id, row.author_id, row.action) for row in rows} == {
        ("author", "author", "build_failed"),
        ("member", "member", "build_failed"),
    }


@pytest.mark.asyncio
async def test_build_failed_always_inserts(service, merge_request, count_todos):
    merge_request.merge_when_pipeline_succeeds = True
    merge_request.merge_user_id = "member"
    await service.merge_request_build_failed(merge_request)
    await service.merge_request_build_failed(merge_request)
    ref = merge_request.reference()
    assert await count_todos(ref, user_id="author", action="build_failed") == 2
    assert await count_todos(ref, user_id="member", action="build_failed") == 2


@pytest.mark.asyncio
async def test_merge_user_ignored_without_auto_merge(service, merge_request, find_todos):
    merge_request.merge_user_id = "member"
    await service.merge_request_build_failed(merge_request)
    rows = await find_todos(merge_request.reference())
    assert {row.user_id for row in rows} == {"author"}


@pytest.mark.asyncio
async def test_became_unmergeable(service, merge_request, find_todos):
    merge_request.merge_when_pipeline_succeeds = True
    merge_request.merge_user_id = "john_doe"
    await service.merge_request_became_unmergeable(merge_request)
    await service.merge_request_became_unmergeable(merge_request)

    rows = await find_todos(merge_request.reference(), action=TodoAction.UNMERGEABLE.value)
    assert len(rows) == 4
    assert {row.user_id for row in rows} == {"author", "john_doe"}


@pytest.mark.asyncio
async def test_push_resolves_pushers_build_failures(service, merge_request, count_todos):
    merge_request.merge_when_pipeline_succeeds = True
    merge_request.merge_user_id = "member"
    await service.new_merge_request(merge_request, "author")
    await service.merge_request_build_failed(merge_request)

    resolved = await service.merge_request_push(merge_request, "author")
    assert len(resolved) == 1
    ref = merge_request.reference()
    assert await count_todos(ref, user_id="author", action="build_failed", state="done") == 1
    assert await count_todos(ref, user_id="member", action="build_failed", state="pending") == 1
    assert await count_todos(ref, user_id="author", action="mentioned", state="pending") == 1
