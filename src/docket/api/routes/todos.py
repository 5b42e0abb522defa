"""To-do endpoints for the acting user."""

from fastapi import APIRouter, Query

from docket.config import settings
from docket.db.models.todo import TodoRow
from docket.dependencies import CurrentUser, DBSession, Todos
from docket.errors.exceptions import NotFoundError, ValidationError
from docket.models.enums import ResolvedBy, TodoAction, TodoState
from docket.models.todo import BulkTodoRequest, BulkTodoResponse, TodoCounts, TodoResponse
from docket.repositories.user_repo import UserRepository

router = APIRouter(prefix="/todos", tags=["Todos"])


async def _own_todo(service, todo_id: str, user_id: str) -> TodoRow:
    todo = await service.ledger.todos.get(todo_id)
    # Other users' to-dos are reported as missing rather than forbidden.
    if todo is None or todo.user_id != user_id:
        raise NotFoundError("Todo", todo_id)
    return todo


async def _counts(db, user_id: str) -> TodoCounts:
    user = await UserRepository(db).get(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    await db.refresh(user)
    return TodoCounts(pending=user.todos_pending_count, done=user.todos_done_count)


@router.get("", response_model=list[TodoResponse])
async def list_todos(
    user_id: CurrentUser,
    service: Todos,
    state: TodoState | None = None,
    action: TodoAction | None = None,
    project_id: str | None = None,
    limit: int = Query(50, ge=1, le=200),
):
    rows = await service.ledger.list_for_user(
        user_id,
        state=state.value if state else None,
        action=action.value if action else None,
        project_id=project_id,
        limit=limit,
    )
    return [TodoResponse.model_validate(row) for row in rows]


@router.get("/counts", response_model=TodoCounts)
async def todo_counts(user_id: CurrentUser, db: DBSession):
    return await _counts(db, user_id)


@router.post("/mark_as_done", response_model=BulkTodoResponse)
async def mark_all_as_done(user_id: CurrentUser, service: Todos, db: DBSession):
    updated = await service.resolve_all_pending(user_id, ResolvedBy.API_ALL_DONE)
    return BulkTodoResponse(
        operation="resolve", updated_ids=updated, counts=await _counts(db, user_id)
    )


@router.post("/bulk", response_model=BulkTodoResponse)
async def bulk_update(body: BulkTodoRequest, user_id: CurrentUser, service: Todos, db: DBSession):
    if len(body.todo_ids) > settings.max_bulk_todo_ids:
        raise ValidationError(
            f"At most {settings.max_bulk_todo_ids} to-dos can be updated at once",
            details={"received": len(body.todo_ids)},
        )
    if body.operation == "restore":
        updated = await service.restore_todos(body.todo_ids, user_id)
    else:
        updated = await service.resolve_todos(
            body.todo_ids, user_id, resolved_by_action=ResolvedBy.API_DONE
        )
    return BulkTodoResponse(
        operation=body.operation, updated_ids=updated, counts=await _counts(db, user_id)
    )


@router.post("/{todo_id}/mark_as_done", response_model=TodoResponse)
async def mark_as_done(todo_id: str, user_id: CurrentUser, service: Todos, db: DBSession):
    todo = await _own_todo(service, todo_id, user_id)
    await service.resolve_todo(todo, user_id, ResolvedBy.API_DONE)
    await db.refresh(todo)
    return TodoResponse.model_validate(todo)


@router.post("/{todo_id}/restore", response_model=TodoResponse)
async def restore(todo_id: str, user_id: CurrentUser, service: Todos, db: DBSession):
    todo = await _own_todo(service, todo_id, user_id)
    await service.restore_todo(todo, user_id)
    await db.refresh(todo)
    return TodoResponse.model_validate(todo)
