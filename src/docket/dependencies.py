"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from docket.errors.exceptions import AuthenticationError
from docket.services.todos.service import TodoService
from docket.services.todos.visibility import load_access_policy


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


async def get_current_user(request: Request) -> str:
    """Return the acting user's id or raise 401."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise AuthenticationError("X-Docket-User header is required")
    return user_id


async def get_todo_service(
    request: Request, db: Annotated[AsyncSession, Depends(get_db)]
) -> TodoService:
    """Service for this request.

    ``app.state.visibility`` overrides the default policy, which is rebuilt per
    request so admin flags take effect without a restart.
    """
    visibility = getattr(request.app.state, "visibility", None)
    if visibility is None:
        visibility = await load_access_policy(db)
    return TodoService(db, visibility)


# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[str, Depends(get_current_user)]
Todos = Annotated[TodoService, Depends(get_todo_service)]
