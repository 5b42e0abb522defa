"""Base repository with common CRUD operations."""

from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from docket.db.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository:
    """Generic async repository for SQLAlchemy models.

    Repositories only flush; committing belongs to the caller's ``unit_of_work``.
    """

    def __init__(self, session: AsyncSession, model_class: type[T]):
        self.session = session
        self.model_class = model_class

    async def get(self, pk_value: str) -> T | None:
        """Get a single record by primary key."""
        return await self.session.get(self.model_class, pk_value)

    async def create(self, **kwargs: Any) -> T:
        """Create and persist a new record."""
        row = self.model_class(**kwargs)
        self.session.add(row)
        await self.session.flush()
        return row

