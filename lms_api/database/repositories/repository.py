"""
Repository Pattern Base Classes

Provides the async database abstraction layer used by the services.

Architecture:
- BaseRepository: Generic read/create operations for any model
- Specialized repositories: Domain-specific queries (UserRepository)

Repositories only flush; the request-scoped session dependency owns the
transaction and commits or rolls back once the handler finishes.
"""

from abc import ABC
from typing import Generic, List, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_api.database.models.model_base import SqlAlchemyModel

ModelType = TypeVar("ModelType", bound=SqlAlchemyModel)


class BaseRepository(Generic[ModelType], ABC):
    """
    Abstract base repository with common operations.

    Type Parameters:
        ModelType: The SQLAlchemy model class (User, ...)

    Example:
        class UserRepository(BaseRepository[User]):
            def __init__(self, session: AsyncSession):
                super().__init__(session, User)
    """

    def __init__(self, session: AsyncSession, model: type[ModelType]):
        """
        Initialize repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class
        """
        self.session = session
        self.model = model

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[ModelType]:
        """
        Retrieve records with pagination, newest first.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
        """
        result = await self.session.execute(
            select(self.model)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def add(self, instance: ModelType) -> ModelType:
        """
        Persist a new instance and load its server-generated columns.
        """
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def save(self, instance: ModelType) -> ModelType:
        """Flush pending changes on a loaded instance and reload it."""
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(self.model))
        return int(result.scalar_one())

    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name
