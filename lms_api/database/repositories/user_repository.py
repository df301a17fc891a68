"""
User Repository

Provides database operations for the User model, keyed on the identity
provider's subject id (``firebase_uid``).
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms_api.core.exceptions import Conflict, DuplicateEmail
from lms_api.database.models.user import User
from lms_api.database.repositories.repository import BaseRepository

logger = logging.getLogger(__name__)


def _violated_column(exc: IntegrityError) -> Optional[str]:
    """Best-effort name of the unique column behind an IntegrityError."""
    message = str(exc.orig).lower()
    for column in ("firebase_uid", "line_user_id", "email"):
        if column in message:
            return column
    return None


def _raise_conflict(exc: IntegrityError) -> None:
    column = _violated_column(exc)
    if column == "email":
        raise DuplicateEmail() from exc
    if column == "line_user_id":
        raise Conflict("LINE account is already linked to another user") from exc
    raise Conflict("User already exists") from exc


class UserRepository(BaseRepository[User]):
    """
    Repository for the User model.

    Provides:
    - Lookups by provider uid and email (None when absent, never raises)
    - create / update / upsert, mapping unique violations to Conflict
    - Paginated listing for the admin screens

    Example:
        repo = UserRepository(session)
        user = await repo.upsert(
            "firebase-uid",
            create_fields={"email": "a@x.com", "role": "STUDENT"},
            update_fields={"email": "a@x.com"},
        )
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, User)

    async def find_by_provider_uid(self, uid: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.firebase_uid == uid))
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def find_by_line_user_id(self, line_user_id: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.line_user_id == line_user_id))
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> User:
        """
        Insert a new user.

        Raises:
            DuplicateEmail: the email is already taken
            Conflict: another unique column (uid, LINE id) collided
        """
        try:
            return await self.add(User(**fields))
        except IntegrityError as exc:
            _raise_conflict(exc)

    async def update(self, uid: str, **fields: Any) -> Optional[User]:
        """
        Update columns of the user owning ``uid``.

        Returns None when there is no such user. Re-applying the same
        values leaves the row unchanged apart from ``updated_at``.
        """
        user = await self.find_by_provider_uid(uid)
        if user is None:
            return None
        return await self.apply(user, **fields)

    async def apply(self, user: User, **fields: Any) -> User:
        for key, value in fields.items():
            if not hasattr(User, key):
                raise AttributeError(f"User has no column '{key}'")
            setattr(user, key, value)
        try:
            return await self.save(user)
        except IntegrityError as exc:
            _raise_conflict(exc)

    async def upsert(
        self,
        uid: str,
        create_fields: Dict[str, Any],
        update_fields: Dict[str, Any],
    ) -> User:
        """
        Atomic create-or-update keyed on ``firebase_uid``.

        A single ``INSERT ... ON CONFLICT (firebase_uid) DO UPDATE ...
        RETURNING`` statement, so two concurrent first logins for the same
        subject end up on the same row: the loser of the insert race takes
        the update branch.

        Raises:
            DuplicateEmail: the email belongs to a different account
        """
        insert = self._dialect_insert()
        stmt = insert(User).values(firebase_uid=uid, **create_fields)
        # ON CONFLICT bypasses column onupdate hooks
        set_ = {**update_fields, "updated_at": func.now()}
        stmt = stmt.on_conflict_do_update(
            index_elements=[User.firebase_uid],
            set_=set_,
        ).returning(User)

        try:
            result = await self.session.scalars(
                stmt,
                execution_options={"populate_existing": True},
            )
            return result.one()
        except IntegrityError as exc:
            _raise_conflict(exc)

    async def list_users(self, limit: int, offset: int = 0) -> Tuple[List[User], int]:
        """One page of users (newest first) and the total row count."""
        users = await self.get_all(skip=offset, limit=limit)
        total = await self.count()
        return users, total

    def _dialect_insert(self):
        dialect = self.dialect_name()
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise NotImplementedError(f"Upsert not supported for dialect '{dialect}'")
        return insert
