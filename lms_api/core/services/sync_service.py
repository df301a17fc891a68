"""
User sync service.

Reconciles the identity provider's account with the local ``users`` row and
holds the explicit account operations (profile, LINE link, role,
activation). Role and activation are only changed through their own
methods; login sync never touches them.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi_pagination import Page, Params
from sqlalchemy.ext.asyncio import AsyncSession

from lms_api.api.schemas.user import UserResponse
from lms_api.core.exceptions import BadRequest, Conflict, NotFound
from lms_api.database.models.user import User
from lms_api.database.repositories.user_repository import UserRepository
from lms_api.utils.enums import UserRole

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncService:
    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.repo = UserRepository(session)
        self.clock = clock

    async def sync_identity(
        self,
        subject_id: str,
        email: str,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
        email_verified: Optional[bool] = None,
    ) -> User:
        """
        Create-or-update the local user for a verified provider subject.

        Existing row: email, provided profile fields and last_login_at are
        refreshed. New row: STUDENT, active. A simple-signup row with the
        same email and no provider uid yet is claimed instead of duplicated.
        """
        if not email:
            raise BadRequest("Account has no email address")

        now = self.clock()

        update_fields = {"email": email, "last_login_at": now}
        if display_name:
            update_fields["name"] = display_name
        if photo_url:
            update_fields["avatar_url"] = photo_url
        if email_verified is not None:
            update_fields["email_verified"] = email_verified

        if await self.repo.find_by_provider_uid(subject_id) is None:
            unclaimed = await self.repo.find_by_email(email)
            if unclaimed is not None and unclaimed.firebase_uid is None:
                logger.info(f"Linking signup row {unclaimed.id} to provider uid {subject_id}")
                return await self.repo.apply(unclaimed, firebase_uid=subject_id, **update_fields)

        create_fields = {
            "email": email,
            "name": display_name,
            "avatar_url": photo_url,
            "email_verified": bool(email_verified),
            "role": UserRole.STUDENT,
            "is_active": True,
            "last_login_at": now,
        }
        user = await self.repo.upsert(subject_id, create_fields, update_fields)
        logger.debug(f"Synced user {user.id} ({subject_id})")
        return user

    async def get_user(self, subject_id: str) -> Optional[User]:
        return await self.repo.find_by_provider_uid(subject_id)

    async def signup(self, email: str, name: str) -> User:
        """Create a local row ahead of the first provider login."""
        if await self.repo.find_by_email(email) is not None:
            raise Conflict("User already exists")
        user = await self.repo.create(
            email=email,
            name=name,
            role=UserRole.STUDENT,
            is_active=True,
            email_verified=False,
        )
        logger.info(f"User signed up: {email} (id={user.id})")
        return user

    async def update_profile(
        self,
        subject_id: str,
        name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        fields = {}
        if name is not None:
            fields["name"] = name
        if avatar_url is not None:
            fields["avatar_url"] = avatar_url
        return await self._update(subject_id, **fields)

    async def link_line_account(self, subject_id: str, line_user_id: str) -> User:
        owner = await self.repo.find_by_line_user_id(line_user_id)
        if owner is not None and owner.firebase_uid != subject_id:
            raise Conflict("LINE account is already linked to another user")
        return await self._update(subject_id, line_user_id=line_user_id)

    async def unlink_line_account(self, subject_id: str) -> User:
        return await self._update(subject_id, line_user_id=None)

    async def set_role(self, subject_id: str, role: str) -> User:
        if role not in UserRole.ALL:
            raise BadRequest(f"Unknown role '{role}'")
        user = await self._update(subject_id, role=role)
        logger.info(f"Role of {subject_id} set to {role}")
        return user

    async def deactivate(self, subject_id: str) -> User:
        user = await self._update(subject_id, is_active=False)
        logger.info(f"User {subject_id} deactivated")
        return user

    async def reactivate(self, subject_id: str) -> User:
        user = await self._update(subject_id, is_active=True)
        logger.info(f"User {subject_id} reactivated")
        return user

    async def list_users(self, params: Params) -> Page[UserResponse]:
        users, total = await self.repo.list_users(
            limit=params.size,
            offset=(params.page - 1) * params.size,
        )
        items = [UserResponse.model_validate(u) for u in users]
        return Page.create(items=items, total=total, params=params)

    async def _update(self, subject_id: str, **fields) -> User:
        user = await self.repo.update(subject_id, **fields)
        if user is None:
            raise NotFound("User not found")
        return user
