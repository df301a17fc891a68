"""
Admin Router - user administration.

All endpoints require get_current_admin (role=ADMIN).
"""

import logging

from fastapi import APIRouter, Depends
from fastapi_pagination import Params
from sqlalchemy.ext.asyncio import AsyncSession

from lms_api.api.schemas.user import (
    RoleUpdateRequest,
    UserEnvelope,
    UserPageEnvelope,
    UserResponse,
)
from lms_api.core.auth import AuthenticatedUser, get_current_admin
from lms_api.core.exceptions import BadRequest
from lms_api.core.services.sync_service import SyncService
from lms_api.database.session import get_db
from lms_api.utils.enums import UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users", response_model=UserPageEnvelope)
async def list_users(
    params: Params = Depends(),
    admin: AuthenticatedUser = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Users newest first; ``?page=&size=`` (size up to 100)."""
    page = await SyncService(db).list_users(params)
    return UserPageEnvelope(data=page)


@router.put("/users/{firebase_uid}/role", response_model=UserEnvelope)
async def set_role(
    firebase_uid: str,
    payload: RoleUpdateRequest,
    admin: AuthenticatedUser = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if firebase_uid == admin.firebase_uid and payload.role != UserRole.ADMIN:
        raise BadRequest("Admins cannot remove their own admin role")
    user = await SyncService(db).set_role(firebase_uid, payload.role)
    logger.info(f"{admin.email} set role of {user.email} to {payload.role}")
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.post("/users/{firebase_uid}/deactivate", response_model=UserEnvelope)
async def deactivate_user(
    firebase_uid: str,
    admin: AuthenticatedUser = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if firebase_uid == admin.firebase_uid:
        raise BadRequest("Admins cannot deactivate their own account")
    user = await SyncService(db).deactivate(firebase_uid)
    logger.info(f"{admin.email} deactivated {user.email}")
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.post("/users/{firebase_uid}/reactivate", response_model=UserEnvelope)
async def reactivate_user(
    firebase_uid: str,
    admin: AuthenticatedUser = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await SyncService(db).reactivate(firebase_uid)
    logger.info(f"{admin.email} reactivated {user.email}")
    return UserEnvelope(user=UserResponse.model_validate(user))
