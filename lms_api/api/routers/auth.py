"""
Auth Router - identity sync and account endpoints.

Endpoints:
- POST   /api/auth/sync           - Upsert local user from a verified token
- POST   /api/auth/sync-user      - Same, through the syncing guard (filtered projection)
- GET    /api/auth/user           - Local user for the verified token
- POST   /api/auth/verify-token   - Verify token and resolve the existing user
- POST   /api/auth/simple-signup  - Create a local user from {email, name}
- PUT    /api/auth/profile        - Update name/avatar
- POST   /api/auth/line           - Link a LINE account
- DELETE /api/auth/line           - Unlink the LINE account
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from lms_api.api.schemas.user import (
    AuthenticatedUserEnvelope,
    AuthenticatedUserResponse,
    LineLinkRequest,
    ProfileUpdateRequest,
    SignupEnvelope,
    SignupUserResponse,
    SimpleSignupRequest,
    SyncedUserEnvelope,
    SyncedUserResponse,
    SyncRequest,
    UserEnvelope,
    UserResponse,
)
from lms_api.core.auth import (
    AuthenticatedUser,
    get_current_user,
    get_synced_user,
    get_verified_identity,
    require_active,
)
from lms_api.core.exceptions import NotFound
from lms_api.core.identity import VerifiedIdentity
from lms_api.core.services.sync_service import SyncService
from lms_api.database.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/sync", response_model=UserEnvelope)
async def sync(
    request: Request,
    body: Optional[SyncRequest] = None,
    identity: VerifiedIdentity = Depends(get_verified_identity),
    db: AsyncSession = Depends(get_db),
):
    """Create or update the local user for the token's subject."""
    service = SyncService(db)

    # Deactivated accounts are refused before last_login_at is touched
    existing = await service.get_user(identity.subject_id)
    if existing is not None:
        require_active(request, existing)

    body = body or SyncRequest()
    email_verified = body.email_verified if body.email_verified is not None else identity.email_verified
    user = await service.sync_identity(
        identity.subject_id,
        identity.email,
        display_name=body.name or identity.name,
        photo_url=body.image or identity.picture,
        email_verified=email_verified,
    )
    logger.info(f"User synced: {user.email} (id={user.id})")
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.post("/sync-user", response_model=SyncedUserEnvelope)
async def sync_user(
    current_user: AuthenticatedUser = Depends(get_synced_user),
    db: AsyncSession = Depends(get_db),
):
    """Sync through the guard; returns the public projection of the row."""
    user = await SyncService(db).get_user(current_user.firebase_uid)
    return SyncedUserEnvelope(user=SyncedUserResponse.model_validate(user))


@router.get("/user", response_model=UserEnvelope)
async def get_user(
    request: Request,
    identity: VerifiedIdentity = Depends(get_verified_identity),
    db: AsyncSession = Depends(get_db),
):
    user = await SyncService(db).get_user(identity.subject_id)
    if user is None:
        raise NotFound("User not found")
    require_active(request, user)
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.post("/verify-token", response_model=AuthenticatedUserEnvelope)
async def verify_token(current_user: AuthenticatedUser = Depends(get_current_user)):
    return AuthenticatedUserEnvelope(user=AuthenticatedUserResponse.model_validate(current_user))


@router.post("/simple-signup", response_model=SignupEnvelope)
async def simple_signup(
    payload: SimpleSignupRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create a local user ahead of the first login. 409 if the email exists."""
    user = await SyncService(db).signup(payload.email.strip(), payload.name.strip())
    return SignupEnvelope(data=SignupUserResponse.model_validate(user))


@router.put("/profile", response_model=UserEnvelope)
async def update_profile(
    payload: ProfileUpdateRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await SyncService(db).update_profile(
        current_user.firebase_uid,
        name=payload.name,
        avatar_url=payload.avatar,
    )
    logger.info(f"User profile updated: {current_user.email}")
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.post("/line", response_model=UserEnvelope)
async def link_line(
    payload: LineLinkRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await SyncService(db).link_line_account(current_user.firebase_uid, payload.line_user_id)
    logger.info(f"LINE account linked: {current_user.email}")
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.delete("/line", response_model=UserEnvelope)
async def unlink_line(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await SyncService(db).unlink_line_account(current_user.firebase_uid)
    logger.info(f"LINE account unlinked: {current_user.email}")
    return UserEnvelope(user=UserResponse.model_validate(user))
