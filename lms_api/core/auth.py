"""
Authentication guards for FastAPI.

Verifies the bearer token with the configured IdentityVerifier, resolves the
local user row, and enforces active-account and role checks.

Per request the guard moves through
UNAUTHENTICATED -> TOKEN_VERIFIED -> USER_RESOLVED -> AUTHORIZED, and any
failure ends in REJECTED with 401 or 403. The stage is kept on
``request.state.auth_stage`` and logged on rejection.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from lms_api.core.exceptions import (
    AppError,
    Forbidden,
    InternalError,
    InvalidToken,
    Unauthenticated,
)
from lms_api.core.identity import IdentityVerifier, VerifiedIdentity
from lms_api.core.services.sync_service import SyncService
from lms_api.database.models.user import User
from lms_api.database.session import get_db
from lms_api.utils.enums import AuthStage, UserRole

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedUser:
    """Resolved user attached to the request."""
    id: int
    firebase_uid: str
    email: str
    role: str


security = HTTPBearer(auto_error=False)


def _advance(request: Request, stage: str) -> None:
    request.state.auth_stage = stage


def _reject(request: Request, error: AppError) -> AppError:
    stage = getattr(request.state, "auth_stage", AuthStage.UNAUTHENTICATED)
    logger.warning(
        f"Auth rejected at {stage}: {request.method} {request.url.path} "
        f"[{error.status_code}] {error.message}"
    )
    _advance(request, AuthStage.REJECTED)
    return error


def require_active(request: Request, user: User) -> None:
    """Deactivated accounts fail every authentication with 403."""
    _advance(request, AuthStage.USER_RESOLVED)
    if not user.is_active:
        raise _reject(request, Forbidden("User account is deactivated"))


def get_identity_verifier(request: Request) -> IdentityVerifier:
    """The verifier chosen at startup (see lifespan)."""
    verifier = getattr(request.app.state, "identity_verifier", None)
    if verifier is None:
        raise InternalError("Authentication service not available")
    return verifier


async def get_verified_identity(
    request: Request,
    cred: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> VerifiedIdentity:
    """Bearer token -> verified identity. Does not touch the database."""
    _advance(request, AuthStage.UNAUTHENTICATED)

    if cred is None or not cred.credentials.strip():
        raise _reject(request, Unauthenticated("No token provided"))

    try:
        identity = await verifier.verify_token(cred.credentials.strip())
    except InvalidToken as exc:
        raise _reject(request, Unauthenticated(exc.message))

    _advance(request, AuthStage.TOKEN_VERIFIED)
    return identity


class AuthGuard:
    """
    Dependency that yields the authenticated local user.

    Args:
        roles: allowed roles; None lets any active user through
        auto_create: sync the provider identity into the local table
            (creating the row on first login) instead of requiring an
            existing row
    """

    def __init__(self, roles: Optional[Iterable[str]] = None, auto_create: bool = False):
        self.roles = frozenset(roles) if roles is not None else None
        self.auto_create = auto_create

    async def __call__(
        self,
        request: Request,
        identity: VerifiedIdentity = Depends(get_verified_identity),
        db: AsyncSession = Depends(get_db),
    ) -> AuthenticatedUser:
        service = SyncService(db)
        user = await service.get_user(identity.subject_id)

        if user is None and not self.auto_create:
            raise _reject(request, Unauthenticated("User not found"))

        # Checked before the sync so a deactivated login is never recorded
        if user is not None:
            require_active(request, user)

        if self.auto_create:
            user = await service.sync_identity(
                identity.subject_id,
                identity.email,
                display_name=identity.name,
                photo_url=identity.picture,
                email_verified=identity.email_verified,
            )
            require_active(request, user)

        if self.roles is not None and user.role not in self.roles:
            raise _reject(request, Forbidden("Insufficient permissions"))

        _advance(request, AuthStage.AUTHORIZED)

        current = AuthenticatedUser(
            id=user.id,
            firebase_uid=user.firebase_uid,
            email=user.email,
            role=user.role,
        )
        request.state.user = current
        return current


get_current_user = AuthGuard()
get_synced_user = AuthGuard(auto_create=True)
get_current_admin = AuthGuard(roles={UserRole.ADMIN})
