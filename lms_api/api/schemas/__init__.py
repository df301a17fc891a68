from lms_api.api.schemas.user import (
    AuthenticatedUserEnvelope,
    AuthenticatedUserResponse,
    LineLinkRequest,
    ProfileUpdateRequest,
    RoleUpdateRequest,
    SignupEnvelope,
    SignupUserResponse,
    SimpleSignupRequest,
    SyncedUserEnvelope,
    SyncedUserResponse,
    SyncRequest,
    UserEnvelope,
    UserPageEnvelope,
    UserResponse,
)

__all__ = [
    "AuthenticatedUserEnvelope",
    "AuthenticatedUserResponse",
    "LineLinkRequest",
    "ProfileUpdateRequest",
    "RoleUpdateRequest",
    "SignupEnvelope",
    "SignupUserResponse",
    "SimpleSignupRequest",
    "SyncedUserEnvelope",
    "SyncedUserResponse",
    "SyncRequest",
    "UserEnvelope",
    "UserPageEnvelope",
    "UserResponse",
]
