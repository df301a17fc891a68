from datetime import datetime
from typing import Literal, Optional

from fastapi_pagination import Page
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """JSON uses camelCase (firebaseUid, isActive, ...); Python keeps snake_case."""
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


# ── Responses ──

class UserResponse(CamelModel):
    """Full local user row."""
    id: int
    firebase_uid: Optional[str] = None
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str
    is_active: bool
    email_verified: bool = False
    line_user_id: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SyncedUserResponse(CamelModel):
    """Projection returned by /sync-user."""
    id: int
    firebase_uid: Optional[str] = None
    email: str
    name: Optional[str] = None
    avatar: Optional[str] = Field(None, validation_alias="avatar_url")
    role: str


class AuthenticatedUserResponse(CamelModel):
    id: int
    firebase_uid: str
    email: str
    role: str


class SignupUserResponse(CamelModel):
    id: int
    email: str
    name: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None


class UserEnvelope(BaseModel):
    success: bool = True
    user: UserResponse


class SyncedUserEnvelope(BaseModel):
    success: bool = True
    user: SyncedUserResponse


class AuthenticatedUserEnvelope(BaseModel):
    success: bool = True
    user: AuthenticatedUserResponse


class SignupEnvelope(BaseModel):
    success: bool = True
    data: SignupUserResponse
    message: str = "User created successfully"


class UserPageEnvelope(BaseModel):
    success: bool = True
    data: Page[UserResponse]


# ── Requests ──

class SyncRequest(CamelModel):
    """Optional profile data sent by the client; token claims fill the gaps."""
    name: Optional[str] = Field(None, max_length=255)
    image: Optional[str] = None
    email_verified: Optional[bool] = None


class SimpleSignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)


class ProfileUpdateRequest(CamelModel):
    name: Optional[str] = Field(None, max_length=255)
    avatar: Optional[str] = None


class LineLinkRequest(CamelModel):
    line_user_id: str = Field(..., min_length=1, max_length=64)


class RoleUpdateRequest(BaseModel):
    role: Literal["STUDENT", "INSTRUCTOR", "ADMIN"]
