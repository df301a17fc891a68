"""User model - synced with Firebase Authentication."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, Text, false, true
from sqlalchemy.orm import Mapped, mapped_column

from lms_api.database.models.model_base import SqlAlchemyModel
from lms_api.utils.enums import UserRole


class User(SqlAlchemyModel):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('STUDENT', 'INSTRUCTOR', 'ADMIN')", name="ck_users_role"),
    )

    # Null only for simple-signup rows not yet claimed by a provider login
    firebase_uid: Mapped[Optional[str]] = mapped_column(
        String(128),
        unique=True,
        nullable=True,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    name: Mapped[Optional[str]] = mapped_column(String(255))

    avatar_url: Mapped[Optional[str]] = mapped_column(Text)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.STUDENT,
        server_default=UserRole.STUDENT,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default=true(),
        nullable=False,
    )

    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=false(),
        nullable=False,
    )

    line_user_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
    )

    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} uid={self.firebase_uid} email={self.email} role={self.role}>"
