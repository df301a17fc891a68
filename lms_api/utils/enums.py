"""
String constants for user fields.
Using plain strings (not Enums) so values go to the DB and JSON unchanged.
"""


class UserRole:
    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"

    ALL = (STUDENT, INSTRUCTOR, ADMIN)


class AuthStage:
    """Per-request authentication progress, used when logging rejections."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    TOKEN_VERIFIED = "TOKEN_VERIFIED"
    USER_RESOLVED = "USER_RESOLVED"
    AUTHORIZED = "AUTHORIZED"
    HANDLER_INVOKED = "HANDLER_INVOKED"
    REJECTED = "REJECTED"
