"""
Identity provider client.

``IdentityVerifier`` is the capability the auth guards depend on. The
implementation is picked once at startup by ``build_verifier`` from
``AUTH_VERIFIER``:

- ``firebase``: Firebase Admin SDK ``verify_id_token`` (production)
- ``static``: fixed token table from ``AUTH_STATIC_TOKENS`` (dev, tests)

No caching: every call verifies the token again.
"""

import asyncio
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth

from lms_api.core import config
from lms_api.core.exceptions import InvalidToken
from lms_api.utils.firebase_config import get_firebase_credentials

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    """Claims of a verified token."""
    subject_id: str
    email: str
    email_verified: bool = False
    name: Optional[str] = None
    picture: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "VerifiedIdentity":
        subject_id = claims.get("uid") or claims.get("sub")
        if not subject_id:
            raise InvalidToken("Token has no subject")
        return cls(
            subject_id=str(subject_id),
            email=claims.get("email") or "",
            email_verified=bool(claims.get("email_verified", False)),
            name=claims.get("name"),
            picture=claims.get("picture"),
        )


class IdentityVerifier(Protocol):
    async def verify_token(self, raw_token: str) -> VerifiedIdentity:
        """Return the token's identity or raise InvalidToken."""
        ...


# ── Firebase Admin SDK app (process-wide) ──

_firebase_app: Optional[firebase_admin.App] = None
_firebase_lock = threading.Lock()


def init_firebase() -> firebase_admin.App:
    """Initialize the Firebase Admin SDK once per process. Call at startup."""
    global _firebase_app
    with _firebase_lock:
        if _firebase_app is not None:
            return _firebase_app

        options = {"projectId": config.FIREBASE_PROJECT_ID} if config.FIREBASE_PROJECT_ID else None
        cred = get_firebase_credentials()
        if cred is not None:
            _firebase_app = firebase_admin.initialize_app(cred, options)
            logger.info("Firebase Admin SDK initialized (service account from env)")
        else:
            _firebase_app = firebase_admin.initialize_app(options=options)
            logger.info("Firebase Admin SDK initialized with default credentials")
        return _firebase_app


def shutdown_firebase() -> None:
    """Tear down the Firebase app created by init_firebase. Call at shutdown."""
    global _firebase_app
    with _firebase_lock:
        if _firebase_app is None:
            return
        firebase_admin.delete_app(_firebase_app)
        _firebase_app = None
        logger.info("Firebase Admin SDK shut down")


class FirebaseIdentityVerifier:
    """Verifies Firebase ID tokens with the Admin SDK."""

    def __init__(self, app: firebase_admin.App, check_revoked: bool = False):
        self._app = app
        self._check_revoked = check_revoked

    async def verify_token(self, raw_token: str) -> VerifiedIdentity:
        # verify_id_token is blocking (it may fetch Google's public keys)
        try:
            claims = await asyncio.to_thread(
                firebase_auth.verify_id_token,
                raw_token,
                app=self._app,
                check_revoked=self._check_revoked,
            )
        except firebase_auth.ExpiredIdTokenError as exc:
            raise InvalidToken("Token expired") from exc
        except firebase_auth.RevokedIdTokenError as exc:
            raise InvalidToken("Token revoked") from exc
        except firebase_auth.UserDisabledError as exc:
            raise InvalidToken("User account is disabled") from exc
        except (firebase_auth.InvalidIdTokenError, ValueError) as exc:
            raise InvalidToken("Invalid token") from exc
        except Exception as exc:
            logger.error(f"Token verification failed: {exc}")
            raise InvalidToken("Token verification failed") from exc

        return VerifiedIdentity.from_claims(claims)


class StaticIdentityVerifier:
    """
    Token table verifier for development and tests.

    Tokens map to claim dicts shaped like decoded Firebase tokens:
        {"dev-token": {"uid": "dev-uid", "email": "dev@lms.local", "name": "Dev"}}
    """

    def __init__(self, tokens: Mapping[str, VerifiedIdentity]):
        self._tokens: Dict[str, VerifiedIdentity] = dict(tokens)

    @classmethod
    def from_claims(cls, tokens: Mapping[str, Mapping[str, Any]]) -> "StaticIdentityVerifier":
        return cls({token: VerifiedIdentity.from_claims(claims) for token, claims in tokens.items()})

    @classmethod
    def from_json(cls, raw: str) -> "StaticIdentityVerifier":
        try:
            data = json.loads(raw or "{}")
        except json.JSONDecodeError as e:
            raise ValueError(f"AUTH_STATIC_TOKENS is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError("AUTH_STATIC_TOKENS must be a JSON object")
        return cls.from_claims(data)

    async def verify_token(self, raw_token: str) -> VerifiedIdentity:
        identity = self._tokens.get(raw_token)
        if identity is None:
            raise InvalidToken("Invalid token")
        return identity


def build_verifier(kind: Optional[str] = None) -> IdentityVerifier:
    """Select the verifier implementation. Called once, from the app lifespan."""
    kind = (kind or config.AUTH_VERIFIER).lower()
    if kind == "firebase":
        return FirebaseIdentityVerifier(init_firebase(), check_revoked=config.FIREBASE_CHECK_REVOKED)
    if kind == "static":
        verifier = StaticIdentityVerifier.from_json(config.AUTH_STATIC_TOKENS)
        logger.warning("Using static identity verifier - not for production")
        return verifier
    raise ValueError(f"Unknown AUTH_VERIFIER '{kind}' (expected 'firebase' or 'static')")
