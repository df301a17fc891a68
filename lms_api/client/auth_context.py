"""
Client-side auth context.

Holds the signed-in provider user for client code (CLIs, scripts, other
services acting on a user's behalf) the way the web app's auth provider does
in the browser:

- ``user`` / ``loading`` mirror the provider session
- ``subscribe(listener)`` is the session-change notification; every
  operation updates state only through it
- ``sign_in``, ``sign_up``, ``sign_in_with_google`` and ``sign_out`` call the
  Firebase Identity Toolkit REST API

``id_token`` is the bearer token for the LMS API. ``refresh_profile`` calls
``/api/auth/sync-user`` to pull the local profile (role etc.).

Example:
    async with AuthContext(api_key, backend_url="http://localhost:8000") as ctx:
        ctx.subscribe(lambda user: print("session:", user))
        await ctx.sign_in("a@x.com", "secret")
        profile = await ctx.refresh_profile()
"""

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# Identity Toolkit error codes -> user facing messages
ERROR_MESSAGES = {
    "EMAIL_NOT_FOUND": "User not found",
    "INVALID_PASSWORD": "Incorrect password",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password",
    "USER_DISABLED": "This account has been disabled",
    "EMAIL_EXISTS": "This email address is already in use",
    "INVALID_EMAIL": "The email address is badly formatted",
    "WEAK_PASSWORD": "Password is too weak; use at least 6 characters",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many requests; try again later",
    "INVALID_IDP_RESPONSE": "Google sign-in failed",
}


class AuthError(Exception):
    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "Unknown error")
        super().__init__(f"{self.code}: {self.message}")


@dataclass(frozen=True)
class AuthUser:
    uid: str
    email: Optional[str]
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


Listener = Callable[[Optional[AuthUser]], None]


class AuthContext:
    def __init__(
        self,
        api_key: Optional[str] = None,
        backend_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        identity_url: str = IDENTITY_TOOLKIT_URL,
    ):
        self._api_key = api_key or os.getenv("FIREBASE_WEB_API_KEY", "")
        if not self._api_key:
            raise ValueError("Firebase web API key is required (FIREBASE_WEB_API_KEY)")
        self._backend_url = backend_url.rstrip("/") if backend_url else None
        self._identity_url = identity_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=20)

        self._listeners: List[Listener] = []
        self.user: Optional[AuthUser] = None
        self.id_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.profile: Optional[Dict[str, Any]] = None
        self.loading = False

    async def __aenter__(self) -> "AuthContext":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # ── Session-change notification ──

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; it is called now and on every session change."""
        self._listeners.append(listener)
        listener(self.user)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _on_session_changed(self, data: Optional[Dict[str, Any]]) -> None:
        if data is None:
            self.user = None
            self.id_token = None
            self.refresh_token = None
            self.profile = None
        else:
            self.user = AuthUser(
                uid=data["localId"],
                email=data.get("email"),
                display_name=data.get("displayName") or None,
                photo_url=data.get("photoUrl") or None,
            )
            self.id_token = data.get("idToken", self.id_token)
            self.refresh_token = data.get("refreshToken", self.refresh_token)
        self.loading = False
        for listener in list(self._listeners):
            try:
                listener(self.user)
            except Exception:
                logger.exception("Auth listener failed")

    # ── Operations ──

    async def sign_in(self, email: str, password: str) -> None:
        async with self._operation():
            data = await self._call(
                "accounts:signInWithPassword",
                {"email": email, "password": password, "returnSecureToken": True},
            )
            self._on_session_changed(data)

    async def sign_up(self, email: str, password: str, name: str) -> None:
        async with self._operation():
            data = await self._call(
                "accounts:signUp",
                {"email": email, "password": password, "returnSecureToken": True},
            )
            profile = await self._call(
                "accounts:update",
                {"idToken": data["idToken"], "displayName": name, "returnSecureToken": True},
            )
            self._on_session_changed({**data, **profile})

    async def sign_in_with_google(self, google_id_token: str, request_uri: str = "http://localhost") -> None:
        """Exchange a Google ID token (from an OAuth flow) for a Firebase session."""
        async with self._operation():
            data = await self._call(
                "accounts:signInWithIdp",
                {
                    "postBody": f"id_token={google_id_token}&providerId=google.com",
                    "requestUri": request_uri,
                    "returnIdpCredential": True,
                    "returnSecureToken": True,
                },
            )
            self._on_session_changed(data)

    async def sign_out(self) -> None:
        # REST sessions are stateless; dropping the tokens ends the session
        self._on_session_changed(None)

    async def refresh_profile(self) -> Optional[Dict[str, Any]]:
        """Sync with the LMS API and return the local user projection."""
        if self._backend_url is None:
            raise RuntimeError("backend_url is not configured")
        if self.id_token is None:
            return None
        response = await self._http.post(
            f"{self._backend_url}/api/auth/sync-user",
            headers={"Authorization": f"Bearer {self.id_token}"},
        )
        try:
            body = response.json()
        except ValueError:
            logger.error(f"User sync failed [{response.status_code}]: non-JSON response")
            return None
        if response.status_code != 200 or not body.get("success"):
            logger.error(f"User sync failed [{response.status_code}]: {body.get('error')}")
            return None
        self.profile = body["user"]
        return self.profile

    # ── Internals ──

    @asynccontextmanager
    async def _operation(self):
        self.loading = True
        try:
            yield
        except Exception:
            self.loading = False
            raise

    async def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._http.post(
            f"{self._identity_url}/{method}",
            params={"key": self._api_key},
            json=payload,
        )
        try:
            data = response.json()
        except ValueError as exc:
            # e.g. an HTML error page from a proxy
            logger.error(f"{method}: non-JSON response [{response.status_code}]")
            raise AuthError("UNKNOWN") from exc
        if response.status_code != 200:
            message = data.get("error", {}).get("message", "UNKNOWN")
            # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
            raise AuthError(message.split(" ")[0])
        return data

