from __future__ import annotations

import asyncio
import secrets
import threading
import uuid
from typing import Any, Callable, Dict, Optional, Protocol

import httpx
from supabase import AuthError, Client

from chatrelay.logging import get_logger
from chatrelay.service.errors import AuthenticationError, ForbiddenError
from chatrelay.service.results import Err, Ok, Result
from chatrelay.storage.models import Identity

logger = get_logger(__name__)

MISSING_TOKEN_MESSAGE = "Authentication token is required"
INVALID_TOKEN_MESSAGE = "Invalid token or user not found"


class IdentityProvider(Protocol):
    def resolve_identity(self, token: str) -> Result[Identity]: ...

    def register(self, email: str, password: str) -> Result[None]: ...

    def authenticate(self, email: str, password: str) -> Result[str]: ...

    def invalidate_session(self, token: str) -> Result[None]: ...


def extract_bearer(header: Optional[str]) -> Optional[str]:
    """Return the second whitespace-separated field of ``<scheme> <token>``."""
    if not header:
        return None
    parts = header.split()
    if len(parts) < 2:
        return None
    return parts[1]


def _auth_error(operation: str, exc: Exception) -> Err:
    message = getattr(exc, "message", None) or str(exc)
    detail: Dict[str, Any] = {"name": type(exc).__name__, "message": message}
    status = getattr(exc, "status", None)
    if status is not None:
        detail["status"] = status
    code = getattr(exc, "code", None)
    if code is not None:
        detail["code"] = code
    logger.warning(
        "auth_operation_failed",
        operation=operation,
        error_type=type(exc).__name__,
        error=message,
    )
    return Err("auth", message, detail=detail)


class SupabaseIdentityProvider:
    """Supabase Auth behind the :class:`IdentityProvider` protocol.

    ``client`` is the shared, stateless handle used for token lookups and
    logout. Sign-up and sign-in store a session on whichever client performs
    them, so those run on a throwaway client from ``session_client_factory``.
    """

    def __init__(
        self,
        client: Client,
        session_client_factory: Callable[[], Client],
    ) -> None:
        self.client = client
        self.session_client_factory = session_client_factory

    def resolve_identity(self, token: str) -> Result[Identity]:
        try:
            response = self.client.auth.get_user(token)
        except Exception as exc:
            return _auth_error("resolve_identity", exc)
        user = getattr(response, "user", None) if response else None
        if user is None:
            return Err("auth", "user not found")
        claims = {
            "role": getattr(user, "role", None),
            "aud": getattr(user, "aud", None),
            "app_metadata": getattr(user, "app_metadata", None) or {},
            "user_metadata": getattr(user, "user_metadata", None) or {},
        }
        return Ok(Identity(user_id=user.id, token=token, email=user.email, claims=claims))

    def register(self, email: str, password: str) -> Result[None]:
        try:
            self.session_client_factory().auth.sign_up(
                {"email": email, "password": password}
            )
        except (AuthError, httpx.HTTPError) as exc:
            return _auth_error("register", exc)
        return Ok(None)

    def authenticate(self, email: str, password: str) -> Result[str]:
        try:
            response = self.session_client_factory().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except (AuthError, httpx.HTTPError) as exc:
            return _auth_error("authenticate", exc)
        session = getattr(response, "session", None)
        if session is None or not session.access_token:
            return Err("auth", "no session issued")
        return Ok(session.access_token)

    def invalidate_session(self, token: str) -> Result[None]:
        try:
            self.client.auth.admin.sign_out(token)
        except (AuthError, httpx.HTTPError) as exc:
            return _auth_error("invalidate_session", exc)
        return Ok(None)


class MemoryIdentityProvider:
    """Process-local accounts and opaque tokens for development and tests."""

    def __init__(self) -> None:
        self._passwords: Dict[str, str] = {}
        self._user_ids: Dict[str, str] = {}
        self._tokens: Dict[str, str] = {}
        self._lock = threading.Lock()

    def resolve_identity(self, token: str) -> Result[Identity]:
        with self._lock:
            email = self._tokens.get(token)
            if email is None:
                return Err("auth", "invalid JWT: unable to parse or verify signature")
            return Ok(
                Identity(
                    user_id=self._user_ids[email],
                    token=token,
                    email=email,
                    claims={"role": "authenticated"},
                )
            )

    def register(self, email: str, password: str) -> Result[None]:
        with self._lock:
            if email in self._passwords:
                return Err("auth", "User already registered")
            self._passwords[email] = password
            self._user_ids[email] = str(uuid.uuid4())
        return Ok(None)

    def authenticate(self, email: str, password: str) -> Result[str]:
        with self._lock:
            if self._passwords.get(email) != password:
                return Err("auth", "Invalid login credentials")
            token = secrets.token_urlsafe(32)
            self._tokens[token] = email
        return Ok(token)

    def invalidate_session(self, token: str) -> Result[None]:
        with self._lock:
            if self._tokens.pop(token, None) is None:
                return Err("auth", "session not found", detail={"name": "AuthApiError"})
        return Ok(None)


class AuthService:
    """Async facade over an :class:`IdentityProvider`.

    Provider calls block on network I/O and are run in a worker thread.
    """

    def __init__(self, provider: IdentityProvider) -> None:
        self.provider = provider

    async def authenticate(self, authorization: Optional[str]) -> Identity:
        token = extract_bearer(authorization)
        if not token:
            raise AuthenticationError(MISSING_TOKEN_MESSAGE)
        result = await asyncio.to_thread(self.provider.resolve_identity, token)
        if not result.ok:
            logger.info("token_rejected", reason=result.message)
            raise ForbiddenError(INVALID_TOKEN_MESSAGE)
        return result.value

    async def register(self, email: str, password: str) -> Result[None]:
        return await asyncio.to_thread(self.provider.register, email, password)

    async def login(self, email: str, password: str) -> Result[str]:
        return await asyncio.to_thread(self.provider.authenticate, email, password)

    async def logout(self, identity: Identity) -> Result[None]:
        return await asyncio.to_thread(self.provider.invalidate_session, identity.token)
