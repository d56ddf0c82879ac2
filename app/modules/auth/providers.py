import logging
import secrets
import threading
import time
import uuid
from typing import Any, Callable, Dict, Optional, Tuple

import bcrypt
from supabase import create_client, Client
from supabase.client import ClientOptions

from app.config import settings
from app.core.identity import (
    AuthSession, CookieJar, IdentityError, IdentityProvider, SessionResolution,
    SessionUser, is_auth_rejection,
)

logger = logging.getLogger(__name__)


def _session_user(user: Any) -> SessionUser:
    return SessionUser(id=user.id, email=getattr(user, "email", None))


class SupabaseIdentityProvider(IdentityProvider):
    """Supabase Auth. A fresh non-persisting client is used per call so no session leaks between requests."""

    def __init__(self, url: str, key: str):
        self.url = url
        self.key = key

    def _client(self) -> Client:
        return create_client(
            self.url,
            self.key,
            options=ClientOptions(auto_refresh_token=False, persist_session=False),
        )

    def resolve_session(self, access_token, refresh_token, cookie_jar: CookieJar) -> SessionResolution:
        if not access_token and not refresh_token:
            return SessionResolution()
        client = self._client()
        rejection = "Auth session missing"
        if access_token:
            try:
                response = client.auth.get_user(access_token)
                if response and response.user:
                    return SessionResolution(user=_session_user(response.user))
            except Exception as e:
                if not is_auth_rejection(e):
                    raise
                rejection = str(e)
        if not refresh_token:
            return SessionResolution(error=rejection)

        # Access token unusable; trade the refresh token for a new pair
        try:
            response = client.auth.refresh_session(refresh_token)
        except Exception as e:
            if not is_auth_rejection(e):
                raise
            cookie_jar.clear_session()
            return SessionResolution(error=str(e))
        if not response.session or not response.user:
            cookie_jar.clear_session()
            return SessionResolution(error="Auth session missing")
        cookie_jar.set_session(response.session.access_token, response.session.refresh_token)
        return SessionResolution(user=_session_user(response.user))

    def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> SessionUser:
        try:
            response = self._client().auth.sign_up({
                "email": email,
                "password": password,
                "options": {
                    "data": metadata,
                    "email_redirect_to": f"{settings.site_url}/auth/callback",
                },
            })
        except Exception as e:
            message = str(e)
            if "already registered" in message.lower() or "already exists" in message.lower():
                raise IdentityError(message, code="user_already_exists") from e
            if is_auth_rejection(e):
                raise IdentityError(message, code=getattr(e, "code", None)) from e
            raise
        if not response.user:
            raise IdentityError("Failed to register user")
        return _session_user(response.user)

    def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = self._client().auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            if is_auth_rejection(e):
                raise IdentityError(str(e), code="invalid_credentials") from e
            raise
        if not response.user or not response.session:
            raise IdentityError("Invalid login credentials", code="invalid_credentials")
        return AuthSession(
            user=_session_user(response.user),
            access_token=response.session.access_token,
            refresh_token=response.session.refresh_token,
        )

    def sign_out(self, access_token: str) -> None:
        # Tokens are stateless JWTs; this revokes the refresh tokens server-side
        self._client().auth.admin.sign_out(access_token)

    def send_password_reset(self, email: str, redirect_to: str) -> None:
        self._client().auth.reset_password_for_email(email, {"redirect_to": redirect_to})

    def update_password(self, access_token: str, refresh_token: Optional[str], password: str) -> None:
        client = self._client()
        try:
            client.auth.set_session(access_token, refresh_token or "")
            client.auth.update_user({"password": password})
        except Exception as e:
            if is_auth_rejection(e):
                raise IdentityError(str(e)) from e
            raise


class InMemoryIdentityProvider(IdentityProvider):
    """
    Local stand-in for Supabase Auth.

    Accounts, access tokens (with expiry) and single-use refresh tokens live in
    memory. Signing up also writes the `users` profile row, which the hosted
    project does with a database trigger.
    """

    def __init__(
        self,
        store,
        ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
        bcrypt_rounds: int = 12,
    ):
        self.store = store
        self.bcrypt_rounds = bcrypt_rounds
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._lock = threading.Lock()
        self._accounts: Dict[str, Dict[str, Any]] = {}
        self._access: Dict[str, Tuple[str, float]] = {}
        self._refresh: Dict[str, str] = {}
        self.sent_resets: list = []

    def _hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.bcrypt_rounds)).decode("utf-8")

    @staticmethod
    def _verify(password: str, password_hash: str) -> bool:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))

    def _issue(self, user_id: str) -> Tuple[str, str]:
        access = secrets.token_urlsafe(24)
        refresh = secrets.token_urlsafe(24)
        self._access[access] = (user_id, self.clock() + self.ttl_seconds)
        self._refresh[refresh] = user_id
        return access, refresh

    def _user(self, user_id: str) -> SessionUser:
        for email, account in self._accounts.items():
            if account["id"] == user_id:
                return SessionUser(id=user_id, email=email)
        raise IdentityError("User not found", code="user_not_found")

    def _check_access(self, access_token: str) -> str:
        entry = self._access.get(access_token)
        if entry is None:
            raise IdentityError("invalid JWT: unable to parse or verify signature", code="bad_jwt")
        user_id, expires_at = entry
        if self.clock() >= expires_at:
            raise IdentityError("JWT expired", code="session_expired")
        return user_id

    def resolve_session(self, access_token, refresh_token, cookie_jar: CookieJar) -> SessionResolution:
        if not access_token and not refresh_token:
            return SessionResolution()
        with self._lock:
            rejection = "Auth session missing"
            if access_token:
                try:
                    return SessionResolution(user=self._user(self._check_access(access_token)))
                except IdentityError as e:
                    rejection = e.message
            if not refresh_token:
                return SessionResolution(error=rejection)
            user_id = self._refresh.pop(refresh_token, None)
            if user_id is None:
                cookie_jar.clear_session()
                return SessionResolution(error="Invalid Refresh Token: Refresh Token Not Found")
            self._access.pop(access_token, None)
            new_access, new_refresh = self._issue(user_id)
        cookie_jar.set_session(new_access, new_refresh)
        return SessionResolution(user=self._user(user_id))

    def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> SessionUser:
        if not email or not password:
            raise IdentityError("Email and password are required", code="validation_failed")
        key = email.lower()
        with self._lock:
            if key in self._accounts:
                raise IdentityError("User already registered", code="user_already_exists")
            user_id = str(uuid.uuid4())
            self._accounts[key] = {
                "id": user_id,
                "password_hash": self._hash(password),
                "metadata": dict(metadata),
            }
        self.store.table("users").insert({
            "id": user_id,
            "email": key,
            "full_name": metadata.get("full_name") or "",
            "role": metadata.get("role") or "participant",
        }).execute()
        logger.info(f"Registered user {user_id}")
        return SessionUser(id=user_id, email=key)

    def sign_in(self, email: str, password: str) -> AuthSession:
        key = (email or "").lower()
        with self._lock:
            account = self._accounts.get(key)
            if account is None or not self._verify(password or "", account["password_hash"]):
                raise IdentityError("Invalid login credentials", code="invalid_credentials")
            access, refresh = self._issue(account["id"])
        return AuthSession(user=SessionUser(id=account["id"], email=key), access_token=access, refresh_token=refresh)

    def sign_out(self, access_token: str) -> None:
        with self._lock:
            entry = self._access.pop(access_token, None)
            if entry is None:
                return
            user_id = entry[0]
            self._refresh = {t: u for t, u in self._refresh.items() if u != user_id}

    def send_password_reset(self, email: str, redirect_to: str) -> None:
        # Unknown addresses are accepted silently, as the hosted provider does
        if (email or "").lower() in self._accounts:
            self.sent_resets.append({"email": email.lower(), "redirect_to": redirect_to})

    def update_password(self, access_token: str, refresh_token: Optional[str], password: str) -> None:
        with self._lock:
            user_id = self._check_access(access_token)
            for account in self._accounts.values():
                if account["id"] == user_id:
                    account["password_hash"] = self._hash(password)
                    return
        raise IdentityError("User not found", code="user_not_found")


def create_identity_provider(store) -> IdentityProvider:
    """Build the identity provider matching STORE_BACKEND"""
    if settings.is_memory_backend:
        return InMemoryIdentityProvider(
            store,
            ttl_seconds=settings.session_ttl_seconds,
            bcrypt_rounds=settings.bcrypt_rounds,
        )
    return SupabaseIdentityProvider(settings.supabase_url, settings.supabase_key)
