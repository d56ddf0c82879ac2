"""
Identity provider capability.

The backend never issues credentials itself; it asks a provider to turn the
caller's session cookies (or bearer token) into a SessionUser. Providers may
rotate the session while resolving it; the new cookies are recorded on a
CookieJar that the caller copies onto whatever response it ends up sending.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from starlette.responses import Response


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class SessionResolution:
    user: Optional[SessionUser] = None
    error: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.user is not None and self.error is None


@dataclass(frozen=True)
class AuthSession:
    user: SessionUser
    access_token: str
    refresh_token: str


class IdentityError(Exception):
    """Raised by providers when the provider rejects the request (bad credentials, duplicate account...)"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


def is_auth_rejection(exc: Exception) -> bool:
    """True when the provider answered with a 4xx, as opposed to being unreachable or failing"""
    if isinstance(exc, IdentityError):
        return True
    status = getattr(exc, "status", None)
    return isinstance(status, int) and 400 <= status < 500


@dataclass(frozen=True)
class CookieMutation:
    name: str
    value: str
    max_age: Optional[int] = None  # 0 deletes the cookie


@dataclass
class CookieJar:
    access_cookie_name: str = "sb-access-token"
    refresh_cookie_name: str = "sb-refresh-token"
    secure: bool = False
    max_age: int = 60 * 60 * 24 * 7
    mutations: List[CookieMutation] = field(default_factory=list)

    def set(self, name: str, value: str, max_age: Optional[int] = None) -> None:
        self.mutations.append(CookieMutation(name, value, self.max_age if max_age is None else max_age))

    def delete(self, name: str) -> None:
        self.mutations.append(CookieMutation(name, "", 0))

    def set_session(self, access_token: str, refresh_token: str) -> None:
        self.set(self.access_cookie_name, access_token)
        self.set(self.refresh_cookie_name, refresh_token)

    def clear_session(self) -> None:
        self.delete(self.access_cookie_name)
        self.delete(self.refresh_cookie_name)

    def apply(self, response: Response) -> Response:
        for mutation in self.mutations:
            response.set_cookie(
                mutation.name,
                mutation.value,
                max_age=mutation.max_age,
                path="/",
                secure=self.secure,
                httponly=True,
                samesite="lax",
            )
        return response

    def header_items(self) -> List[Tuple[bytes, bytes]]:
        """Raw Set-Cookie headers, for middleware that only sees ASGI messages"""
        scratch = self.apply(Response())
        return [(k, v) for k, v in scratch.raw_headers if k == b"set-cookie"]


class IdentityProvider(ABC):

    @abstractmethod
    def resolve_session(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str],
        cookie_jar: CookieJar,
    ) -> SessionResolution:
        """Rejections come back as SessionResolution.error; infrastructure failures raise."""

    @abstractmethod
    def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> SessionUser:
        ...

    @abstractmethod
    def sign_in(self, email: str, password: str) -> AuthSession:
        ...

    @abstractmethod
    def sign_out(self, access_token: str) -> None:
        ...

    @abstractmethod
    def send_password_reset(self, email: str, redirect_to: str) -> None:
        ...

    @abstractmethod
    def update_password(self, access_token: str, refresh_token: Optional[str], password: str) -> None:
        ...
