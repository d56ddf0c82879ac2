"""
Core dependencies for session resolution and backend handles
"""

from fastapi import Depends, HTTPException, Request, Response, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import settings
from app.core.events import ChangeBus
from app.core.identity import CookieJar, IdentityProvider, SessionUser
from app.core.view_cache import ViewCache
from app.modules.users.service import UserService
from typing import Optional, Tuple
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_store(request: Request):
    """Data store handle injected into the app by create_app"""
    return request.app.state.store


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_events(request: Request) -> ChangeBus:
    return request.app.state.events


def get_view_cache(request: Request) -> ViewCache:
    return request.app.state.view_cache


def get_user_service(store=Depends(get_store)) -> UserService:
    return UserService(store)


def new_cookie_jar() -> CookieJar:
    return CookieJar(
        access_cookie_name=settings.access_cookie_name,
        refresh_cookie_name=settings.refresh_cookie_name,
        secure=settings.cookie_secure,
        max_age=settings.cookie_max_age,
    )


def read_session_tokens(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = None
) -> Tuple[Optional[str], Optional[str]]:
    """Bearer token wins over the session cookie; the refresh token only ever comes from the cookie"""
    access_token = request.cookies.get(settings.access_cookie_name)
    if credentials and credentials.scheme and credentials.scheme.lower() == "bearer" and credentials.credentials:
        access_token = credentials.credentials
    return access_token, request.cookies.get(settings.refresh_cookie_name)


def get_session_user(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    identity: IdentityProvider = Depends(get_identity)
) -> Optional[SessionUser]:
    """Current caller or None. Never raises: services decide what an anonymous caller gets."""
    # Page requests were already resolved (and their cookies rotated) by the access gate
    gated = getattr(request.state, "session_resolution", None)
    if gated is not None:
        return gated.user if gated.authenticated else None

    access_token, refresh_token = read_session_tokens(request, credentials)
    jar = new_cookie_jar()
    try:
        resolution = identity.resolve_session(access_token, refresh_token, jar)
    except Exception as e:
        logger.error(f"Session resolution failed: {e}")
        return None
    finally:
        jar.apply(response)
    if not resolution.authenticated:
        return None
    return resolution.user


def require_session_user(
    user: Optional[SessionUser] = Depends(get_session_user)
) -> SessionUser:
    """Dependency for routes that make no sense without a caller"""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You must be logged in"
        )
    return user
