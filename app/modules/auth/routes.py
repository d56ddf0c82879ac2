from fastapi import APIRouter, Depends, Request, Response, Security
from fastapi.security import HTTPAuthorizationCredentials
from app.config import settings
from app.core.dependencies import (
    get_store, get_identity, new_cookie_jar, read_session_tokens, require_session_user, security
)
from app.core.identity import IdentityProvider, SessionUser
from app.core.rate_limit import limiter
from app.modules.auth.schemas import (
    SignUpRequest, SignUpResponse, SignInRequest, SignInResponse,
    ForgotPasswordRequest, ResetPasswordRequest, AuthActionResponse, CurrentUserResponse
)
from app.modules.auth.service import AuthService
from typing import Optional

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(
    identity: IdentityProvider = Depends(get_identity),
    store=Depends(get_store)
) -> AuthService:
    return AuthService(identity, store)


@router.post("/sign-up", response_model=SignUpResponse, status_code=201)
@limiter.limit(settings.auth_rate_limit)
async def sign_up(
    request: Request,
    sign_up_data: SignUpRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new participant or event manager"""
    return service.sign_up(sign_up_data)


@router.post("/sign-in", response_model=SignInResponse)
@limiter.limit(settings.auth_rate_limit)
async def sign_in(
    request: Request,
    sign_in_data: SignInRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service)
):
    """Sign in, set the session cookies and return the caller's home page"""
    result, session = service.sign_in(sign_in_data)
    jar = new_cookie_jar()
    jar.set_session(session.access_token, session.refresh_token)
    jar.apply(response)
    return result


@router.post("/sign-out", response_model=AuthActionResponse)
async def sign_out(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    service: AuthService = Depends(get_auth_service)
):
    """Sign out and clear the session cookies"""
    access_token, _ = read_session_tokens(request, credentials)
    result = service.sign_out(access_token)
    jar = new_cookie_jar()
    jar.clear_session()
    jar.apply(response)
    return result


@router.post("/forgot-password", response_model=AuthActionResponse)
@limiter.limit(settings.auth_rate_limit)
async def forgot_password(
    request: Request,
    forgot_data: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Send a password reset link"""
    return service.forgot_password(forgot_data)


@router.post("/reset-password", response_model=AuthActionResponse)
async def reset_password(
    request: Request,
    reset_data: ResetPasswordRequest,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    service: AuthService = Depends(get_auth_service)
):
    """Set a new password for the signed-in caller"""
    access_token, refresh_token = read_session_tokens(request, credentials)
    return service.reset_password(access_token, refresh_token, reset_data)


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user(
    current_user: SessionUser = Depends(require_session_user),
    service: AuthService = Depends(get_auth_service)
):
    """Current caller with profile name and role"""
    return service.me(current_user)
